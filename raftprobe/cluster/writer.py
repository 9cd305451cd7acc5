from typing import Any, Dict, List
import logging

from raftprobe.cluster.replica import ReplicaHandle
from raftprobe.core.constants import RowOperationType
from raftprobe.core.errors import error_from_response


logger = logging.getLogger("raftprobe.writer")

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

# (key int32 primary key, int_val int32, string_val string)
SIMPLE_TEST_SCHEMA: List[Dict[str, Any]] = [
    {'name': 'key', 'type': 'INT32', 'is_key': True, 'is_nullable': False},
    {'name': 'int_val', 'type': 'INT32', 'is_key': False, 'is_nullable': False},
    {'name': 'string_val', 'type': 'STRING', 'is_key': False, 'is_nullable': True},
]

# (key int32 primary key)
SIMPLE_INT_KEY_SCHEMA: List[Dict[str, Any]] = [
    {'name': 'key', 'type': 'INT32', 'is_key': True, 'is_nullable': False},
]


def _check_int32(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not INT32_MIN <= value <= INT32_MAX:
        raise ValueError(f"{name} must be an int32, got {value!r}")


async def write_simple_test_row(replica: ReplicaHandle, tablet_id: str, op_type: RowOperationType,
                                key: int, int_val: int, string_val: str, timeout: float) -> None:
    """
    Write one row of the simple test schema to a tablet on a single replica.

    Nothing stops the write from going to a non-leader; the resulting
    NotLeader error is raised to the caller.

    Args:
        replica: The replica to write to.
        tablet_id: The tablet to write to.
        op_type: INSERT or UPDATE.
        key: The row key.
        int_val: The int_val column.
        string_val: The string_val column.
        timeout: RPC timeout in seconds.

    Raises:
        ValueError: If key or int_val is not an int32.
        HarnessError: The mapped error if the write or the row failed.
    """
    _check_int32('key', key)
    _check_int32('int_val', int_val)

    row_operation = {
        'type': op_type.value,
        'row': {'key': key, 'int_val': int_val, 'string_val': string_val},
    }
    logger.debug(f"Writing {op_type.value} key={key} to {replica.uuid} for tablet {tablet_id}")
    response = await replica.tserver_proxy.write(tablet_id, SIMPLE_TEST_SCHEMA, [row_operation], timeout)

    row_errors = response.get('per_row_errors') or []
    if row_errors:
        raise error_from_response(row_errors[0].get('error') if isinstance(row_errors[0], dict) else None)
