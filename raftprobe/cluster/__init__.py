"""
Cluster-level harness operations: the directory of replicas, single-shot
probes, deadline-bounded waits, control operations and the test row writer.
"""

from raftprobe.cluster.replica import ReplicaHandle
from raftprobe.cluster.directory import ClusterDirectory
from raftprobe.cluster.probes import (
    get_consensus_snapshot,
    get_last_log_position,
    get_last_log_position_for_each,
    get_leader_status,
    list_tablets,
    ping,
)
from raftprobe.cluster.poller import (
    find_leader,
    retry_until,
    wait_for_agreement,
    wait_for_all_at_or_past,
    wait_for_leader,
    wait_for_membership_size,
)
from raftprobe.cluster.control import (
    add_server,
    change_membership,
    delete_tablet,
    remove_server,
    request_election,
    request_step_down,
)
from raftprobe.cluster.writer import SIMPLE_INT_KEY_SCHEMA, SIMPLE_TEST_SCHEMA, write_simple_test_row

__all__ = [
    'ReplicaHandle',
    'ClusterDirectory',
    'get_consensus_snapshot',
    'get_last_log_position',
    'get_last_log_position_for_each',
    'get_leader_status',
    'list_tablets',
    'ping',
    'find_leader',
    'retry_until',
    'wait_for_agreement',
    'wait_for_all_at_or_past',
    'wait_for_leader',
    'wait_for_membership_size',
    'add_server',
    'change_membership',
    'delete_tablet',
    'remove_server',
    'request_election',
    'request_step_down',
    'SIMPLE_INT_KEY_SCHEMA',
    'SIMPLE_TEST_SCHEMA',
    'write_simple_test_row',
]
