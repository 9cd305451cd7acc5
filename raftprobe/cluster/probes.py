"""
Single-shot state probes against tablet replicas.

Each probe issues exactly one RPC per replica and never retries. Retrying is
the caller's decision; see raftprobe.cluster.poller for bounded waits.
"""

from typing import Dict, List, Sequence
import asyncio
import logging

from raftprobe.cluster.replica import ReplicaHandle
from raftprobe.core.consensus_state import ConsensusSnapshot
from raftprobe.core.constants import LeaderStatus
from raftprobe.core.errors import HarnessError, NotFound, ProtocolError
from raftprobe.core.opid import LogPosition


logger = logging.getLogger("raftprobe.probes")


async def get_last_log_position(replica: ReplicaHandle, tablet_id: str, timeout: float) -> LogPosition:
    """
    Get the position of the last entry in a replica's log for a tablet.

    Raises:
        Unreachable: If the replica does not answer within the timeout.
        NotFound: If the replica does not host the tablet.
        ProtocolError: If the response has no valid op id.
    """
    response = await replica.consensus_proxy.get_last_op_id(tablet_id, timeout)
    return LogPosition.from_dict(response.get('opid'))


async def get_last_log_position_for_each(tablet_id: str, replicas: Sequence[ReplicaHandle], timeout: float,
                                         max_fanout: int = 16) -> Dict[str, LogPosition]:
    """
    Get the last log position of every replica concurrently.

    All calls run to completion before this returns. If any of them failed,
    the first failure in replica order is raised and no partial result is
    returned.

    Args:
        tablet_id: The tablet to query.
        replicas: The replicas to query.
        timeout: Per-call timeout in seconds.
        max_fanout: Upper bound on concurrent calls.

    Returns:
        Mapping of replica uuid to its last log position.
    """
    if not replicas:
        return {}

    semaphore = asyncio.Semaphore(min(len(replicas), max_fanout))

    async def probe(replica: ReplicaHandle) -> LogPosition:
        async with semaphore:
            return await get_last_log_position(replica, tablet_id, timeout)

    results = await asyncio.gather(*(probe(r) for r in replicas), return_exceptions=True)

    positions = {}
    for replica, result in zip(replicas, results):
        if isinstance(result, BaseException):
            logger.debug(f"Replica {replica.uuid} failed to report its last op id: {result}")
            raise result
        positions[replica.uuid] = result
    return positions


async def get_consensus_snapshot(replica: ReplicaHandle, tablet_id: str, timeout: float) -> ConsensusSnapshot:
    """
    Get the committed membership and leader as currently known to one replica.
    """
    response = await replica.consensus_proxy.get_consensus_state(tablet_id, timeout)
    return ConsensusSnapshot.from_dict(response)


async def get_leader_status(replica: ReplicaHandle, tablet_id: str, timeout: float) -> LeaderStatus:
    """
    Classify a replica with respect to the tablet's leadership.

    Returns:
        NOT_FOUND if the replica does not host the tablet or is not a member of
        its committed config, LEADER if the replica reports itself as leader,
        NOT_LEADER otherwise.

    Raises:
        Unreachable: If the replica does not answer. Reachability problems are
            errors, not classifications.
    """
    try:
        snapshot = await get_consensus_snapshot(replica, tablet_id, timeout)
    except NotFound:
        return LeaderStatus.NOT_FOUND

    if not snapshot.has_member(replica.uuid):
        return LeaderStatus.NOT_FOUND
    if snapshot.leader_uuid == replica.uuid:
        return LeaderStatus.LEADER
    return LeaderStatus.NOT_LEADER


async def list_tablets(replica: ReplicaHandle, timeout: float) -> List[str]:
    """Get the ids of the tablets a server hosts."""
    response = await replica.tserver_proxy.list_tablets(timeout)
    tablets = response.get('tablet_ids')
    if not isinstance(tablets, list) or not all(isinstance(t, str) for t in tablets):
        raise ProtocolError(f"ListTablets returned an unexpected body: {response!r}")
    return tablets


async def ping(replica: ReplicaHandle, timeout: float) -> bool:
    """Return True if the server answers, False if it cannot be reached."""
    try:
        await replica.tserver_proxy.ping(timeout)
    except HarnessError as e:
        logger.debug(f"Ping to {replica.uuid} failed: {e}")
        return False
    return True
