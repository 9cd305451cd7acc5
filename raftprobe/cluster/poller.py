"""
Deadline-bounded waits for cluster convergence.

Every wait is built on retry_until(): the first attempt runs immediately, the
deadline is checked before each later attempt, and attempts are separated by a
fixed sleep. Errors from individual attempts mean "not yet"; once the deadline
passes the wait raises TimedOut chained to the last error seen. An RPC already
in flight when the deadline passes is allowed to finish.
"""

from typing import Awaitable, Callable, Dict, Optional, Sequence, TypeVar, Union
import asyncio
import logging

from raftprobe.cluster import probes
from raftprobe.cluster.replica import ReplicaHandle
from raftprobe.config import HarnessConfig
from raftprobe.core.consensus_state import ConsensusSnapshot
from raftprobe.core.constants import LeaderStatus
from raftprobe.core.deadline import Deadline
from raftprobe.core.errors import HarnessError, TimedOut
from raftprobe.core.opid import LogPosition


T = TypeVar('T')

DeadlineLike = Union[Deadline, float, int]

logger = logging.getLogger("raftprobe.poller")


async def retry_until(
    probe: Callable[[float], Awaitable[T]],
    predicate: Callable[[T], bool],
    deadline: DeadlineLike,
    retry_interval: float,
    what: str,
    rpc_timeout: float = 10.0,
) -> T:
    """
    Run a probe until its result satisfies a predicate or the deadline passes.

    Args:
        probe: Coroutine function called with the per-attempt RPC timeout.
        predicate: Returns True when the probe result is acceptable.
        deadline: A Deadline, or a number of seconds from now.
        retry_interval: Fixed sleep between attempts in seconds.
        what: Description of the awaited condition, for messages.
        rpc_timeout: Upper bound on the per-attempt RPC timeout.

    Returns:
        The first probe result that satisfied the predicate.

    Raises:
        TimedOut: If the deadline passed first. The last attempt error, if any,
            is kept as last_error and chained as the cause.
    """
    deadline = Deadline.coerce(deadline)
    last_error: Optional[HarnessError] = None
    last_result = None
    attempt = 0

    while True:
        attempt += 1
        remaining = deadline.remaining()
        attempt_timeout = min(rpc_timeout, remaining) if remaining > 0 else rpc_timeout

        try:
            result = await probe(attempt_timeout)
        except HarnessError as e:
            last_error = e
            logger.debug(f"Waiting for {what}: attempt {attempt} failed: {e}", extra={'attempt': attempt})
        else:
            if predicate(result):
                logger.debug(f"{what} satisfied after {attempt} attempt(s)", extra={'attempt': attempt})
                return result
            last_result = result
            logger.debug(f"Waiting for {what}: attempt {attempt} saw {result}", extra={'attempt': attempt})

        if deadline.expired():
            break
        await asyncio.sleep(min(retry_interval, deadline.remaining()))
        if deadline.expired():
            break

    message = f"Timed out waiting for {what} after {attempt} attempt(s)"
    if last_result is not None:
        message += f"; last observed: {last_result}"
    if last_error is not None:
        message += f"; last error: {last_error}"
    logger.warning(message)
    raise TimedOut(message, last_error=last_error) from last_error


def _config(config: Optional[HarnessConfig]) -> HarnessConfig:
    return config or HarnessConfig()


async def wait_for_agreement(replicas: Sequence[ReplicaHandle], tablet_id: str, minimum_index: int,
                             deadline: DeadlineLike,
                             config: Optional[HarnessConfig] = None) -> LogPosition:
    """
    Wait until every replica reports the same last log position, at or past minimum_index.

    Every replica must answer in the same attempt. A replica that cannot be
    reached only makes that attempt fail; once the deadline passes TimedOut is
    raised with the last such error attached.

    Returns:
        The agreed log position.
    """
    if not replicas:
        raise ValueError("wait_for_agreement needs at least one replica")
    config = _config(config)

    async def probe(timeout: float) -> Dict[str, LogPosition]:
        return await probes.get_last_log_position_for_each(tablet_id, replicas, timeout, config.max_fanout)

    def agreed(positions: Dict[str, LogPosition]) -> bool:
        distinct = set(positions.values())
        return len(distinct) == 1 and next(iter(distinct)).index >= minimum_index

    positions = await retry_until(
        probe, agreed, deadline, config.retry_interval,
        f"{len(replicas)} replicas of tablet {tablet_id} to agree at index >= {minimum_index}",
        rpc_timeout=config.rpc_timeout,
    )
    return next(iter(positions.values()))


async def wait_for_all_at_or_past(replicas: Sequence[ReplicaHandle], tablet_id: str, minimum_index: int,
                                  deadline: DeadlineLike,
                                  config: Optional[HarnessConfig] = None) -> Dict[str, LogPosition]:
    """
    Wait until every replica has logged at least minimum_index.

    Unlike wait_for_agreement(), replicas need not match each other. A replica
    seen at or past the index is not probed again.

    Returns:
        Mapping of replica uuid to the first position seen at or past the index.
    """
    config = _config(config)
    reached: Dict[str, LogPosition] = {}

    async def probe(timeout: float) -> Dict[str, LogPosition]:
        pending = [r for r in replicas if r.uuid not in reached]
        results = await asyncio.gather(
            *(probes.get_last_log_position(r, tablet_id, timeout) for r in pending),
            return_exceptions=True,
        )
        first_error = None
        for replica, result in zip(pending, results):
            if isinstance(result, HarnessError):
                first_error = first_error or result
            elif isinstance(result, BaseException):
                raise result
            elif result.index >= minimum_index:
                reached[replica.uuid] = result
        if first_error is not None:
            raise first_error
        return dict(reached)

    def all_reached(positions: Dict[str, LogPosition]) -> bool:
        return len(positions) == len({r.uuid for r in replicas})

    return await retry_until(
        probe, all_reached, deadline, config.retry_interval,
        f"replicas of tablet {tablet_id} to reach index {minimum_index}",
        rpc_timeout=config.rpc_timeout,
    )


async def wait_for_membership_size(replica: ReplicaHandle, tablet_id: str, expected_size: int,
                                   deadline: DeadlineLike,
                                   config: Optional[HarnessConfig] = None) -> ConsensusSnapshot:
    """
    Wait until the replica's committed config has exactly expected_size voters.
    """
    config = _config(config)

    async def probe(timeout: float) -> ConsensusSnapshot:
        return await probes.get_consensus_snapshot(replica, tablet_id, timeout)

    return await retry_until(
        probe, lambda snapshot: snapshot.voter_count == expected_size,
        deadline, config.retry_interval,
        f"{replica.uuid} to report {expected_size} voters for tablet {tablet_id}",
        rpc_timeout=config.rpc_timeout,
    )


async def wait_for_leader(replica: ReplicaHandle, tablet_id: str, deadline: DeadlineLike,
                          config: Optional[HarnessConfig] = None) -> None:
    """
    Wait until the replica reports itself leader of the tablet.

    NOT_FOUND means the replica may not have joined yet and is retried.
    """
    config = _config(config)

    async def probe(timeout: float) -> LeaderStatus:
        return await probes.get_leader_status(replica, tablet_id, timeout)

    await retry_until(
        probe, lambda status: status == LeaderStatus.LEADER,
        deadline, config.retry_interval,
        f"{replica.uuid} to become leader of tablet {tablet_id}",
        rpc_timeout=config.rpc_timeout,
    )


async def find_leader(replicas: Sequence[ReplicaHandle], tablet_id: str, deadline: DeadlineLike,
                      config: Optional[HarnessConfig] = None) -> ReplicaHandle:
    """
    Wait until exactly one of the replicas reports itself leader, and return it.

    Unreachable replicas are skipped within an attempt.
    """
    config = _config(config)

    async def probe(timeout: float) -> Dict[str, LeaderStatus]:
        results = await asyncio.gather(
            *(probes.get_leader_status(r, tablet_id, timeout) for r in replicas),
            return_exceptions=True,
        )
        statuses = {}
        for replica, result in zip(replicas, results):
            if isinstance(result, HarnessError):
                logger.debug(f"Skipping {replica.uuid} while looking for a leader: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            statuses[replica.uuid] = result
        return statuses

    def one_leader(statuses: Dict[str, LeaderStatus]) -> bool:
        return list(statuses.values()).count(LeaderStatus.LEADER) == 1

    statuses = await retry_until(
        probe, one_leader, deadline, config.retry_interval,
        f"a single leader of tablet {tablet_id}",
        rpc_timeout=config.rpc_timeout,
    )
    leader_uuid = next(uuid for uuid, status in statuses.items() if status == LeaderStatus.LEADER)
    return next(r for r in replicas if r.uuid == leader_uuid)
