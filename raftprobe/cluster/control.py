"""
Operations that perturb a tablet's consensus group.

Each operation is synchronous only with respect to its single RPC. None of
them waits for the cluster to converge; compose them with the waits in
raftprobe.cluster.poller for that.
"""

import logging

from raftprobe.cluster.replica import ReplicaHandle
from raftprobe.core.constants import ChangeConfigType, MemberType
from raftprobe.core.errors import raise_for_error


logger = logging.getLogger("raftprobe.control")


async def request_election(replica: ReplicaHandle, tablet_id: str, timeout: float) -> None:
    """
    Ask a replica to start a leader election.

    Returns once the replica acknowledges the request. The outcome of the
    election is not awaited; use wait_for_leader() for that.
    """
    logger.info(f"Requesting election on {replica.uuid} for tablet {tablet_id}")
    await replica.consensus_proxy.run_leader_election(tablet_id, timeout)


async def request_step_down(leader: ReplicaHandle, tablet_id: str, timeout: float) -> None:
    """
    Ask a leader to give up leadership.

    Returns once the leader has stepped down locally. A new leader may not
    have been elected yet.

    Raises:
        NotLeader: If the replica was not the leader.
    """
    logger.info(f"Requesting step down of {leader.uuid} for tablet {tablet_id}")
    response = await leader.consensus_proxy.leader_step_down(tablet_id, timeout)
    # Step down also reports refusals in a nested tablet server error.
    if response.get('tserver_error') is not None:
        raise_for_error({'error': response['tserver_error']})


async def change_membership(leader: ReplicaHandle, tablet_id: str, target: ReplicaHandle,
                            mode: ChangeConfigType, member_type: MemberType, timeout: float) -> None:
    """
    Send a config change for target to the tablet's leader.

    Returns once the leader accepted the change for replication; the change
    may not be committed yet. Use wait_for_membership_size() for that.

    Raises:
        NotLeader: If the replica was not the leader.
        AlreadyPresent: If adding a member that is already in the config.
        NotPresent: If removing a member that is not in the config.
    """
    logger.info(f"Requesting {mode.value} of {target.uuid} ({member_type.value}) "
                f"via {leader.uuid} for tablet {tablet_id}")
    await leader.consensus_proxy.change_config(tablet_id, mode, target.to_peer_dict(), member_type, timeout)


async def add_server(leader: ReplicaHandle, tablet_id: str, replica_to_add: ReplicaHandle,
                     member_type: MemberType, timeout: float) -> None:
    await change_membership(leader, tablet_id, replica_to_add, ChangeConfigType.ADD_SERVER, member_type, timeout)


async def remove_server(leader: ReplicaHandle, tablet_id: str, replica_to_remove: ReplicaHandle,
                        timeout: float) -> None:
    await change_membership(leader, tablet_id, replica_to_remove, ChangeConfigType.REMOVE_SERVER,
                            MemberType.VOTER, timeout)


async def delete_tablet(replica: ReplicaHandle, tablet_id: str, timeout: float) -> None:
    """
    Delete a tablet replica through the admin service.

    Raises:
        NotFound: If the server does not host the tablet.
    """
    logger.info(f"Deleting tablet {tablet_id} on {replica.uuid}")
    await replica.admin_proxy.delete_tablet(tablet_id, timeout)
