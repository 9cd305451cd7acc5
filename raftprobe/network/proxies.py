"""
Typed proxies for the services a tablet server exposes.

All three proxies of one server target the same endpoint; each method maps one
to one onto a remote method and takes an explicit timeout.
"""

from typing import Any, Dict, List

from raftprobe.core.constants import ChangeConfigType, MemberType
from raftprobe.network.transport import RpcProxy


class TabletServerProxy(RpcProxy):
    """Data-plane service."""

    service_name = 'tserver'

    async def write(self, tablet_id: str, schema: List[Dict[str, Any]],
                    row_operations: List[Dict[str, Any]], timeout: float) -> Dict[str, Any]:
        return await self.call('Write', {
            'tablet_id': tablet_id,
            'schema': schema,
            'row_operations': row_operations,
        }, timeout)

    async def list_tablets(self, timeout: float) -> Dict[str, Any]:
        return await self.call('ListTablets', {}, timeout)

    async def ping(self, timeout: float) -> Dict[str, Any]:
        return await self.call('Ping', {}, timeout)


class TabletServerAdminProxy(RpcProxy):
    """Administrative service."""

    service_name = 'tserver_admin'

    async def delete_tablet(self, tablet_id: str, timeout: float) -> Dict[str, Any]:
        return await self.call('DeleteTablet', {'tablet_id': tablet_id}, timeout)


class ConsensusProxy(RpcProxy):
    """Consensus-control service."""

    service_name = 'consensus'

    async def get_last_op_id(self, tablet_id: str, timeout: float) -> Dict[str, Any]:
        return await self.call('GetLastOpId', {'tablet_id': tablet_id}, timeout)

    async def get_consensus_state(self, tablet_id: str, timeout: float) -> Dict[str, Any]:
        return await self.call('GetConsensusState', {'tablet_id': tablet_id, 'type': 'COMMITTED'}, timeout)

    async def run_leader_election(self, tablet_id: str, timeout: float) -> Dict[str, Any]:
        return await self.call('RunLeaderElection', {'tablet_id': tablet_id}, timeout)

    async def leader_step_down(self, tablet_id: str, timeout: float) -> Dict[str, Any]:
        return await self.call('LeaderStepDown', {'tablet_id': tablet_id}, timeout)

    async def change_config(self, tablet_id: str, change_type: ChangeConfigType, server: Dict[str, Any],
                            member_type: MemberType, timeout: float) -> Dict[str, Any]:
        return await self.call('ChangeConfig', {
            'tablet_id': tablet_id,
            'type': change_type.value,
            'server': dict(server, member_type=member_type.value),
        }, timeout)
