"""
Network layer: the msgpack RPC transport, the typed tablet server proxies and
the master's HTTP directory client.
"""

from raftprobe.network.transport import RpcProxy, RpcServer
from raftprobe.network.proxies import ConsensusProxy, TabletServerAdminProxy, TabletServerProxy
from raftprobe.network.master import MasterProxy

__all__ = [
    'RpcProxy',
    'RpcServer',
    'ConsensusProxy',
    'TabletServerAdminProxy',
    'TabletServerProxy',
    'MasterProxy',
]
