from typing import Any, Dict

from raftprobe.core.errors import ProtocolError
from raftprobe.core.registration import Registration
from raftprobe.network.proxies import ConsensusProxy, TabletServerAdminProxy, TabletServerProxy
from raftprobe.utils.rpc_metrics import RpcMetrics


class ReplicaHandle:
    """
    Reference to one tablet server and the RPC proxies used to talk to it.

    All three proxies target the server's first advertised RPC address and are
    built together by connect(), so a handle is always fully usable until it is
    closed.
    """

    def __init__(self, uuid: str, registration: Registration, tserver_proxy: TabletServerProxy,
                 admin_proxy: TabletServerAdminProxy, consensus_proxy: ConsensusProxy):
        self.uuid = uuid
        self.registration = registration
        self.tserver_proxy = tserver_proxy
        self.admin_proxy = admin_proxy
        self.consensus_proxy = consensus_proxy

    @classmethod
    def connect(cls, uuid: str, registration: Registration) -> 'ReplicaHandle':
        """
        Build a handle with proxies for the server's preferred RPC address.

        Raises:
            ProtocolError: If the registration advertises no RPC address.
        """
        if not registration.rpc_addresses:
            raise ProtocolError(f"Tablet server {uuid} registered without an RPC address")

        address = registration.rpc_addresses[0]
        return cls(
            uuid=uuid,
            registration=registration,
            tserver_proxy=TabletServerProxy(address.host, address.port),
            admin_proxy=TabletServerAdminProxy(address.host, address.port),
            consensus_proxy=ConsensusProxy(address.host, address.port),
        )

    @property
    def closed(self) -> bool:
        return self.consensus_proxy.closed

    def close(self) -> None:
        """Release the handle's proxies. Calls made afterwards raise IllegalState."""
        self.tserver_proxy.close()
        self.admin_proxy.close()
        self.consensus_proxy.close()

    @property
    def metrics(self) -> RpcMetrics:
        """Combined RPC metrics of the three proxies."""
        return self.tserver_proxy.metrics.merge(self.admin_proxy.metrics).merge(self.consensus_proxy.metrics)

    def to_peer_dict(self) -> Dict[str, Any]:
        """The server description sent in config change requests."""
        return {
            'permanent_uuid': self.uuid,
            'last_known_addr': self.registration.rpc_addresses[0].to_dict(),
        }

    def __str__(self) -> str:
        return f"{self.uuid} ({self.registration.rpc_addresses[0]})"

    def __repr__(self) -> str:
        return f"ReplicaHandle(uuid={self.uuid!r}, rpc={self.registration.rpc_addresses[0]})"
