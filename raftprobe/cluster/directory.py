from typing import Dict, Iterator, List, Optional
import logging

from raftprobe.cluster.replica import ReplicaHandle
from raftprobe.config import HarnessConfig
from raftprobe.core.errors import NotFound, ProtocolError
from raftprobe.network.master import MasterProxy


class ClusterDirectory:
    """
    Owning registry of the cluster's tablet servers.

    Holds two mappings: uuid -> ReplicaHandle for every server the master
    reported, and tablet id -> replicas hosting that tablet. Every handle in
    the tablet mapping is also in the uuid mapping. The tablet mapping starts
    empty and only changes through add_replica(), remove_replica() and
    locate_tablet(); the directory never refreshes itself.

    Closing the directory closes every handle it owns.
    """

    def __init__(self, master: MasterProxy, config: Optional[HarnessConfig] = None,
                 owns_master: bool = False):
        self.master = master
        self.config = config or HarnessConfig()
        self._owns_master = owns_master
        self._servers: Dict[str, ReplicaHandle] = {}
        self._tablet_replicas: Dict[str, List[ReplicaHandle]] = {}
        self.logger = logging.getLogger("raftprobe.directory")

    @classmethod
    async def build(cls, master: MasterProxy, config: Optional[HarnessConfig] = None,
                    timeout: Optional[float] = None) -> 'ClusterDirectory':
        """
        Build a directory by listing the tablet servers registered with the master.

        Args:
            master: Proxy for the master.
            config: Harness configuration. Defaults to HarnessConfig().
            timeout: Timeout for the listing request. Defaults to config.rpc_timeout.

        Raises:
            Unreachable: If the master cannot be reached.
            ProtocolError: If the master's response is malformed.
        """
        directory = cls(master, config)
        timeout = directory.config.rpc_timeout if timeout is None else timeout

        servers = await master.list_tablet_servers(timeout)
        try:
            for uuid, registration in servers:
                if uuid in directory._servers:
                    raise ProtocolError(f"Master listed tablet server {uuid} more than once")
                directory._servers[uuid] = ReplicaHandle.connect(uuid, registration)
        except ProtocolError:
            directory.close_handles()
            raise

        directory.logger.info(f"Built cluster directory with {len(directory._servers)} tablet servers")
        return directory

    @classmethod
    async def from_config(cls, config: HarnessConfig) -> 'ClusterDirectory':
        """Build a directory against config.master_url, owning the master proxy."""
        if not config.master_url:
            raise ValueError("HarnessConfig.master_url is not set")

        master = MasterProxy(config.master_url)
        try:
            directory = await cls.build(master, config)
        except BaseException:
            await master.close()
            raise
        directory._owns_master = True
        return directory

    def lookup_tablet(self, tablet_id: str) -> List[ReplicaHandle]:
        """Return the known replicas of a tablet, or an empty list if none are known."""
        return list(self._tablet_replicas.get(tablet_id, ()))

    def get(self, uuid: str) -> Optional[ReplicaHandle]:
        return self._servers.get(uuid)

    def servers(self) -> List[ReplicaHandle]:
        return list(self._servers.values())

    def add_replica(self, tablet_id: str, uuid: str) -> ReplicaHandle:
        """
        Record that the server with the given uuid hosts a replica of a tablet.

        Raises:
            NotFound: If the uuid is not a known server.
        """
        handle = self[uuid]
        replicas = self._tablet_replicas.setdefault(tablet_id, [])
        if handle not in replicas:
            replicas.append(handle)
        return handle

    def remove_replica(self, tablet_id: str, uuid: str) -> None:
        """
        Forget that a server hosts a replica of a tablet.

        Raises:
            NotFound: If the server is not a recorded replica of the tablet.
        """
        replicas = self._tablet_replicas.get(tablet_id, [])
        for handle in replicas:
            if handle.uuid == uuid:
                replicas.remove(handle)
                break
        else:
            raise NotFound(f"{uuid} is not a known replica of tablet {tablet_id}")

        if not replicas:
            del self._tablet_replicas[tablet_id]

    async def locate_tablet(self, tablet_id: str, timeout: Optional[float] = None) -> List[ReplicaHandle]:
        """
        Replace the tablet's replica list with the master's current locations.

        Raises:
            NotFound: If the master does not know the tablet.
            ProtocolError: If the master names a server missing from the directory.
        """
        timeout = self.config.rpc_timeout if timeout is None else timeout
        locations = await self.master.get_tablet_locations(tablet_id, timeout)

        replicas = []
        for uuid, _role in locations:
            handle = self._servers.get(uuid)
            if handle is None:
                raise ProtocolError(f"Master placed tablet {tablet_id} on unknown server {uuid}")
            replicas.append(handle)

        self._tablet_replicas[tablet_id] = replicas
        self.logger.debug(f"Tablet {tablet_id} is hosted by {[r.uuid for r in replicas]}")
        return list(replicas)

    def close_handles(self) -> None:
        for handle in self._servers.values():
            handle.close()

    async def close(self) -> None:
        """Close every owned handle, and the master proxy if the directory created it."""
        self.close_handles()
        self._tablet_replicas.clear()
        if self._owns_master:
            await self.master.close()

    async def __aenter__(self) -> 'ClusterDirectory':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __getitem__(self, uuid: str) -> ReplicaHandle:
        handle = self._servers.get(uuid)
        if handle is None:
            raise NotFound(f"Unknown tablet server {uuid}")
        return handle

    def __contains__(self, uuid: object) -> bool:
        return uuid in self._servers

    def __len__(self) -> int:
        return len(self._servers)

    def __iter__(self) -> Iterator[ReplicaHandle]:
        return iter(list(self._servers.values()))
