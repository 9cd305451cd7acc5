from typing import Any, List, Optional, Tuple
from urllib.parse import quote
import asyncio
import logging

import aiohttp

from raftprobe.core.constants import MemberRole
from raftprobe.core.errors import NotFound, ProtocolError, RemoteError, Unreachable
from raftprobe.core.registration import Registration


class MasterProxy:
    """
    HTTP client for the master's directory of tablet servers and tablet locations.

    Endpoints:
        GET /tablet-servers
            {"servers": [{"instance_id": {"permanent_uuid": str},
                          "registration": {...}}, ...]}
        GET /tablets/{tablet_id}/locations
            {"tablet_id": str, "replicas": [{"ts_uuid": str, "role": str}, ...]}
    """

    def __init__(self, base_url: str, session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize a new master proxy.

        Args:
            base_url: The master's base URL, for example "http://127.0.0.1:8051".
            session: An aiohttp session to use. If None, the proxy creates and
                owns one on first use.
        """
        self.base_url = base_url.rstrip('/')
        self._session = session
        self._owns_session = session is None
        self.logger = logging.getLogger("raftprobe.master")

    async def list_tablet_servers(self, timeout: float) -> List[Tuple[str, Registration]]:
        """
        List every tablet server registered with the master.

        Returns:
            (uuid, registration) pairs in the order the master reported them.

        Raises:
            Unreachable: If the master cannot be contacted in time.
            ProtocolError: If the response is malformed.
        """
        data = await self._get_json('/tablet-servers', timeout)

        servers = data.get('servers')
        if not isinstance(servers, list):
            raise ProtocolError(f"Master response has no server list: {data!r}")

        result = []
        for entry in servers:
            instance_id = entry.get('instance_id') if isinstance(entry, dict) else None
            uuid = instance_id.get('permanent_uuid') if isinstance(instance_id, dict) else None
            if not isinstance(uuid, str) or not uuid:
                raise ProtocolError(f"Master listed a server without a uuid: {entry!r}")
            result.append((uuid, Registration.from_dict(entry.get('registration'))))

        self.logger.debug(f"Master at {self.base_url} listed {len(result)} tablet servers")
        return result

    async def get_tablet_locations(self, tablet_id: str, timeout: float) -> List[Tuple[str, MemberRole]]:
        """
        Get the replicas hosting a tablet, according to the master.

        Returns:
            (tablet server uuid, role) pairs.

        Raises:
            NotFound: If the master does not know the tablet.
            Unreachable: If the master cannot be contacted in time.
            ProtocolError: If the response is malformed.
        """
        data = await self._get_json(f"/tablets/{quote(tablet_id, safe='')}/locations", timeout)

        replicas = data.get('replicas')
        if not isinstance(replicas, list):
            raise ProtocolError(f"Master response has no replica list: {data!r}")

        result = []
        for replica in replicas:
            if not isinstance(replica, dict) or not isinstance(replica.get('ts_uuid'), str):
                raise ProtocolError(f"Malformed tablet location: {replica!r}")
            try:
                role = MemberRole(replica.get('role', MemberRole.FOLLOWER.value))
            except ValueError as e:
                raise ProtocolError(f"Malformed tablet location {replica!r}: {e}") from e
            result.append((replica['ts_uuid'], role))
        return result

    async def _get_json(self, path: str, timeout: float) -> Any:
        url = f"{self.base_url}{path}"
        session = self._get_session()
        try:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
                if resp.status == 404:
                    raise NotFound(f"{url} not found on master")
                if resp.status >= 400:
                    raise RemoteError(f"Master returned HTTP {resp.status} for {url}", code=str(resp.status))
                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    raise ProtocolError(f"Master returned invalid JSON for {url}: {e}") from e
        except asyncio.TimeoutError as e:
            raise Unreachable(f"Timed out after {timeout:.2f}s fetching {url}") from e
        except aiohttp.ClientError as e:
            raise Unreachable(f"Error fetching {url}: {e}") from e

        if not isinstance(data, dict):
            raise ProtocolError(f"Master returned a non-object body for {url}: {data!r}")
        return data

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None
