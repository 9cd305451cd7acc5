from dataclasses import dataclass, field
from typing import Any, Dict, List

from raftprobe.core.errors import ProtocolError


@dataclass(frozen=True)
class HostPort:
    host: str
    port: int

    def to_dict(self) -> Dict[str, Any]:
        return {'host': self.host, 'port': self.port}

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class Registration:
    """
    The addresses a tablet server advertised to the master.

    Attributes:
        rpc_addresses: Addresses of the server's RPC endpoint, preferred first.
        http_addresses: Addresses of the server's web endpoint.
    """
    rpc_addresses: List[HostPort]
    http_addresses: List[HostPort] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> 'Registration':
        if not isinstance(data, dict):
            raise ProtocolError(f"Malformed registration: {data!r}")
        return cls(
            rpc_addresses=_host_ports(data.get('rpc_addresses', [])),
            http_addresses=_host_ports(data.get('http_addresses', [])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rpc_addresses': [hp.to_dict() for hp in self.rpc_addresses],
            'http_addresses': [hp.to_dict() for hp in self.http_addresses],
        }


def _host_ports(items: Any) -> List[HostPort]:
    if not isinstance(items, list):
        raise ProtocolError(f"Expected a list of addresses, got {items!r}")

    result = []
    for item in items:
        if (not isinstance(item, dict) or not isinstance(item.get('host'), str)
                or not isinstance(item.get('port'), int)):
            raise ProtocolError(f"Malformed address: {item!r}")
        result.append(HostPort(host=item['host'], port=item['port']))
    return result
