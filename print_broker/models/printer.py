"""
Network Device Model
====================

A raw-socket network printer kept in the printers store.
"""

from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any

from ..config import NETWORK_PORT


@dataclass
class NetworkDevice:
    """Network printer addressed by IPv4 or IPv6."""

    device_id: str
    address: str = "ipv4"  # ipv4, ipv6
    ipv4: Optional[str] = None
    ipv6: Optional[str] = None
    port: int = NETWORK_PORT

    @property
    def host(self) -> Optional[str]:
        """Address matching the declared address family."""
        return self.ipv6 if self.address == 'ipv6' else self.ipv4

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NetworkDevice':
        fields = ('device_id', 'address', 'ipv4', 'ipv6', 'port')
        return cls(**{k: data[k] for k in fields if k in data})
