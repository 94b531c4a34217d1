"""Deployment mode resolution.

Each deployment mode maps to a fixed bundle of endpoints: where OSC datagrams
go and which relay the bridge connects to. Resolution is pure; unknown modes
fall back to ``dev`` so the bridge always starts with a usable configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Tuple


class DeploymentMode(str, Enum):
    """Recognised deployment modes."""

    DEV = "dev"
    TEST = "test"
    LIVE = "live"


DEFAULT_MODE = DeploymentMode.DEV


@dataclass(frozen=True, slots=True)
class DeploymentConfig:
    mode: DeploymentMode
    datagram_address: str
    datagram_port: int
    relay_url: str
    multicast_group: str
    multicast_port: int

    def target(self, multicast: bool = False) -> Tuple[str, int]:
        if multicast:
            return self.multicast_group, self.multicast_port
        return self.datagram_address, self.datagram_port


_MULTICAST_GROUP = "239.255.255.11"
_VENUE_UNICAST_ADDRESS = "10.32.23.11"

_DEPLOYMENTS: Mapping[DeploymentMode, DeploymentConfig] = {
    DeploymentMode.DEV: DeploymentConfig(
        mode=DeploymentMode.DEV,
        datagram_address="127.0.0.1",
        datagram_port=8998,
        relay_url="http://localhost:5056/",
        multicast_group=_MULTICAST_GROUP,
        multicast_port=8998,
    ),
    DeploymentMode.TEST: DeploymentConfig(
        mode=DeploymentMode.TEST,
        datagram_address=_VENUE_UNICAST_ADDRESS,
        datagram_port=8999,
        relay_url="wss://ct-test.outernetglobal.com",
        multicast_group=_MULTICAST_GROUP,
        multicast_port=8999,
    ),
    DeploymentMode.LIVE: DeploymentConfig(
        mode=DeploymentMode.LIVE,
        datagram_address=_VENUE_UNICAST_ADDRESS,
        datagram_port=9001,
        relay_url="wss://tetris.outernetglobal.com",
        multicast_group=_MULTICAST_GROUP,
        multicast_port=9000,
    ),
}


def is_known_mode(tag: Optional[str]) -> bool:
    if tag is None:
        return False
    return tag.strip().lower() in {mode.value for mode in DeploymentMode}


def parse_mode(tag: Optional[str | DeploymentMode]) -> DeploymentMode:
    """Map a mode tag onto :class:`DeploymentMode`, defaulting to ``dev``."""

    if isinstance(tag, DeploymentMode):
        return tag
    if not tag:
        return DEFAULT_MODE
    try:
        return DeploymentMode(tag.strip().lower())
    except ValueError:
        return DEFAULT_MODE


def resolve_endpoints(tag: Optional[str | DeploymentMode] = None) -> DeploymentConfig:
    """Return the endpoint bundle for ``tag``."""

    return _DEPLOYMENTS[parse_mode(tag)]
