"""Adapter modules for external integrations."""

from .osc import DatagramBindError, OscSender, build_message
from .relay import RelayClient

__all__ = [
    "DatagramBindError",
    "OscSender",
    "RelayClient",
    "build_message",
]
