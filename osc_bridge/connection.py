"""Relay connection states and disconnect reasons."""

from __future__ import annotations

from enum import Enum


class ConnectionState(str, Enum):
    """Current state of the relay connection."""

    DISCONNECTED = "disconnected"
    """No relay connection; a retry may be pending."""

    CONNECTING = "connecting"
    """Websocket and Socket.IO handshake in progress."""

    CONNECTED = "connected"
    """Handshake completed; events are flowing."""


class DisconnectReason(str, Enum):
    """Why a relay connection ended (Socket.IO client vocabulary)."""

    SERVER_DISCONNECT = "io server disconnect"
    """Relay sent a namespace DISCONNECT or an Engine.IO CLOSE."""

    TRANSPORT_CLOSE = "transport close"
    """Websocket closed underneath us."""

    TRANSPORT_ERROR = "transport error"
    """Websocket reported an error frame or raised."""

    PING_TIMEOUT = "ping timeout"
    """Relay stopped sending pings within the negotiated window."""

    CONNECT_ERROR = "connect error"
    """Connection or handshake never completed."""

    CLIENT_DISCONNECT = "io client disconnect"
    """Local shutdown."""


class RelayConnectionError(RuntimeError):
    """Raised when the relay connection fails or is lost."""

    def __init__(self, message: str, reason: DisconnectReason) -> None:
        super().__init__(message)
        self.reason = reason
