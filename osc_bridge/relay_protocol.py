"""Socket.IO v5 / Engine.IO v4 text framing.

The relay speaks Socket.IO over a websocket. Only the text subset is needed
here: the Engine.IO open/close/ping/pong/message packets and the Socket.IO
connect/disconnect/event/ack/connect-error packets carried inside messages.

Examples of frames on the wire::

    0{"sid":"...","pingInterval":25000,"pingTimeout":20000}   engine open
    2                                                          engine ping
    40                                                         connect "/"
    42["controller_data",{"name":"w1"}]                        event
    42/admin,7["ping"]                                         event with ack id
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, List, Optional, Tuple
from urllib.parse import urlparse, urlunparse

ENGINE_IO_VERSION = "4"
DEFAULT_NAMESPACE = "/"


class EnginePacketType(IntEnum):
    OPEN = 0
    CLOSE = 1
    PING = 2
    PONG = 3
    MESSAGE = 4
    UPGRADE = 5
    NOOP = 6


class SocketPacketType(IntEnum):
    CONNECT = 0
    DISCONNECT = 1
    EVENT = 2
    ACK = 3
    CONNECT_ERROR = 4
    BINARY_EVENT = 5
    BINARY_ACK = 6


class RelayProtocolError(ValueError):
    """Raised when a frame cannot be decoded."""


@dataclass(slots=True)
class RelayPacket:
    engine_type: EnginePacketType
    socket_type: Optional[SocketPacketType] = None
    namespace: str = DEFAULT_NAMESPACE
    ack_id: Optional[int] = None
    data: Any = None

    @property
    def is_event(self) -> bool:
        return (
            self.engine_type is EnginePacketType.MESSAGE
            and self.socket_type is SocketPacketType.EVENT
        )

    @property
    def event_name(self) -> Optional[str]:
        if not self.is_event or not isinstance(self.data, list) or not self.data:
            return None
        name = self.data[0]
        return name if isinstance(name, str) else None

    @property
    def event_args(self) -> List[Any]:
        if not self.is_event or not isinstance(self.data, list):
            return []
        return list(self.data[1:])


@dataclass(slots=True)
class HandshakeInfo:
    sid: str
    ping_interval: float
    ping_timeout: float
    upgrades: List[str] = field(default_factory=list)

    @property
    def liveness_window(self) -> float:
        """Seconds without any frame before the connection is considered dead."""
        return self.ping_interval + self.ping_timeout


def build_socket_url(url: str, path: str = "/socket.io/") -> Tuple[str, str]:
    """Return ``(websocket_url, namespace)`` for a relay URL.

    ``http``/``https`` map to ``ws``/``wss``; the URL path names the
    Socket.IO namespace, matching how Socket.IO clients read their URL.
    """

    parsed = urlparse(url)
    scheme = {"http": "ws", "https": "wss"}.get(parsed.scheme, parsed.scheme)
    if scheme not in ("ws", "wss"):
        raise ValueError(f"Unsupported relay URL scheme: {parsed.scheme!r}")

    namespace = parsed.path.rstrip("/") or DEFAULT_NAMESPACE
    engine_path = "/" + path.strip("/") + "/"
    query = f"EIO={ENGINE_IO_VERSION}&transport=websocket"
    if parsed.query:
        query = f"{parsed.query}&{query}"
    return urlunparse((scheme, parsed.netloc, engine_path, "", query, "")), namespace


def _namespace_prefix(namespace: str) -> str:
    if not namespace or namespace == DEFAULT_NAMESPACE:
        return ""
    return f"{namespace},"


def encode_connect(namespace: str = DEFAULT_NAMESPACE, auth: Any = None) -> str:
    frame = f"{EnginePacketType.MESSAGE:d}{SocketPacketType.CONNECT:d}"
    frame += _namespace_prefix(namespace)
    if auth is not None:
        frame += json.dumps(auth, separators=(",", ":"))
    return frame


def encode_disconnect(namespace: str = DEFAULT_NAMESPACE) -> str:
    return (
        f"{EnginePacketType.MESSAGE:d}{SocketPacketType.DISCONNECT:d}"
        + _namespace_prefix(namespace)
    )


def encode_event(
    event: str, *args: Any, namespace: str = DEFAULT_NAMESPACE
) -> str:
    payload = json.dumps([event, *args], separators=(",", ":"), ensure_ascii=False)
    return (
        f"{EnginePacketType.MESSAGE:d}{SocketPacketType.EVENT:d}"
        + _namespace_prefix(namespace)
        + payload
    )


def encode_pong(data: str = "") -> str:
    return f"{EnginePacketType.PONG:d}{data}"


def decode_packet(text: str) -> RelayPacket:
    """Decode one websocket text frame."""

    if not text:
        raise RelayProtocolError("Empty frame")

    try:
        engine_type = EnginePacketType(int(text[0]))
    except ValueError as exc:
        raise RelayProtocolError(f"Unknown engine packet type in {text[:16]!r}") from exc

    body = text[1:]
    if engine_type is EnginePacketType.OPEN:
        return RelayPacket(engine_type=engine_type, data=_loads(body))
    if engine_type is not EnginePacketType.MESSAGE:
        return RelayPacket(engine_type=engine_type, data=body or None)

    if not body:
        raise RelayProtocolError("Message frame without socket packet")

    try:
        socket_type = SocketPacketType(int(body[0]))
    except ValueError as exc:
        raise RelayProtocolError(f"Unknown socket packet type in {text[:16]!r}") from exc

    cursor = 1
    if socket_type in (SocketPacketType.BINARY_EVENT, SocketPacketType.BINARY_ACK):
        dash = body.find("-", cursor)
        if dash < 0:
            raise RelayProtocolError("Binary packet without attachment count")
        cursor = dash + 1

    namespace = DEFAULT_NAMESPACE
    if body.startswith("/", cursor):
        comma = body.find(",", cursor)
        if comma < 0:
            namespace = body[cursor:]
            cursor = len(body)
        else:
            namespace = body[cursor:comma]
            cursor = comma + 1

    ack_digits = ""
    while cursor < len(body) and body[cursor].isdigit():
        ack_digits += body[cursor]
        cursor += 1

    rest = body[cursor:]
    return RelayPacket(
        engine_type=engine_type,
        socket_type=socket_type,
        namespace=namespace,
        ack_id=int(ack_digits) if ack_digits else None,
        data=_loads(rest) if rest else None,
    )


def parse_handshake(packet: RelayPacket) -> HandshakeInfo:
    if packet.engine_type is not EnginePacketType.OPEN or not isinstance(
        packet.data, dict
    ):
        raise RelayProtocolError("Expected engine OPEN packet")

    data = packet.data
    try:
        return HandshakeInfo(
            sid=str(data["sid"]),
            ping_interval=float(data.get("pingInterval", 25000)) / 1000.0,
            ping_timeout=float(data.get("pingTimeout", 20000)) / 1000.0,
            upgrades=list(data.get("upgrades") or []),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RelayProtocolError(f"Malformed handshake: {data!r}") from exc


def _loads(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RelayProtocolError(f"Invalid JSON payload: {raw[:64]!r}") from exc
    except RecursionError as exc:
        raise RelayProtocolError(f"JSON payload nested too deeply: {raw[:64]!r}") from exc
