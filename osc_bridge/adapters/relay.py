"""Relay adapter: a reconnecting Socket.IO client over an aiohttp websocket."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Callable, Dict, List, Optional

import aiohttp

from ..connection import ConnectionState, DisconnectReason, RelayConnectionError
from ..core import EventHandler, InboundEvent
from ..relay_protocol import (
    EnginePacketType,
    HandshakeInfo,
    RelayPacket,
    RelayProtocolError,
    SocketPacketType,
    build_socket_url,
    decode_packet,
    encode_connect,
    encode_disconnect,
    encode_event,
    encode_pong,
    parse_handshake,
)

LOGGER = logging.getLogger(__name__)

StateListener = Callable[[ConnectionState], None]


class RelayClient:
    """Keeps one logical connection to the relay alive and dispatches events.

    Lifecycle: ``DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED -> ...``.
    Every closure is followed by a fixed ``reconnect_delay`` and a new attempt;
    there is no attempt limit. After each successful handshake the client
    emits ``join_event`` with ``client_id`` so the relay can route controller
    traffic to this bridge.
    """

    def __init__(
        self,
        url: str,
        *,
        client_id: str,
        join_event: str = "join_remote_bridge",
        reconnect_delay: float = 2.0,
        connect_timeout: float = 10.0,
        socketio_path: str = "/socket.io/",
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        if reconnect_delay <= 0:
            raise ValueError("reconnect_delay must be positive")

        self.url = url
        self.client_id = client_id
        self.join_event = join_event
        self.reconnect_delay = reconnect_delay
        self.connect_timeout = connect_timeout

        self._ws_url, self._namespace = build_socket_url(url, socketio_path)
        self._session: Optional[aiohttp.ClientSession] = session
        self._owns_session = session is None
        self._handlers: Dict[str, EventHandler] = {}
        self._state_listeners: List[StateListener] = []
        self._state = ConnectionState.DISCONNECTED
        self._connected_event = asyncio.Event()
        self._stop_event = asyncio.Event()
        self._listener_task: Optional[asyncio.Task[None]] = None
        self._active_ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._handshake: Optional[HandshakeInfo] = None

        self.connect_count = 0
        self.unhandled_events = 0
        self.last_disconnect_reason: Optional[DisconnectReason] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def websocket_url(self) -> str:
        return self._ws_url

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def sid(self) -> Optional[str]:
        return self._handshake.sid if self._handshake else None

    def on(self, event: str, handler: EventHandler) -> None:
        """Route relay events named ``event`` to ``handler``.

        One handler per event name; registering again replaces the previous one.
        """
        if event in self._handlers:
            LOGGER.debug("Replacing relay handler for %s", event)
        self._handlers[event] = handler

    def off(self, event: str) -> None:
        self._handlers.pop(event, None)

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    async def start(self) -> None:
        """Begin connecting; returns immediately while the loop runs."""

        if self._listener_task is not None:
            return

        if self._owns_session and self._session is None:
            timeout = aiohttp.ClientTimeout(total=None)
            self._session = aiohttp.ClientSession(timeout=timeout)

        self._stop_event.clear()
        LOGGER.info("Connecting to relay: %s", self.url)
        self._listener_task = asyncio.create_task(self._connect_loop())
        await asyncio.sleep(0)

    async def stop(self) -> None:
        """Close the relay connection and release the session."""

        self._stop_event.set()

        ws = self._active_ws
        if ws is not None and not ws.closed:
            with contextlib.suppress(Exception):
                await ws.send_str(encode_disconnect(self._namespace))

        if self._listener_task is not None:
            self._listener_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listener_task
            self._listener_task = None

        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

        if self._state != ConnectionState.DISCONNECTED:
            self.last_disconnect_reason = DisconnectReason.CLIENT_DISCONNECT
            self._set_state(ConnectionState.DISCONNECTED)

    async def wait_connected(self, timeout: Optional[float] = None) -> None:
        await asyncio.wait_for(self._connected_event.wait(), timeout=timeout)

    async def emit(self, event: str, payload: Any) -> bool:
        """Send ``event`` to the relay; failures are logged, never raised."""

        ws = self._active_ws
        if not self.is_connected or ws is None or ws.closed:
            LOGGER.warning("Relay not connected; dropping %s emission", event)
            return False

        try:
            frame = encode_event(event, payload, namespace=self._namespace)
            await ws.send_str(frame)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOGGER.warning("Failed to emit %s to relay: %s", event, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        self._state = state
        if state == ConnectionState.CONNECTED:
            self._connected_event.set()
        else:
            self._connected_event.clear()

        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception:
                LOGGER.exception("Relay state listener failed")

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=None)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def _connect_loop(self) -> None:
        while not self._stop_event.is_set():
            self._set_state(ConnectionState.CONNECTING)
            reason = DisconnectReason.CONNECT_ERROR
            try:
                reason = await self._run_connection()
            except asyncio.CancelledError:
                raise
            except RelayConnectionError as exc:
                reason = exc.reason
                if reason == DisconnectReason.CONNECT_ERROR:
                    LOGGER.warning("Relay connect error: %s", exc)
                else:
                    LOGGER.warning("Relay connection error: %s", exc)
            except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
                if self._state == ConnectionState.CONNECTED:
                    reason = DisconnectReason.TRANSPORT_ERROR
                LOGGER.warning("Relay connect error: %s", str(exc) or type(exc).__name__)
            except Exception:
                reason = DisconnectReason.TRANSPORT_ERROR
                LOGGER.exception("Unexpected relay connection failure")
            finally:
                self._active_ws = None
                self._handshake = None

            if self._stop_event.is_set():
                break

            was_connected = self._state == ConnectionState.CONNECTED
            self.last_disconnect_reason = reason
            self._set_state(ConnectionState.DISCONNECTED)
            if was_connected:
                LOGGER.warning("Disconnected from relay: %s", reason.value)

            LOGGER.info("Reconnecting to relay in %.1fs", self.reconnect_delay)
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.reconnect_delay
                )
            except asyncio.TimeoutError:
                pass

    async def _run_connection(self) -> DisconnectReason:
        session = await self._ensure_session()
        async with asyncio.timeout(self.connect_timeout):
            ws = await session.ws_connect(self._ws_url)

        async with ws:
            self._active_ws = ws
            handshake = await self._perform_handshake(ws)
            self._handshake = handshake
            self.connect_count += 1
            self._set_state(ConnectionState.CONNECTED)
            LOGGER.info("Connected to relay (sid=%s)", handshake.sid)

            await self.emit(self.join_event, self.client_id)
            return await self._receive_loop(ws, handshake)

    async def _perform_handshake(
        self, ws: aiohttp.ClientWebSocketResponse
    ) -> HandshakeInfo:
        try:
            async with asyncio.timeout(self.connect_timeout):
                open_packet = await self._receive_packet(ws)
                handshake = parse_handshake(open_packet)
                await ws.send_str(encode_connect(self._namespace))

                while True:
                    packet = await self._receive_packet(ws)
                    if packet.engine_type is EnginePacketType.PING:
                        await ws.send_str(encode_pong(packet.data or ""))
                        continue
                    if packet.engine_type is not EnginePacketType.MESSAGE:
                        continue
                    if packet.namespace != self._namespace:
                        continue
                    if packet.socket_type is SocketPacketType.CONNECT:
                        if isinstance(packet.data, dict) and packet.data.get("sid"):
                            handshake.sid = str(packet.data["sid"])
                        return handshake
                    if packet.socket_type is SocketPacketType.CONNECT_ERROR:
                        raise RelayConnectionError(
                            f"Relay refused connection: {_error_message(packet.data)}",
                            DisconnectReason.CONNECT_ERROR,
                        )
        except asyncio.TimeoutError as exc:
            raise RelayConnectionError(
                f"Relay handshake timed out after {self.connect_timeout:.1f}s",
                DisconnectReason.CONNECT_ERROR,
            ) from exc
        except RelayProtocolError as exc:
            raise RelayConnectionError(
                f"Invalid relay handshake: {exc}", DisconnectReason.CONNECT_ERROR
            ) from exc

    async def _receive_packet(
        self, ws: aiohttp.ClientWebSocketResponse, timeout: Optional[float] = None
    ) -> RelayPacket:
        message = await ws.receive(timeout=timeout)
        if message.type == aiohttp.WSMsgType.TEXT:
            return decode_packet(message.data)
        if message.type in (
            aiohttp.WSMsgType.CLOSE,
            aiohttp.WSMsgType.CLOSING,
            aiohttp.WSMsgType.CLOSED,
        ):
            raise RelayConnectionError(
                "Relay websocket closed", DisconnectReason.TRANSPORT_CLOSE
            )
        if message.type == aiohttp.WSMsgType.ERROR:
            raise RelayConnectionError(
                f"Relay websocket error: {ws.exception()}",
                DisconnectReason.TRANSPORT_ERROR,
            )
        # Binary attachments are not used by the relay
        return RelayPacket(engine_type=EnginePacketType.NOOP)

    async def _receive_loop(
        self, ws: aiohttp.ClientWebSocketResponse, handshake: HandshakeInfo
    ) -> DisconnectReason:
        while not self._stop_event.is_set():
            try:
                packet = await self._receive_packet(
                    ws, timeout=handshake.liveness_window
                )
            except asyncio.TimeoutError:
                return DisconnectReason.PING_TIMEOUT
            except RelayConnectionError as exc:
                return exc.reason
            except RelayProtocolError as exc:
                LOGGER.warning("Discarding undecodable relay frame: %s", exc)
                continue

            engine_type = packet.engine_type
            if engine_type is EnginePacketType.PING:
                await ws.send_str(encode_pong(packet.data or ""))
            elif engine_type is EnginePacketType.CLOSE:
                return DisconnectReason.SERVER_DISCONNECT
            elif engine_type is EnginePacketType.MESSAGE:
                if packet.namespace != self._namespace:
                    continue
                if packet.socket_type is SocketPacketType.DISCONNECT:
                    return DisconnectReason.SERVER_DISCONNECT
                if packet.is_event:
                    await self._dispatch(packet)
                elif packet.socket_type is SocketPacketType.BINARY_EVENT:
                    LOGGER.debug("Ignoring binary relay event")

        return DisconnectReason.CLIENT_DISCONNECT

    async def _dispatch(self, packet: RelayPacket) -> None:
        event = packet.event_name
        if event is None:
            LOGGER.debug("Dropping relay event without a name: %r", packet.data)
            return

        handler = self._handlers.get(event)
        if handler is None:
            self.unhandled_events += 1
            LOGGER.debug("No handler for relay event %s; dropping", event)
            return

        args = packet.event_args
        inbound = InboundEvent(event, args[0] if args else None)
        try:
            result = handler(inbound.payload)
            if asyncio.iscoroutine(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            LOGGER.exception("Relay handler for %s failed", event)


def _error_message(data: Any) -> str:
    if isinstance(data, dict) and "message" in data:
        return str(data["message"])
    return str(data)

