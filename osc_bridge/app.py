"""Main application entry-point for osc-bridge."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from enum import Enum
from typing import Optional

from . import constants
from .adapters import DatagramBindError, OscSender, RelayClient
from .config import BridgeConfig, load_config
from .connection import ConnectionState
from .health import HealthReporter, HealthServer
from .logging import configure_logging
from .translator import EventTranslator

LOGGER = logging.getLogger(__name__)


class BridgeState(str, Enum):
    STARTING = "starting"
    AWAITING_RELAY = "awaiting_relay"
    ACTIVE = "active"
    RECONNECTING = "reconnecting"
    STOPPING = "stopping"


class OscBridgeApp:
    """Coordinates bridge startup and shutdown.

    Startup opens the OSC socket first (failure is fatal), wires the
    translator into the relay client and starts the relay connection loop.
    Shutdown closes the relay connection, the OSC socket and the optional
    health server.

    The sender and relay client can be injected for testing.
    """

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        *,
        sender: Optional[OscSender] = None,
        relay: Optional[RelayClient] = None,
    ) -> None:
        self._config = config or load_config()
        self._sender = sender
        self._relay = relay
        self._translator: Optional[EventTranslator] = None
        self._health = HealthReporter()
        self._health_server: Optional[HealthServer] = None
        self._shutdown_event: Optional[asyncio.Event] = None
        self._state = BridgeState.STARTING

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def health(self) -> HealthReporter:
        return self._health

    @property
    def translator(self) -> Optional[EventTranslator]:
        return self._translator

    def request_stop(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def run(self) -> int:
        """Run until shutdown is requested; return the process exit code."""

        self._shutdown_event = asyncio.Event()
        config = self._config
        host, port = config.datagram_target

        LOGGER.info(
            "osc-bridge starting in %s mode (relay=%s, osc=%s:%s)",
            config.mode.value,
            config.relay_url,
            host,
            port,
        )

        sender = self._sender or OscSender(
            host,
            port,
            local_host=config.datagram.local_host,
            local_port=config.datagram.local_port,
            multicast_ttl=config.datagram.multicast_ttl,
        )
        try:
            await sender.open()
        except DatagramBindError as exc:
            LOGGER.error("Cannot start bridge: %s", exc)
            return constants.EXIT_BIND_FAILURE
        self._sender = sender
        self._health.update("datagram", True, f"sending to {host}:{port}")

        relay = self._relay or RelayClient(
            config.relay_url,
            client_id=config.relay.client_id,
            join_event=config.relay.join_event,
            reconnect_delay=config.relay.reconnect_delay_seconds,
            connect_timeout=config.relay.connect_timeout_seconds,
            socketio_path=config.relay.socketio_path,
        )
        self._relay = relay

        self._translator = EventTranslator(sender, emitter=relay)
        self._translator.bind(relay)
        self._health.add_counters("translator", self._translator.stats.as_dict)
        self._health.add_counters(
            "datagram", lambda: {"socketErrors": sender.error_count}
        )
        self._health.add_counters(
            "relay",
            lambda: {
                "connects": relay.connect_count,
                "unhandledEvents": relay.unhandled_events,
            },
        )
        self._health.update("relay", False, relay.state.value)
        relay.add_state_listener(self._on_relay_state)

        try:
            await self._start_health_server()
            self._install_signal_handlers()
            self._transition(BridgeState.AWAITING_RELAY)
            await relay.start()
            LOGGER.info("osc-bridge started in %s mode", config.mode.value)
            await self._shutdown_event.wait()
        except asyncio.CancelledError:
            LOGGER.info("osc-bridge received shutdown signal")
            raise
        finally:
            await self._stop_services()

        return constants.EXIT_OK

    @classmethod
    def start(cls, config: Optional[BridgeConfig] = None) -> int:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_network=instance._config.logging.log_network,
        )
        try:
            return asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("osc-bridge received shutdown signal")
            return constants.EXIT_OK

    def _transition(self, state: BridgeState) -> None:
        if state == self._state:
            return
        LOGGER.info("Bridge state transition %s -> %s", self._state.value, state.value)
        self._state = state
        self._health.set_bridge_state(state.value, healthy=state == BridgeState.ACTIVE)

    def _on_relay_state(self, state: ConnectionState) -> None:
        self._health.update("relay", state == ConnectionState.CONNECTED, state.value)
        if self._state == BridgeState.STOPPING:
            return
        if state == ConnectionState.CONNECTED:
            self._transition(BridgeState.ACTIVE)
        elif self._state == BridgeState.ACTIVE:
            self._transition(BridgeState.RECONNECTING)

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, self.request_stop)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(sig)

    async def _start_health_server(self) -> None:
        health = self._config.health
        if not health.enabled:
            return
        server = HealthServer(self._health, health.host, health.port)
        try:
            await server.start()
        except OSError as exc:
            LOGGER.warning("Health endpoint unavailable: %s", exc)
            return
        self._health_server = server

    async def _stop_services(self) -> None:
        self._transition(BridgeState.STOPPING)
        self._remove_signal_handlers()

        if self._relay is not None:
            await self._relay.stop()

        if self._sender is not None:
            await self._sender.close()
            self._health.update("datagram", False, "closed")

        if self._health_server is not None:
            await self._health_server.stop()
            self._health_server = None

        LOGGER.info("osc-bridge stopped")
