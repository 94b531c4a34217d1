"""Configuration loader for osc-bridge."""

from __future__ import annotations

import logging
import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from . import constants
from .endpoints import (
    DEFAULT_MODE,
    DeploymentConfig,
    DeploymentMode,
    is_known_mode,
    resolve_endpoints,
)

LOGGER = logging.getLogger(__name__)

DATAGRAM_TARGETS = ("unicast", "multicast")


@dataclass(slots=True)
class RelayConfig:
    url: Optional[str] = None  # Overrides the mode's relay URL when set
    client_id: str = constants.DEFAULT_CLIENT_ID
    join_event: str = constants.JOIN_EVENT
    reconnect_delay_seconds: float = constants.DEFAULT_RECONNECT_DELAY_SECONDS
    connect_timeout_seconds: float = constants.DEFAULT_CONNECT_TIMEOUT_SECONDS
    socketio_path: str = constants.SOCKETIO_PATH


@dataclass(slots=True)
class DatagramConfig:
    target: str = "unicast"
    host: Optional[str] = None
    port: Optional[int] = None
    local_host: str = constants.DEFAULT_LOCAL_HOST
    local_port: int = 0
    multicast_ttl: int = constants.DEFAULT_MULTICAST_TTL

    @property
    def multicast(self) -> bool:
        return self.target == "multicast"


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    log_network: bool = False


@dataclass(slots=True)
class HealthConfig:
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 0


@dataclass(slots=True)
class BridgeConfig:
    mode: DeploymentMode
    deployment: DeploymentConfig
    relay: RelayConfig
    datagram: DatagramConfig
    logging: LoggingConfig
    health: HealthConfig
    raw: ConfigParser
    path: Path

    @property
    def relay_url(self) -> str:
        return self.relay.url or self.deployment.relay_url

    @property
    def datagram_target(self) -> Tuple[str, int]:
        host, port = self.deployment.target(self.datagram.multicast)
        if self.datagram.host:
            host = self.datagram.host
        if self.datagram.port:
            port = self.datagram.port
        return host, port


def _select_mode(
    explicit: Optional[str], environ: Mapping[str, str], parser: ConfigParser
) -> DeploymentMode:
    candidates = (
        ("argument", explicit),
        (f"${constants.MODE_ENV_VAR}", environ.get(constants.MODE_ENV_VAR)),
        ("config file", parser.get("bridge", "mode", fallback=None)),
    )
    for source, value in candidates:
        if not value:
            continue
        if is_known_mode(value):
            return DeploymentMode(value.strip().lower())
        LOGGER.warning(
            "Unknown deployment mode %r from %s; falling back to %s",
            value,
            source,
            DEFAULT_MODE.value,
        )
        return DEFAULT_MODE
    return DEFAULT_MODE


def _optional_port(parser: ConfigParser, section: str, option: str) -> Optional[int]:
    value = parser.get(section, option, fallback="").strip()
    if not value:
        return None
    port = int(value)
    if not 1 <= port <= 65535:
        raise ValueError(f"[{section}] {option} must be within 1-65535, got {port}")
    return port


def load_config(
    path: Optional[Path] = None,
    *,
    mode: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> BridgeConfig:
    """Load configuration from disk, applying defaults where necessary.

    The deployment mode is taken from ``mode`` when given, then from the
    ``MODE`` environment variable, then from ``[bridge] mode`` in the file.
    """

    config_path = path or constants.DEFAULT_CONFIG_PATH
    env = os.environ if environ is None else environ

    parser = ConfigParser()
    parser.read_dict(
        {
            "bridge": {
                "mode": DEFAULT_MODE.value,
            },
            "relay": {
                "url": "",
                "client_id": constants.DEFAULT_CLIENT_ID,
                "join_event": constants.JOIN_EVENT,
                "reconnect_delay_seconds": str(
                    constants.DEFAULT_RECONNECT_DELAY_SECONDS
                ),
                "connect_timeout_seconds": str(
                    constants.DEFAULT_CONNECT_TIMEOUT_SECONDS
                ),
                "socketio_path": constants.SOCKETIO_PATH,
            },
            "datagram": {
                "target": "unicast",
                "host": "",
                "port": "",
                "local_host": constants.DEFAULT_LOCAL_HOST,
                "local_port": "0",
                "multicast_ttl": str(constants.DEFAULT_MULTICAST_TTL),
            },
            "logging": {
                "level": "INFO",
                "path": "",
                "log_network": "false",
            },
            "health": {
                "enabled": "false",
                "host": "127.0.0.1",
                "port": "0",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    selected_mode = _select_mode(mode, env, parser)
    parser.set("bridge", "mode", selected_mode.value)
    deployment = resolve_endpoints(selected_mode)

    relay = RelayConfig(
        url=parser.get("relay", "url", fallback="").strip() or None,
        client_id=parser.get("relay", "client_id"),
        join_event=parser.get("relay", "join_event"),
        reconnect_delay_seconds=max(
            constants.MIN_RECONNECT_DELAY_SECONDS,
            parser.getfloat(
                "relay",
                "reconnect_delay_seconds",
                fallback=constants.DEFAULT_RECONNECT_DELAY_SECONDS,
            ),
        ),
        connect_timeout_seconds=max(
            1.0,
            parser.getfloat(
                "relay",
                "connect_timeout_seconds",
                fallback=constants.DEFAULT_CONNECT_TIMEOUT_SECONDS,
            ),
        ),
        socketio_path=parser.get("relay", "socketio_path"),
    )

    target = parser.get("datagram", "target").strip().lower()
    if target not in DATAGRAM_TARGETS:
        LOGGER.warning("Unknown datagram target %r; using unicast", target)
        target = "unicast"

    datagram = DatagramConfig(
        target=target,
        host=parser.get("datagram", "host", fallback="").strip() or None,
        port=_optional_port(parser, "datagram", "port"),
        local_host=parser.get("datagram", "local_host"),
        local_port=parser.getint("datagram", "local_port", fallback=0),
        multicast_ttl=max(
            0,
            parser.getint(
                "datagram", "multicast_ttl", fallback=constants.DEFAULT_MULTICAST_TTL
            ),
        ),
    )

    log_path_value = parser.get("logging", "path", fallback="").strip()
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        log_network=parser.getboolean("logging", "log_network", fallback=False),
    )

    health = HealthConfig(
        enabled=parser.getboolean("health", "enabled", fallback=False),
        host=parser.get("health", "host", fallback="127.0.0.1"),
        port=parser.getint("health", "port", fallback=0),
    )

    return BridgeConfig(
        mode=selected_mode,
        deployment=deployment,
        relay=relay,
        datagram=datagram,
        logging=logging_config,
        health=health,
        raw=parser,
        path=config_path,
    )
