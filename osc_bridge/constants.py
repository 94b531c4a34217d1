"""Constants used across the osc-bridge package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "osc-bridge"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / APP_NAME / DEFAULT_CONFIG_FILENAME

MODE_ENV_VAR = "MODE"

DEFAULT_CLIENT_ID = "oscbridge_client"
JOIN_EVENT = "join_remote_bridge"
SOCKETIO_PATH = "/socket.io/"

DEFAULT_RECONNECT_DELAY_SECONDS = 2.0
MIN_RECONNECT_DELAY_SECONDS = 0.1
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0

DEFAULT_LOCAL_HOST = "0.0.0.0"
DEFAULT_MULTICAST_TTL = 2

EXIT_OK = 0
EXIT_BIND_FAILURE = 1
