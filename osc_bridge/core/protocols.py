"""Protocol definitions for the seams between relay, translator and sender."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol, Sequence

from .models import OscArgument

EventHandler = Callable[[Any], Awaitable[None] | None]


class DatagramSink(Protocol):
    """Anything that can put an OSC message on the wire."""

    def send(self, address: str, args: Sequence[OscArgument]) -> bool:
        """Send one message; return False when it could not be handed off."""
        ...


class EventEmitter(Protocol):
    """Outbound side of the relay connection."""

    async def emit(self, event: str, payload: Any) -> bool:
        """Best-effort emission of a control message to the relay."""
        ...


class EventSource(Protocol):
    """Inbound side of the relay connection."""

    def on(self, event: str, handler: EventHandler) -> None:
        """Route events named ``event`` to ``handler``."""
        ...
