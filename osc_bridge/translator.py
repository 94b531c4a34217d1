"""Translation of relay events into OSC messages.

Each recognised relay event type has a :class:`TranslationRule`: a pure
function from the event payload to an :class:`OutboundMessage`, plus an
optional acknowledgement event sent back to the relay once the message has
been handed to the datagram sink.

Downstream receivers decode OSC arguments positionally, so every rule emits a
fixed argument order. Missing payload fields never abort translation; they
degrade to placeholder values instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional

from .core import (
    ButtonActionEvent,
    ControllerDataEvent,
    DatagramSink,
    EventEmitter,
    EventSource,
    OutboundMessage,
    encode_data_field,
    stringify,
    utc_timestamp,
)
from .core.utils import path_segment

LOGGER = logging.getLogger(__name__)

CONTROLLER_DATA = "controller_data"
CONTROLLER_DATA_ACK = "controller_data_ack"
BUTTON_ACTION = "button_action"

ADDRESS_ROOT = "/controller"

Clock = Callable[[], datetime]


def translate_controller_data(payload: Any) -> OutboundMessage:
    """``/controller/<controlType>`` with ``[userId, timestamp, name, action, data]``."""

    event = ControllerDataEvent.from_payload(payload)
    return OutboundMessage(
        address=f"{ADDRESS_ROOT}/{path_segment(event.control_type)}",
        args=(
            stringify(event.user_id),
            stringify(event.timestamp),
            stringify(event.name),
            stringify(event.action),
            encode_data_field(event.data),
        ),
    )


def translate_button_action(payload: Any) -> OutboundMessage:
    """``/controller/<name>/<action>`` with ``[userId, timestamp]``."""

    event = ButtonActionEvent.from_payload(payload)
    return OutboundMessage(
        address=(
            f"{ADDRESS_ROOT}/{path_segment(event.name)}/{path_segment(event.action)}"
        ),
        args=(
            stringify(event.user_id or None, missing=""),
            stringify(event.timestamp or None, missing=""),
        ),
    )


@dataclass(frozen=True, slots=True)
class TranslationRule:
    event_type: str
    translate: Callable[[Any], OutboundMessage]
    ack_event: Optional[str] = None


DEFAULT_RULES = (
    TranslationRule(CONTROLLER_DATA, translate_controller_data, CONTROLLER_DATA_ACK),
    # Button events are not acknowledged.
    TranslationRule(BUTTON_ACTION, translate_button_action),
)


@dataclass(slots=True)
class TranslatorStats:
    received: int = 0
    forwarded: int = 0
    send_failures: int = 0
    acknowledged: int = 0
    translation_errors: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "received": self.received,
            "forwarded": self.forwarded,
            "sendFailures": self.send_failures,
            "acknowledged": self.acknowledged,
            "translationErrors": self.translation_errors,
        }


def build_ack(payload: Any, received_at: datetime) -> Dict[str, Any]:
    return {
        "status": "ok",
        "receivedAt": utc_timestamp(received_at),
        "originalData": payload,
    }


class EventTranslator:
    """Routes relay events through translation rules into the datagram sink."""

    def __init__(
        self,
        sink: DatagramSink,
        *,
        emitter: Optional[EventEmitter] = None,
        rules: Iterable[TranslationRule] = DEFAULT_RULES,
        clock: Optional[Clock] = None,
    ) -> None:
        self._sink = sink
        self._emitter = emitter
        self._clock: Clock = clock or (lambda: datetime.now(timezone.utc))
        self._rules: Dict[str, TranslationRule] = {}
        self.stats = TranslatorStats()

        for rule in rules:
            self.register(rule)

    @property
    def event_types(self) -> tuple[str, ...]:
        return tuple(self._rules)

    def register(self, rule: TranslationRule) -> None:
        self._rules[rule.event_type] = rule

    def bind(self, source: EventSource) -> None:
        """Register one relay handler per known event type."""

        for event_type in self._rules:
            source.on(event_type, self._make_handler(event_type))

    def _make_handler(self, event_type: str):
        async def _handler(payload: Any) -> None:
            await self.handle(event_type, payload)

        return _handler

    async def handle(self, event_type: str, payload: Any) -> Optional[OutboundMessage]:
        """Translate, send and optionally acknowledge one relay event.

        Returns the message handed to the sink, or ``None`` when the event type
        is unknown or translation failed.
        """
        rule = self._rules.get(event_type)
        if rule is None:
            LOGGER.debug("No translation rule for %s; dropping", event_type)
            return None

        self.stats.received += 1
        LOGGER.info("Received %s from relay: %s", event_type, payload)

        try:
            message = rule.translate(payload)
        except Exception:
            self.stats.translation_errors += 1
            LOGGER.exception("Failed to translate %s payload", event_type)
            return None

        if self._sink.send(message.address, message.args):
            self.stats.forwarded += 1
        else:
            self.stats.send_failures += 1

        if rule.ack_event and self._emitter is not None:
            ack = build_ack(payload, self._clock())
            if await self._emitter.emit(rule.ack_event, ack):
                self.stats.acknowledged += 1

        return message
