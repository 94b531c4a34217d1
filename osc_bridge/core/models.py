"""Domain models for relay events and OSC output."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, Union

OscArgument = Union[str, int, float]


@dataclass(frozen=True, slots=True)
class InboundEvent:
    event_type: str
    payload: Any


@dataclass(frozen=True, slots=True)
class OutboundMessage:
    address: str
    args: Tuple[OscArgument, ...] = ()


def _as_mapping(payload: Any) -> Mapping[str, Any]:
    return payload if isinstance(payload, Mapping) else {}


@dataclass(frozen=True, slots=True)
class ControllerDataEvent:
    """Continuous controller state (steering wheels, sliders, orientation)."""

    user_id: Any = None
    timestamp: Any = None
    name: Any = None
    control_type: Any = None
    action: Any = None
    data: Any = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ControllerDataEvent":
        fields = _as_mapping(payload)
        return cls(
            user_id=fields.get("userId"),
            timestamp=fields.get("timestamp"),
            name=fields.get("name"),
            control_type=fields.get("controlType"),
            action=fields.get("action"),
            data=fields.get("data"),
        )


@dataclass(frozen=True, slots=True)
class ButtonActionEvent:
    """Discrete button press/release."""

    name: Any = None
    action: Any = None
    user_id: Optional[Any] = None
    timestamp: Optional[Any] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ButtonActionEvent":
        fields = _as_mapping(payload)
        return cls(
            name=fields.get("name"),
            action=fields.get("action"),
            user_id=fields.get("userId"),
            timestamp=fields.get("timestamp"),
        )
