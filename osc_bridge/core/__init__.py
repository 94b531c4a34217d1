"""Core primitives for osc-bridge."""

from .models import (
    ButtonActionEvent,
    ControllerDataEvent,
    InboundEvent,
    OscArgument,
    OutboundMessage,
)
from .protocols import DatagramSink, EventEmitter, EventHandler, EventSource
from .utils import encode_data_field, stringify, utc_timestamp

__all__ = [
    "ButtonActionEvent",
    "ControllerDataEvent",
    "DatagramSink",
    "EventEmitter",
    "EventHandler",
    "EventSource",
    "InboundEvent",
    "OscArgument",
    "OutboundMessage",
    "encode_data_field",
    "stringify",
    "utc_timestamp",
]
