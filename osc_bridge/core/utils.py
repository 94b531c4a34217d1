"""Core utility functions shared across modules."""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from typing import Any, Optional, Union

NULL_TEXT = "null"

# OSC carries at most a signed 64-bit integer
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _json_text(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def _primitive_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
    return str(value)


def encode_data_field(value: Any) -> str:
    """Render a payload ``data`` field as text for positional OSC decoding.

    Examples:
        >>> encode_data_field({"orientation-beta": 5})
        '{"orientation-beta":5}'
        >>> encode_data_field(True)
        'true'
        >>> encode_data_field(None)
        'null'
    """
    if value is None:
        return NULL_TEXT
    if isinstance(value, (dict, list, tuple)):
        return _json_text(value)
    return _primitive_text(value)


def stringify(value: Any, *, missing: str = NULL_TEXT) -> Union[str, int, float]:
    """Normalise a payload field into an OSC-encodable argument.

    Strings and numbers pass through (ints as OSC ``i``/``h``, floats as
    ``f``), structured values become JSON text and ``None`` becomes
    ``missing``. Integers outside the signed 64-bit range are sent as text.
    """
    if value is None:
        return missing
    if isinstance(value, bool):
        return _primitive_text(value)
    if isinstance(value, int) and not _INT64_MIN <= value <= _INT64_MAX:
        return str(value)
    if isinstance(value, (str, int, float)):
        return value
    if isinstance(value, (dict, list, tuple)):
        return _json_text(value)
    return str(value)


def path_segment(value: Any) -> str:
    text = stringify(value)
    return _primitive_text(text) if not isinstance(text, str) else text


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
