"""Normalization helpers.

Centralizes defensive parsing of vendor telemetry payloads.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def safe_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes", "on"}:
            return True
        if normalized in {"false", "0", "no", "off"}:
            return False
        return None
    if isinstance(value, (int, float)):
        return bool(value)
    return None


def dig(payload: Any, *path: str) -> Any:
    """Walk nested mappings, returning ``None`` as soon as a key is missing."""
    current = payload
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def extract_serial(payload: Any) -> str | None:
    """Read the device serial from a telemetry payload.

    Push payloads carry it as ``dopplerId.deviceSerialNumber``; some
    lookups return it flat as ``deviceSerialNumber``.
    """
    serial = dig(payload, "dopplerId", "deviceSerialNumber")
    if serial is None:
        serial = dig(payload, "deviceSerialNumber")
    text = safe_str(serial)
    return text.strip() if text and text.strip() else None
