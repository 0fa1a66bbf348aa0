"""Payload sanitization into bounded, JSON-safe data."""

import json
import math
from collections.abc import Mapping
from datetime import date, datetime

MAX_STRING_LENGTH = 1000
MAX_PAYLOAD_BYTES = 50000

TRUNCATED_MARKER = "...[truncated]"
CIRCULAR_MARKER = "[Circular]"
FUNCTION_MARKER = "[Function]"


def _clean(value, ancestors: set[int]):
    """Recursively convert ``value``; ``ancestors`` holds ids of enclosing containers."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        if len(value) > MAX_STRING_LENGTH:
            return value[:MAX_STRING_LENGTH] + TRUNCATED_MARKER
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        # NaN and infinities have no JSON form
        return value if math.isfinite(value) else None
    if isinstance(value, (datetime, date)):
        return value.isoformat()

    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        if id(value) in ancestors:
            return CIRCULAR_MARKER
        ancestors.add(id(value))
        try:
            if isinstance(value, Mapping):
                return {str(k): _clean(v, ancestors) for k, v in value.items()}
            return [_clean(item, ancestors) for item in value]
        finally:
            ancestors.discard(id(value))

    if callable(value):
        return FUNCTION_MARKER
    return _clean(str(value), ancestors)


def sanitize(data):
    """Return a JSON-safe copy of ``data``, or a placeholder dict on failure.

    Never raises. Oversized results are replaced by
    ``{"error": "Data too large to log", "size": n}``.
    """
    if data is None:
        return None

    try:
        sanitized = _clean(data, set())
        compact = json.dumps(sanitized, ensure_ascii=False, separators=(",", ":"))
        size = len(compact.encode("utf-8"))
    except Exception as e:
        return {"error": "Failed to sanitize data", "errorMessage": str(e)}

    if size > MAX_PAYLOAD_BYTES:
        return {"error": "Data too large to log", "size": size}
    return sanitized
