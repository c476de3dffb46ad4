"""
Helpers for tagged-variant values returned by canister calls
"""

from collections.abc import Mapping
from typing import Any

_MISSING = object()


def variant_tag(value: Any) -> tuple[str | None, Any]:
    """
    Split a single-key tagged variant into ``(tag, payload)``.

    ``{"Failed": "reason"}`` -> ``("Failed", "reason")``; a plain string is a
    tag without payload. Anything else yields ``(None, None)``.
    """
    if isinstance(value, str):
        return value, None
    if isinstance(value, Mapping) and len(value) == 1:
        ((tag, payload),) = value.items()
        if isinstance(tag, str):
            return tag, payload
    return None, None


def split_result(value: Any) -> tuple[Any, Any]:
    """
    Split an ``{"Ok": ...}`` / ``{"Err": ...}`` result into ``(ok, err)``.

    Values that are not wrapped are treated as a bare success.
    """
    if isinstance(value, Mapping):
        err = value.get("Err", _MISSING)
        if err is not _MISSING:
            return None, err
        ok = value.get("Ok", _MISSING)
        if ok is not _MISSING:
            return ok, None
    return value, None
