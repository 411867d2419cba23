"""JSON codec helpers for turn payloads and persisted records."""

from __future__ import annotations

from typing import Any

import orjson


def dumps_bytes(payload: Any, *, pretty: bool = False, sort_keys: bool = False) -> bytes:
    """Serialize payload to UTF-8 JSON bytes."""
    options = 0
    if pretty:
        options |= orjson.OPT_INDENT_2
    if sort_keys:
        options |= orjson.OPT_SORT_KEYS
    return orjson.dumps(payload, option=options)


def dumps_text(payload: Any, *, pretty: bool = False, sort_keys: bool = False) -> str:
    return dumps_bytes(payload, pretty=pretty, sort_keys=sort_keys).decode("utf-8")


def loads(raw: str | bytes) -> Any:
    """Parse JSON text or bytes. Raises ``ValueError`` on malformed input."""
    return orjson.loads(raw)


def clone(payload: Any) -> Any:
    """Return a deep copy limited to JSON-representable values."""
    return orjson.loads(orjson.dumps(payload))


__all__ = ["clone", "dumps_bytes", "dumps_text", "loads"]
