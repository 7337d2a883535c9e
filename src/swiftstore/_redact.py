"""Helpers for safe debug logging.

Snapshots routinely carry credentials or large blobs. This module turns a
snapshot (mapping, pydantic model or dataclass) into a log-safe structure
before it is emitted in DEBUG records.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

_MAX_DEPTH = 20


def redact_for_log(
    value: Any,
    *,
    sensitive_keys: frozenset[str] = frozenset(),
    max_string: int = 200,
    _depth: int = 0,
) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, BaseModel):
        value = dict(value)
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in sensitive_keys:
                redacted[key] = "<redacted>"
            else:
                redacted[key] = redact_for_log(
                    v,
                    sensitive_keys=sensitive_keys,
                    max_string=max_string,
                    _depth=_depth + 1,
                )
        return redacted

    if isinstance(value, Sequence):
        return [
            redact_for_log(v, sensitive_keys=sensitive_keys, max_string=max_string, _depth=_depth + 1)
            for v in value
        ]

    # Unknown objects are represented without dumping internals.
    return f"<{type(value).__name__}>"
