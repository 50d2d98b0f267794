"""Row clean-up helpers shared by the table models."""

from __future__ import annotations

from typing import Any


def blank_to_none(row: dict[str, Any], *keys: str) -> dict[str, Any]:
    """Return a copy of *row* with empty-string values for *keys* set to None."""
    out = dict(row)
    for key in keys:
        if out.get(key) == "":
            out[key] = None
    return out


def none_to_zero(row: dict[str, Any], *keys: str) -> dict[str, Any]:
    """Return a copy of *row* with missing or null numeric *keys* set to 0."""
    out = dict(row)
    for key in keys:
        if out.get(key) is None:
            out[key] = 0
    return out
