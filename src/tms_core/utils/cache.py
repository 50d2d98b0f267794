"""In-memory TTL cache shared by every session in the process."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Generic, TypeVar

from tms_shared.config import settings
from tms_shared.models.users import AdvisorBranding

V = TypeVar("V")


@dataclass(frozen=True)
class _Entry(Generic[V]):
    value: V
    expires_at: float


class TTLCache(Generic[V]):
    """String-keyed cache; entries older than their TTL read as missing."""

    def __init__(self, default_ttl: float = 300.0) -> None:
        self._entries: dict[str, _Entry[V]] = {}
        self._lock = threading.Lock()
        self._default_ttl = default_ttl

    def get(self, key: str) -> V | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if time.monotonic() > entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: V, ttl: float | None = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = _Entry(value, time.monotonic() + ttl)

    def discard(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Advisor name/logo by advisor code; a sign-out evicts only that session's advisor
advisor_branding_cache: TTLCache[AdvisorBranding] = TTLCache(
    default_ttl=settings.advisor_branding_ttl_s
)
