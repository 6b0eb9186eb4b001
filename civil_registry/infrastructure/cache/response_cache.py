"""
Response cache: process-wide, TTL + stale-while-revalidate.

Keys are `<namespace>:<digest>` where the digest is a SHA-256 of the
request signature, so `invalidate(namespace)` drops every variant of a
view at once. Mutation endpoints call `invalidate`; presentation code
never owns invalidation.

Policy for an entry of age `a`:
  - a < ttl          → fresh, served as is
  - ttl <= a < 2*ttl → stale, served immediately, one background refresh scheduled
  - a >= 2*ttl       → recomputed synchronously
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    generation: int


def _spawn(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, name="response-cache-refresh", daemon=True).start()


class ResponseCache:
    """Thread-safe in-memory cache for read views."""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        stale_while_revalidate: bool = True,
        clock: Callable[[], float] = time.monotonic,
        runner: Callable[[Callable[[], None]], None] = _spawn,
    ) -> None:
        self.ttl = ttl_seconds
        self.stale_while_revalidate = stale_while_revalidate
        self._clock = clock
        self._runner = runner
        self._entries: dict[str, CacheEntry] = {}
        self._refreshing: set[str] = set()
        self._generation = 0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Key helpers
    # ------------------------------------------------------------------
    @staticmethod
    def key(namespace: str, **signature: Any) -> str:
        """Deterministic key for a view and its parameters."""
        raw = json.dumps(signature, sort_keys=True, default=str)
        digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]
        return f"{namespace}:{digest}"

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------
    def get_or_compute(self, key: str, loader: Callable[[], Any]) -> Any:
        now = self._clock()
        serve_stale = schedule = False
        with self._lock:
            entry = self._entries.get(key)
            generation = self._generation
            if entry is not None:
                age = now - entry.stored_at
                if age < self.ttl:
                    return entry.value
                if self.stale_while_revalidate and age < 2 * self.ttl:
                    serve_stale = True
                    schedule = key not in self._refreshing
                    if schedule:
                        self._refreshing.add(key)
                else:
                    del self._entries[key]

        if serve_stale:
            if schedule:
                logger.debug(f"Serving stale {key}, refreshing in background")
                self._runner(lambda: self._refresh(key, loader, generation))
            return entry.value

        value = loader()
        self._store(key, value, generation)
        return value

    def invalidate(self, prefix: str = "") -> int:
        """Drop every entry whose key starts with `prefix` (all entries when empty)."""
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
            self._generation += 1
        if doomed:
            logger.debug(f"Invalidated {len(doomed)} cache entr{'y' if len(doomed) == 1 else 'ies'} under '{prefix}'")
        return len(doomed)

    def clear(self) -> None:
        self.invalidate("")

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    def _store(self, key: str, value: Any, generation: int) -> None:
        with self._lock:
            # A value computed before an invalidation must not resurrect the entry.
            if generation != self._generation:
                return
            self._entries[key] = CacheEntry(value=value, stored_at=self._clock(), generation=generation)

    def _refresh(self, key: str, loader: Callable[[], Any], generation: int) -> None:
        try:
            value = loader()
            self._store(key, value, generation)
        except Exception:
            logger.exception(f"Background refresh of {key} failed, keeping stale value")
        finally:
            with self._lock:
                self._refreshing.discard(key)
