"""Per-source request quota tracking.

A source reports its rate-limit window on every response. The first parsed
report is adopted as is. Afterwards only `remaining` may change, and only
downwards, since concurrent in-flight requests may report out of order.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class QuotaSnapshot:
    limit: int
    remaining: int
    reset_at: datetime

    def exhausted(self, now: datetime) -> bool:
        return self.remaining == 0 and self.reset_at > now


class QuotaState:
    """Quota of a single source, updated as a group under a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot: Optional[QuotaSnapshot] = None

    @property
    def ready(self) -> bool:
        return self.snapshot() is not None

    def snapshot(self) -> Optional[QuotaSnapshot]:
        """Current state, or None until the first report was applied."""
        with self._lock:
            return self._snapshot

    def apply(self, limit: int, remaining: int, reset_at: datetime) -> QuotaSnapshot:
        """Fold a freshly observed report into the state and return the result."""
        with self._lock:
            if self._snapshot is None:
                self._snapshot = QuotaSnapshot(limit=limit, remaining=remaining, reset_at=reset_at)
            elif remaining < self._snapshot.remaining:
                self._snapshot = replace(self._snapshot, remaining=remaining)
            return self._snapshot
