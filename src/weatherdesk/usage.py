# request usage counters, one per category plus a running total
# only successful attempts are recorded

from __future__ import annotations
import logging
import threading
from datetime import datetime
from typing import Callable, Dict

from .keys import utcnow
from .models import RequestCategory, UsageSnapshot

logger = logging.getLogger(__name__)


class UsageCounter:

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._lock = threading.Lock()
        self._counts: Dict[RequestCategory, int] = {c: 0 for c in RequestCategory}
        self._total = 0
        self._last_reset_at = clock()

    def record(self, category: RequestCategory) -> None:
        with self._lock:
            self._counts[category] += 1
            self._total += 1

    def _snapshot_locked(self) -> UsageSnapshot:
        return UsageSnapshot(
            current=self._counts[RequestCategory.CURRENT],
            forecast=self._counts[RequestCategory.FORECAST],
            historical=self._counts[RequestCategory.HISTORICAL],
            total=self._total,
            last_reset_at=self._last_reset_at,
            last_checked_at=self._clock(),
        )

    def snapshot(self) -> UsageSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def reset(self) -> UsageSnapshot:
        with self._lock:
            self._counts = {c: 0 for c in RequestCategory}
            self._total = 0
            self._last_reset_at = self._clock()
            snap = self._snapshot_locked()
        logger.info("API usage counters reset")
        return snap
