"""Per-category request pacing.

Consecutive requests in the same category are spaced at least
``min_interval`` seconds apart. Categories never wait on each other.
"""

from __future__ import annotations
import logging
import threading
import time
from typing import Callable, Dict, Optional

from .models import RequestCategory

logger = logging.getLogger(__name__)

MIN_INTERVAL_SECONDS = 1.0


class RequestThrottle:

    def __init__(
        self,
        min_interval: float = MIN_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_issued: Dict[RequestCategory, Optional[float]] = {c: None for c in RequestCategory}
        # one lock per category, held across wait-and-stamp
        self._locks: Dict[RequestCategory, threading.Lock] = {c: threading.Lock() for c in RequestCategory}

    def last_issued(self, category: RequestCategory) -> Optional[float]:
        return self._last_issued[category]

    def await_turn(self, category: RequestCategory) -> float:
        """Block until ``category`` may issue its next request and stamp it.

        Returns the number of seconds spent waiting.
        """
        waited = 0.0
        with self._locks[category]:
            last = self._last_issued[category]
            if last is not None:
                wait_time = last + self.min_interval - self._clock()
                if wait_time > 0:
                    logger.info(f"Throttling {category.value} request for {wait_time:.2f}s")
                    self._sleep(wait_time)
                    waited = wait_time
            self._last_issued[category] = self._clock()
        return waited
