# api credentials: which keys exist, in which order each category tries them,
# and how healthy each category's lane looked on its last attempt

from __future__ import annotations
import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .models import ClassifiedError, ErrorKind, KeyHealthRecord, RequestCategory

logger = logging.getLogger(__name__)

# each category prefers a different primary key so load spreads across keys
DEFAULT_START_OFFSETS: Dict[RequestCategory, int] = {
    RequestCategory.CURRENT: 0,
    RequestCategory.FORECAST: 1,
    RequestCategory.HISTORICAL: 2,
}


def mask_key(key: str) -> str:
    # never log a credential in clear
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}…{key[-4:]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KeyRegistry:
    # fixed at construction, never mutated afterwards

    def __init__(
        self,
        keys: Iterable[str],
        orders: Optional[Mapping[RequestCategory, Sequence[int]]] = None,
    ):
        unique: list = []
        for key in keys:
            key = (key or "").strip()
            if key and key not in unique:
                unique.append(key)
        if not unique:
            raise ValueError("KeyRegistry needs at least one API key")
        self._keys: Tuple[str, ...] = tuple(unique)

        orders = dict(orders or {})
        self._orders: Dict[RequestCategory, Tuple[int, ...]] = {}
        for category in RequestCategory:
            if category in orders:
                order = tuple(orders[category])
                self._validate_order(category, order)
            else:
                start = DEFAULT_START_OFFSETS[category] % len(self._keys)
                order = tuple((start + i) % len(self._keys) for i in range(len(self._keys)))
            self._orders[category] = order

    def _validate_order(self, category: RequestCategory, order: Tuple[int, ...]) -> None:
        if not order:
            raise ValueError(f"fallback order for {category.value!r} is empty")
        if len(set(order)) != len(order):
            raise ValueError(f"fallback order for {category.value!r} repeats a key: {order}")
        bad = [i for i in order if not 0 <= i < len(self._keys)]
        if bad:
            raise ValueError(f"fallback order for {category.value!r} references unknown keys: {bad}")

    @property
    def keys(self) -> Tuple[str, ...]:
        return self._keys

    def order(self, category: RequestCategory) -> Tuple[int, ...]:
        # key indices in priority order
        return self._orders[category]

    def chain(self, category: RequestCategory) -> Tuple[str, ...]:
        return tuple(self._keys[i] for i in self._orders[category])

    def credential(self, category: RequestCategory, attempt: int) -> Tuple[int, str]:
        # (key index, key) for the given attempt, wrapping to the primary
        if attempt < 0:
            raise ValueError(f"attempt must be >= 0, got {attempt}")
        order = self._orders[category]
        index = order[attempt % len(order)]
        return index, self._keys[index]

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        masked = ", ".join(mask_key(k) for k in self._keys)
        return f"KeyRegistry([{masked}])"


class KeyHealthTracker:
    # one record per category, updated after every attempt

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._lock = threading.Lock()
        self._records: Dict[RequestCategory, KeyHealthRecord] = {
            c: KeyHealthRecord(category=c) for c in RequestCategory
        }

    def get(self, category: RequestCategory) -> KeyHealthRecord:
        with self._lock:
            return self._records[category]

    def snapshot(self) -> Dict[RequestCategory, KeyHealthRecord]:
        with self._lock:
            return dict(self._records)

    def record_success(self, category: RequestCategory, key_index: Optional[int] = None) -> KeyHealthRecord:
        with self._lock:
            record = KeyHealthRecord(
                category=category,
                is_valid=True,
                last_checked_at=self._clock(),
                last_error_message=None,
                consecutive_failures=0,
                last_key_index=key_index,
            )
            self._records[category] = record
            return record

    def record_failure(
        self, category: RequestCategory, error: ClassifiedError, key_index: Optional[int] = None
    ) -> KeyHealthRecord:
        with self._lock:
            record = replace(
                self._records[category],
                last_checked_at=self._clock(),
                last_error_message=error.message,
                last_key_index=key_index,
            )
            if error.kind is ErrorKind.INVALID_API_KEY:
                record = replace(record, is_valid=False, consecutive_failures=record.consecutive_failures + 1)
            elif error.kind is ErrorKind.RATE_LIMIT_EXCEEDED:
                record = replace(record, consecutive_failures=record.consecutive_failures + 1)
            self._records[category] = record

        if record.consecutive_failures:
            logger.debug(
                f"{category.value} lane: {record.consecutive_failures} consecutive failure(s), "
                f"valid={record.is_valid}"
            )
        return record
