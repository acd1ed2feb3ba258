from datetime import datetime, timezone

import pytest

from weatherdesk.keys import KeyHealthTracker, KeyRegistry, mask_key
from weatherdesk.models import ClassifiedError, ErrorKind, RequestCategory

from conftest import KEYS

FIXED = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def test_each_category_prefers_a_different_primary():
    registry = KeyRegistry(KEYS)
    assert registry.order(RequestCategory.CURRENT) == (0, 1, 2)
    assert registry.order(RequestCategory.FORECAST) == (1, 2, 0)
    assert registry.order(RequestCategory.HISTORICAL) == (2, 0, 1)
    assert registry.chain(RequestCategory.FORECAST) == (KEYS[1], KEYS[2], KEYS[0])


def test_offsets_wrap_with_fewer_keys():
    registry = KeyRegistry(KEYS[:2])
    assert registry.order(RequestCategory.HISTORICAL) == (0, 1)
    single = KeyRegistry(KEYS[:1])
    assert all(single.chain(c) == (KEYS[0],) for c in RequestCategory)


def test_duplicates_and_blanks_are_dropped():
    registry = KeyRegistry(["a-key", " ", "b-key", "a-key", ""])
    assert registry.keys == ("a-key", "b-key")
    assert len(registry) == 2


def test_registry_requires_a_key():
    with pytest.raises(ValueError, match="at least one"):
        KeyRegistry(["", "  "])


def test_explicit_orders():
    registry = KeyRegistry(KEYS, orders={RequestCategory.CURRENT: [2, 0]})
    assert registry.chain(RequestCategory.CURRENT) == (KEYS[2], KEYS[0])
    # categories without an explicit order keep the default rotation
    assert registry.order(RequestCategory.FORECAST) == (1, 2, 0)


@pytest.mark.parametrize("order", [[], [0, 0], [0, 3], [-1]])
def test_invalid_orders_rejected(order):
    with pytest.raises(ValueError):
        KeyRegistry(KEYS, orders={RequestCategory.CURRENT: order})


def test_credential_wraps_to_primary():
    registry = KeyRegistry(KEYS)
    assert registry.credential(RequestCategory.FORECAST, 0) == (1, KEYS[1])
    assert registry.credential(RequestCategory.FORECAST, 3) == (1, KEYS[1])


def test_credential_rejects_negative_attempt():
    registry = KeyRegistry(KEYS)
    with pytest.raises(ValueError):
        registry.credential(RequestCategory.CURRENT, -1)


def test_keys_are_masked():
    assert mask_key("abcdefghijklmnop") == "abcd…mnop"
    assert mask_key("short") == "*****"
    assert KEYS[0] not in repr(KeyRegistry(KEYS))


def test_health_starts_unknown():
    tracker = KeyHealthTracker(clock=lambda: FIXED)
    record = tracker.get(RequestCategory.CURRENT)
    assert record.is_valid is None
    assert record.consecutive_failures == 0
    assert record.last_checked_at is None


def test_invalid_key_marks_lane_invalid():
    tracker = KeyHealthTracker(clock=lambda: FIXED)
    err = ClassifiedError(ErrorKind.INVALID_API_KEY, "rejected")
    tracker.record_failure(RequestCategory.FORECAST, err, key_index=1)
    record = tracker.record_failure(RequestCategory.FORECAST, err, key_index=2)
    assert record.is_valid is False
    assert record.consecutive_failures == 2
    assert record.last_error_message == "rejected"
    assert record.last_key_index == 2
    assert record.last_checked_at == FIXED
    # other lanes untouched
    assert tracker.get(RequestCategory.CURRENT).consecutive_failures == 0


def test_rate_limit_counts_failure_but_keeps_validity():
    tracker = KeyHealthTracker(clock=lambda: FIXED)
    tracker.record_success(RequestCategory.CURRENT)
    record = tracker.record_failure(RequestCategory.CURRENT, ClassifiedError(ErrorKind.RATE_LIMIT_EXCEEDED, "slow down"))
    assert record.is_valid is True
    assert record.consecutive_failures == 1


def test_other_failures_only_stamp_the_record():
    tracker = KeyHealthTracker(clock=lambda: FIXED)
    record = tracker.record_failure(RequestCategory.CURRENT, ClassifiedError(ErrorKind.SERVER_ERROR, "down"))
    assert record.consecutive_failures == 0
    assert record.is_valid is None
    assert record.last_error_message == "down"


def test_success_resets_record():
    tracker = KeyHealthTracker(clock=lambda: FIXED)
    for _ in range(3):
        tracker.record_failure(RequestCategory.HISTORICAL, ClassifiedError(ErrorKind.INVALID_API_KEY, "bad"))
    record = tracker.record_success(RequestCategory.HISTORICAL, key_index=0)
    assert record.is_valid is True
    assert record.consecutive_failures == 0
    assert record.last_error_message is None
    assert tracker.snapshot()[RequestCategory.HISTORICAL] == record
