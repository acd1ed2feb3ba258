"""Request dispatch with throttling, key fallback and usage accounting.

One logical request walks the category's fallback chain: each attempt waits
for its throttle turn, picks the next credential, and calls the transport.
Invalid-key and rate-limit failures advance to the next credential; any other
failure ends the request at once. The outcome is returned as a
:class:`DispatchResult` rather than raised.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from .errors import ErrorClassifier, WeatherAPIError, exhausted_error
from .keys import KeyHealthTracker, KeyRegistry, mask_key
from .models import ClassifiedError, RequestCategory
from .throttle import RequestThrottle
from .usage import UsageCounter

logger = logging.getLogger(__name__)

Fetch = Callable[[str, Dict[str, Any]], Any]


@dataclass
class DispatchContext:
    """Mutable per-process state owned by a single dispatcher."""

    throttle: RequestThrottle = field(default_factory=RequestThrottle)
    health: KeyHealthTracker = field(default_factory=KeyHealthTracker)
    usage: UsageCounter = field(default_factory=UsageCounter)


@dataclass(frozen=True)
class DispatchResult:
    category: RequestCategory
    payload: Any = None
    error: Optional[ClassifiedError] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise WeatherAPIError(self.error)
        return self.payload


class RequestDispatcher:

    def __init__(
        self,
        registry: KeyRegistry,
        fetch: Fetch,
        context: Optional[DispatchContext] = None,
        classifier: Optional[ErrorClassifier] = None,
    ):
        self.registry = registry
        self.fetch = fetch
        self.context = context or DispatchContext()
        self.classifier = classifier or ErrorClassifier()

    def dispatch(
        self,
        category: RequestCategory,
        endpoint_path: str,
        params: Mapping[str, Any],
        attempt: int = 0,
    ) -> DispatchResult:
        """Issue one logical request starting at fallback position ``attempt``."""
        if attempt < 0:
            raise ValueError(f"attempt must be >= 0, got {attempt}")
        chain_length = len(self.registry.order(category))
        tried = 0

        while attempt < chain_length:
            self.context.throttle.await_turn(category)
            key_index, key = self.registry.credential(category, attempt)
            tried += 1
            logger.debug(
                f"{category.value} -> {endpoint_path} attempt {attempt + 1}/{chain_length} "
                f"with key #{key_index} ({mask_key(key)})"
            )

            query = dict(params)
            query["apikey"] = key
            try:
                payload = self.fetch(endpoint_path, query)
            except requests.RequestException as exc:
                error = self.classifier.classify(exc, category)
                self.context.health.record_failure(category, error, key_index)
                if not error.retryable:
                    logger.info(f"{category.value} request failed with {error.kind.value}: {error.message}")
                    return DispatchResult(category=category, error=error, attempts=tried)
                logger.warning(
                    f"{error.kind.value} on key #{key_index} for {category.value}, "
                    f"falling back to next key"
                )
                attempt += 1
                continue

            self.context.health.record_success(category, key_index)
            self.context.usage.record(category)
            return DispatchResult(category=category, payload=payload, attempts=tried)

        error = exhausted_error(category, tried)
        logger.error(error.message)
        return DispatchResult(category=category, error=error, attempts=tried)
