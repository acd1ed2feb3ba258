# models and tiny helpers to keep data shapes explicit and reusable across the app

from __future__ import annotations
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple


class RequestCategory(str, enum.Enum):
    # independent lanes for throttling, usage and key rotation
    CURRENT = "current"
    FORECAST = "forecast"
    HISTORICAL = "historical"


class ErrorKind(str, enum.Enum):
    # closed set, callers branch on these and never on message text
    INVALID_API_KEY = "INVALID_API_KEY"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    LOCATION_NOT_FOUND = "LOCATION_NOT_FOUND"
    NETWORK_ERROR = "NETWORK_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


RETRYABLE_KINDS = frozenset({ErrorKind.INVALID_API_KEY, ErrorKind.RATE_LIMIT_EXCEEDED})


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str
    cause: Optional[BaseException] = field(default=None, compare=False)

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


@dataclass(frozen=True)
class KeyHealthRecord:
    # is_valid is tri-state: None until the first attempt in this category
    category: RequestCategory
    is_valid: Optional[bool] = None
    last_checked_at: Optional[datetime] = None
    last_error_message: Optional[str] = None
    consecutive_failures: int = 0
    last_key_index: Optional[int] = None


@dataclass(frozen=True)
class UsageSnapshot:
    current: int
    forecast: int
    historical: int
    total: int
    last_reset_at: datetime
    last_checked_at: datetime

    def count(self, category: RequestCategory) -> int:
        return getattr(self, category.value)


# normalized projections of the upstream payload, built fresh per call

@dataclass(frozen=True)
class HourlyForecast:
    time: str
    temperature: Optional[float]
    weather_code: Optional[int]


@dataclass(frozen=True)
class DailyForecast:
    time: str
    temperature_max: Optional[float]
    temperature_min: Optional[float]
    weather_code: Optional[int]


@dataclass(frozen=True)
class ForecastBundle:
    location: Dict[str, Any]
    hourly: Tuple[HourlyForecast, ...]
    daily: Tuple[DailyForecast, ...]


@dataclass(frozen=True)
class HourlyHistory:
    time: str
    temperature: Optional[float]
    humidity: Optional[float]
    wind_speed: Optional[float]
    precipitation: Optional[float]
    weather_code: Optional[int]


@dataclass(frozen=True)
class DailyHistory:
    time: str
    temperature_avg: Optional[float]
    temperature_max: Optional[float]
    temperature_min: Optional[float]
    humidity_avg: Optional[float]
    wind_speed_avg: Optional[float]
    precipitation_sum: Optional[float]


@dataclass(frozen=True)
class HistoryBundle:
    location: Dict[str, Any]
    hourly: Tuple[HourlyHistory, ...]
    daily: Tuple[DailyHistory, ...]


@dataclass(frozen=True)
class CityReport:
    # everything fetched for one city, history is optional
    city: str
    current: Dict[str, Any]
    forecast: ForecastBundle
    history: Optional[HistoryBundle] = None


@dataclass(frozen=True)
class CitySummary:
    # output value object used by the cli and multi-city comparison
    city: str
    temperature: Optional[float] = None
    condition: Optional[str] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    average_max_temp: float = float("nan")
    forecast_days: int = 0
    error: Optional[ErrorKind] = None


# Tomorrow.io weather codes
WEATHER_CODES: Dict[int, str] = {
    1000: "Clear",
    1001: "Cloudy",
    1100: "Mostly Clear",
    1101: "Partly Cloudy",
    1102: "Mostly Cloudy",
    2000: "Fog",
    2100: "Light Fog",
    4000: "Drizzle",
    4001: "Drizzle Rain",
    4200: "Light Rain",
    4201: "Heavy Rain",
    5000: "Snow",
    5001: "Light Thunder",
    8000: "Mostly Sunny",
}
STATUS_TO_CODE: Dict[str, int] = {status: code for code, status in WEATHER_CODES.items()}


def weather_status(code: Optional[int]) -> str:
    return WEATHER_CODES.get(code, "Unknown") if code is not None else "Unknown"


def weather_code(status: str) -> int:
    # unknown statuses fall back to Clear
    return STATUS_TO_CODE.get(status, 1000)


def mean(values: List[float]) -> float:
    # simple average that returns NaN on empty input to avoid zero division
    return sum(values) / len(values) if values else float("nan")
