# consumer-facing weather client
# builds endpoint + params, hands them to the dispatcher, and flattens the raw payload
# into the small shapes the rest of the app needs

from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence

from .config import Settings, load_settings
from .dispatcher import DispatchContext, RequestDispatcher
from .errors import WeatherAPIError
from .keys import KeyHealthTracker, KeyRegistry, utcnow
from .models import (
    DailyForecast,
    DailyHistory,
    ErrorKind,
    ForecastBundle,
    HistoryBundle,
    HourlyForecast,
    HourlyHistory,
    KeyHealthRecord,
    RequestCategory,
    UsageSnapshot,
)
from .transport import HttpTransport

logger = logging.getLogger(__name__)

REALTIME_PATH = "weather/realtime"
FORECAST_PATH = "weather/forecast"
HISTORY_PATH = "weather/history/recent"
DATE_FORMAT = "%Y-%m-%d"


def _timelines(payload: Any, path: str):
    # ensure the data meets the basic requirements expected by the normalizers
    try:
        timelines = payload["timelines"]
        return payload.get("location") or {}, timelines["hourly"], timelines["daily"]
    except (KeyError, TypeError, AttributeError) as exc:
        raise WeatherAPIError.of(
            ErrorKind.UNKNOWN_ERROR, f"Unexpected API shape from {path}: missing timelines.hourly/daily", exc
        ) from exc


def _project(path: str, entries, build):
    # every entry needs a time and a values object; anything else is an unexpected shape
    try:
        return tuple(build(e["time"], e["values"] or {}) for e in entries)
    except (KeyError, TypeError, AttributeError) as exc:
        raise WeatherAPIError.of(
            ErrorKind.UNKNOWN_ERROR, f"Unexpected API shape from {path}: malformed timeline entry ({exc!r})", exc
        ) from exc


def parse_forecast(payload: Dict[str, Any]) -> ForecastBundle:
    location, hourly, daily = _timelines(payload, FORECAST_PATH)
    return ForecastBundle(
        location=location,
        hourly=_project(
            FORECAST_PATH,
            hourly,
            lambda t, v: HourlyForecast(time=t, temperature=v.get("temperature"), weather_code=v.get("weatherCode")),
        ),
        daily=_project(
            FORECAST_PATH,
            daily,
            lambda t, v: DailyForecast(
                time=t,
                temperature_max=v.get("temperatureMax"),
                temperature_min=v.get("temperatureMin"),
                weather_code=v.get("weatherCode"),
            ),
        ),
    )


def parse_history(payload: Dict[str, Any]) -> HistoryBundle:
    location, hourly, daily = _timelines(payload, HISTORY_PATH)
    return HistoryBundle(
        location=location,
        hourly=_project(
            HISTORY_PATH,
            hourly,
            lambda t, v: HourlyHistory(
                time=t,
                temperature=v.get("temperature"),
                humidity=v.get("humidity"),
                wind_speed=v.get("windSpeed"),
                precipitation=v.get("precipitationIntensity"),
                weather_code=v.get("weatherCode"),
            ),
        ),
        daily=_project(
            HISTORY_PATH,
            daily,
            lambda t, v: DailyHistory(
                time=t,
                temperature_avg=v.get("temperatureAvg"),
                temperature_max=v.get("temperatureMax"),
                temperature_min=v.get("temperatureMin"),
                humidity_avg=v.get("humidityAvg"),
                wind_speed_avg=v.get("windSpeedAvg"),
                precipitation_sum=v.get("precipitationSum"),
            ),
        ),
    )


class WeatherAPIClient:
    # one instance per process: it owns the dispatcher and therefore the
    # throttle, key health and usage state

    def __init__(
        self,
        api_keys: Optional[Iterable[str]] = None,
        settings: Optional[Settings] = None,
        transport: Optional[HttpTransport] = None,
        context: Optional[DispatchContext] = None,
        key_orders: Optional[Mapping[RequestCategory, Sequence[int]]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if settings is None:
            settings = Settings(api_keys=tuple(api_keys)) if api_keys is not None else load_settings()
        self.settings = settings
        self.transport = transport or HttpTransport(
            base_url=settings.base_url,
            timeout=settings.timeout,
            connect_retries=settings.connect_retries,
        )
        self._clock = clock
        self.registry = KeyRegistry(settings.api_keys, orders=key_orders)
        self.dispatcher = RequestDispatcher(
            self.registry,
            self.transport.get,
            context=context or DispatchContext(health=KeyHealthTracker(clock=clock)),
        )
        logger.debug(f"WeatherAPIClient ready with {self.registry!r}")

    def _params(self, city: str, **extra: str) -> Dict[str, str]:
        params = {"location": city}
        if self.settings.units:
            params["units"] = self.settings.units
        params.update(extra)
        return params

    def get_current_weather(self, city: str) -> Dict[str, Any]:
        # pass-through: callers read data.values directly
        result = self.dispatcher.dispatch(RequestCategory.CURRENT, REALTIME_PATH, self._params(city))
        return result.unwrap()

    def get_forecast(self, city: str) -> ForecastBundle:
        result = self.dispatcher.dispatch(RequestCategory.FORECAST, FORECAST_PATH, self._params(city))
        return parse_forecast(result.unwrap())

    def get_historical_weather(self, city: str, days: int = 7) -> HistoryBundle:
        if days < 1:
            raise ValueError(f"'days' must be at least 1 (got {days})")
        today = self._clock().date()
        params = self._params(
            city,
            startTime=(today - timedelta(days=days)).strftime(DATE_FORMAT),
            endTime=today.strftime(DATE_FORMAT),
        )
        result = self.dispatcher.dispatch(RequestCategory.HISTORICAL, HISTORY_PATH, params)
        return parse_history(result.unwrap())

    def usage(self) -> UsageSnapshot:
        return self.dispatcher.context.usage.snapshot()

    def reset_usage(self) -> UsageSnapshot:
        return self.dispatcher.context.usage.reset()

    def key_health(self) -> Dict[RequestCategory, KeyHealthRecord]:
        return self.dispatcher.context.health.snapshot()

    def close(self) -> None:
        self.transport.close()
