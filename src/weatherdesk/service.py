# orchestration and business rules.
# use ThreadPoolExecutor to run the per-category network calls concurrently; each category
# has its own throttle, usage and key lane so they never wait on each other
# provides a pure summarize_report and compare_cities coordinator that works with any list of cities

from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence

from .client import WeatherAPIClient
from .errors import WeatherAPIError
from .models import CityReport, CitySummary, mean, weather_status

logger = logging.getLogger(__name__)


def fetch_city_report(
    client: WeatherAPIClient,
    city: str,
    history_days: int = 7,
    include_history: bool = True,
) -> CityReport:
    workers = 3 if include_history else 2
    with ThreadPoolExecutor(max_workers=workers) as pool:
        current = pool.submit(client.get_current_weather, city)
        forecast = pool.submit(client.get_forecast, city)
        history = pool.submit(client.get_historical_weather, city, history_days) if include_history else None

        # allow WeatherAPIError to propagate, the first failing category wins
        return CityReport(
            city=city,
            current=current.result(),
            forecast=forecast.result(),
            history=history.result() if history is not None else None,
        )


def summarize_report(report: CityReport) -> CitySummary:
    # weatherAPI shape: current["data"]["values"][metric]
    values = (report.current.get("data") or {}).get("values") or {}
    maxes = [d.temperature_max for d in report.forecast.daily if d.temperature_max is not None]
    return CitySummary(
        city=report.city,
        temperature=values.get("temperature"),
        condition=weather_status(values.get("weatherCode")),
        humidity=values.get("humidity"),
        wind_speed=values.get("windSpeed"),
        average_max_temp=mean(maxes),
        forecast_days=len(report.forecast.daily),
    )


def _summary_for_city(client: WeatherAPIClient, city: str) -> CitySummary:
    try:
        report = fetch_city_report(client, city, include_history=False)
    except WeatherAPIError as exc:
        logger.warning(f"Skipping {city!r}: {exc.kind.value} ({exc})")
        return CitySummary(city=city, error=exc.kind)
    return summarize_report(report)


def compare_cities(client: WeatherAPIClient, cities: Sequence[str], max_workers: int = 3) -> List[CitySummary]:
    # reuse a single client so every city shares the same throttle and key lanes
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [pool.submit(_summary_for_city, client, city) for city in cities]
        # keep the input ordering so cli output is deterministic
        return [fut.result() for fut in futures]
