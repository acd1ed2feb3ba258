# connects city arguments to the client/service and prints the result

import logging
import math
from contextlib import contextmanager
from typing import Iterator, List

import typer
from typing_extensions import Annotated

from .client import WeatherAPIClient
from .config import load_settings
from .errors import WeatherAPIError, describe_error
from .logging_setup import setup_logging
from .models import weather_status
from .service import compare_cities

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="weatherdesk",
    help="Current, forecast and historical weather for a city.",
    add_completion=False,
    no_args_is_help=True,
)


_state = {"verbose": False}


def build_client() -> WeatherAPIClient:
    settings = load_settings()
    setup_logging(logging.DEBUG if _state["verbose"] else settings.log_level)
    return WeatherAPIClient(settings=settings)


def _fail(exc: WeatherAPIError) -> typer.Exit:
    display = describe_error(exc.kind)
    typer.echo(f"{display.icon} {display.title}: {exc}", err=True)
    typer.echo(display.action, err=True)
    return typer.Exit(code=1)


@contextmanager
def _session() -> Iterator[WeatherAPIClient]:
    # one client per command, closed on every exit path
    try:
        client = build_client()
    except WeatherAPIError as exc:
        raise _fail(exc)
    try:
        yield client
    finally:
        client.close()


def _fmt(value, unit: str = "") -> str:
    return "-" if value is None else f"{value}{unit}"


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    _state["verbose"] = verbose


@app.command()
def current(city: Annotated[str, typer.Argument(help="City name, e.g. 'Paris'.")]) -> None:
    """Show current conditions."""
    with _session() as client:
        try:
            payload = client.get_current_weather(city)
        except WeatherAPIError as exc:
            raise _fail(exc)
    values = (payload.get("data") or {}).get("values") or {}
    typer.echo(f"{city}: {weather_status(values.get('weatherCode'))}")
    typer.echo(f"  Temperature: {_fmt(values.get('temperature'), '°C')}")
    typer.echo(f"  Feels Like: {_fmt(values.get('temperatureApparent'), '°C')}")
    typer.echo(f"  Humidity: {_fmt(values.get('humidity'), '%')}")
    typer.echo(f"  Wind Speed: {_fmt(values.get('windSpeed'), ' km/h')}")


@app.command()
def forecast(
    city: Annotated[str, typer.Argument(help="City name.")],
    hours: Annotated[int, typer.Option(help="Hourly rows to print.")] = 24,
) -> None:
    """Show the hourly and daily forecast."""
    with _session() as client:
        try:
            bundle = client.get_forecast(city)
        except WeatherAPIError as exc:
            raise _fail(exc)
    typer.echo(f"Hourly forecast for {city}:")
    for h in bundle.hourly[:hours]:
        typer.echo(f"  {h.time}  {_fmt(h.temperature, '°C'):>8}  {weather_status(h.weather_code)}")
    typer.echo(f"Daily forecast for {city}:")
    for d in bundle.daily:
        typer.echo(
            f"  {d.time}  max {_fmt(d.temperature_max, '°C')}  min {_fmt(d.temperature_min, '°C')}"
            f"  {weather_status(d.weather_code)}"
        )


@app.command()
def history(
    city: Annotated[str, typer.Argument(help="City name.")],
    days: Annotated[int, typer.Option(min=1, help="Days to look back.")] = 7,
) -> None:
    """Show recent daily history."""
    with _session() as client:
        try:
            bundle = client.get_historical_weather(city, days=days)
        except WeatherAPIError as exc:
            raise _fail(exc)
    typer.echo(f"Last {days} day(s) in {city}:")
    for d in bundle.daily:
        typer.echo(
            f"  {d.time}  avg {_fmt(d.temperature_avg, '°C')}  max {_fmt(d.temperature_max, '°C')}"
            f"  min {_fmt(d.temperature_min, '°C')}  rain {_fmt(d.precipitation_sum, ' mm')}"
        )


@app.command()
def compare(cities: Annotated[List[str], typer.Argument(help="Two or more city names.")]) -> None:
    """Compare current conditions and average forecast max across cities."""
    with _session() as client:
        summaries = compare_cities(client, cities)
        usage = client.usage()
    for r in summaries:
        if r.error is not None:
            typer.echo(f"{r.city}: {describe_error(r.error).title}")
            continue
        avg = "-" if math.isnan(r.average_max_temp) else f"{r.average_max_temp:.2f}"
        typer.echo(f"{r.city}: {_fmt(r.temperature, '°C')} {r.condition}, Average Max Temp: {avg}")
    typer.echo(f"API requests: {usage.total} (current {usage.current}, forecast {usage.forecast})")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
