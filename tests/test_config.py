import pytest

from weatherdesk.config import load_settings
from weatherdesk.errors import WeatherAPIError
from weatherdesk.models import ErrorKind
from weatherdesk.transport import DEFAULT_BASE_URL


def test_comma_separated_keys():
    settings = load_settings({"WEATHER_API_KEYS": "k1, k2,,k1 ,k3"})
    assert settings.api_keys == ("k1", "k2", "k3")
    assert settings.base_url == DEFAULT_BASE_URL
    assert settings.units == "metric"
    assert settings.timeout == 10.0
    assert settings.log_level == "INFO"


def test_numbered_keys_stop_at_first_gap():
    env = {"TOMORROW_API_KEY": "first", "TOMORROW_API_KEY2": "second", "TOMORROW_API_KEY4": "orphan"}
    assert load_settings(env).api_keys == ("first", "second")


def test_key_list_wins_over_numbered_keys():
    env = {"WEATHER_API_KEYS": "listed", "TOMORROW_API_KEY": "numbered"}
    assert load_settings(env).api_keys == ("listed",)


def test_missing_keys_fail_fast():
    with pytest.raises(WeatherAPIError) as excinfo:
        load_settings({})
    assert excinfo.value.kind is ErrorKind.INVALID_API_KEY


def test_overrides():
    settings = load_settings(
        {
            "WEATHER_API_KEYS": "k1",
            "WEATHER_API_BASE_URL": "http://localhost:8080/v4",
            "WEATHER_API_UNITS": "imperial",
            "WEATHER_API_TIMEOUT": "2.5",
            "WEATHER_API_CONNECT_RETRIES": "0",
            "WEATHERDESK_LOG_LEVEL": "debug",
        }
    )
    assert settings.base_url == "http://localhost:8080/v4"
    assert settings.units == "imperial"
    assert settings.timeout == 2.5
    assert settings.connect_retries == 0
    assert settings.log_level == "DEBUG"


def test_bad_number_names_the_variable():
    with pytest.raises(ValueError, match="WEATHER_API_TIMEOUT"):
        load_settings({"WEATHER_API_KEYS": "k1", "WEATHER_API_TIMEOUT": "soon"})


def test_reads_process_environment(monkeypatch):
    monkeypatch.setenv("WEATHER_API_KEYS", "from-env")
    assert load_settings(dotenv=False).api_keys == ("from-env",)
