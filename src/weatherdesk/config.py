# environment-driven settings
# in production, environment variables are injected by docker, kubernetes, cloud provider;
# locally a .env file is picked up by python-dotenv

from __future__ import annotations
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .errors import WeatherAPIError
from .models import ErrorKind
from .transport import DEFAULT_BASE_URL, DEFAULT_TIMEOUT

KEY_LIST_VAR = "WEATHER_API_KEYS"
NUMBERED_KEY_PREFIX = "TOMORROW_API_KEY"


@dataclass(frozen=True)
class Settings:
    api_keys: Tuple[str, ...]
    base_url: str = DEFAULT_BASE_URL
    units: str = "metric"
    timeout: float = DEFAULT_TIMEOUT
    connect_retries: int = 2
    log_level: str = "INFO"


def _keys_from_env(env: Mapping[str, str]) -> List[str]:
    raw = env.get(KEY_LIST_VAR, "")
    keys = [k.strip() for k in raw.split(",") if k.strip()]
    if keys:
        return keys

    # TOMORROW_API_KEY, TOMORROW_API_KEY2, TOMORROW_API_KEY3, ... up to the first gap
    keys = []
    n = 1
    while True:
        name = NUMBERED_KEY_PREFIX if n == 1 else f"{NUMBERED_KEY_PREFIX}{n}"
        value = (env.get(name) or "").strip()
        if not value:
            break
        keys.append(value)
        n += 1
    return keys


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number (got {raw!r})") from exc


def load_settings(env: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> Settings:
    if env is None:
        if dotenv:
            load_dotenv()
        env = os.environ

    keys: List[str] = []
    for key in _keys_from_env(env):
        if key not in keys:
            keys.append(key)
    if not keys:
        # fail when keys are missing to avoid confusing downstream errors
        raise WeatherAPIError.of(
            ErrorKind.INVALID_API_KEY,
            f"no API keys configured (set {KEY_LIST_VAR} or {NUMBERED_KEY_PREFIX})",
        )

    return Settings(
        api_keys=tuple(keys),
        base_url=env.get("WEATHER_API_BASE_URL") or DEFAULT_BASE_URL,
        units=env.get("WEATHER_API_UNITS") or "metric",
        timeout=_number(env, "WEATHER_API_TIMEOUT", DEFAULT_TIMEOUT, float),
        connect_retries=_number(env, "WEATHER_API_CONNECT_RETRIES", 2, int),
        log_level=(env.get("WEATHERDESK_LOG_LEVEL") or "INFO").upper(),
    )
