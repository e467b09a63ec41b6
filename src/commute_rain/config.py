"""Configuration helpers for the commute rain notifier."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

DEFAULT_RAIN_THRESHOLD = 30
_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


class ConfigurationError(ValueError):
    """Raised when a required setting is missing or malformed."""


@dataclass(frozen=True)
class TimeOfDay:
    """A wall-clock time, compared through its minutes since midnight."""

    hour: int
    minute: int = 0

    @property
    def total_minutes(self) -> int:
        return self.hour * 60 + self.minute

    @classmethod
    def parse(cls, raw: str) -> "TimeOfDay":
        match = _TIME_PATTERN.match(raw.strip())
        if not match:
            raise ValueError(f"must be in HH:MM format, got: {raw}")
        hour, minute = int(match.group(1)), int(match.group(2))
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(f"has invalid time: {raw}")
        return cls(hour=hour, minute=minute)

    def label(self) -> str:
        """Short display form, e.g. ``08h30`` or ``17h``."""

        minutes = f"{self.minute:02d}" if self.minute > 0 else ""
        return f"{self.hour:02d}h{minutes}"


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lon: float


@dataclass(frozen=True)
class OpenWeatherConfig:
    """Access details for the OpenWeatherMap One Call endpoint."""

    api_key: str
    base_url: str = "https://api.openweathermap.org/data/3.0/onecall"
    units: str = "metric"
    lang: str = "fr"
    timeout_seconds: Optional[float] = None


@dataclass(frozen=True)
class NotifierConfig:
    """Everything one notifier invocation needs, loaded once and never mutated."""

    home: Coordinates
    work: Coordinates
    departure_time: TimeOfDay
    arrival_time: TimeOfDay
    return_departure_time: TimeOfDay
    return_arrival_time: TimeOfDay
    owm_api_key: str
    discord_webhook_url: str
    rain_threshold: int = DEFAULT_RAIN_THRESHOLD
    debug: bool = False
    timezone: Optional[str] = None
    notify_time: TimeOfDay = TimeOfDay(20, 0)

    @property
    def openweather(self) -> OpenWeatherConfig:
        return OpenWeatherConfig(api_key=self.owm_api_key)


def _require(env: Mapping[str, str], name: str) -> str:
    value = env.get(name)
    if not value:
        raise ConfigurationError(f"Missing required environment variable: {name}")
    return value


def _require_float(env: Mapping[str, str], name: str) -> float:
    raw = _require(env, name)
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Environment variable {name} must be a number, got: {raw}") from exc


def _parse_time(name: str, raw: str) -> TimeOfDay:
    try:
        return TimeOfDay.parse(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Environment variable {name} {exc}") from exc


def _require_time(env: Mapping[str, str], name: str) -> TimeOfDay:
    return _parse_time(name, _require(env, name))


def _optional_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Environment variable {name} must be an integer, got: {raw}") from exc


def _optional_timezone(env: Mapping[str, str], name: str) -> Optional[str]:
    raw = env.get(name)
    if not raw:
        return None
    try:
        ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Environment variable {name} is not a known timezone: {raw}") from exc
    return raw


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> NotifierConfig:
    """Create the notifier configuration from environment variables.

    When ``environ`` is omitted a local ``.env`` file is loaded first and
    ``os.environ`` is read. Any problem raises ``ConfigurationError`` before
    the caller has done any network work.
    """

    if environ is None:
        load_dotenv()
        environ = os.environ

    notify_raw = environ.get("NOTIFY_TIME")

    return NotifierConfig(
        home=Coordinates(_require_float(environ, "HOME_LAT"), _require_float(environ, "HOME_LON")),
        work=Coordinates(_require_float(environ, "WORK_LAT"), _require_float(environ, "WORK_LON")),
        departure_time=_require_time(environ, "DEPARTURE_TIME"),
        arrival_time=_require_time(environ, "ARRIVAL_TIME"),
        return_departure_time=_require_time(environ, "RETURN_DEPARTURE_TIME"),
        return_arrival_time=_require_time(environ, "RETURN_ARRIVAL_TIME"),
        owm_api_key=_require(environ, "OWM_API_KEY"),
        discord_webhook_url=_require(environ, "DISCORD_WEBHOOK_URL"),
        rain_threshold=_optional_int(environ, "RAIN_THRESHOLD", DEFAULT_RAIN_THRESHOLD),
        debug=environ.get("DEBUG", "false").lower() == "true",
        timezone=_optional_timezone(environ, "COMMUTE_TIMEZONE"),
        notify_time=_parse_time("NOTIFY_TIME", notify_raw) if notify_raw else TimeOfDay(20, 0),
    )
