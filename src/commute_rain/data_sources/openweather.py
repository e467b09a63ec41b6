"""Data access helpers for the OpenWeatherMap One Call 3.0 API."""

from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

import requests

from ..config import OpenWeatherConfig, TimeOfDay
from ..logging_config import InvocationLogger, ensure_logger

HOURLY_EXCLUDE = "current,minutely,daily,alerts"
DAILY_EXCLUDE = "current,minutely,hourly,alerts"

# Sleet and freezing rain condition codes
_ICE_CODE_RANGE = (611, 616)
# Provider buckets are on the hour, so the bucket covering the window start
# may begin up to 59 minutes before it.
_BUCKET_SLACK_MINUTES = 59

# https://openweathermap.org/weather-conditions
ICON_GLYPHS: Sequence[Tuple[str, str]] = (
    ("01", "☀️"),
    ("02", "🌤️"),
    ("03", "☁️"),
    ("04", "☁️"),
    ("09", "🌧️"),
    ("10", "🌦️"),
    ("11", "⛈️"),
    ("13", "❄️"),
    ("50", "🌫️"),
)
FALLBACK_GLYPH = "🌡️"


class ProviderError(RuntimeError):
    """Non-success response from the weather provider."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"OpenWeatherMap API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True)
class HourlyCondition:
    """Normalized forecast for one provider timestep."""

    hour: int
    rain_probability_pct: int
    rain_mm: float
    snow_mm: float
    ice_present: bool
    description: str
    icon: str
    temperature_c: int


@dataclass(frozen=True)
class DailySummary:
    avg_temperature_c: int = 0
    rain_probability_pct: int = 0
    description: str = ""
    icon: str = ""


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def icon_glyph(icon_code: str) -> str:
    for prefix, glyph in ICON_GLYPHS:
        if icon_code.startswith(prefix):
            return glyph
    return FALLBACK_GLYPH


def tomorrow_bounds(now: dt.datetime) -> Tuple[int, int]:
    """Epoch-second bounds ``[start, end)`` of the calendar day after ``now``.

    A naive ``now`` is process-local time, so both midnights follow the local
    DST rules of their own date.
    """

    tz = now.tzinfo
    start = dt.datetime.combine(now.date() + dt.timedelta(days=1), dt.time.min, tzinfo=tz)
    end = dt.datetime.combine(now.date() + dt.timedelta(days=2), dt.time.min, tzinfo=tz)
    return int(start.timestamp()), int(end.timestamp())


def fetch_onecall(
    cfg: OpenWeatherConfig,
    lat: float,
    lon: float,
    *,
    exclude: str,
    session: Optional[requests.Session] = None,
) -> Mapping[str, Any]:
    """Issue one One Call request and return the decoded JSON body."""

    params = {
        "lat": lat,
        "lon": lon,
        "exclude": exclude,
        "units": cfg.units,
        "lang": cfg.lang,
        "appid": cfg.api_key,
    }

    if session is not None:
        response = session.get(cfg.base_url, params=params, timeout=cfg.timeout_seconds)
    else:
        with requests.Session() as client:
            response = client.get(cfg.base_url, params=params, timeout=cfg.timeout_seconds)

    if not response.ok:
        raise ProviderError(response.status_code, response.text)

    return response.json()


def _primary_weather(entry: Mapping[str, Any]) -> Mapping[str, Any]:
    weather = entry.get("weather") or [{}]
    return weather[0]


def normalize_hourly(entry: Mapping[str, Any], tz: Optional[dt.tzinfo]) -> HourlyCondition:
    local = dt.datetime.fromtimestamp(int(entry["dt"]), tz=tz)
    weather = _primary_weather(entry)
    weather_id = int(weather.get("id", 0))

    pop = round_half_up(float(entry.get("pop", 0.0)) * 100)
    temperature = round_half_up(float(entry["temp"]))
    rain_mm = float((entry.get("rain") or {}).get("1h", 0.0))
    snow_mm = float((entry.get("snow") or {}).get("1h", 0.0))

    low, high = _ICE_CODE_RANGE
    ice = low <= weather_id <= high or (temperature <= 0 and pop > 0)

    return HourlyCondition(
        hour=local.hour,
        rain_probability_pct=pop,
        rain_mm=rain_mm,
        snow_mm=snow_mm,
        ice_present=ice,
        description=str(weather.get("description", "")),
        icon=icon_glyph(str(weather.get("icon", ""))),
        temperature_c=temperature,
    )


def extract_hours(
    payload: Mapping[str, Any],
    window_start: TimeOfDay,
    window_end: TimeOfDay,
    now: dt.datetime,
) -> List[HourlyCondition]:
    """Keep tomorrow's hourly entries that fall inside the commute window."""

    tomorrow_start, tomorrow_end = tomorrow_bounds(now)
    from_min = window_start.total_minutes - _BUCKET_SLACK_MINUTES
    to_min = window_end.total_minutes

    hours: List[HourlyCondition] = []
    for entry in payload.get("hourly") or []:
        timestamp = int(entry["dt"])
        if timestamp < tomorrow_start or timestamp >= tomorrow_end:
            continue
        local = dt.datetime.fromtimestamp(timestamp, tz=now.tzinfo)
        minutes = local.hour * 60 + local.minute
        if minutes < from_min or minutes > to_min:
            continue
        hours.append(normalize_hourly(entry, now.tzinfo))

    return hours


def extract_daily_summary(payload: Mapping[str, Any], now: dt.datetime) -> DailySummary:
    tomorrow_start, tomorrow_end = tomorrow_bounds(now)

    for entry in payload.get("daily") or []:
        if not tomorrow_start <= int(entry["dt"]) < tomorrow_end:
            continue
        weather = _primary_weather(entry)
        return DailySummary(
            avg_temperature_c=round_half_up(float(entry["temp"]["day"])),
            rain_probability_pct=round_half_up(float(entry.get("pop", 0.0)) * 100),
            description=str(weather.get("description", "")),
            icon=icon_glyph(str(weather.get("icon", ""))),
        )

    return DailySummary()


def fetch_location_forecast(
    lat: float,
    lon: float,
    api_key: str,
    window_start: TimeOfDay,
    window_end: TimeOfDay,
    *,
    now: dt.datetime,
    session: Optional[requests.Session] = None,
    config: Optional[OpenWeatherConfig] = None,
    log: Optional[InvocationLogger] = None,
) -> List[HourlyCondition]:
    """Fetch one location and return its hours inside tomorrow's window."""

    log = ensure_logger(log, __name__)
    cfg = config or OpenWeatherConfig(api_key=api_key)

    log.debug(
        "Fetching weather lat=%s lon=%s window=%s-%s",
        lat, lon, window_start.label(), window_end.label(),
    )
    payload = fetch_onecall(cfg, lat, lon, exclude=HOURLY_EXCLUDE, session=session)

    hours = extract_hours(payload, window_start, window_end, now)
    log.debug("Parsed forecast hours lat=%s lon=%s: %s", lat, lon, hours)
    return hours


def fetch_daily_summary(
    lat: float,
    lon: float,
    api_key: str,
    *,
    now: dt.datetime,
    session: Optional[requests.Session] = None,
    config: Optional[OpenWeatherConfig] = None,
    log: Optional[InvocationLogger] = None,
) -> DailySummary:
    log = ensure_logger(log, __name__)
    cfg = config or OpenWeatherConfig(api_key=api_key)

    log.debug("Fetching daily summary lat=%s lon=%s", lat, lon)
    payload = fetch_onecall(cfg, lat, lon, exclude=DAILY_EXCLUDE, session=session)

    summary = extract_daily_summary(payload, now)
    if summary == DailySummary():
        log.debug("No daily data found for tomorrow")
    return summary
