"""Worst-case rain verdict for one commute leg."""

from __future__ import annotations

import datetime as dt
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import requests

from ..config import Coordinates, OpenWeatherConfig, TimeOfDay
from ..data_sources.openweather import HourlyCondition, fetch_location_forecast, round_half_up
from ..logging_config import InvocationLogger, ensure_logger


@dataclass(frozen=True)
class RouteForecast:
    """Aggregate of the departure and arrival forecasts of one leg."""

    departure_hours: Tuple[HourlyCondition, ...]
    arrival_hours: Tuple[HourlyCondition, ...]
    worst_case_rain_pct: int
    avg_temperature_c: int
    description: str
    icon: str
    has_snow: bool
    has_ice: bool

    @property
    def is_empty(self) -> bool:
        return not self.departure_hours and not self.arrival_hours


def _peak_rain(hours: Sequence[HourlyCondition]) -> int:
    return max((h.rain_probability_pct for h in hours), default=0)


def aggregate_route(
    departure_hours: Sequence[HourlyCondition],
    arrival_hours: Sequence[HourlyCondition],
) -> RouteForecast:
    """Combine both endpoints of a leg into a single verdict.

    Each endpoint contributes its peak hourly probability and the two peaks
    are averaged. Description and icon come from the first hour carrying the
    overall peak.
    """

    all_hours = [*departure_hours, *arrival_hours]

    worst_case = round_half_up((_peak_rain(departure_hours) + _peak_rain(arrival_hours)) / 2)

    if all_hours:
        avg_temperature = round_half_up(sum(h.temperature_c for h in all_hours) / len(all_hours))
        worst_hour = max(all_hours, key=lambda h: h.rain_probability_pct)
        description, icon = worst_hour.description, worst_hour.icon
    else:
        avg_temperature = 0
        description, icon = "", ""

    return RouteForecast(
        departure_hours=tuple(departure_hours),
        arrival_hours=tuple(arrival_hours),
        worst_case_rain_pct=worst_case,
        avg_temperature_c=avg_temperature,
        description=description,
        icon=icon,
        has_snow=any(h.snow_mm > 0 for h in all_hours),
        has_ice=any(h.ice_present for h in all_hours),
    )


def fetch_route_forecast(
    departure: Coordinates,
    arrival: Coordinates,
    api_key: str,
    window_start: TimeOfDay,
    window_end: TimeOfDay,
    *,
    now: dt.datetime,
    session: Optional[requests.Session] = None,
    config: Optional[OpenWeatherConfig] = None,
    log: Optional[InvocationLogger] = None,
) -> RouteForecast:
    """Fetch both endpoints of a leg concurrently and aggregate them."""

    log = ensure_logger(log, __name__)
    fetch_kwargs = dict(now=now, session=session, config=config, log=log)

    with ThreadPoolExecutor(max_workers=2) as ex:
        departure_future = ex.submit(
            fetch_location_forecast,
            departure.lat, departure.lon, api_key, window_start, window_end,
            **fetch_kwargs,
        )
        arrival_future = ex.submit(
            fetch_location_forecast,
            arrival.lat, arrival.lon, api_key, window_start, window_end,
            **fetch_kwargs,
        )
        departure_hours = departure_future.result()
        arrival_hours = arrival_future.result()

    route = aggregate_route(departure_hours, arrival_hours)
    log.debug(
        "Route forecast worst=%s%% avg_temp=%s desc=%r snow=%s ice=%s",
        route.worst_case_rain_pct, route.avg_temperature_c, route.description,
        route.has_snow, route.has_ice,
    )
    return route
