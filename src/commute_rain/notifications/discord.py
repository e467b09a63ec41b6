"""Discord webhook messages for tomorrow's commute."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import requests

from ..config import TimeOfDay
from ..data_sources.openweather import DailySummary, HourlyCondition
from ..logging_config import InvocationLogger, ensure_logger
from ..pipelines.route_forecast import RouteForecast

EMBED_COLOR = 0x5865F2
EMBED_TITLE = "🌦️ Prévisions trajet de demain"
RAIN_ALERT_TITLE = "☔ Alerte pluie pour demain !"
CLEAR_TITLE = "☀️ Pas de pluie prévue demain !"
SNOW_WARNING = "❄️ Neige prévue sur le trajet !"
ICE_WARNING = "🧊 Risque de verglas !"
MENTION = "@everyone"


class DeliveryError(RuntimeError):
    """Non-success response from the Discord webhook."""

    def __init__(self, label: str, status_code: int, body: str):
        super().__init__(f"Discord webhook failed ({label}): {status_code} {body}")
        self.label = label
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True)
class RouteInfo:
    """A leg as it appears in the detailed message."""

    label: str
    departure_label: str
    arrival_label: str
    forecast: RouteForecast
    from_time: TimeOfDay
    to_time: TimeOfDay


def format_hour_line(hour: HourlyCondition) -> str:
    line = (
        f"  {hour.hour:02d}h — {hour.icon} {hour.description} | "
        f"{hour.rain_probability_pct}% | {hour.rain_mm:.1f}mm"
    )
    if hour.snow_mm > 0:
        line += f" | ❄️ {hour.snow_mm:.1f}mm"
    if hour.ice_present:
        line += " | 🧊 verglas"
    return line + f" | {hour.temperature_c}°C"


def _format_hours(hours: Sequence[HourlyCondition]) -> str:
    return "\n".join(format_hour_line(h) for h in hours)


def _format_route(route: RouteInfo) -> str:
    forecast = route.forecast
    header = (
        f"{route.label} ({route.from_time.label()}–{route.to_time.label()})"
        f" — moy. {forecast.worst_case_rain_pct}%"
    )
    if forecast.is_empty:
        return f"{header}\n  Aucune donnée disponible"

    sections = []
    if forecast.departure_hours:
        sections.append(f"  📍 {route.departure_label}\n{_format_hours(forecast.departure_hours)}")
    if forecast.arrival_hours:
        sections.append(f"  📍 {route.arrival_label}\n{_format_hours(forecast.arrival_hours)}")
    return header + "\n" + "\n".join(sections)


def build_detailed_embed(outbound: RouteInfo, return_route: RouteInfo) -> Dict[str, Any]:
    """Per-hour breakdown of both legs, posted without a mention."""

    description = "\n".join([_format_route(outbound), "", _format_route(return_route)])
    return {
        "embeds": [
            {
                "title": EMBED_TITLE,
                "description": description,
                "color": EMBED_COLOR,
            }
        ]
    }


def _leg_line(name: str, forecast: RouteForecast, rainy: bool) -> str:
    marker = "❌" if rainy else "✅"
    return (
        f"{marker} {name} : {forecast.icon} {forecast.description} | "
        f"{forecast.worst_case_rain_pct}% | {forecast.avg_temperature_c}°C"
    )


def build_verdict_message(
    outbound: RouteForecast,
    return_route: RouteForecast,
    threshold: int,
    daily: DailySummary,
) -> Dict[str, Any]:
    """Short verdict for the whole channel."""

    morning_rain = outbound.worst_case_rain_pct >= threshold
    evening_rain = return_route.worst_case_rain_pct >= threshold

    lines = [
        RAIN_ALERT_TITLE if morning_rain or evening_rain else CLEAR_TITLE,
        f"📅 Journée : {daily.icon} {daily.description} | "
        f"{daily.rain_probability_pct}% | {daily.avg_temperature_c}°C",
        _leg_line("Matin", outbound, morning_rain),
        _leg_line("Soir", return_route, evening_rain),
    ]
    if outbound.has_snow or return_route.has_snow:
        lines.append(SNOW_WARNING)
    if outbound.has_ice or return_route.has_ice:
        lines.append(ICE_WARNING)

    return {"content": MENTION + "\n" + "\n".join(lines)}


def build_notifications(
    outbound: RouteInfo,
    return_route: RouteInfo,
    threshold: int,
    daily: DailySummary,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Both payloads in dispatch order: detailed embed, then verdict."""

    return (
        build_detailed_embed(outbound, return_route),
        build_verdict_message(outbound.forecast, return_route.forecast, threshold, daily),
    )


def post_webhook(
    webhook_url: str,
    payload: Dict[str, Any],
    label: str,
    *,
    session: Optional[requests.Session] = None,
) -> None:
    if session is not None:
        response = session.post(webhook_url, json=payload)
    else:
        with requests.Session() as client:
            response = client.post(webhook_url, json=payload)

    if not response.ok:
        raise DeliveryError(label, response.status_code, response.text)


def send_discord_notifications(
    webhook_url: str,
    outbound: RouteInfo,
    return_route: RouteInfo,
    threshold: int,
    daily: DailySummary,
    *,
    session: Optional[requests.Session] = None,
    log: Optional[InvocationLogger] = None,
) -> None:
    """Post the detailed embed, then the verdict. Stops at the first failure."""

    log = ensure_logger(log, __name__)
    detailed, verdict = build_notifications(outbound, return_route, threshold, daily)

    log.debug("Sending detailed embed %s", json.dumps(detailed, ensure_ascii=False))
    post_webhook(webhook_url, detailed, "detailed", session=session)

    log.debug("Sending verdict message %s", json.dumps(verdict, ensure_ascii=False))
    post_webhook(webhook_url, verdict, "verdict", session=session)
