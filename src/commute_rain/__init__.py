"""Tomorrow's commute rain, snow and ice alerts for Discord."""

from .config import ConfigurationError, NotifierConfig, TimeOfDay, load_config_from_env
from .data_sources.openweather import (
    DailySummary,
    HourlyCondition,
    ProviderError,
    fetch_daily_summary,
    fetch_location_forecast,
)
from .notifications.discord import DeliveryError, send_discord_notifications
from .pipelines.notifier import CommuteNotifier, handler
from .pipelines.route_forecast import RouteForecast, aggregate_route, fetch_route_forecast

__all__ = [
    "ConfigurationError",
    "NotifierConfig",
    "TimeOfDay",
    "load_config_from_env",
    "DailySummary",
    "HourlyCondition",
    "ProviderError",
    "fetch_daily_summary",
    "fetch_location_forecast",
    "DeliveryError",
    "send_discord_notifications",
    "CommuteNotifier",
    "handler",
    "RouteForecast",
    "aggregate_route",
    "fetch_route_forecast",
]
