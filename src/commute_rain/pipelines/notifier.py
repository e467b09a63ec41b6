"""One notifier invocation: fetch tomorrow's forecasts, then post to Discord."""

from __future__ import annotations

import datetime as dt
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from zoneinfo import ZoneInfo

import requests

from ..config import NotifierConfig, load_config_from_env
from ..data_sources.openweather import DailySummary, fetch_daily_summary
from ..logging_config import get_invocation_logger
from ..notifications.discord import RouteInfo, build_notifications, send_discord_notifications
from .route_forecast import RouteForecast, fetch_route_forecast

OUTBOUND_LABEL = "🏠→🏢 Aller"
RETURN_LABEL = "🏢→🏠 Retour"
HOME_LABEL = "Domicile"
WORK_LABEL = "Travail"


@dataclass(frozen=True)
class CommuteReport:
    """Everything fetched for tomorrow, ready to be formatted."""

    outbound: RouteForecast
    return_route: RouteForecast
    daily: DailySummary


class CommuteNotifier:
    """Fetches tomorrow's commute forecast and posts it to the webhook."""

    def __init__(self, config: NotifierConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session
        self.log = get_invocation_logger(__name__, verbose=config.debug)

    def current_time(self) -> dt.datetime:
        if self.config.timezone:
            return dt.datetime.now(ZoneInfo(self.config.timezone))
        return dt.datetime.now()

    def collect(self, now: Optional[dt.datetime] = None) -> CommuteReport:
        """Run the three top-level fetches concurrently."""

        now = now or self.current_time()
        cfg = self.config
        shared = dict(now=now, session=self.session, config=cfg.openweather, log=self.log)

        self.log.info("Fetching forecasts for %s", (now.date() + dt.timedelta(days=1)).isoformat())

        with ThreadPoolExecutor(max_workers=3) as ex:
            outbound_future = ex.submit(
                fetch_route_forecast,
                cfg.home, cfg.work, cfg.owm_api_key,
                cfg.departure_time, cfg.arrival_time,
                **shared,
            )
            return_future = ex.submit(
                fetch_route_forecast,
                cfg.work, cfg.home, cfg.owm_api_key,
                cfg.return_departure_time, cfg.return_arrival_time,
                **shared,
            )
            daily_future = ex.submit(
                fetch_daily_summary,
                cfg.home.lat, cfg.home.lon, cfg.owm_api_key,
                **shared,
            )
            return CommuteReport(
                outbound=outbound_future.result(),
                return_route=return_future.result(),
                daily=daily_future.result(),
            )

    def route_infos(self, report: CommuteReport) -> Tuple[RouteInfo, RouteInfo]:
        cfg = self.config
        outbound = RouteInfo(
            label=OUTBOUND_LABEL,
            departure_label=HOME_LABEL,
            arrival_label=WORK_LABEL,
            forecast=report.outbound,
            from_time=cfg.departure_time,
            to_time=cfg.arrival_time,
        )
        return_route = RouteInfo(
            label=RETURN_LABEL,
            departure_label=WORK_LABEL,
            arrival_label=HOME_LABEL,
            forecast=report.return_route,
            from_time=cfg.return_departure_time,
            to_time=cfg.return_arrival_time,
        )
        return outbound, return_route

    def preview(self, now: Optional[dt.datetime] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Fetch and format both messages without posting them."""

        report = self.collect(now)
        outbound, return_route = self.route_infos(report)
        return build_notifications(outbound, return_route, self.config.rain_threshold, report.daily)

    def run(self, now: Optional[dt.datetime] = None) -> CommuteReport:
        report = self.collect(now)
        outbound, return_route = self.route_infos(report)

        self.log.info("Sending Discord notifications...")
        send_discord_notifications(
            self.config.discord_webhook_url,
            outbound,
            return_route,
            self.config.rain_threshold,
            report.daily,
            session=self.session,
            log=self.log,
        )
        self.log.info("Done!")
        return report


def handler(event: Any = None, context: Any = None) -> Dict[str, Any]:
    """Entry point for scheduled serverless triggers."""

    log = get_invocation_logger(__name__)
    try:
        CommuteNotifier(load_config_from_env()).run()
    except Exception:
        log.exception("Notifier execution failed")
        raise
    return {"statusCode": 200, "body": "OK"}
