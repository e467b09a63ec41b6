"""Daily scheduled commute notifications."""

from __future__ import annotations

import datetime as dt
import logging
import time
from typing import Callable, Optional

import pytz

from .config import NotifierConfig
from .pipelines.notifier import CommuteNotifier

logger = logging.getLogger(__name__)


class CommuteScheduler:
    """Runs the notifier once a day at the configured time."""

    def __init__(
        self,
        config: NotifierConfig,
        notifier_factory: Optional[Callable[[NotifierConfig], CommuteNotifier]] = None,
        poll_seconds: float = 60.0,
    ):
        self.config = config
        self.notifier_factory = notifier_factory or CommuteNotifier
        self.poll_seconds = poll_seconds
        self.tz = pytz.timezone(config.timezone) if config.timezone else None
        self._last_run_date: Optional[dt.date] = None
        self._running = False

    def now(self) -> dt.datetime:
        if self.tz is not None:
            return dt.datetime.now(self.tz)
        return dt.datetime.now()

    def is_due(self, current_time: dt.datetime) -> bool:
        notify_at = self.config.notify_time
        if self._last_run_date == current_time.date():
            return False
        return current_time.hour * 60 + current_time.minute >= notify_at.total_minutes

    def run_notification(self) -> bool:
        """Run one invocation, reporting its failure instead of stopping the loop."""

        try:
            self.notifier_factory(self.config).run()
        except Exception:
            logger.exception("Scheduled notification failed")
            return False
        return True

    def tick(self, current_time: Optional[dt.datetime] = None) -> bool:
        """Check the clock once; returns True when a notification was attempted."""

        current_time = current_time or self.now()
        if not self.is_due(current_time):
            return False

        self._last_run_date = current_time.date()
        logger.info("Running scheduled notification at %s", current_time.strftime("%Y-%m-%d %H:%M"))
        self.run_notification()
        return True

    def start(self) -> None:
        self._running = True
        logger.info("Commute notifier scheduler started, daily at %s", self.config.notify_time.label())

        while self._running:
            try:
                self.tick()
                time.sleep(self.poll_seconds)
            except KeyboardInterrupt:
                logger.info("Scheduler interrupted")
                break

        self._running = False

    def stop(self) -> None:
        self._running = False
        logger.info("Scheduler stop requested")
