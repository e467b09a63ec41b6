from __future__ import annotations

import datetime as dt
import threading
from typing import Any, Optional
from zoneinfo import ZoneInfo

import pytest

from commute_rain.config import Coordinates, NotifierConfig, TimeOfDay
from commute_rain.data_sources.openweather import DAILY_EXCLUDE, ProviderError
from commute_rain.notifications.discord import DeliveryError
from commute_rain.pipelines import notifier as notifier_module
from commute_rain.pipelines.notifier import CommuteNotifier, handler

PARIS = ZoneInfo("Europe/Paris")
NOW = dt.datetime(2025, 1, 14, 21, 0, tzinfo=PARIS)
TOMORROW = NOW.date() + dt.timedelta(days=1)
WEBHOOK = "https://discord.test/webhook"


def _config(**overrides: Any) -> NotifierConfig:
    values: dict[str, Any] = dict(
        home=Coordinates(48.8566, 2.3522),
        work=Coordinates(48.8606, 2.3376),
        departure_time=TimeOfDay(8, 0),
        arrival_time=TimeOfDay(9, 0),
        return_departure_time=TimeOfDay(17, 0),
        return_arrival_time=TimeOfDay(18, 0),
        owm_api_key="test-key",
        discord_webhook_url=WEBHOOK,
        timezone="Europe/Paris",
    )
    values.update(overrides)
    return NotifierConfig(**values)


def _stamp(hour: int) -> int:
    return int(dt.datetime.combine(TOMORROW, dt.time(hour, 0), tzinfo=PARIS).timestamp())


def _hourly(hour: int, pop: float, description: str, icon: str) -> dict[str, Any]:
    return {
        "dt": _stamp(hour),
        "temp": 12.0,
        "pop": pop,
        "weather": [{"id": 500, "description": description, "icon": icon}],
    }


HOURLY_PAYLOAD = {
    "hourly": [
        _hourly(8, 0.6, "pluie légère", "10d"),
        _hourly(9, 0.8, "pluie modérée", "09d"),
        _hourly(17, 0.1, "dégagé", "01d"),
        _hourly(18, 0.05, "dégagé", "01d"),
    ]
}

DAILY_PAYLOAD = {
    "daily": [
        {
            "dt": _stamp(12),
            "temp": {"day": 13.4, "min": 9.0, "max": 15.0},
            "pop": 0.45,
            "weather": [{"id": 500, "description": "pluie modérée", "icon": "10d"}],
        }
    ]
}


class _DummyResponse:
    def __init__(self, payload: Optional[dict[str, Any]] = None, status_code: int = 200, text: str = "") -> None:
        self._payload = payload or {}
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> dict[str, Any]:
        return self._payload


class _FakeSession:
    """Serves provider payloads on GET and records webhook POSTs."""

    def __init__(self, get_status: int = 200, post_status: int = 204) -> None:
        self.get_status = get_status
        self.post_status = post_status
        self.gets: list[dict[str, Any]] = []
        self.posts: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def get(self, url: str, params: dict[str, Any], timeout: Optional[float]) -> _DummyResponse:
        with self._lock:
            self.gets.append(params)
        if self.get_status >= 400:
            return _DummyResponse(status_code=self.get_status, text="Unauthorized")
        if params["exclude"] == DAILY_EXCLUDE:
            return _DummyResponse(DAILY_PAYLOAD)
        return _DummyResponse(HOURLY_PAYLOAD)

    def post(self, url: str, json: dict[str, Any]) -> _DummyResponse:
        self.posts.append({"url": url, "json": json})
        return _DummyResponse(status_code=self.post_status, text="nope")


def test_collect_fans_out_three_fetches() -> None:
    session = _FakeSession()

    report = CommuteNotifier(_config(), session=session).collect(NOW)

    assert len(session.gets) == 5
    assert sum(1 for params in session.gets if params["exclude"] == DAILY_EXCLUDE) == 1
    assert [h.hour for h in report.outbound.departure_hours] == [8, 9]
    assert report.outbound.worst_case_rain_pct == 80
    assert report.outbound.description == "pluie modérée"
    assert [h.hour for h in report.return_route.arrival_hours] == [17, 18]
    assert report.return_route.worst_case_rain_pct == 10
    assert report.daily.rain_probability_pct == 45
    assert report.daily.avg_temperature_c == 13


def test_run_posts_both_messages() -> None:
    session = _FakeSession()

    CommuteNotifier(_config(), session=session).run(NOW)

    assert [post["url"] for post in session.posts] == [WEBHOOK, WEBHOOK]
    detailed = session.posts[0]["json"]["embeds"][0]["description"]
    assert "🏠→🏢 Aller (08h–09h) — moy. 80%" in detailed
    assert "🏢→🏠 Retour (17h–18h) — moy. 10%" in detailed
    verdict = session.posts[1]["json"]["content"]
    assert "Alerte pluie" in verdict
    assert "❌ Matin" in verdict
    assert "✅ Soir" in verdict
    assert "📅 Journée : 🌦️ pluie modérée | 45% | 13°C" in verdict


def test_high_threshold_gives_clear_verdict() -> None:
    session = _FakeSession()

    CommuteNotifier(_config(rain_threshold=90), session=session).run(NOW)

    verdict = session.posts[1]["json"]["content"]
    assert "Pas de pluie prévue" in verdict
    assert "Alerte pluie" not in verdict


def test_provider_failure_aborts_before_dispatch() -> None:
    session = _FakeSession(get_status=401)

    with pytest.raises(ProviderError, match="401"):
        CommuteNotifier(_config(), session=session).run(NOW)

    assert session.posts == []


def test_delivery_failure_propagates() -> None:
    session = _FakeSession(post_status=404)

    with pytest.raises(DeliveryError, match="detailed"):
        CommuteNotifier(_config(), session=session).run(NOW)

    assert len(session.posts) == 1


def test_preview_does_not_post() -> None:
    session = _FakeSession()

    detailed, verdict = CommuteNotifier(_config(), session=session).preview(NOW)

    assert "embeds" in detailed
    assert verdict["content"].startswith("@everyone")
    assert session.posts == []


def test_current_time_uses_configured_timezone() -> None:
    now = CommuteNotifier(_config()).current_time()

    assert now.utcoffset() == dt.datetime.now(PARIS).utcoffset()


def test_current_time_without_timezone_is_process_local() -> None:
    now = CommuteNotifier(_config(timezone=None)).current_time()

    assert now.tzinfo is None


def test_handler_returns_ok(monkeypatch: pytest.MonkeyPatch) -> None:
    runs: list[NotifierConfig] = []

    class DummyNotifier:
        def __init__(self, config: NotifierConfig) -> None:
            self.config = config

        def run(self) -> None:
            runs.append(self.config)

    cfg = _config()
    monkeypatch.setattr(notifier_module, "load_config_from_env", lambda: cfg)
    monkeypatch.setattr(notifier_module, "CommuteNotifier", DummyNotifier)

    assert handler({}, None) == {"statusCode": 200, "body": "OK"}
    assert runs == [cfg]


def test_handler_reraises_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    class FailingNotifier:
        def __init__(self, config: NotifierConfig) -> None:
            pass

        def run(self) -> None:
            raise ProviderError(401, "Unauthorized")

    monkeypatch.setattr(notifier_module, "load_config_from_env", _config)
    monkeypatch.setattr(notifier_module, "CommuteNotifier", FailingNotifier)

    with pytest.raises(ProviderError):
        handler()
