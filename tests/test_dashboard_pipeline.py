from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import requests

from station_dashboard.cache import TTLCache, make_cache_key
from station_dashboard.config import DashboardConfig
from station_dashboard.entities import HistoricalView, TideView, ViewMode, WeatherView
from station_dashboard.errors import ConfigMissing, ErrorKind, NetworkError
from station_dashboard.health import HealthRegistry
from station_dashboard.providers.ecowitt import EcowittClient
from station_dashboard.providers.stormglass import StormglassClient
from station_dashboard.services.dashboard import DashboardPipeline

REALTIME_URL = "https://ecowitt.test/api/v3/device/real_time"
HISTORY_URL = "https://ecowitt.test/api/v3/device/history"
TIDE_URL = "https://stormglass.test/v2/tide/extremes/point"

NOW = datetime(2024, 7, 1, 12, 0, tzinfo=timezone.utc)

REALTIME_PAYLOAD = {
    "code": 0,
    "msg": "success",
    "data": {
        "outdoor": {"temperature": {"unit": "℃", "value": "14.2"}},
        "wind": {"wind_speed": {"unit": "km/h", "value": "36"}, "wind_direction": {"value": "90"}},
        "pressure": {"absolute": {"value": "1011.0"}, "trend": {"value": "-70"}},
    },
}


def _iso(delta_hours: float) -> str:
    return (NOW + timedelta(hours=delta_hours)).isoformat()


TIDE_PAYLOAD = {
    "data": [
        {"time": _iso(-1), "type": "high", "height": 1.1},
        {"time": _iso(11), "type": "high", "height": 1.9},
        {"time": _iso(5), "type": "low", "height": -0.4},
        {"time": _iso(50), "type": "high", "height": 1.7},
    ]
}


def make_config(**overrides) -> DashboardConfig:
    values = dict(
        app_key="app",
        api_key="api",
        device_id="A0:B1:C2:D3:E4:F5",
        latitude=57.14,
        longitude=-2.09,
        tide_api_key="tide-key",
        timezone_name="Europe/London",
    )
    values.update(overrides)
    return DashboardConfig(**values)


def make_pipeline(config=None, cache=None, health=None) -> DashboardPipeline:
    return DashboardPipeline(
        config or make_config(),
        cache=cache or TTLCache(),
        weather_client=EcowittClient(base_url="https://ecowitt.test/api/v3", clock=lambda: NOW),
        tide_client=StormglassClient(base_url="https://stormglass.test/v2"),
        clock=lambda: NOW,
        health=health,
    )


def test_realtime_view_is_normalized_and_cached(requests_mock):
    requests_mock.get(REALTIME_URL, json=REALTIME_PAYLOAD)
    pipeline = make_pipeline()

    first = pipeline.weather(ViewMode.REALTIME)
    second = pipeline.weather("realtime")

    assert isinstance(first, WeatherView)
    assert first.wind_speed_ms == "10.0"
    assert first.wind_direction == "E"
    assert first.pressure_trend == "falling rapidly"
    assert first.humidity is None
    assert second == first
    assert requests_mock.call_count == 1


def test_realtime_cache_expiry(requests_mock, controller):
    requests_mock.get(REALTIME_URL, json=REALTIME_PAYLOAD)
    pipeline = make_pipeline(cache=TTLCache(time_func=controller))

    pipeline.weather()
    controller.advance(DashboardPipeline.REALTIME_TTL - 1)
    pipeline.weather()
    assert requests_mock.call_count == 1

    controller.advance(1)
    pipeline.weather()
    assert requests_mock.call_count == 2


def test_realtime_cache_key_uses_compact_device_id(requests_mock):
    requests_mock.get(REALTIME_URL, json=REALTIME_PAYLOAD)
    cache = TTLCache()
    pipeline = make_pipeline(cache=cache)

    pipeline.weather()

    assert make_cache_key("weather", "A0B1C2D3E4F5") in cache


def test_network_failure_is_not_cached_and_next_call_retries(requests_mock):
    cache = TTLCache()
    pipeline = make_pipeline(cache=cache)
    requests_mock.get(REALTIME_URL, exc=requests.exceptions.ConnectionError)

    with pytest.raises(NetworkError):
        pipeline.weather()
    assert cache.stats()["keys"] == 0

    requests_mock.get(REALTIME_URL, json=REALTIME_PAYLOAD)
    view = pipeline.weather()

    assert view.temperature == 14.2
    assert requests_mock.call_count == 2


def test_historical_mode_uses_own_cache_entry(requests_mock):
    requests_mock.get(REALTIME_URL, json=REALTIME_PAYLOAD)
    requests_mock.get(
        HISTORY_URL,
        json={
            "code": 0,
            "msg": "success",
            "data": {"outdoor": {"temperature": {"unit": "℃", "list": {"1719820800": "12.5"}}}},
        },
    )
    pipeline = make_pipeline()

    historical = pipeline.weather(ViewMode.HISTORICAL)
    pipeline.weather(ViewMode.HISTORICAL)
    realtime = pipeline.weather(ViewMode.REALTIME)

    assert isinstance(historical, HistoricalView)
    assert historical.series[0].key == "outdoor.temperature"
    assert historical.series[0].values == (12.5,)
    assert isinstance(realtime, WeatherView)
    assert requests_mock.call_count == 2


def test_tide_view_filters_window_and_types(requests_mock):
    requests_mock.get(TIDE_URL, json=TIDE_PAYLOAD)
    pipeline = make_pipeline(make_config(tide_types=frozenset({"high"})))

    view = pipeline.tides()

    assert isinstance(view, TideView)
    assert [row.height_m for row in view.rows] == [1.9]
    assert view.rows[0].local_time.utcoffset() == timedelta(hours=1)


def test_tide_view_high_and_low_sorted(requests_mock):
    requests_mock.get(TIDE_URL, json=TIDE_PAYLOAD)

    view = make_pipeline().tides()

    assert [row.type for row in view.rows] == ["low", "high"]


def test_tides_cached_even_when_window_is_empty(requests_mock):
    requests_mock.get(TIDE_URL, json={"data": []})
    pipeline = make_pipeline()

    first = pipeline.tides()
    second = pipeline.tides(now=NOW + timedelta(hours=1))

    assert first.is_empty and second.is_empty
    assert first.empty_message
    assert requests_mock.call_count == 1


def test_weather_failure_leaves_tide_section_intact(requests_mock):
    requests_mock.get(REALTIME_URL, json={"code": 40000, "msg": "<b>Invalid</b>   mac", "data": []})
    requests_mock.get(TIDE_URL, json=TIDE_PAYLOAD)

    dashboard = make_pipeline().build(ViewMode.REALTIME)

    assert not dashboard.weather.ok
    assert dashboard.weather.error.kind is ErrorKind.UPSTREAM_REJECTED
    assert dashboard.weather.notice.level == "error"
    assert dashboard.weather.notice.text == "API Error: Invalid mac"
    assert dashboard.tide.ok
    assert len(dashboard.tide.view.rows) == 2


def test_missing_configuration_is_reported_per_section(requests_mock):
    requests_mock.get(TIDE_URL, json=TIDE_PAYLOAD)
    config = make_config(app_key=None, device_id=None)

    dashboard = make_pipeline(config).build()

    assert dashboard.weather.error.kind is ErrorKind.CONFIG_MISSING
    assert dashboard.weather.notice.level == "config"
    assert dashboard.tide.ok
    assert requests_mock.call_count == 1


def test_missing_tide_configuration(requests_mock):
    with pytest.raises(ConfigMissing):
        make_pipeline(make_config(latitude=None)).tides()
    assert requests_mock.call_count == 0


def test_malformed_device_id_never_reaches_network(requests_mock):
    requests_mock.get(REALTIME_URL, json=REALTIME_PAYLOAD)

    dashboard = make_pipeline(make_config(device_id="A0B1C2")).build(sections=("weather",))

    assert dashboard.weather.error.kind is ErrorKind.CONFIG_MISSING
    assert dashboard.tide is None
    assert requests_mock.call_count == 0


def test_network_notice_and_health_counters(requests_mock):
    health = HealthRegistry()
    requests_mock.get(REALTIME_URL, exc=requests.exceptions.ReadTimeout)
    requests_mock.get(TIDE_URL, json={"data": []})

    dashboard = make_pipeline(health=health).build()

    assert dashboard.weather.notice.level == "warning"
    snapshot = health.snapshot()
    assert snapshot["providers"] == {"ecowitt": {"network": 1}}
    assert snapshot["cache"]["keys"] == 1
