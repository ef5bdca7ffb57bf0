from __future__ import annotations

import json

import pytest

from station_dashboard import cli

REALTIME_URL = "https://api.ecowitt.net/api/v3/device/real_time"
TIDE_URL = "https://api.stormglass.io/v2/tide/extremes/point"


@pytest.fixture
def dashboard_env(monkeypatch):
    monkeypatch.setenv("ECOWITT_APP_KEY", "app")
    monkeypatch.setenv("ECOWITT_API_KEY", "api")
    monkeypatch.setenv("ECOWITT_MAC", "A0B1C2D3E4F5")
    monkeypatch.delenv("STORMGLASS_API_KEY", raising=False)
    monkeypatch.delenv("DASHBOARD_LAT", raising=False)
    monkeypatch.delenv("DASHBOARD_LON", raising=False)
    monkeypatch.delenv("DASHBOARD_TIMEZONE", raising=False)
    monkeypatch.delenv("DASHBOARD_TIDE_TYPES", raising=False)
    monkeypatch.delenv("DASHBOARD_HTTP_TIMEOUT", raising=False)


def test_cli_prints_sections_as_json(dashboard_env, requests_mock, capsys):
    requests_mock.get(
        REALTIME_URL,
        json={"code": 0, "msg": "success", "data": {"outdoor": {"temperature": {"value": "9.5"}}}},
    )

    exit_code = cli.main(["--health"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["mode"] == "realtime"
    assert payload["weather"]["ok"] is True
    assert payload["weather"]["view"]["temperature"] == 9.5
    assert payload["weather"]["view"]["wind_speed_ms"] == "0.0"
    assert payload["weather"]["view"]["soil_moisture"] is None
    assert payload["tide"]["ok"] is False
    assert payload["tide"]["error"]["kind"] == "config_missing"
    assert payload["tide"]["error"]["notice"]["level"] == "config"
    assert payload["health"]["cache"]["keys"] == 1


def test_cli_single_section(dashboard_env, requests_mock, capsys):
    exit_code = cli.main(["--section", "tide"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert "weather" not in payload
    assert requests_mock.call_count == 0


def test_cli_rejects_invalid_configuration(dashboard_env, monkeypatch, capsys):
    monkeypatch.setenv("DASHBOARD_TIMEZONE", "Nowhere/Special")

    assert cli.main([]) == 2
