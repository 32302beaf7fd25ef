"""Tests for the FastAPI read and action endpoints.

The app is built without the lifespan; ``app.state.monitor`` is a real
SpreadMonitor over mocked sources.
"""

import io
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from ratewatch.config import MonitorSettings
from ratewatch.dashboard.app import create_dashboard_app
from ratewatch.exceptions import SourceFetchError
from ratewatch.history.export import read_history_csv
from ratewatch.market_data.aggregator import QuoteAggregator
from ratewatch.models import RiskLevel
from ratewatch.monitor import SpreadMonitor

from helpers import local_ms, make_record, make_source


@pytest.fixture()
def source() -> AsyncMock:
    return make_source("frankfurter", "4.40")


@pytest.fixture()
def monitor(monitor_settings: MonitorSettings, source: AsyncMock) -> SpreadMonitor:
    return SpreadMonitor(monitor_settings, QuoteAggregator([source]))


@pytest.fixture()
def client(monitor: SpreadMonitor) -> TestClient:
    app = create_dashboard_app()
    app.state.monitor = monitor
    return TestClient(app)


class TestReadEndpoints:
    def test_status(self, client: TestClient) -> None:
        resp = client.get("/api/status")
        assert resp.status_code == 200
        body = resp.json()
        assert body["platform_rate"] == "4.35"
        assert body["risk_level"] == "safe"
        assert body["thresholds"]["critical"] == "0.10"

    def test_history_newest_first_with_limit(self, client: TestClient, monitor: SpreadMonitor) -> None:
        base = local_ms(2024, 5, 1)
        for i, market in enumerate(["4.40", "4.41", "4.42"]):
            monitor.ledger.append(make_record(base + i * 1000, market=market), now_ms=base + i * 1000)

        resp = client.get("/api/history", params={"limit": 2})
        rows = resp.json()
        assert [r["market_rate"] for r in rows] == ["4.42", "4.41"]

    def test_daily_stats(self, client: TestClient, monitor: SpreadMonitor) -> None:
        monitor.ledger.upsert_daily_stats(make_record(local_ms(2024, 5, 1), risk=RiskLevel.WARNING))
        rows = client.get("/api/daily-stats").json()
        assert len(rows) == 1
        assert rows[0]["date"] == "2024-05-01"
        assert rows[0]["risk_level"] == "warning"

    def test_history_csv_export(self, client: TestClient, monitor: SpreadMonitor) -> None:
        ts = local_ms(2024, 5, 1, 9, 0)
        monitor.ledger.append(make_record(ts), now_ms=ts)
        resp = client.get("/api/export/history.csv")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert "attachment" in resp.headers["content-disposition"]
        text = resp.content.decode("utf-8")
        assert text.startswith("\ufeff")
        lines = text[1:].splitlines()
        assert lines[0] == "timestamp,local_time,market_rate,platform_rate,diff,risk_level"
        assert lines[1] == f"{ts},2024-05-01 09:00:00,4.40,4.35,0.05,safe"

    def test_history_csv_download_reads_back(self, client: TestClient, monitor: SpreadMonitor) -> None:
        client.post("/actions/refresh")
        resp = client.get("/api/export/history.csv")
        records = read_history_csv(io.StringIO(resp.content.decode("utf-8")))
        assert records == monitor.ledger.records

    def test_daily_stats_csv_export(self, client: TestClient) -> None:
        resp = client.get("/api/export/daily-stats.csv")
        assert resp.status_code == 200
        assert resp.content.decode("utf-8")[1:].startswith("date,max_diff")


class TestActions:
    def test_refresh_runs_cycle(self, client: TestClient, monitor: SpreadMonitor) -> None:
        resp = client.post("/actions/refresh")
        assert resp.status_code == 200
        body = resp.json()
        assert body["record"]["market_rate"] == "4.40"
        assert body["stored"] is True
        assert monitor.state.market_rate == Decimal("4.40")

    def test_refresh_reports_total_failure(self, client: TestClient, source: AsyncMock) -> None:
        source.fetch_rate.side_effect = SourceFetchError("frankfurter", "HTTP 503")
        resp = client.post("/actions/refresh")
        assert resp.status_code == 502
        assert "frankfurter" in resp.json()["error"]

    def test_alert_dismiss_and_reset(self, client: TestClient, monitor: SpreadMonitor) -> None:
        assert client.post("/actions/alert/dismiss").json() == {"alert_acknowledged": True}
        assert monitor.state.alert.acknowledged is True
        assert client.post("/actions/alert/reset").json() == {"alert_acknowledged": False}
        assert monitor.state.alert.acknowledged is False

    def test_settings_update(self, client: TestClient, monitor: SpreadMonitor) -> None:
        resp = client.post("/actions/settings", json={"platform_rate": "4.38", "cost_buffer": ""})
        assert resp.status_code == 200
        assert resp.json()["changed"] == {"platform_rate": "4.38"}
        assert monitor.state.platform_rate == Decimal("4.38")

    @pytest.mark.parametrize(
        "payload",
        [
            {"platform_rate": "abc"},
            {"platform_rate": "Infinity"},
            {"platform_rate": "-1"},
            {"warning_threshold": "0.09"},
            {"leverage": "3"},
        ],
    )
    def test_settings_rejected(self, client: TestClient, monitor: SpreadMonitor, payload: dict) -> None:
        resp = client.post("/actions/settings", json=payload)
        assert resp.status_code == 400
        assert monitor.state.platform_rate == Decimal("4.35")

    def test_settings_requires_object(self, client: TestClient) -> None:
        resp = client.post("/actions/settings", json=["4.38"])
        assert resp.status_code == 400

    def test_settings_malformed_json(self, client: TestClient, monitor: SpreadMonitor) -> None:
        resp = client.post(
            "/actions/settings",
            content=b'{"platform_rate": ',
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert monitor.state.platform_rate == Decimal("4.35")
