"""
Tests for the HTTP read API (lifespan not started, so no scheduler runs).
"""

import pytest
from fastapi.testclient import TestClient

from funding_aggregator.api.dependencies import (
    get_combined_table_path,
    get_matrix_table_path,
    services,
)
from funding_aggregator.main import app
from funding_aggregator.output import TableWriter
from funding_aggregator.tasks import MATRIX_JOB, TaskScheduler
from conftest import CountingTask


@pytest.fixture
def client(tmp_path):
    app.dependency_overrides[get_matrix_table_path] = lambda: tmp_path / "all_funding_rates.csv"
    app.dependency_overrides[get_combined_table_path] = lambda: tmp_path / "combined_all_fundingfee.csv"
    yield TestClient(app)
    app.dependency_overrides.clear()
    services.set_scheduler(None)


@pytest.mark.unit
def test_ping(client):
    assert client.get("/ping").json() == {"status": "ok"}


@pytest.mark.unit
def test_missing_table_returns_503(client):
    response = client.get("/api/data")

    assert response.status_code == 503


@pytest.mark.unit
def test_matrix_rows_are_served(client, tmp_path):
    TableWriter(tmp_path / "all_funding_rates.csv").write(
        ["symbol", "binance", "bybit"], [["BTC/USDT:USDT", "0.01", ""]]
    )

    body = client.get("/api/data").json()

    assert body["columns"] == ["symbol", "binance", "bybit"]
    assert body["data"] == [{"symbol": "BTC/USDT:USDT", "binance": "0.01", "bybit": ""}]
    assert body["count"] == 1


@pytest.mark.unit
def test_combined_table_with_header_only(client, tmp_path):
    TableWriter(tmp_path / "combined_all_fundingfee.csv").write(["exchange", "symbol"], [])

    response = client.get("/api/combined-data")

    assert response.status_code == 200
    assert response.json()["data"] == []


@pytest.mark.unit
def test_task_routes_need_a_scheduler(client):
    assert client.get("/api/tasks/status").status_code == 503


@pytest.mark.unit
def test_force_run_through_api(client):
    task = CountingTask("funding_matrix")
    services.set_scheduler(TaskScheduler(matrix_task=task, enable_combined=False))

    response = client.post(f"/api/tasks/{MATRIX_JOB}/run")

    assert response.status_code == 200
    assert response.json()["status"] == "success"
    assert task.executions == 1
    assert client.post("/api/tasks/nope/run").status_code == 404
    assert client.get("/api/tasks/health").json()["healthy"] is True
