import pytest
from fastapi.testclient import TestClient

from api import main
from devstats.data import DashboardSession, session_from_text

from tests.conftest import FULL_CSV, SCENARIO_CSV


@pytest.fixture
def client(monkeypatch):
    session = session_from_text(SCENARIO_CSV, source_url="memory://scenario")
    monkeypatch.setattr(main, "get_session", lambda: session)
    return TestClient(main.app)


@pytest.fixture
def offline_client(monkeypatch):
    session = DashboardSession(source_url="memory://down", error="Failed to fetch: 503")
    monkeypatch.setattr(main, "get_session", lambda: session)
    return TestClient(main.app)


def test_meta_options(client):
    res = client.get("/meta/options")
    assert res.status_code == 200
    body = res.json()
    assert body["ok"] is True
    assert body["record_count"] == 3
    assert body["device_models"] == ["Pixel6", "Galaxy"]
    assert body["android_versions"] == ["14", "13"]
    assert body["date_windows"] == ["all", 7, 30, 90]


def test_overview_all(client):
    res = client.post("/overview", json={})
    assert res.status_code == 200
    body = res.json()
    assert body["kpis"]["total_opens"] == 22
    assert body["kpis"]["unique_devices"] == 3
    assert body["daily_series"] == [{"date": "2024-01-01", "opens": 15}, {"date": "2024-01-02", "opens": 7}]
    assert [(r["key"], r["value"]) for r in body["top"]["device_models"]] == [("Pixel6", 15), ("Galaxy", 7)]


def test_overview_device_model_filter(client):
    res = client.post("/overview", json={"device_model": "Galaxy"})
    body = res.json()
    assert body["kpis"]["total_opens"] == 7
    assert body["kpis"]["unique_devices"] == 1
    assert body["filters"]["device_model"] == "Galaxy"


def test_overview_device_search(client):
    body = client.post("/overview", json={"device_query": "bbb"}).json()
    assert body["kpis"]["total_opens"] == 5


def test_table_limit(monkeypatch):
    session = session_from_text(FULL_CSV)
    monkeypatch.setattr(main, "get_session", lambda: session)
    client = TestClient(main.app)
    body = client.post("/table?limit=2", json={"date_window": "all"}).json()
    assert body["total_rows"] == 5
    assert [r["date"] for r in body["rows"]] == ["2024-03-10", "2024-03-09"]
    assert client.post("/table?limit=0", json={}).status_code == 422


def test_export_csv(client):
    res = client.post("/export", json={"device_query": "AAA"})
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    lines = res.text.strip().splitlines()
    assert lines[0].startswith("date,device_id,open_count")
    assert len(lines) == 2
    assert "AAA111" in lines[1]


def test_failed_fetch_is_reported(offline_client):
    res = offline_client.post("/overview", json={})
    assert res.status_code == 502
    assert res.json() == {"error": "Failed to fetch: 503", "type": "FetchError"}
    assert offline_client.post("/table", json={}).status_code == 502

    meta = offline_client.get("/meta/options").json()
    assert meta["ok"] is False
    assert meta["record_count"] == 0


def test_overview_with_huge_date_window(client):
    res = client.post("/overview", json={"date_window": 1000000})
    assert res.status_code == 200
    assert res.json()["kpis"]["total_opens"] == 22
