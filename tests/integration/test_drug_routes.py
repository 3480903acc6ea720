import pytest
from fastapi.testclient import TestClient

from app.application.search_use_case import SearchCatalogUseCase
from app.application.snapshot import SnapshotHolder
from app import container
from app.container import get_search_use_case, get_snapshot_holder
from catalog_data import TODAY
from main import app


def _client(monkeypatch, holder):
    monkeypatch.setenv("REQUIRE_API_KEY", "0")
    app.dependency_overrides[get_snapshot_holder] = lambda: holder
    app.dependency_overrides[get_search_use_case] = lambda: SearchCatalogUseCase(holder, today=TODAY)
    return TestClient(app)


@pytest.fixture(autouse=True)
def _clear_overrides():
    yield
    app.dependency_overrides.clear()


def test_search_get(monkeypatch, holder):
    res = _client(monkeypatch, holder).get("/v1/drugs/search", params={"term": "aspirin"})
    assert res.status_code == 200
    body = res.json()
    assert [d["id"] for d in body["drugs"]] == ["101", "102"]
    assert body["pagination"]["total_elements"] == 2
    assert body["drugs"][0]["manufacturer"] == "Bayer Hungária Kft."
    assert body["drugs"][0]["brand"] == "Aspirin"


def test_search_post_with_filters(monkeypatch, holder):
    cli = _client(monkeypatch, holder)
    res = cli.post("/v1/drugs/search", json={"prescriptionRequired": True, "sortBy": "name", "size": 1})
    assert res.status_code == 200
    body = res.json()
    assert [d["id"] for d in body["drugs"]] == ["300"]
    assert body["pagination"]["total_pages"] == 2
    assert body["pagination"]["has_next"] is True


def test_search_reports_ignored_date(monkeypatch, holder):
    res = _client(monkeypatch, holder).post("/v1/drugs/search", json={"validFromDate": "soon"})
    assert res.json()["search_info"]["ignored_filters"] == ["valid_from_date"]


def test_search_rejects_bad_input(monkeypatch, holder):
    cli = _client(monkeypatch, holder)
    assert cli.get("/v1/drugs/search", params={"term": "a"}).status_code == 422
    assert cli.get("/v1/drugs/search", params={"sortBy": "price"}).status_code == 422
    assert cli.post("/v1/drugs/search", json={"size": 1000}).status_code == 422


def test_quick_search(monkeypatch, holder):
    res = _client(monkeypatch, holder).get("/v1/drugs/quick-search", params={"term": "metamizol"})
    assert res.status_code == 200
    assert res.json()["total_count"] == 1
    assert res.json()["drugs"][0]["manufacturer"] == "Unknown"


def test_filters_endpoint(monkeypatch, holder):
    res = _client(monkeypatch, holder).get("/v1/drugs/filters")
    assert res.status_code == 200
    body = res.json()
    assert body["total_products"] == 6
    assert "Richter Gedeon Nyrt." in body["manufacturers"]


def test_get_drug(monkeypatch, holder):
    cli = _client(monkeypatch, holder)
    res = cli.get("/v1/drugs/200")
    assert res.status_code == 200
    assert res.json()["special_marker"] is True
    assert res.json()["valid_to"] == "2025-03-31"
    assert cli.get("/v1/drugs/999").status_code == 404


def test_not_initialized_is_503(monkeypatch):
    cli = _client(monkeypatch, SnapshotHolder())
    assert cli.get("/v1/drugs/search").status_code == 503
    assert cli.get("/v1/drugs/filters").status_code == 503
    ready = cli.get("/readyz").json()
    assert ready["ok"] is False and ready["catalog_initialized"] is False


def test_reload_from_configured_directory(monkeypatch, data_dir):
    monkeypatch.setattr(container, "DATA_DIR", str(data_dir))
    holder = SnapshotHolder()
    cli = _client(monkeypatch, holder)
    res = cli.post("/v1/admin/reload")
    assert res.status_code == 200
    assert res.json()["ok"] is True
    assert holder.initialized
    assert cli.get("/readyz").json()["ok"] is True


def test_reload_failure_keeps_serving(monkeypatch, holder, tmp_path):
    monkeypatch.setattr(container, "DATA_DIR", str(tmp_path / "missing"))
    cli = _client(monkeypatch, holder)
    res = cli.post("/v1/admin/reload")
    assert res.status_code == 500
    assert cli.get("/v1/drugs/101").status_code == 200
    assert "last_error" in cli.get("/readyz").json()


def test_api_key_required(monkeypatch, holder):
    cli = _client(monkeypatch, holder)
    monkeypatch.setenv("REQUIRE_API_KEY", "1")
    monkeypatch.setenv("SERVICE_API_KEY", "secret")
    assert cli.get("/v1/drugs/filters").status_code == 401
    assert cli.get("/v1/drugs/filters", headers={"X-Api-Key": "secret"}).status_code == 200
    assert cli.get("/healthz").status_code == 200


def test_api_key_not_configured(monkeypatch, holder):
    cli = _client(monkeypatch, holder)
    monkeypatch.setenv("REQUIRE_API_KEY", "1")
    monkeypatch.setenv("SERVICE_API_KEY", "")
    assert cli.get("/v1/drugs/filters").status_code == 503


def test_reload_ignores_client_supplied_path(monkeypatch, data_dir, tmp_path):
    monkeypatch.setattr(container, "DATA_DIR", str(data_dir))
    holder = SnapshotHolder()
    cli = _client(monkeypatch, holder)
    res = cli.post("/v1/admin/reload", params={"dataDir": str(tmp_path / "elsewhere")})
    assert res.status_code == 200
    assert holder.current.source == str(data_dir)
