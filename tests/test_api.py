import pytest
from fastapi.testclient import TestClient

from shelfscan import __version__
from shelfscan.api.main import app

CATALOG = {
    "products": [
        {"code": "06291109120100", "name": "Panadol Baby & Infant 100ml", "secondary_code": "220219715"},
        {"code": "06291109120117", "name": "Panadol Extra 24 Tabs"},
        {"code": "5000158062528", "name": "Telfast 180mg 15 Tabs", "secondary_code": "SKU-TEL180"},
    ]
}


@pytest.fixture
def client(fresh_global_service):
    return TestClient(app)


@pytest.fixture
def loaded_client(client):
    response = client.put("/api/catalog", json=CATALOG)
    assert response.status_code == 200
    return client


def test_health_before_catalog(client):
    body = client.get("/api/health").json()

    assert body == {"status": "ok", "version": __version__, "index_ready": False, "total_products": 0}


def test_load_catalog(client):
    body = client.put("/api/catalog", json=CATALOG).json()

    assert body["version"] == 1
    assert body["total_products"] == 3
    assert body["indexed_codes"] > 3
    assert client.get("/api/health").json()["index_ready"] is True


def test_scan_before_catalog_is_conflict(client):
    response = client.post("/api/scan", json={"barcode_raw": "06291109120100"})

    assert response.status_code == 409


def test_search_before_catalog_is_conflict(client):
    assert client.get("/api/search", params={"q": "panadol"}).status_code == 409


def test_decode_needs_no_catalog(client):
    response = client.post(
        "/api/decode",
        json={"barcode_raw": "(01)06291109120100(17)250200(10)L7", "today": "2025-01-15"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["gtin14"] == "06291109120100"
    assert body["gtin13"] == "6291109120100"
    assert body["batch"] == "L7"
    assert body["is_structured"] is True
    assert body["expiry"]["iso"] == "2025-02-28"
    assert body["expiry"]["display"] == "28/02/2025"
    assert body["expiry"]["status"] == "expiring"


def test_scan_exact(loaded_client):
    body = loaded_client.post(
        "/api/scan",
        json={"barcode_raw": "01062911091201001725013110ABC", "today": "2025-06-01"},
    ).json()

    assert body["match"]["match_kind"] == "EXACT"
    assert body["match"]["product"]["name"] == "Panadol Baby & Infant 100ml"
    assert body["decoded"]["expiry"]["status"] == "expired"


def test_scan_unknown(loaded_client):
    body = loaded_client.post("/api/scan", json={"barcode_raw": "9780000000002"}).json()

    assert body["match"] == {"match_kind": "NONE", "product": None, "candidates": []}


def test_scan_bulk(loaded_client):
    body = loaded_client.post(
        "/api/scan/bulk",
        json={"text": "06291109120100\nSKU-TEL180\n\n9780000000002"},
    ).json()

    assert body["total_scanned"] == 3
    assert body["total_matched"] == 2
    assert [o["match"]["match_kind"] for o in body["outcomes"]] == ["EXACT", "SECONDARY_CODE", "NONE"]


@pytest.mark.parametrize(
    "query, kind, names",
    [
        ("06291109120100", "exact_barcode", ["Panadol Baby & Infant 100ml"]),
        ("0629110912", "series_barcode", ["Panadol Baby & Infant 100ml", "Panadol Extra 24 Tabs"]),
        ("panadol", "name", ["Panadol Baby & Infant 100ml", "Panadol Extra 24 Tabs"]),
        ("xyz999", "no_match", []),
    ],
)
def test_search(loaded_client, query, kind, names):
    body = loaded_client.get("/api/search", params={"q": query}).json()

    assert body["type"] == kind
    assert [p["name"] for p in body["results"]] == names


def test_search_limit(loaded_client):
    body = loaded_client.get("/api/search", params={"q": "panadol", "limit": 1}).json()

    assert len(body["results"]) == 1
    assert loaded_client.get("/api/search", params={"q": "panadol", "limit": 0}).status_code == 400


def test_upsert_and_delete_product(loaded_client):
    response = loaded_client.put("/api/catalog/8901030793912", json={"name": "Vicks VapoRub 50g"})
    assert response.status_code == 200
    assert response.json() == {"code": "8901030793912", "name": "Vicks VapoRub 50g", "secondary_code": None}

    body = loaded_client.get("/api/search", params={"q": "8901030793912"}).json()
    assert body["type"] == "exact_barcode"

    response = loaded_client.delete("/api/catalog/8901030793912")
    assert response.status_code == 200
    assert response.json()["total_products"] == 3

    assert loaded_client.delete("/api/catalog/8901030793912").status_code == 404


def test_delete_before_catalog_is_conflict(client):
    assert client.delete("/api/catalog/40084701").status_code == 409


def test_upsert_without_usable_code_is_rejected(loaded_client):
    response = loaded_client.put("/api/catalog/ABC", json={"name": "No digits"})

    assert response.status_code == 422
    assert loaded_client.get("/api/health").json()["total_products"] == 3
