import json
import pytest
from fastapi.testclient import TestClient
from normaize.api.routes import app, get_service
from normaize.services import DatasetService

CSV = b"a,b\n1,10\n2,20\n3,30\n"


@pytest.fixture
def client():
    service = DatasetService()
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client, content=CSV, name="data.csv"):
    return client.post("/datasets", files={"file": (name, content, "text/plain")})

# --- Tests for the HTTP API ---

def test_root(client):
    """Test the health check endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "online"

def test_chart_types(client):
    """Test the chart type listing."""
    assert "Bar" in client.get("/chart-types").json()

def test_upload_and_fetch(client):
    """Test upload and camelCase dataset payloads."""
    response = _upload(client)
    assert response.status_code == 200
    body = response.json()
    assert body["rowCount"] == 3
    assert body["columnCount"] == 2
    assert body["isProcessed"] is True
    assert body["preview"]["previewRowCount"] == 3
    assert "records" not in body

    fetched = client.get(f"/datasets/{body['id']}").json()
    assert fetched["dataHash"] == body["dataHash"]
    assert [d["id"] for d in client.get("/datasets").json()] == [body["id"]]
    assert client.get(f"/datasets/{body['id']}/schema").json() == ["a", "b"]

def test_upload_errors(client):
    """Test status codes for rejected uploads."""
    assert _upload(client, b"", "data.csv").status_code == 400
    assert _upload(client, b"data", "data.pdf").status_code == 415
    malformed = _upload(client, b"{not json", "data.json")
    assert malformed.status_code == 200
    assert malformed.json()["isProcessed"] is False

def test_preview_endpoint(client):
    """Test preview sizing and validation."""
    dataset_id = _upload(client).json()["id"]
    body = client.get(f"/datasets/{dataset_id}/preview", params={"rows": 2}).json()
    assert body["previewRowCount"] == 2
    assert body["totalRows"] == 3
    assert client.get(f"/datasets/{dataset_id}/preview", params={"rows": 0}).status_code == 400

def test_summary_and_statistics_endpoints(client):
    """Test analytical endpoints."""
    dataset_id = _upload(client).json()["id"]
    summary = client.get(f"/datasets/{dataset_id}/summary").json()
    assert summary["totalRows"] == 3
    assert summary["columnSummaries"]["a"]["dataType"] == "Numeric"

    stats = client.get(f"/datasets/{dataset_id}/statistics").json()
    assert stats["columnStatistics"]["a"]["mean"] == 2.0
    assert stats["columnStatistics"]["b"]["mean"] == 20.0
    assert stats["correlationMatrix"]["a_b"] == pytest.approx(1.0)

def test_chart_endpoints(client):
    """Test chart shaping and Plotly rendering."""
    dataset_id = _upload(client).json()["id"]
    response = client.post(f"/datasets/{dataset_id}/charts/Scatter", json={"maxDataPoints": 2})
    assert response.status_code == 200
    body = response.json()
    assert body["series"][0]["name"] == "a vs b"
    assert body["series"][0]["data"][0] == {"x": 1.0, "y": 10.0}
    assert body["configuration"]["maxDataPoints"] == 2

    plotly = client.post(f"/datasets/{dataset_id}/charts/Bar/plotly").json()
    assert "data" in json.loads(plotly["figure"])

    bad = client.post(f"/datasets/{dataset_id}/charts/Bar", json={"maxDataPoints": 0})
    assert bad.status_code == 400

def test_reprocess_and_delete(client):
    """Test dataset lifecycle endpoints."""
    dataset_id = _upload(client).json()["id"]
    assert client.post(f"/datasets/{dataset_id}/reprocess").json()["id"] == dataset_id
    assert client.delete(f"/datasets/{dataset_id}").status_code == 200
    assert client.get(f"/datasets/{dataset_id}").status_code == 404

def test_compare_charts_endpoint(client):
    """Test the two-dataset comparison chart."""
    first = _upload(client).json()["id"]
    second = _upload(client, b"a,c\n5,50\n6,60\n", "other.csv").json()["id"]
    response = client.post(f"/datasets/{first}/compare/{second}/charts/Line", json={"title": "Both"})
    assert response.status_code == 200
    body = response.json()
    assert body["datasetId1"] == first
    assert body["datasetId2"] == second
    assert body["labels"] == ["1", "2", "3"]
    assert [s["name"] for s in body["series"]] == ["a", "b", "a", "c"]
    assert body["configuration"]["title"] == "Both"

    assert client.post(f"/datasets/{first}/compare/{first}/charts/Line").status_code == 400
    assert client.post(f"/datasets/{first}/compare/missing/charts/Line").status_code == 404
