"""End-to-end tests for the FastAPI audit routes (fetch is patched)."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from urllib3.exceptions import LocationParseError

import database
import main
from analyzer import analyze_html
from errors import AnalysisFailed, BotProtectionDetected, InvalidUrl

URL = "https://example.com/"
HTML = """<html><head><title>Example Domain</title>
<meta name="description" content="This domain is for use in illustrative examples in documents."></head>
<body><h1>Example Domain</h1><h2>More Information</h2><p>Example text for examples.</p></body></html>"""


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(database, "DB_PATH", tmp_path / "api.db")
    monkeypatch.setattr(main, "build_client", lambda: None)
    with TestClient(main.app) as test_client:
        yield test_client


def test_create_audit_stores_result(client):
    with patch("main.analyze_url", return_value=analyze_html(URL, HTML, load_time=300)) as analyze:
        response = client.post("/api/audits", json={"url": URL}, headers={"X-User-Id": "5"})

    assert response.status_code == 201
    analyze.assert_called_once_with(URL)
    body = response.json()
    assert body["url"] == URL
    assert body["title"] == "Example Domain"
    assert body["metaDescription"].startswith("This domain")
    assert body["loadTime"] == 300
    assert body["performanceScore"] == 94
    assert body["userId"] == 5
    assert body["publicId"]

    fetched = client.get(f"/api/audits/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json() == body


@pytest.mark.parametrize("bad_url", ["", "not a url", "ftp://example.com/file"])
def test_create_audit_rejects_bad_url(client, bad_url):
    with patch("main.analyze_url") as analyze:
        response = client.post("/api/audits", json={"url": bad_url})
    assert response.status_code == 422
    analyze.assert_not_called()


@pytest.mark.parametrize(
    "error,status,code",
    [
        (BotProtectionDetected(url=URL, status_code=403), 422, "BOT_PROTECTION"),
        (InvalidUrl(url=URL), 400, "INVALID_URL"),
        (AnalysisFailed("Failed to fetch URL: timeout", url=URL), 502, "ANALYSIS_FAILED"),
    ],
)
def test_audit_errors_mapped(client, error, status, code):
    with patch("main.analyze_url", side_effect=error):
        response = client.post("/api/audits", json={"url": URL})
    assert response.status_code == status
    assert response.json()["code"] == code
    assert client.get("/api/audits").json() == []


def test_manual_html_audit(client):
    response = client.post("/api/audits/html", json={"url": URL, "html": HTML, "loadTime": 2500})
    assert response.status_code == 201
    body = response.json()
    assert body["h2s"] == ["More Information"]
    assert body["loadTime"] == 2500
    assert "Slow load time detected (2500ms)" in body["recommendations"]


def test_manual_html_audit_requires_html(client):
    response = client.post("/api/audits/html", json={"url": URL, "html": "   "})
    assert response.status_code == 422


def test_list_and_share(client):
    created = client.post("/api/audits/html", json={"url": URL, "html": HTML}).json()

    listed = client.get("/api/audits").json()
    assert [a["id"] for a in listed] == [created["id"]]

    shared = client.get(f"/api/share/{created['publicId']}")
    assert shared.status_code == 200
    assert shared.json()["id"] == created["id"]

    assert client.get("/api/share/nope").status_code == 404
    assert client.get("/api/audits/12345").status_code == 404


def test_insights_fall_back_without_ai_client(client):
    created = client.post(
        "/api/audits/html", json={"url": URL, "html": "<body><p>bare page</p></body>"}
    ).json()

    response = client.post(f"/api/audits/{created['id']}/insights")
    assert response.status_code == 200
    body = response.json()
    assert body["audit_id"] == created["id"]
    assert [p["issue"] for p in body["priorities"]] == created["recommendations"]


def test_insights_missing_audit(client):
    assert client.post("/api/audits/999/insights").status_code == 404


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_unparseable_host_returns_invalid_url(client):
    long_label_url = "https://" + "a" * 70 + ".com/"
    with patch("scraper.requests.get", side_effect=LocationParseError(long_label_url)):
        response = client.post("/api/audits", json={"url": long_label_url})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_URL"
