"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from mdpdf import server


@pytest.fixture
def client():
    return TestClient(server.app)


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client):
        """Test the liveness check."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "checks": {}}


class TestRender:
    """Tests for JSON rendering."""

    def test_render_markdown(self, client):
        """Test a JSON body renders to a PDF attachment."""
        response = client.post("/api/v1/render", json={"markdown": "# Hi\n\nText."})
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="document.pdf"' in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF-1.4\n")
        assert response.content.endswith(b"%%EOF\n")

    def test_render_empty_markdown(self, client):
        """Test empty text still yields a one-page PDF."""
        response = client.post("/api/v1/render", json={"markdown": ""})
        assert response.status_code == 200
        assert b"/Count 1 " in response.content

    def test_missing_field(self, client):
        """Test request validation."""
        response = client.post("/api/v1/render", json={})
        assert response.status_code == 422

    def test_invalid_settings(self, client, monkeypatch):
        """Test bad environment settings surface as an error response."""
        monkeypatch.setattr(server, "_settings", None)
        monkeypatch.setenv("MDPDF_PAGE_WIDTH", "abc")
        response = client.post("/api/v1/render", json={"markdown": "x"})
        assert response.status_code == 500
        assert response.json()["code"] == "INVALID_SETTINGS"


class TestUpload:
    """Tests for file upload rendering."""

    def test_upload_markdown(self, client):
        """Test an uploaded file renders under a derived name."""
        response = client.post(
            "/api/v1/render/upload",
            files={"file": ("notes.md", b"# Notes\n\n- a\n- b\n", "text/markdown")},
        )
        assert response.status_code == 200
        assert 'filename="notes.pdf"' in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF-1.4\n")

    def test_upload_wrong_extension(self, client):
        """Test non-Markdown uploads are rejected."""
        response = client.post(
            "/api/v1/render/upload",
            files={"file": ("paper.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert response.status_code == 400
        assert "Markdown" in response.json()["detail"]

    def test_upload_too_large(self, client, monkeypatch):
        """Test uploads over the size limit are rejected."""
        monkeypatch.setattr(server, "MAX_UPLOAD_SIZE", 10)
        response = client.post(
            "/api/v1/render/upload",
            files={"file": ("big.md", b"x" * 100, "text/markdown")},
        )
        assert response.status_code == 400
        assert "too large" in response.json()["detail"]
