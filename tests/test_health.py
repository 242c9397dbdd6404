"""Tests for health endpoint."""

from unittest.mock import MagicMock, patch

from httpx import ASGITransport, AsyncClient

from prioritymatrix.main import app


def mock_settings(vault_path, config_path=None):
    mock_s = MagicMock()
    mock_s.vault_path = vault_path
    mock_s.config_path = config_path
    return mock_s


async def test_health_returns_ok(tmp_path):
    """Test that /health returns status ok when vault exists."""
    with patch("prioritymatrix.main.get_settings", return_value=mock_settings(tmp_path, tmp_path / "c.json")):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["vault"] == "ok"
    assert data["config"] == "defaults"


async def test_health_reports_custom_config(tmp_path):
    config_path = tmp_path / "c.json"
    config_path.write_text("{}")
    with patch("prioritymatrix.main.get_settings", return_value=mock_settings(tmp_path, config_path)):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/v1/health")

    assert response.json()["config"] == "custom"


async def test_health_reports_missing_vault(tmp_path):
    with patch("prioritymatrix.main.get_settings", return_value=mock_settings(tmp_path / "nope")):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")

    data = response.json()
    assert data["status"] == "error"
    assert data["vault"] == "not configured or missing"


async def test_root_returns_project_info():
    """Test that / returns project information."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "PriorityMatrix"
    assert "version" in data
    assert "description" in data
