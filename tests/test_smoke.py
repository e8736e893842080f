"""Smoke tests for the FastAPI app, configuration, and package surface."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fileinspector.main import app


@pytest_asyncio.fixture
async def client():
    """Async HTTP client connected to the FastAPI app (no real I/O)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestHealthEndpoint:
    async def test_healthz_returns_200(self, client: AsyncClient):
        response = await client.get("/healthz")
        assert response.status_code == 200

    async def test_healthz_returns_ok_status(self, client: AsyncClient):
        response = await client.get("/healthz")
        assert response.json() == {"status": "ok"}

    async def test_healthz_echoes_correlation_id(self, client: AsyncClient):
        response = await client.get("/healthz", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"


class TestConfiguration:
    def test_defaults_point_at_bundled_resources(self, settings):
        assert settings.signatures_path.is_file()
        assert settings.library_manifest_path.is_file()
        assert settings.plugin_dir.is_dir()

    def test_environment_overrides(self, monkeypatch):
        from fileinspector.config import get_settings

        monkeypatch.setenv("VIRUSTOTAL_QUOTA", "7")
        monkeypatch.setenv("FORMAT_VERIFICATION", "true")
        monkeypatch.setenv("SCAN_ROOT", "/srv/uploads")
        settings = get_settings()
        assert settings.virustotal_quota == 7
        assert settings.format_verification is True
        assert str(settings.scan_root) == "/srv/uploads"

    def test_scan_root_unset_by_default(self, settings):
        assert settings.scan_root is None

    def test_invalid_value_raises(self, monkeypatch):
        import pydantic

        from fileinspector.config import Settings

        monkeypatch.setenv("MIN_SIZE_BYTES", "-5")
        with pytest.raises(pydantic.ValidationError):
            Settings(_env_file=None)


class TestPackageSurface:
    def test_top_level_exports(self):
        import fileinspector

        for name in ("Inspector", "ScanConfig", "Result", "ResponseCode", "Step"):
            assert hasattr(fileinspector, name)
