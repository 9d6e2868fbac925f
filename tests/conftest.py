import pytest

from tablebook.clients.resilience import reservation_api_breaker
from tablebook.storage.database import DatabaseManager


@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Point settings at a fake API and keep tokens out of the environment."""
    monkeypatch.setenv("API_BASE_URL", "http://api.test")
    monkeypatch.delenv("API_TOKEN", raising=False)
    monkeypatch.delenv("MCP_AUTH_TOKEN", raising=False)


@pytest.fixture(autouse=True)
def _reset_breaker():
    """The shared API breaker must not leak state between tests."""
    reservation_api_breaker.reset()
    yield
    reservation_api_breaker.reset()


@pytest.fixture
def tmp_data_dir(tmp_path):
    """Provide a temporary data directory for tests that touch the filesystem."""
    return tmp_path / "data"


@pytest.fixture
async def db():
    """In-memory SQLite database with schema applied."""
    manager = DatabaseManager(":memory:")
    await manager.initialize()
    yield manager
    await manager.close()
