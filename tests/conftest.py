"""
Pytest Configuration and Shared Fixtures

Provides temporary storage roots, adapters, settings, app/client fixtures
and a mock adapter for testing the HTTP mapping in isolation.
"""

import io
import os
import tempfile
from pathlib import Path
from typing import AsyncGenerator, Generator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Test environment setup
os.environ["FERNFS_ENVIRONMENT"] = "test"

from app import create_app
from config.settings import Settings, StorageSettings, get_settings
from data.storage import DirEntry, LocalStorageAdapter, StorageAdapter
from monitoring import get_logger


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test component interactions"
    )


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def reset_settings():
    """Reset cached settings after each test."""
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings(temp_storage_dir: Path) -> Settings:
    """Settings pointing the storage backend at a temporary directory."""
    return Settings(
        environment="test",
        storage=StorageSettings(base_path=str(temp_storage_dir))
    )


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def temp_storage_dir(temp_dir: Path) -> Path:
    """Create temporary storage directory."""
    storage_dir = temp_dir / "storage"
    storage_dir.mkdir(parents=True, exist_ok=True)
    return storage_dir


@pytest.fixture
def outside_dir(temp_dir: Path) -> Path:
    """Sibling of the storage directory that must never be touched."""
    outside = temp_dir / "storage-private"
    outside.mkdir(parents=True, exist_ok=True)
    (outside / "secret.txt").write_bytes(b"top secret")
    return outside


# =============================================================================
# Adapter Fixtures
# =============================================================================

@pytest.fixture
def adapter(temp_storage_dir: Path) -> Generator[LocalStorageAdapter, None, None]:
    """Local adapter rooted at the temporary storage directory."""
    local = LocalStorageAdapter(str(temp_storage_dir))
    yield local
    local.close()


@pytest.fixture
def mock_adapter() -> MagicMock:
    """Mock adapter recording the calls made by the HTTP layer."""
    mock = MagicMock(spec=StorageAdapter)
    mock.readdir.return_value = [
        DirEntry(name="docs", is_dir=True),
        DirEntry(name="readme.txt", is_dir=False),
    ]
    mock.read_file.return_value = io.BytesIO(b"mock data")
    return mock


# =============================================================================
# FastAPI App Fixtures
# =============================================================================

@pytest.fixture
def app(test_settings: Settings):
    """App serving the temporary storage directory."""
    return create_app(settings=test_settings, logger=get_logger("fernfs.test"))


@pytest.fixture
def mock_app(test_settings: Settings, mock_adapter: MagicMock):
    """App serving the mock adapter."""
    return create_app(
        settings=test_settings,
        adapter=mock_adapter,
        logger=get_logger("fernfs.test")
    )


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def mock_client(mock_app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the mock-adapter app."""
    async with AsyncClient(transport=ASGITransport(app=mock_app), base_url="http://test") as ac:
        yield ac


# =============================================================================
# Test Data Factories
# =============================================================================

@pytest.fixture
def file_factory(temp_storage_dir: Path):
    """Factory creating files directly on disk under the storage root."""
    def create(relative_path: str = "test.txt", content: bytes = b"test content", mode: int = 0o644):
        file_path = temp_storage_dir / relative_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(content)
        file_path.chmod(mode)
        return file_path
    return create
