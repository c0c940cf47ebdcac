"""
Shared fixtures for the client document tests.

Environment is filled in before any application module is imported so that
config.settings can build without a .env file.
"""

import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("ALLOWED_ORIGIN", "http://localhost:3000")
os.environ.setdefault("RATE_LIMIT_TIMES", "1000")
os.environ.setdefault("RATE_LIMIT_SECONDS", "60")

import pytest
import pytest_asyncio

from core.drift_scanner import DriftScanner
from core.path_codec import PathCodec
from core.promotion import PromotionCoordinator
from core.repair_executor import RepairExecutor
from core.staging import StagingNamespaceManager
from fakes import MemoryFileStore, MemoryLocks, MemoryReferenceStore, RecordingTrigger


@pytest.fixture
def codec() -> PathCodec:
    return PathCodec(root="/uploads/documents", legacy_root="/documents")


@pytest.fixture
def files() -> MemoryFileStore:
    return MemoryFileStore()


@pytest.fixture
def store() -> MemoryReferenceStore:
    return MemoryReferenceStore()


@pytest.fixture
def locks() -> MemoryLocks:
    return MemoryLocks()


@pytest.fixture
def trigger() -> RecordingTrigger:
    return RecordingTrigger()


@pytest.fixture
def staging(files, codec) -> StagingNamespaceManager:
    return StagingNamespaceManager(files, codec)


@pytest.fixture
def scanner(store, files, codec) -> DriftScanner:
    return DriftScanner(store, files, codec, page_size=2)


@pytest.fixture
def executor(store, files, codec, locks, scanner) -> RepairExecutor:
    return RepairExecutor(store, files, codec, locks, scanner)


@pytest.fixture
def coordinator(store, files, codec, locks, trigger) -> PromotionCoordinator:
    return PromotionCoordinator(store, files, codec, locks, trigger)


@pytest_asyncio.fixture
async def fake_redis():
    """fakeredis stand-in for redis.asyncio; skipped when fakeredis is missing."""
    fakeredis = pytest.importorskip("fakeredis")
    r = fakeredis.FakeAsyncRedis()
    try:
        yield r
    finally:
        await r.flushall()
        await r.aclose()
