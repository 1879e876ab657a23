"""Pytest configuration and fixtures."""

import asyncio
import os
import tempfile

# Point the app at a throwaway SQLite file outside the working directory
# before src.config is imported
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(tempfile.mkdtemp(), 'test.db')}")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from src.api.dependencies import get_config_store, get_ledger  # noqa: E402
from src.database import create_db_engine, init_db  # noqa: E402
from src.exceptions import ExtractionError  # noqa: E402
from src.main import app  # noqa: E402
from src.models.receipt import ReceiptItem  # noqa: E402
from src.schemas.receipt import ExtractedReceipt  # noqa: E402
from src.schemas.settings import FormConfig  # noqa: E402
from src.services.config_store import ConfigStore  # noqa: E402
from src.services.ledger import Ledger  # noqa: E402

SAMPLE_IMAGE = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQAAAQABAAD/2wBDAP8="


class FakeExtractionClient:
    """Extraction double returning queued results.

    Each call pops the next result; an exception instance is raised instead of
    returned. When ``gated`` is set, calls block until ``release()``.
    """

    def __init__(self, results=None, gated: bool = False) -> None:
        self.results = list(results or [])
        self.calls: list[str] = []
        self.gated = gated
        self._gate = asyncio.Event()

    @property
    def is_configured(self) -> bool:
        return True

    def release(self) -> None:
        self._gate.set()

    async def extract(self, image: str) -> ExtractedReceipt:
        self.calls.append(image)
        if self.gated:
            await self._gate.wait()
        result = self.results.pop(0) if self.results else ExtractionError("no result queued")
        if isinstance(result, BaseException):
            raise result
        return result


class FakeSubmissionClient:
    """Submission double recording what was sent."""

    def __init__(self, success: bool = True, gated: bool = False) -> None:
        self.success = success
        self.calls: list[tuple[ReceiptItem, FormConfig]] = []
        self.gated = gated
        self._gate = asyncio.Event()

    def release(self) -> None:
        self._gate.set()

    async def submit(self, receipt: ReceiptItem, config: FormConfig) -> bool:
        self.calls.append((receipt, config))
        if self.gated:
            await self._gate.wait()
        return self.success


@pytest.fixture
def session_factory(tmp_path):
    """Session factory bound to a fresh SQLite database."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'paytrack.db'}")
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def config_store(session_factory):
    """Config store loaded from an empty database (built-in defaults)."""
    store = ConfigStore(session_factory)
    store.load()
    return store


@pytest.fixture
def extractor():
    return FakeExtractionClient(
        results=[ExtractedReceipt(merchant="Cafe Luna", amount="12.50", date="2024-05-01")]
    )


@pytest.fixture
def submitter():
    return FakeSubmissionClient()


@pytest.fixture
def ledger(config_store, extractor, submitter):
    return Ledger(config_store, extraction_client=extractor, submission_client=submitter)


@pytest.fixture
def app_overrides(ledger, config_store):
    """Route the API at the test ledger and config store."""
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_config_store] = lambda: config_store
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app_overrides):
    """Create a test client wired to the test ledger."""
    with TestClient(app_overrides) as test_client:
        yield test_client
