"""
Shared pytest fixtures — in-memory SQLite, a fake vision model, TestClient.
"""
import copy
import os
import tempfile
from types import SimpleNamespace

# Keep the app's own data dirs out of the working tree
_DATA_DIR = tempfile.mkdtemp(prefix="receipts-test-")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DATA_DIR", _DATA_DIR)
os.environ.setdefault("UPLOAD_DIR", os.path.join(_DATA_DIR, "uploads"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import ReceiptModel  # noqa: E402, F401  — register model
from app.pipeline import ReceiptExtractor  # noqa: E402
from app.pipeline.model_client import ModelClient  # noqa: E402
from app.pipeline.storage import ArtifactStore  # noqa: E402
from app.routers.receipts import get_artifact_store, get_model_client  # noqa: E402

# StaticPool ensures all connections share the same in-memory database
_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_Session = sessionmaker(autocommit=False, autoflush=False, bind=_ENGINE)


VALID_EXTRACTION = {
    "date": "2024-01-15",
    "currency": "USD",
    "vendor_name": "Test Store",
    "receipt_items": [
        {"item_name": "Item 1", "item_cost": 10.5},
        {"item_name": "Item 2", "item_cost": 5.25},
    ],
    "tax": 1.5,
    "total": 17.25,
}


class FakeCompletions:
    """Stands in for ``OpenAI().chat.completions``."""

    def __init__(self):
        self.calls = []
        self.content = None
        self.error = None
        self.choices_empty = False

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.choices_empty:
            return SimpleNamespace(choices=[], usage=None)
        message = SimpleNamespace(role="assistant", content=self.content)
        usage = SimpleNamespace(prompt_tokens=812, completion_tokens=64)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)


class FakeOpenAI:
    def __init__(self):
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture(autouse=True)
def _reset_tables():
    Base.metadata.create_all(bind=_ENGINE)
    yield
    Base.metadata.drop_all(bind=_ENGINE)


@pytest.fixture()
def db():
    session = _Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def valid_extraction():
    return copy.deepcopy(VALID_EXTRACTION)


@pytest.fixture()
def fake_openai():
    return FakeOpenAI()


@pytest.fixture()
def model_client(fake_openai):
    return ModelClient(fake_openai, model="gpt-4o", max_tokens=1000)


@pytest.fixture()
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture()
def store(db, upload_dir):
    return ArtifactStore(db, upload_dir)


@pytest.fixture()
def extractor(model_client, store):
    return ReceiptExtractor(model_client, store)


@pytest.fixture()
def client(db, model_client, store):
    def _override():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _override
    app.dependency_overrides[get_model_client] = lambda: model_client
    app.dependency_overrides[get_artifact_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
