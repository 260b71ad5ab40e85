from __future__ import annotations

import os
import tempfile

# Point the app at a throwaway SQLite database before anything imports config.
_TEST_DIR = tempfile.mkdtemp(prefix="country-api-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TEST_DIR, "test.sqlite")
os.environ["IMAGE_CACHE_DIR"] = os.path.join(_TEST_DIR, "cache")

from typing import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

import database  # noqa: E402
import models  # noqa: E402,F401
from config import settings  # noqa: E402
from main import app, get_http_transport  # noqa: E402
from tests.common import FakeUpstream  # noqa: E402


@pytest.fixture(autouse=True)
def image_cache_dir(tmp_path, monkeypatch):
    """Each test renders into its own cache directory."""

    cache_dir = tmp_path / "cache"
    monkeypatch.setattr(settings, "IMAGE_CACHE_DIR", str(cache_dir))
    return cache_dir


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    """Session on freshly created tables."""

    database.Base.metadata.drop_all(bind=database.engine)
    database.Base.metadata.create_all(bind=database.engine)
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture()
def client(db_session, upstream) -> Generator[TestClient, None, None]:
    """TestClient whose upstream calls are served by ``FakeUpstream``."""

    app.dependency_overrides[get_http_transport] = lambda: upstream.transport
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
