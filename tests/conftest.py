"""Shared pytest fixtures for Moodtrack tests.

This module contains common fixtures used across multiple test files,
reducing duplication and improving test maintainability.
"""

import os
import tempfile

# Keep data/ and the Huey queue out of the repository during tests.
# Must run before any app module is imported.
os.environ.setdefault("MOODTRACK_DATA_DIR", tempfile.mkdtemp(prefix="moodtrack-test-"))

import io  # noqa: E402
import wave  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.db import init_db  # noqa: E402
from app.errors import UpstreamUploadError  # noqa: E402
from services.ingest_api import main as main_module  # noqa: E402
from services.ingest_api.blob_store import StoredObject  # noqa: E402
from services.ingest_api.persistence import TransactionCoordinator  # noqa: E402


class FakeBlobStore:
    """In-memory BlobStore double that records every call."""

    def __init__(self, fail_upload: bool = False, fail_delete: bool = False):
        self.fail_upload = fail_upload
        self.fail_delete = fail_delete
        self.uploads: list[tuple[str, bytes]] = []
        self.delete_calls: list[str] = []

    def upload(self, source, mood):
        if self.fail_upload:
            raise UpstreamUploadError("simulated outage")
        data = source.read_bytes() if isinstance(source, Path) else source.read()
        self.uploads.append((mood, data))
        object_id = f"songs/{mood}/obj{len(self.uploads)}"
        return StoredObject(url=f"https://res.cloudinary.test/{object_id}.mp3", object_id=object_id)

    def delete(self, object_id):
        self.delete_calls.append(object_id)
        return not self.fail_delete


def make_wav_bytes(seconds: float = 1.0, framerate: int = 22050) -> bytes:
    """Build a valid mono 16-bit WAV of silence."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(framerate)
        wf.writeframes(b"\x00" * int(framerate * seconds) * 2)
    return buf.getvalue()


@pytest.fixture
def temp_db():
    """Create a temporary database for testing.

    Creates an isolated SQLite database in a temporary directory.
    The database is cleaned up after the test completes.

    Yields:
        tuple: (database_url, engine, SessionFactory)
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        database_url = f"sqlite:///{Path(tmpdir) / 'test.db'}"
        engine, SessionFactory = init_db(database_url)
        yield database_url, engine, SessionFactory
        engine.dispose()


@pytest.fixture
def coordinator(temp_db):
    """TransactionCoordinator bound to the temporary database."""
    _, _, SessionFactory = temp_db
    return TransactionCoordinator(SessionFactory)


@pytest.fixture
def fake_store():
    """A fresh FakeBlobStore."""
    return FakeBlobStore()


@pytest.fixture
def client(tmp_path, monkeypatch, fake_store):
    """Create a FastAPI test client with temp database and fake blob store.

    The app builds its Settings from the environment during lifespan, so the
    environment points it at a temporary database and scratch directory.
    The blob store dependency is overridden with fake_store.

    Yields:
        tuple: (test_client, SessionFactory, fake_store)
    """
    monkeypatch.setenv("MOODTRACK_DATABASE_URL", f"sqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setenv("MOODTRACK_TMP_DIR", str(tmp_path / "scratch"))
    monkeypatch.setenv("MOODTRACK_ORPHAN_PURGE", "0")

    main_module.app.dependency_overrides[main_module.get_blob_store] = lambda: fake_store

    with TestClient(main_module.app) as test_client:
        yield test_client, main_module.get_session_factory(), fake_store

    # Clean up dependency overrides
    main_module.app.dependency_overrides.clear()


@pytest.fixture
def wav_bytes():
    """One second of silent WAV audio."""
    return make_wav_bytes()
