import datetime as dt
import uuid

import pytest
from fastapi.testclient import TestClient

from mediavault.blobstore import BlobStoreError, StoredBlob
from mediavault.config import Settings
from mediavault.db import Database
from mediavault.main import create_app
from mediavault.models import Album, Media
from mediavault.security import create_token
from mediavault.services import build_services


class FakeClock:
    """Callable clock that only moves when a test says so."""

    def __init__(self, start: dt.datetime = dt.datetime(2026, 3, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs) -> dt.datetime:
        self.now += dt.timedelta(**kwargs)
        return self.now


class RecordingBlobStore:
    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.put_calls: list[tuple[str, str]] = []
        self.destroyed: list[tuple[str, str]] = []
        self.fail_put = False
        self.fail_destroy = False

    def put(self, data, kind, folder, *, content_type=None):
        if self.fail_put:
            raise BlobStoreError("Blob store upload failed: ConnectTimeoutError")
        payload = data if isinstance(data, (bytes, bytearray)) else data.read()
        object_id = f"{folder}/{kind}/{uuid.uuid4().hex}"
        self.objects[object_id] = bytes(payload)
        self.put_calls.append((object_id, kind))
        return StoredBlob(url=f"https://blobs.test/{object_id}", object_id=object_id)

    def destroy(self, object_id, kind):
        self.destroyed.append((object_id, kind))
        if self.fail_destroy:
            raise BlobStoreError(f"Blob store delete failed for {object_id}: EndpointConnectionError")
        self.objects.pop(object_id, None)

    def ping(self):
        return True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def blob_store():
    return RecordingBlobStore()


@pytest.fixture
def settings():
    return Settings(locked_reference_secret="test-reference-secret")


@pytest.fixture
def database(tmp_path):
    """Provide an isolated SQLite database for each test."""
    db = Database(f"sqlite:///{tmp_path / 'mediavault_test.db'}")
    db.create_all()
    try:
        yield db
    finally:
        db.drop_all()
        db.dispose()


@pytest.fixture
def services(settings, database, blob_store, clock):
    return build_services(settings, database, blob_store, clock=clock)


@pytest.fixture
def make_media(database, clock):
    """Insert a media row directly, bypassing upload."""

    def _make(user_id=1, *, name=None, size=1024, kind="image", album=None, locked=False):
        name = name or f"photo-{uuid.uuid4().hex[:6]}.jpg"
        object_id = f"user_uploads/{kind}/{uuid.uuid4().hex}"
        now = clock()
        with database.transaction() as db:
            media = Media(
                user_id=user_id,
                url=f"https://blobs.test/{object_id}",
                object_id=object_id,
                original_name=name,
                media_type=kind,
                size=size,
                locked=locked,
                locked_at=now if locked else None,
                created_at=now,
                updated_at=now,
            )
            if album is not None:
                media.album_id = album.id if isinstance(album, Album) else album
                media.album_joined_at = now
            db.add(media)
        clock.advance(seconds=1)
        return media

    return _make


@pytest.fixture
def reload_media(database):
    def _reload(media_id):
        with database.reader() as db:
            return db.get(Media, media_id)

    return _reload


@pytest.fixture
def reload_album(database):
    def _reload(album_id):
        with database.reader() as db:
            return db.get(Album, album_id)

    return _reload


@pytest.fixture
def client(settings, database, blob_store, clock):
    """FastAPI test client bound to the isolated database and the recording blob store."""
    app = create_app(settings, database=database, blob_store=blob_store, clock=clock, start_reaper=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    def _headers(user_id=1):
        return {"Authorization": f"Bearer {create_token(user_id)}"}

    return _headers

