import os
import tempfile

# keep module-level singletons away from the working directory
_scratch = tempfile.mkdtemp(prefix="carelink-test-")
os.environ.setdefault("DATA_FILE", os.path.join(_scratch, "database.json"))
os.environ.setdefault("UPLOAD_DIR", os.path.join(_scratch, "uploads"))
os.environ.setdefault("REMINDER_ENABLED", "false")
os.environ.setdefault("FIREBASE_CREDENTIALS", "")
os.environ.setdefault("VAPID_PUBLIC", "")
os.environ.setdefault("VAPID_PRIVATE", "")

import asyncio  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from carelink.db.store import JsonDocumentStore, get_store  # noqa: E402
from carelink.main import app  # noqa: E402
from carelink.realtime.hub import RealtimeHub, get_hub  # noqa: E402
from carelink.routers.patients import get_upload_dir  # noqa: E402
from carelink.services.push import get_dispatcher  # noqa: E402


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.accepted = False
        self.frames = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append(data)

    def events(self):
        return [f["event"] for f in self.frames]


class RecordingDispatcher:
    def __init__(self):
        self.sent = []

    async def dispatch(self, notification):
        self.sent.append(notification)
        return []

    def dispatch_in_background(self, notification):
        self.sent.append(notification)


@pytest.fixture
def store(tmp_path):
    return JsonDocumentStore(tmp_path / "database.json")


@pytest.fixture
def hub():
    return RealtimeHub()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def listener(hub):
    sock = FakeSocket()
    asyncio.run(hub.connect(sock))
    return sock


@pytest.fixture
def client(store, hub, dispatcher, tmp_path):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_hub] = lambda: hub
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_upload_dir] = lambda: tmp_path / "uploads"
    try:
        # entering runs the lifespan and keeps one event loop for every websocket
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
