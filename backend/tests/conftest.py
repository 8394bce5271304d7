import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="facecast-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'facecast.db')}"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["SMTP_HOST"] = ""
os.environ["JWT_SECRET_KEY"] = "facecast-test-secret-key-0123456789abcdef"

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from facecast.db import AsyncSessionLocal, engine
from facecast.exceptions import BlobStorageError
from facecast.main import app
from facecast.models import Base

PROVIDER_VIDEO_URL = "https://provider.test/out.mp4"
ANON_A = {"x-anonymous-user-id": "anon_aaaaaaaa"}
ANON_B = {"x-anonymous-user-id": "anon_bbbbbbbb"}


class DummyBlobStore:
    def __init__(self):
        self.objects = {}
        self.fail = False

    def public_url(self, key):
        return f"https://cdn.test/{key}"

    def put_bytes(self, key, data, content_type="video/mp4"):
        if self.fail:
            raise BlobStorageError(f"Failed to store {key}: bucket unavailable")
        self.objects[key] = data
        return self.public_url(key)

    def presigned_upload(self, filename, content_type, *, prefix="uploads", max_bytes, expires):
        key = f"{prefix}/{filename}"
        return {
            "url": "https://storage.test/upload",
            "fields": {"key": key, "Content-Type": content_type},
            "key": key,
            "publicUrl": self.public_url(key),
            "expiresIn": expires,
        }


class DummyMailer:
    enabled = True
    sender = "Face Swap <noreply@facecast.test>"

    def __init__(self):
        self.sent = []
        self.fail = False

    async def send_async(self, message):
        if self.fail:
            raise ConnectionError("smtp down")
        self.sent.append(message)


class DummyProvider:
    model = "fal-ai/test-model"

    def __init__(self):
        self.body = {
            "status": "OK",
            "request_id": "req-123",
            "payload": {"video": {"url": PROVIDER_VIDEO_URL}},
        }
        self.submit_body = {"request_id": "req-queued", "status": "IN_QUEUE"}
        self.error = None
        self.calls = []
        self.webhooks = []

    async def generate(self, video_url, image_url, *, timeout):
        self.calls.append((video_url, image_url))
        if self.error is not None:
            raise self.error
        return self.body

    async def submit(self, video_url, image_url, webhook_url=None):
        self.webhooks.append(webhook_url)
        if self.error is not None:
            raise self.error
        return self.submit_body


def _provider_cdn(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/out.mp4":
        return httpx.Response(200, content=b"generated-video-bytes")
    if request.url.path == "/slow.mp4":
        raise httpx.ReadTimeout("timed out", request=request)
    return httpx.Response(404)


@pytest_asyncio.fixture
async def db_session():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    async with AsyncSessionLocal() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def blob_store():
    return DummyBlobStore()


@pytest.fixture
def mailer():
    return DummyMailer()


@pytest.fixture
def provider():
    return DummyProvider()


@pytest_asyncio.fixture
async def provider_http():
    async with httpx.AsyncClient(transport=httpx.MockTransport(_provider_cdn)) as http:
        yield http


@pytest_asyncio.fixture
async def client(db_session, provider_http, blob_store, mailer, provider):
    app.state.http = provider_http
    app.state.blob_store = blob_store
    app.state.mailer = mailer
    app.state.video_provider = provider
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def create_generation(client, headers=ANON_A, **body):
    payload = {"characterName": "Django", "characterImageUrl": "https://cdn.test/characters/django.png"}
    payload.update(body)
    response = await client.post("/generations", json=payload, headers=headers)
    assert response.status_code == 200
    return response.json()["generationId"]


async def list_generations(client, headers=ANON_A):
    response = await client.get("/generations", headers=headers)
    assert response.status_code == 200
    return response.json()["generations"]
