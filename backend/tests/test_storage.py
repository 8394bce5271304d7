import httpx
import pytest

from facecast.exceptions import BlobStorageError
from facecast.storage import BlobStore, fetch_remote, random_suffix_key


class DummyS3:
    def __init__(self, fail=False):
        self.fail = fail
        self.put = []
        self.presigned = []

    def put_object(self, **kwargs):
        if self.fail:
            raise RuntimeError("AccessDenied")
        self.put.append(kwargs)

    def generate_presigned_post(self, **kwargs):
        self.presigned.append(kwargs)
        return {"url": "https://bucket.storage.test", "fields": {"key": kwargs["Key"], "policy": "p"}}


def test_public_url_variants():
    assert BlobStore(DummyS3(), "b", public_base_url="https://cdn.test/").public_url("k.mp4") == "https://cdn.test/k.mp4"
    assert BlobStore(DummyS3(), "b", endpoint_url="https://r2.test").public_url("k.mp4") == "https://r2.test/b/k.mp4"
    assert BlobStore(DummyS3(), "b").public_url("k.mp4") == "https://b.s3.amazonaws.com/k.mp4"


def test_put_bytes_returns_public_url():
    s3 = DummyS3()
    store = BlobStore(s3, "facecast", public_base_url="https://cdn.test")
    url = store.put_bytes("generations/req-1.mp4", b"data", "video/mp4")
    assert url == "https://cdn.test/generations/req-1.mp4"
    assert s3.put[0]["ContentType"] == "video/mp4"
    assert s3.put[0]["Bucket"] == "facecast"


def test_put_bytes_failure_is_storage_error():
    store = BlobStore(DummyS3(fail=True), "facecast")
    with pytest.raises(BlobStorageError, match="AccessDenied"):
        store.put_bytes("generations/x.mp4", b"data")


def test_presigned_upload_is_scoped():
    s3 = DummyS3()
    store = BlobStore(s3, "facecast", public_base_url="https://cdn.test")
    token = store.presigned_upload("clip.webm", "video/webm", prefix="videos", max_bytes=1024, expires=60)

    assert token["key"].startswith("videos/clip-")
    assert token["key"].endswith(".webm")
    assert token["publicUrl"] == f"https://cdn.test/{token['key']}"
    assert token["expiresIn"] == 60
    conditions = s3.presigned[0]["Conditions"]
    assert {"Content-Type": "video/webm"} in conditions
    assert ["content-length-range", 1, 1024] in conditions


def test_random_suffix_keys_differ():
    assert random_suffix_key("videos", "clip.webm") != random_suffix_key("videos", "clip.webm")
    assert random_suffix_key("/videos/", "../../etc/passwd").startswith("videos/passwd-")


@pytest.mark.asyncio
async def test_fetch_remote():
    def handler(request):
        if request.url.path == "/ok.mp4":
            return httpx.Response(200, content=b"bytes")
        return httpx.Response(500)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        assert await fetch_remote(http, "https://provider.test/ok.mp4", timeout=5) == b"bytes"
        with pytest.raises(BlobStorageError, match="HTTP 500"):
            await fetch_remote(http, "https://provider.test/broken.mp4", timeout=5)
        with pytest.raises(BlobStorageError, match="InvalidURL"):
            await fetch_remote(http, "https://provider.test/a\x00b.mp4", timeout=5)
