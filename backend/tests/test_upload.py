import pytest


@pytest.mark.asyncio
async def test_video_upload_token(client):
    response = await client.post("/upload", json={"filename": "clip.webm", "contentType": "video/webm;codecs=vp9"})
    assert response.status_code == 200
    data = response.json()
    assert data["key"] == "videos/clip.webm"
    assert data["fields"]["Content-Type"] == "video/webm"
    assert data["publicUrl"] == "https://cdn.test/videos/clip.webm"
    assert data["expiresIn"] == 900


@pytest.mark.asyncio
async def test_image_upload_goes_to_characters(client):
    response = await client.post("/upload", json={"filename": "me.png", "contentType": "image/png"})
    assert response.status_code == 200
    assert response.json()["key"].startswith("characters/")


@pytest.mark.asyncio
async def test_disallowed_content_type(client):
    response = await client.post("/upload", json={"filename": "run.sh", "contentType": "text/x-shellscript"})
    assert response.status_code == 400
    assert "not allowed" in response.json()["message"]


@pytest.mark.asyncio
async def test_upload_requires_filename(client):
    response = await client.post("/upload", json={"contentType": "video/mp4"})
    assert response.status_code == 400
