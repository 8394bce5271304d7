"""
Client pipeline: validate a recording, start its upload right away, create
the pending generation and run the direct trigger.

Only one upload per asset is in flight: a new recording cancels the
previous pending upload. Only one `process_video` runs at a time per client.
"""
import asyncio
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import httpx

from ..logger import logger
from .encoder import VideoEncoder
from .media import validate_image, validate_video

GENERATE_TIMEOUT_SECONDS = 810.0
UPLOAD_TIMEOUT_SECONDS = 120.0


class GenerationClientError(Exception):
    def __init__(self, message: str, generation_id: Optional[int] = None, status_code: Optional[int] = None):
        self.message = message
        self.generation_id = generation_id
        self.status_code = status_code
        super().__init__(message)


class GenerationInProgressError(GenerationClientError):
    def __init__(self):
        super().__init__("A generation is already in progress")


@dataclass
class Character:
    name: str
    image_url: Optional[str] = None
    image_path: Optional[Path] = None


@dataclass
class GenerationResult:
    generation_id: int
    video_url: str


@dataclass
class SavedCharacter:
    """Outcome of saving a custom character; `saved_locally` means the server did not keep it."""
    name: str
    image_url: str
    id: Optional[int] = None
    saved_locally: bool = False
    error: Optional[str] = None


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or f"HTTP {resp.status_code}")
    return f"HTTP {resp.status_code}"


def _check(resp: httpx.Response, generation_id: Optional[int] = None) -> Dict[str, Any]:
    if resp.status_code >= 400:
        raise GenerationClientError(_error_message(resp), generation_id, resp.status_code)
    try:
        body = resp.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        raise GenerationClientError(f"Unexpected response body: HTTP {resp.status_code}", generation_id, resp.status_code)
    return body


def _content_type(filename: str) -> str:
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


class GenerationClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        headers: Optional[Dict[str, str]] = None,
        encoder: Optional[VideoEncoder] = None,
    ):
        self.http = http
        self.headers = dict(headers or {})
        self.encoder = encoder
        self._pending_upload: Optional[Tuple[Path, asyncio.Task]] = None
        self._in_progress = False

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    async def upload_bytes(self, data: bytes, filename: str, content_type: Optional[str] = None) -> str:
        """Presigned POST through /upload, returns the public URL."""
        content_type = content_type or _content_type(filename)
        token = _check(await self.http.post(
            "/upload", json={"filename": filename, "contentType": content_type}, headers=self.headers
        ))
        resp = await self.http.post(
            token["url"],
            data=token["fields"],
            files={"file": (filename, data, content_type)},
            timeout=UPLOAD_TIMEOUT_SECONDS,
        )
        if resp.status_code >= 400:
            raise GenerationClientError(f"Upload failed: HTTP {resp.status_code}", status_code=resp.status_code)
        logger.info(f"Uploaded {filename}", extra={"key": token["key"], "bytes": len(data)})
        return token["publicUrl"]

    async def _upload_recording(self, path: Path) -> str:
        if self.encoder is not None:
            path = await asyncio.to_thread(self.encoder.prepare, path)
        data = await asyncio.to_thread(path.read_bytes)
        return await self.upload_bytes(data, path.name)

    def start_upload(self, path: Union[str, Path]) -> asyncio.Task:
        """Begin uploading a fresh recording in the background."""
        path = Path(path)
        if self._pending_upload is not None:
            _, previous = self._pending_upload
            if not previous.done():
                previous.cancel()
                logger.info("Replaced pending recording upload")
        task = asyncio.create_task(self._upload_recording(path))
        self._pending_upload = (path, task)
        return task

    async def _resolve_video_url(self, path: Path) -> str:
        pending = self._pending_upload
        if pending is not None and pending[0] == path:
            self._pending_upload = None
            try:
                return await pending[1]
            except (GenerationClientError, httpx.HTTPError) as e:
                logger.warning(f"Background upload failed, uploading again: {e}")
        return await self._upload_recording(path)

    async def _resolve_character_url(self, character: Character) -> str:
        if character.image_url:
            return character.image_url
        if character.image_path is None:
            raise GenerationClientError("Character has no image")
        data = await asyncio.to_thread(Path(character.image_path).read_bytes)
        return await self.upload_bytes(data, Path(character.image_path).name)

    async def create_generation(
        self,
        character: Character,
        *,
        aspect_ratio: str = "fill",
        source_video_aspect_ratio: str = "fill",
        notify_by_email: bool = False,
    ) -> int:
        body = _check(await self.http.post(
            "/generations",
            json={
                "characterName": character.name,
                "characterImageUrl": character.image_url,
                "aspectRatio": aspect_ratio,
                "sourceVideoAspectRatio": source_video_aspect_ratio,
                "notifyByEmail": notify_by_email,
            },
            headers=self.headers,
        ))
        if "generationId" not in body:
            raise GenerationClientError("Response is missing generationId")
        return body["generationId"]

    async def mark_failed(self, generation_id: int, message: str) -> None:
        try:
            resp = await self.http.patch(
                f"/generations/{generation_id}",
                json={"status": "failed", "errorMessage": message},
                headers=self.headers,
            )
        except httpx.HTTPError as e:
            logger.error(f"Could not report failure for generation {generation_id}: {e}")
            return
        if resp.status_code >= 400:
            logger.error(
                f"Could not report failure for generation {generation_id}",
                extra={"status_code": resp.status_code},
            )

    async def process_video(
        self,
        video_path: Union[str, Path],
        character: Character,
        *,
        aspect_ratio: str = "fill",
        source_video_aspect_ratio: str = "fill",
        send_email: bool = False,
        email: Optional[str] = None,
    ) -> GenerationResult:
        if self._in_progress:
            raise GenerationInProgressError()
        self._in_progress = True
        try:
            return await self._process(
                Path(video_path),
                character,
                aspect_ratio=aspect_ratio,
                source_video_aspect_ratio=source_video_aspect_ratio,
                send_email=send_email,
                email=email,
            )
        finally:
            self._in_progress = False

    async def _process(
        self,
        video_path: Path,
        character: Character,
        *,
        aspect_ratio: str,
        source_video_aspect_ratio: str,
        send_email: bool,
        email: Optional[str],
    ) -> GenerationResult:
        await asyncio.to_thread(validate_video, video_path)
        if character.image_path is not None and not character.image_url:
            data = await asyncio.to_thread(Path(character.image_path).read_bytes)
            validate_image(data)

        generation_id = await self.create_generation(
            character,
            aspect_ratio=aspect_ratio,
            source_video_aspect_ratio=source_video_aspect_ratio,
            notify_by_email=send_email,
        )
        logger.info("Generation created", extra={"generation_id": generation_id})

        try:
            video_url = await self._resolve_video_url(video_path)
            image_url = await self._resolve_character_url(character)
            body = _check(
                await self.http.post(
                    "/generate-video",
                    json={
                        "generationId": generation_id,
                        "videoUrl": video_url,
                        "characterImageUrl": image_url,
                        "characterName": character.name,
                        "userEmail": email if send_email else None,
                        "sendEmail": bool(send_email and email),
                    },
                    headers=self.headers,
                    timeout=GENERATE_TIMEOUT_SECONDS,
                ),
                generation_id,
            )
            if not body.get("videoUrl"):
                raise GenerationClientError("Response is missing videoUrl", generation_id)
        except (GenerationClientError, httpx.HTTPError, OSError) as e:
            message = e.message if isinstance(e, GenerationClientError) else str(e) or type(e).__name__
            await self.mark_failed(generation_id, message)
            if isinstance(e, GenerationClientError):
                e.generation_id = generation_id
                raise
            raise GenerationClientError(message, generation_id) from e

        return GenerationResult(generation_id=generation_id, video_url=body["videoUrl"])

    async def save_character(self, name: str, image_url: str, category: Optional[str] = None) -> SavedCharacter:
        """
        Persist a custom character. When the server refuses, the character is
        returned with `saved_locally=True` so callers can show it as unsynced.
        """
        try:
            resp = await self.http.post(
                "/reference-images",
                json={"name": name, "imageUrl": image_url, "category": category},
                headers=self.headers,
            )
            body = _check(resp)
        except (GenerationClientError, httpx.HTTPError) as e:
            message = e.message if isinstance(e, GenerationClientError) else str(e)
            logger.warning(f"Character kept locally only: {message}")
            return SavedCharacter(name=name, image_url=image_url, saved_locally=True, error=message)
        return SavedCharacter(name=name, image_url=image_url, id=body.get("id"))
