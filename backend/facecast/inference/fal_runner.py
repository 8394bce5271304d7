"""
fal.ai queue client for the motion-control face swap model.

Queue protocol:
  POST {base}/{model}                              -> {request_id, status_url, response_url}
  GET  {base}/{model}/requests/{request_id}/status -> {status: IN_QUEUE|IN_PROGRESS|COMPLETED}
  GET  {base}/{model}/requests/{request_id}        -> result payload

`generate` is bounded by one wall-clock limit for the whole submit/poll/fetch
sequence. Provider-reported failures come back as payloads so the caller can
extract the most specific message; only transport problems and the time limit
running out raise.
"""
import asyncio
import time
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from ..config import Settings
from ..exceptions import ProviderError
from ..logger import logger

FAILED_STATUSES = {"FAILED", "ERROR"}


def build_webhook_url(base_url: str, generation_id: int) -> str:
    """Callback URL for the legacy asynchronous completion path."""
    return f"{base_url.rstrip('/')}/fal-webhook?{urlencode({'generationId': generation_id})}"


def _json_or_none(resp: httpx.Response) -> Optional[Dict[str, Any]]:
    try:
        data = resp.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _error_payload(resp: httpx.Response, request_id: Optional[str] = None) -> Dict[str, Any]:
    data = _json_or_none(resp) or {}
    payload: Dict[str, Any] = {"status": "ERROR", "request_id": request_id}
    if isinstance(data.get("detail"), list):
        payload["detail"] = data["detail"]
    elif isinstance(data.get("detail"), str):
        payload["error"] = data["detail"]
    for field in ("error", "error_details", "message"):
        if isinstance(data.get(field), str):
            payload.setdefault(field, data[field])
    payload.setdefault("error", f"Provider returned HTTP {resp.status_code}")
    return payload


class FalVideoClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        *,
        base_url: str = "https://queue.fal.run",
        model: str = "fal-ai/kling-video/v2.6/standard/motion-control",
        poll_interval: float = 5.0,
    ):
        self.http = http
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.poll_interval = poll_interval

    @classmethod
    def from_settings(cls, http: httpx.AsyncClient, settings: Settings) -> "FalVideoClient":
        return cls(
            http,
            settings.FAL_API_KEY,
            base_url=settings.FAL_QUEUE_BASE_URL,
            model=settings.FAL_VIDEO_MODEL,
            poll_interval=settings.FAL_POLL_INTERVAL_SECONDS,
        )

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ProviderError("FAL_API_KEY not set")
        return {
            "Authorization": f"Key {self.api_key}",
            "Content-Type": "application/json",
        }

    def build_input(self, video_url: str, image_url: str) -> Dict[str, Any]:
        return {
            "image_url": image_url,
            "video_url": video_url,
            "character_orientation": "video",
            "mode": "std",
        }

    async def submit(self, video_url: str, image_url: str, webhook_url: Optional[str] = None) -> Dict[str, Any]:
        url = f"{self.base_url}/{self.model}"
        params = {"fal_webhook": webhook_url} if webhook_url else None
        resp = await self.http.post(
            url, json=self.build_input(video_url, image_url), headers=self._headers(), params=params, timeout=60
        )
        if resp.status_code >= 400:
            logger.warning(f"fal submit rejected: HTTP {resp.status_code}")
            return _error_payload(resp)
        data = _json_or_none(resp)
        if data is None:
            raise ProviderError("Malformed submit response from provider")
        return data

    async def _poll(self, request_id: str, status_url: str, response_url: str) -> Dict[str, Any]:
        headers = self._headers()
        polls = 0
        while True:
            await asyncio.sleep(self.poll_interval)
            polls += 1
            resp = await self.http.get(status_url, headers=headers, timeout=30)
            if resp.status_code in (429, 502, 503, 504):
                logger.warning(f"fal status poll {resp.status_code}, retrying", extra={"request_id": request_id})
                continue
            if resp.status_code >= 400:
                return _error_payload(resp, request_id)

            status_data = _json_or_none(resp) or {}
            status = str(status_data.get("status") or "").upper()
            if status == "COMPLETED":
                result_resp = await self.http.get(response_url, headers=headers, timeout=60)
                if result_resp.status_code >= 400:
                    return _error_payload(result_resp, request_id)
                result = _json_or_none(result_resp)
                if result is None:
                    raise ProviderError("Malformed result response from provider")
                logger.info("fal job completed", extra={"request_id": request_id, "polls": polls})
                return {"status": "OK", "request_id": request_id, "payload": result}
            if status in FAILED_STATUSES:
                failed = dict(status_data)
                failed["status"] = "ERROR"
                failed["request_id"] = request_id
                return failed

            logger.debug(f"fal status: {status}", extra={"request_id": request_id, "polls": polls})

    async def generate(self, video_url: str, image_url: str, *, timeout: float) -> Dict[str, Any]:
        """
        Run one generation to completion and return a webhook-shaped body:
        `{"status": "OK"|"ERROR", "request_id", "payload": {...}, ...}`.
        """
        start = time.monotonic()

        async def _run() -> Dict[str, Any]:
            submitted = await self.submit(video_url, image_url)
            if submitted.get("status") == "ERROR":
                return submitted
            request_id = submitted.get("request_id")
            if not request_id:
                # some endpoints answer synchronously
                return {"status": "OK", "payload": submitted}
            logger.info("fal job queued", extra={"request_id": request_id, "model": self.model})
            base = f"{self.base_url}/{self.model}/requests/{request_id}"
            status_url = submitted.get("status_url") or f"{base}/status"
            response_url = submitted.get("response_url") or base
            return await self._poll(request_id, status_url, response_url)

        try:
            return await asyncio.wait_for(_run(), timeout=timeout)
        except asyncio.TimeoutError:
            raise ProviderError(f"Video generation timed out after {timeout:.0f}s")
        except httpx.HTTPError as e:
            raise ProviderError(f"Provider request failed: {type(e).__name__}: {e}")
        finally:
            logger.info(
                "fal generate finished",
                extra={"elapsed_ms": round((time.monotonic() - start) * 1000, 2)},
            )
