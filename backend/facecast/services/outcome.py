from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class ProviderOutcome:
    video_url: Optional[str] = None
    error_message: Optional[str] = None
    request_id: Optional[str] = None

    @property
    def failed(self) -> bool:
        return not self.video_url


def _video_url(container: Any) -> Optional[str]:
    if not isinstance(container, dict):
        return None
    video = container.get("video")
    if isinstance(video, dict) and isinstance(video.get("url"), str) and video["url"]:
        return video["url"]
    return None


def _detail_list(body: dict) -> Optional[list]:
    payload = body.get("payload")
    for source in (payload, body):
        if isinstance(source, dict):
            detail = source.get("detail")
            if isinstance(detail, list) and detail:
                return detail
    return None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def extract_error_message(body: dict) -> str:
    """
    Pick the most specific failure reason from a provider response.

    Priority: validation detail array -> `error` -> `error_details` ->
    `message` -> generic fallback.
    """
    error = _text(body.get("error"))

    detail = _detail_list(body)
    if detail is not None:
        first = detail[0] if isinstance(detail[0], dict) else {}
        return _text(first.get("msg")) or _text(first.get("message")) or error or "Validation error"

    return error or _text(body.get("error_details")) or _text(body.get("message")) or "Processing failed"


def outcome_from_payload(body: Any) -> ProviderOutcome:
    """Map a provider body (webhook callback or synchronous result) to an outcome."""
    if not isinstance(body, dict):
        return ProviderOutcome(error_message="Malformed provider response")

    request_id = _text(body.get("request_id"))
    status = str(body.get("status") or "").upper()
    video_url = _video_url(body.get("payload")) or _video_url(body)

    if status == "ERROR" or not video_url:
        return ProviderOutcome(error_message=extract_error_message(body), request_id=request_id)

    return ProviderOutcome(video_url=video_url, request_id=request_id)
