from __future__ import annotations

import json
from typing import Any, Dict, Optional


PROVIDER_ERROR_PREFIX = "WF_PROVIDER_ERROR::"


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, str):
        return value or None
    return str(value)


def to_error_object(raw_message: str) -> Dict[str, Any]:
    """
    Turn a stored generation error message into a structured object for clients.

    Messages written by the provider adapter may carry a JSON payload after
    the `WF_PROVIDER_ERROR::` marker; everything else is a plain failure.
    Payload fields are reduced to strings, nested values are dropped.
    """
    marker_index = raw_message.find(PROVIDER_ERROR_PREFIX)
    if marker_index == -1:
        return {"kind": "workflow_error", "message": raw_message}

    payload_text = raw_message[marker_index + len(PROVIDER_ERROR_PREFIX):].strip()
    try:
        payload = json.loads(payload_text)
    except ValueError:
        payload = None

    if not isinstance(payload, dict):
        return {
            "kind": "provider_error_parse_failed",
            "message": payload_text or "Failed to parse provider error payload.",
        }

    fields = {name: _text(payload.get(name)) for name in ("code", "provider", "model", "summary", "details")}
    message = (
        fields["summary"]
        or fields["details"]
        or _text(payload.get("message"))
        or "Provider video generation failed."
    )
    return {
        "kind": _text(payload.get("kind")) or "provider_error",
        "message": message,
        **fields,
    }


def provider_error_message(payload: Dict[str, Any]) -> str:
    """Encode a structured provider error so `to_error_object` can recover it."""
    return PROVIDER_ERROR_PREFIX + json.dumps(payload)
