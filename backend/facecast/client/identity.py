import json
import secrets
from pathlib import Path
from typing import Optional, Union

ANONYMOUS_ID_PREFIX = "anon_"


def new_anonymous_id() -> str:
    return f"{ANONYMOUS_ID_PREFIX}{secrets.token_hex(16)}"


def load_or_create_anonymous_id(path: Union[str, Path]) -> str:
    """Anonymous caller id, created once and kept in a local JSON file."""
    path = Path(path)
    if path.exists():
        try:
            stored = json.loads(path.read_text(encoding="utf-8")).get("anonymousId")
        except (ValueError, AttributeError):
            stored = None
        if isinstance(stored, str) and stored.startswith(ANONYMOUS_ID_PREFIX):
            return stored

    anonymous_id = new_anonymous_id()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"anonymousId": anonymous_id}), encoding="utf-8")
    return anonymous_id


def identity_headers(anonymous_id: Optional[str] = None, access_token: Optional[str] = None) -> dict:
    """Session token wins over the anonymous id, as on the server."""
    if access_token:
        return {"Authorization": f"Bearer {access_token}"}
    if anonymous_id:
        return {"x-anonymous-user-id": anonymous_id}
    return {}
