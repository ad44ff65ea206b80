import hashlib
import json
from typing import Any, Optional

__all__ = ["etag_matches", "weak_etag"]


def weak_etag(payload: Any) -> str:
    """Return a deterministic weak ETag for a JSON-serializable payload or string.
    dict/list payloads are normalized to compact JSON with sorted keys first.
    """
    if isinstance(payload, (dict, list)):
        raw = json.dumps(payload, separators=(",", ":"), sort_keys=True)
    elif isinstance(payload, (bytes, bytearray)):
        raw = bytes(payload).decode("utf-8", errors="ignore")
    else:
        raw = str(payload)
    return 'W/"' + hashlib.md5(raw.encode("utf-8")).hexdigest() + '"'


def etag_matches(if_none_match: Optional[str], tag: str) -> bool:
    if not if_none_match:
        return False
    candidates = [part.strip() for part in if_none_match.split(",")]
    return "*" in candidates or tag in candidates
