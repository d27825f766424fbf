import hashlib
import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger("preview-service.cache")

# key -> (value, expires_at); per-process only
_entries: Dict[str, Tuple[Any, float]] = {}


def _now() -> float:
    return time.time()


def cache_key(params: Dict[str, Any], tenant: str) -> str:
    """Key covering every request parameter plus the tenant."""
    payload = json.dumps({**params, "tenant": tenant}, sort_keys=True, default=str)
    return "opengraph_" + hashlib.md5(payload.encode("utf-8")).hexdigest()


def get(key: str) -> Optional[Any]:
    entry = _entries.get(key)
    if entry is None:
        return None
    value, expires_at = entry
    if expires_at <= _now():
        _entries.pop(key, None)
        return None
    logger.debug("Preview cache hit", extra={"key": key})
    return value


def _sweep(now: float) -> None:
    for key, (_, expires_at) in list(_entries.items()):
        if expires_at <= now:
            _entries.pop(key, None)


def put(key: str, value: Any, ttl: int) -> None:
    now = _now()
    _sweep(now)
    if ttl <= 0:
        return
    _entries[key] = (value, now + ttl)


def clear() -> None:
    _entries.clear()
