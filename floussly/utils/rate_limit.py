"""
In-memory sliding-window rate limiter for the fee endpoints.

RATE_LIMIT_ENABLED (default: 1) switches it on or off per request.
The preview limit comes from FEE_PREVIEW_RATE_LIMIT_PER_MINUTE (default: 600),
read when the route is called so tests and deployments can change it.

Clients are keyed by request.remote_addr. X-Forwarded-For is only honoured
when create_app wraps the app in ProxyFix (TRUSTED_PROXY_COUNT > 0).
"""

from __future__ import annotations
import logging
import os
import time
from collections import deque
from functools import wraps
from threading import Lock

from flask import jsonify, request

logger = logging.getLogger(__name__)

_lock = Lock()
_hits: dict[str, deque[float]] = {}
_window = 60  # seconds
_last_sweep = 0.0


def reset_rate_limits() -> None:
    global _last_sweep
    with _lock:
        _hits.clear()
        _last_sweep = 0.0


def _sweep(cutoff: float) -> None:
    # newest hit older than the window: the whole key is idle
    for key in [k for k, hits in _hits.items() if not hits or hits[-1] <= cutoff]:
        del _hits[key]


def is_rate_limited(key: str, limit: int, now: float | None = None) -> bool:
    """Return True if the key has used up its limit within the window."""
    global _last_sweep
    if limit <= 0:
        return False
    now = time.time() if now is None else now
    cutoff = now - _window
    with _lock:
        if now - _last_sweep >= _window:
            _sweep(cutoff)
            _last_sweep = now
        hits = _hits.setdefault(key, deque())
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if len(hits) >= limit:
            return True
        hits.append(now)
        return False


def tracked_keys() -> list[str]:
    with _lock:
        return list(_hits)


def client_key() -> str:
    return request.remote_addr or "unknown"


def rate_limited(env_var: str, default: int, key_prefix: str):
    """Limit a route per client IP to the per-minute value of env_var."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if os.getenv("RATE_LIMIT_ENABLED", "1") != "1":
                return fn(*args, **kwargs)
            try:
                limit = int(os.getenv(env_var, str(default)))
            except ValueError:
                limit = default
            key = f"{key_prefix}:{client_key()}"
            if is_rate_limited(key, limit):
                logger.warning("rate limit exceeded key=%s limit=%s/min", key, limit)
                return jsonify({"error": "rate limit exceeded", "retry_after": _window}), 429
            return fn(*args, **kwargs)

        return wrapper

    return decorator
