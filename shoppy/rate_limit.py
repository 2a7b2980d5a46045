# shoppy/rate_limit.py
"""
In-process fixed-window rate limiting keyed by client IP.

Each limiter owns a dict of ``ip -> (window_start, count)``. Expired entries
are purged lazily whenever a request is checked; nothing runs on a timer.
State lives in this process only, so limits are per instance when the app
is scaled out.
"""
import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS = "Too many requests, please try again later."

_registry: List["FixedWindowRateLimiter"] = []


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class FixedWindowRateLimiter:
    def __init__(self, name: str, max_requests: int, window_seconds: float,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Tuple[float, int]] = {}
        _registry.append(self)

    def _purge(self, now: float) -> None:
        expired = [k for k, (start, _) in self._hits.items() if now - start >= self.window_seconds]
        for k in expired:
            del self._hits[k]

    def hit(self, key: str) -> bool:
        """Count one request for `key`; False once the window's quota is spent."""
        now = self._clock()
        self._purge(now)
        start, count = self._hits.get(key, (now, 0))
        if count >= self.max_requests:
            return False
        self._hits[key] = (start, count + 1)
        return True

    def remaining(self, key: str) -> int:
        self._purge(self._clock())
        _, count = self._hits.get(key, (0.0, 0))
        return max(self.max_requests - count, 0)

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._hits.clear()
        else:
            self._hits.pop(key, None)

    async def __call__(self, request: Request) -> None:
        ip = client_ip(request)
        if not self.hit(ip):
            logger.warning("[RATE] %s limit hit for %s", self.name, ip)
            raise HTTPException(status_code=429, detail=TOO_MANY_REQUESTS)


def reset_all() -> None:
    for limiter in _registry:
        limiter.reset()


chat_limiter = FixedWindowRateLimiter("chat", 30, 60)
cart_limiter = FixedWindowRateLimiter("cart", 30, 60)
register_limiter = FixedWindowRateLimiter("register", 5, 15 * 60)
login_limiter = FixedWindowRateLimiter("login", 10, 15 * 60)
session_limiter = FixedWindowRateLimiter("sessions", 100, 15 * 60)
