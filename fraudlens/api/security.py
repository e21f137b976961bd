"""
Security middleware and dependencies for the API.
"""

import time
import logging
import uuid
from typing import Callable, Dict, Optional, Tuple

from fastapi import Header, HTTPException, Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from fraudlens.config import settings
from fraudlens.exceptions import RateLimitExceededError
from fraudlens.utils.logging_config import request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Tag every request with an id (honouring an incoming X-Request-ID) and
    expose it to logging and to the response.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or uuid.uuid4().hex


async def verify_api_token(
    request: Request,
    api_key: Optional[str] = Header(None, alias="X-API-Key"),
):
    """
    Verify the API token from the X-API-Key header.

    In development mode (no token configured), this is bypassed.
    """
    if not settings.api_token:
        if settings.is_production:
            logger.warning("API token not configured in production mode!")
        return None

    client_host = request.client.host if request.client else "unknown"

    if not api_key:
        logger.warning(f"Missing API key from {client_host}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if api_key != settings.api_token:
        logger.warning(f"Invalid API key attempt from {client_host}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key


class RateLimiter:
    """
    Fixed-window in-memory rate limiter.

    Each client gets ``limit`` requests per window; the window starts at the
    client's first request and resets wholesale when it elapses. Expired
    windows are pruned at most once per ``prune_interval`` seconds.
    """

    def __init__(self, prune_interval: float = 60, clock: Callable[[], float] = time.time):
        # key -> (count, window_start)
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._prune_interval = prune_interval
        self._clock = clock
        self._last_prune = clock()

    @property
    def tracked_clients(self) -> int:
        return len(self._windows)

    def _prune(self, now: float, window: int):
        expired = [key for key, (_, started) in self._windows.items() if now - started >= window]
        for key in expired:
            del self._windows[key]
        self._last_prune = now
        if expired:
            logger.debug(f"Pruned {len(expired)} expired rate-limit windows")

    def is_allowed(self, key: str, limit: int, window: int) -> Tuple[bool, int]:
        """
        Check if a request is allowed.

        Returns:
            (allowed: bool, remaining: int)
        """
        now = self._clock()
        if now - self._last_prune >= self._prune_interval:
            self._prune(now, window)

        count, started = self._windows.get(key, (0, now))
        if now - started >= window:
            count, started = 0, now

        if count >= limit:
            self._windows[key] = (count, started)
            return False, 0

        self._windows[key] = (count + 1, started)
        return True, limit - count - 1

    def get_retry_after(self, key: str, window: int) -> int:
        """Seconds until the client's window resets."""
        if key not in self._windows:
            return 0
        _, started = self._windows[key]
        return max(0, int(window - (self._clock() - started)))

    def reset(self):
        self._windows.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()


async def check_scan_limit(request: Request):
    """
    Daily scan-count limit, per client IP.
    """
    if not settings.max_urls_per_day:
        return  # Rate limiting disabled

    client_ip = request.client.host if request.client else "unknown"

    allowed, remaining = rate_limiter.is_allowed(
        key=client_ip,
        limit=settings.max_urls_per_day,
        window=settings.rate_limit_window,
    )

    request.state.rate_limit_remaining = remaining
    request.state.rate_limit_limit = settings.max_urls_per_day

    if not allowed:
        retry_after = rate_limiter.get_retry_after(client_ip, settings.rate_limit_window)
        logger.warning(f"Scan limit exceeded for {client_ip}")
        raise RateLimitExceededError(
            details=f"Limit of {settings.max_urls_per_day} scans reached. Try again in {retry_after} seconds.",
            retry_after=retry_after,
        )
