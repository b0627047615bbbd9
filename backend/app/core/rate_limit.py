"""
Rate limiting for the TinyTales API
Uses in-memory storage with sliding window algorithm
"""
import time
from typing import Dict, Tuple
from collections import defaultdict
from fastapi import Request, HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from app.core.config import settings

# All limits share a 15 minute window
WINDOW_SECONDS = 15 * 60


class RateLimiter:
    """
    In-memory rate limiter using sliding window algorithm.

    For production with multiple instances, consider using Redis.
    """

    def __init__(self):
        # {identifier: [(timestamp, count), ...]}
        self._requests: Dict[str, list] = defaultdict(list)
        # Clean up old entries periodically
        self._last_cleanup = time.time()
        self._cleanup_interval = 60  # seconds

    def _cleanup_old_entries(self, window_seconds: int = WINDOW_SECONDS):
        """Remove entries older than the largest window we care about"""
        now = time.time()

        # Only cleanup periodically to avoid overhead
        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff = now - window_seconds * 2

        for identifier in list(self._requests.keys()):
            self._requests[identifier] = [
                (ts, count) for ts, count in self._requests[identifier]
                if ts > cutoff
            ]
            # Remove empty entries
            if not self._requests[identifier]:
                del self._requests[identifier]

        self._last_cleanup = now

    def is_allowed(
        self,
        identifier: str,
        max_requests: int,
        window_seconds: int = WINDOW_SECONDS,
        record: bool = True
    ) -> Tuple[bool, int, int]:
        """
        Check if a request is allowed under the rate limit.

        With record=False the check does not count as a request; use
        record_hit() afterwards to count only some outcomes (e.g. failures).

        Returns:
            Tuple of (is_allowed, remaining_requests, retry_after_seconds)
        """
        self._cleanup_old_entries(window_seconds)

        now = time.time()
        window_start = now - window_seconds

        # Get requests within the window
        requests_in_window = [
            (ts, count) for ts, count in self._requests[identifier]
            if ts > window_start
        ]

        total_requests = sum(count for _, count in requests_in_window)

        if total_requests >= max_requests:
            # Calculate when the oldest request in window will expire
            if requests_in_window:
                oldest_timestamp = min(ts for ts, _ in requests_in_window)
                retry_after = int(oldest_timestamp + window_seconds - now) + 1
            else:
                retry_after = 1

            return False, 0, retry_after

        if not record:
            return True, max_requests - total_requests, 0

        # Add this request
        self._requests[identifier].append((now, 1))

        remaining = max_requests - total_requests - 1
        return True, remaining, 0

    def record_hit(self, identifier: str):
        self._requests[identifier].append((time.time(), 1))

    def reset(self):
        """Forget every recorded request"""
        self._requests.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()


def _limits() -> Dict[str, int]:
    production = settings.is_production
    return {
        "general": 200 if production else 1000,
        "state_change": 50 if production else 200,
        "auth_failures": 5,
    }


# Paths that are exempt from the general limit
EXEMPT_PATHS = {
    "/api/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def get_client_ip(request: Request) -> str:
    """Get the client IP, considering proxies"""
    # Check X-Forwarded-For header first (for proxied requests)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain (original client)
        return forwarded_for.split(",")[0].strip()

    # Fall back to the direct client IP
    if request.client:
        return request.client.host

    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware that applies the general per-IP rate limit.

    Headers returned:
    - X-RateLimit-Limit: Maximum requests per window
    - X-RateLimit-Remaining: Remaining requests in current window
    - X-RateLimit-Reset: Seconds until the window resets (when limited)
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        # Skip rate limiting for exempt paths and static uploads
        if path in EXEMPT_PATHS or path.startswith("/uploads/"):
            return await call_next(request)

        # Skip OPTIONS requests (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        limit = _limits()["general"]
        is_allowed, remaining, retry_after = rate_limiter.is_allowed(
            identifier=f"ip:{get_client_ip(request)}",
            max_requests=limit,
        )

        if not is_allowed:
            # Return JSONResponse instead of raising HTTPException
            # This ensures the response goes through the CORS middleware
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": "Too many requests from this IP, please try again later."},
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(retry_after),
                    "Retry-After": str(retry_after),
                }
            )

        # Process the request
        response = await call_next(request)

        # Add rate limit headers to successful responses
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)

        return response


async def state_change_rate_limit(request: Request):
    """
    Dependency limiting mutating requests (POST/PUT/DELETE/PATCH) per IP.

    Usage:
        @router.post("/", dependencies=[Depends(state_change_rate_limit)])
    """
    if request.method not in ("POST", "PUT", "DELETE", "PATCH"):
        return

    limit = _limits()["state_change"]
    is_allowed, _, retry_after = rate_limiter.is_allowed(
        identifier=f"state:{get_client_ip(request)}",
        max_requests=limit,
    )

    if not is_allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests, please try again later.",
            headers={"Retry-After": str(retry_after)}
        )


def _auth_identifier(request: Request) -> str:
    return f"auth:{request.url.path}:{get_client_ip(request)}"


async def auth_rate_limit(request: Request):
    """
    Dependency blocking a client after too many failed authentication attempts.

    Only failures count; routes call record_auth_failure() when they reject
    credentials.
    """
    is_allowed, _, retry_after = rate_limiter.is_allowed(
        identifier=_auth_identifier(request),
        max_requests=_limits()["auth_failures"],
        record=False,
    )

    if not is_allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many authentication attempts, please try again later.",
            headers={"Retry-After": str(retry_after)}
        )


def record_auth_failure(request: Request):
    rate_limiter.record_hit(_auth_identifier(request))
