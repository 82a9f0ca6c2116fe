"""
Rate limiting middleware for the storefront backend
Uses in-memory storage with sliding window algorithm
"""
import time
import logging
from typing import Dict, Tuple
from collections import defaultdict
from fastapi import Request, HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from app.core.config import settings
from app.core.metrics import rate_limit_exceeded_total

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    In-memory rate limiter using sliding window algorithm.

    Counters are per process; with several workers each one enforces its own
    window.
    """

    def __init__(self, clock=time.time):
        # {identifier: [(timestamp, count), ...]}
        self._requests: Dict[str, list] = defaultdict(list)
        self._clock = clock
        # Clean up old entries periodically
        self._last_cleanup = clock()
        self._cleanup_interval = 60  # seconds

    def _cleanup_old_entries(self, window_seconds: int):
        """Remove entries older than the largest window we care about"""
        now = self._clock()

        # Only cleanup periodically to avoid overhead
        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff = now - window_seconds

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
        window_seconds: int = 60
    ) -> Tuple[bool, int, int]:
        """
        Check if a request is allowed under the rate limit.

        Returns:
            Tuple of (is_allowed, remaining_requests, retry_after_seconds)
        """
        self._cleanup_old_entries(window_seconds)

        now = self._clock()
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

        # Add this request
        self._requests[identifier].append((now, 1))

        remaining = max_requests - total_requests - 1
        return True, remaining, 0


# Global rate limiter instance
rate_limiter = RateLimiter()

# Only API routes are limited
RATE_LIMITED_PREFIX = "/api/v1"

# Paths that are exempt from rate limiting
EXEMPT_PATHS = {
    "/api/v1/health",
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


def get_rate_limit_identifier(request: Request) -> str:
    """
    Determine the rate limit identifier.

    Priority:
    1. JWT token (Authorization: Bearer header)
    2. IP address (unauthenticated)
    """
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        # Same user is rate limited across requests
        return f"jwt:{hash(auth_header)}"

    return f"ip:{get_client_ip(request)}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware that applies the API-wide rate limit.

    Headers returned:
    - X-RateLimit-Limit: Maximum requests per window
    - X-RateLimit-Remaining: Remaining requests in current window
    - X-RateLimit-Reset / Retry-After: Seconds until a slot frees up (when limited)
    """

    def __init__(self, app, limiter: RateLimiter = None, max_requests: int = None,
                 window_seconds: int = None, enabled: bool = None):
        super().__init__(app)
        self.limiter = limiter or rate_limiter
        self.max_requests = max_requests or settings.RATE_LIMIT_MAX
        self.window_seconds = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS
        self.enabled = (not settings.is_relaxed_environment) if enabled is None else enabled

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if (
            not self.enabled
            or not path.startswith(RATE_LIMITED_PREFIX)
            or path in EXEMPT_PATHS
            or request.method == "OPTIONS"  # CORS preflight
        ):
            return await call_next(request)

        is_allowed, remaining, retry_after = self.limiter.is_allowed(
            identifier=get_rate_limit_identifier(request),
            max_requests=self.max_requests,
            window_seconds=self.window_seconds
        )

        if not is_allowed:
            logger.warning(f"Rate limit exceeded: ip={get_client_ip(request)} path={path}")
            rate_limit_exceeded_total.labels(endpoint=path).inc()
            # Return JSONResponse instead of raising HTTPException
            # so the response still goes through the CORS middleware
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "error": "Too many requests, please try again later.",
                    "retry_after": retry_after,
                },
                headers={
                    "X-RateLimit-Limit": str(self.max_requests),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(retry_after),
                    "Retry-After": str(retry_after),
                }
            )

        response = await call_next(request)

        # Add rate limit headers to successful responses
        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)

        return response


async def auth_rate_limit(request: Request):
    """
    Dependency applying the auth endpoint limit (register/login).

    Usage:
        @router.post("/login", dependencies=[Depends(auth_rate_limit)])
    """
    if settings.is_relaxed_environment:
        return

    identifier = f"endpoint:{request.url.path}:ip:{get_client_ip(request)}"
    max_requests = settings.AUTH_RATE_LIMIT_MAX

    is_allowed, remaining, retry_after = rate_limiter.is_allowed(
        identifier=identifier,
        max_requests=max_requests,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS
    )

    if not is_allowed:
        logger.warning(f"Auth rate limit exceeded: {identifier}")
        rate_limit_exceeded_total.labels(endpoint=request.url.path).inc()
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many attempts, please try again in {retry_after} seconds.",
            headers={
                "X-RateLimit-Limit": str(max_requests),
                "X-RateLimit-Remaining": "0",
                "Retry-After": str(retry_after),
            }
        )
