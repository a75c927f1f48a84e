"""Rate limiting middleware using Redis.

Per-IP sliding window; 100 requests a minute by default, tighter on the
routes that make the backend send an SMS. If Redis is unreachable requests
are let through.
"""

import logging
import time
from typing import Callable, Optional

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from jikjikjik import messages
from jikjikjik.middleware.exceptions import create_error_response
from jikjikjik.utils.redis import get_redis

logger = logging.getLogger(__name__)

# (path suffix, limit, window seconds); signup paths carry a session id
CUSTOM_LIMITS: tuple[tuple[str, int, int], ...] = (
    ("/verification/code", 5, 60),
    ("/verification/resend", 5, 60),
    ("/api/auth/login", 5, 60),
)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window limiter keyed by client IP."""

    def __init__(
        self,
        app,
        default_limit: int = 100,  # requests
        default_window: int = 60,  # seconds
        exempt_paths: Optional[list[str]] = None,
        enabled: bool = True,
    ):
        super().__init__(app)
        self.default_limit = default_limit
        self.default_window = default_window
        self.exempt_paths = exempt_paths or ["/healthz", "/readyz"]
        self.enabled = enabled
        self.custom_limits = CUSTOM_LIMITS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if not self.enabled or any(path.startswith(p) for p in self.exempt_paths):
            return await call_next(request)

        bucket, limit, window = self._rule_for_path(path)
        key = f"{self._client_ip(request)}:{bucket}"

        allowed, remaining, reset_time = await self._check_rate_limit(key, limit, window)

        if allowed:
            response = await call_next(request)
        else:
            logger.warning("Rate limit exceeded: key=%s path=%s", key, path)
            # Must be returned: exception handlers never see errors raised in middleware
            response = create_error_response(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                message=messages.TOO_MANY_REQUESTS,
                error_code="RATE_LIMITED",
            )
            response.headers["Retry-After"] = str(max(int(reset_time - time.time()), 1))

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(int(reset_time))
        return response

    def _rule_for_path(self, path: str) -> tuple[str, int, int]:
        """Bucket name, limit and window for a request path."""
        for suffix, limit, window in self.custom_limits:
            if path.endswith(suffix):
                return suffix.strip("/").replace("/", "."), limit, window
        return "default", self.default_limit, self.default_window

    @staticmethod
    def _client_ip(request: Request) -> str:
        # X-Forwarded-For when behind a load balancer
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    async def _check_rate_limit(
        self, key: str, limit: int, window: int
    ) -> tuple[bool, int, float]:
        """Check rate limit using sliding window algorithm.

        Returns:
            (allowed, remaining, reset_time)
        """
        current_time = time.time()
        window_start = current_time - window
        redis_key = f"ratelimit:{key}"

        try:
            redis_client = await get_redis()
            await redis_client.zremrangebyscore(redis_key, 0, window_start)
            count = await redis_client.zcard(redis_key)

            if count >= limit:
                oldest = await redis_client.zrange(redis_key, 0, 0, withscores=True)
                if oldest:
                    reset_time = oldest[0][1] + window
                else:
                    reset_time = current_time + window
                return False, 0, reset_time

            await redis_client.zadd(redis_key, {str(current_time): current_time})
            await redis_client.expire(redis_key, window)

            return True, limit - count - 1, current_time + window

        except Exception as e:
            # Fail open
            logger.error("Rate limit check failed: %s", e)
            return True, limit, current_time + window
