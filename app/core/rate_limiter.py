"""
Redis-based rate limiting.

Protects the 2FA verification endpoint against brute force from a single
client address.
"""

import logging
import redis
from fastapi import Request
from app.core.config import settings
from app.core.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Redis-based fixed-window rate limiter.

    The first hit in a window creates the counter with an expiry; later hits
    increment it. Counters disappear when the window closes.
    """

    def __init__(self):
        """Initialize Redis connection (lazy: no network I/O until first command)"""
        self.redis_client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1
        )

    def check_rate_limit(
        self,
        key: str,
        max_requests: int,
        window_seconds: int,
        error_message: str = "Rate limit exceeded"
    ) -> None:
        """
        Check if a request is within rate limits and count it.

        Args:
            key: Unique identifier for this rate limit (e.g., "verify_2fa:ip:1.2.3.4:minute")
            max_requests: Maximum number of requests allowed
            window_seconds: Time window in seconds
            error_message: Custom error message if rate limit exceeded

        Raises:
            RateLimitExceededError: 429 Too Many Requests if rate limit exceeded
        """
        try:
            current_count = self.redis_client.get(key)

            if current_count is not None and int(current_count) >= max_requests:
                ttl = self.redis_client.ttl(key)
                retry_after = ttl if ttl and ttl > 0 else window_seconds
                raise RateLimitExceededError(
                    f"{error_message}. Try again in {retry_after} seconds.",
                    retry_after=retry_after
                )

            count = self.redis_client.incr(key)
            if count == 1:
                self.redis_client.expire(key, window_seconds)

        except redis.RedisError as e:
            # Fail open: an unavailable Redis must not lock users out
            logger.error(f"Redis rate limiter error: {e}")

    def reset_limit(self, key: str) -> None:
        """
        Reset the rate limit for a key.

        Useful for testing or manual intervention.
        """
        try:
            self.redis_client.delete(key)
        except redis.RedisError as e:
            logger.error(f"Redis reset error: {e}")


# Singleton instance
rate_limiter = RateLimiter()


def check_verify_2fa_limit(ip_address: str) -> None:
    """
    Rate limit for 2FA code verification attempts.

    Limit: 20 per minute and 200 per hour per client IP.
    """
    rate_limiter.check_rate_limit(
        key=f"verify_2fa:ip:{ip_address}:minute",
        max_requests=settings.VERIFY_2FA_REQUESTS_PER_MINUTE,
        window_seconds=60,
        error_message="Too many verification attempts"
    )
    rate_limiter.check_rate_limit(
        key=f"verify_2fa:ip:{ip_address}:hour",
        max_requests=settings.VERIFY_2FA_REQUESTS_PER_HOUR,
        window_seconds=3600,
        error_message="Too many verification attempts"
    )


def get_client_ip(request: Request) -> str:
    """
    Extract the client's IP address from the request.

    Handles proxy headers (X-Forwarded-For, CF-Connecting-IP, X-Real-IP).
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first (client IP)
        return forwarded_for.split(",")[0].strip()

    for header in ("CF-Connecting-IP", "X-Real-IP"):
        value = request.headers.get(header)
        if value:
            return value.strip()

    return request.client.host if request.client else "unknown"
