"""Rate limiting for the vendor-backed endpoints."""

import time
from collections import defaultdict

from fastapi import Depends, HTTPException, Request, status

from baydigital.api.middleware.auth import get_current_user


class RateLimiter:
    """Simple in-memory rate limiter.

    Token bucket per user. State is per process, so the effective limit
    scales with the number of workers.
    """

    def __init__(
        self,
        requests_per_minute: int = 10,
        burst_size: int = 5,
        cleanup_interval: int = 60,
    ):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute per user
            burst_size: Maximum burst requests allowed
            cleanup_interval: Interval (seconds) to cleanup old entries
        """
        self.requests_per_minute = requests_per_minute
        self.burst_size = burst_size
        self.cleanup_interval = cleanup_interval

        # Store: user_id -> (tokens, last_update)
        self.buckets: dict[str, tuple[float, float]] = defaultdict(
            lambda: (burst_size, time.time())
        )
        self.last_cleanup = time.time()

    def _refill_tokens(self, user_id: str) -> float:
        tokens, last_update = self.buckets[user_id]
        current_time = time.time()

        tokens_to_add = (current_time - last_update) * (self.requests_per_minute / 60.0)
        new_tokens = min(tokens + tokens_to_add, self.burst_size)

        self.buckets[user_id] = (new_tokens, current_time)
        return new_tokens

    @property
    def retry_after(self) -> int:
        return max(int(60 / self.requests_per_minute), 1)

    async def check_rate_limit(self, user_id: str) -> None:
        """Consume a token or reject the request.

        Raises:
            HTTPException: 429 with Retry-After if the bucket is empty
        """
        current_time = time.time()
        if current_time - self.last_cleanup > self.cleanup_interval:
            self._cleanup_old_entries()
            self.last_cleanup = current_time

        tokens = self._refill_tokens(user_id)
        if tokens < 1.0:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "error": "Rate limit exceeded",
                    "message": f"Maximum {self.requests_per_minute} requests per minute allowed",
                    "retry_after": self.retry_after,
                },
                headers={"Retry-After": str(self.retry_after)},
            )

        tokens, last_update = self.buckets[user_id]
        self.buckets[user_id] = (tokens - 1.0, last_update)

    def _cleanup_old_entries(self) -> None:
        """Drop buckets not touched for two cleanup intervals."""
        cutoff_time = time.time() - (self.cleanup_interval * 2)
        to_remove = [
            user_id
            for user_id, (_, last_update) in self.buckets.items()
            if last_update < cutoff_time
        ]
        for user_id in to_remove:
            del self.buckets[user_id]


# LLM calls are the expensive ones
generation_limiter = RateLimiter(requests_per_minute=10, burst_size=5)
stock_image_limiter = RateLimiter(requests_per_minute=30, burst_size=10)


def _caller_key(request: Request, current_user: dict) -> str:
    user_id = current_user.get("user_id") or getattr(request.state, "user_id", None)
    if user_id:
        return str(user_id)
    return request.client.host if request.client else "unknown"


async def check_generation_rate_limit(
    request: Request,
    current_user: dict = Depends(get_current_user),
) -> None:
    """FastAPI dependency limiting AI generation calls per user.

    Example:
        @router.post("/content/caption", dependencies=[Depends(check_generation_rate_limit)])
    """
    await generation_limiter.check_rate_limit(_caller_key(request, current_user))


async def check_stock_image_rate_limit(
    request: Request,
    current_user: dict = Depends(get_current_user),
) -> None:
    """FastAPI dependency limiting stock-image search and download calls per user."""
    await stock_image_limiter.check_rate_limit(_caller_key(request, current_user))
