"""Per-client request throttling for the API routers."""
import logging
import time
from collections import defaultdict, deque
from typing import Optional

from fastapi import HTTPException, Request

from app.core.config import settings

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60


class RateLimiter:
    """In-memory sliding window keyed by client IP, used as a FastAPI dependency.

        @router.post("/login", dependencies=[Depends(rate_limit_auth)])
    """

    def __init__(self, per_minute: Optional[int] = None, name: str = "default"):
        self.per_minute = per_minute or settings.rate_limit_per_minute
        self.name = name
        self._requests: dict[str, deque[float]] = defaultdict(deque)
        self._next_sweep = time.monotonic() + WINDOW_SECONDS

    def _client_ip(self, request: Request) -> str:
        # First hop of X-Forwarded-For when behind a proxy
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def _sweep(self, now: float) -> None:
        """Forget clients idle for a whole window."""
        if now < self._next_sweep:
            return
        oldest_allowed = now - WINDOW_SECONDS
        for ip in [ip for ip, seen in self._requests.items() if not seen or seen[-1] < oldest_allowed]:
            del self._requests[ip]
        self._next_sweep = now + WINDOW_SECONDS

    def reset(self) -> None:
        self._requests.clear()

    async def __call__(self, request: Request) -> None:
        now = time.monotonic()
        self._sweep(now)

        ip = self._client_ip(request)
        seen = self._requests[ip]
        while seen and seen[0] <= now - WINDOW_SECONDS:
            seen.popleft()

        if len(seen) >= self.per_minute:
            wait = int(WINDOW_SECONDS - (now - seen[0])) + 1
            logger.info("Throttled %s on '%s' (%d requests in window)", ip, self.name, len(seen))
            raise HTTPException(
                status_code=429,
                detail=f"Too many requests: limit is {self.per_minute} per minute. Try again in {wait}s.",
                headers={"Retry-After": str(wait)},
            )
        seen.append(now)


rate_limit_public = RateLimiter(name="public")
rate_limit_auth = RateLimiter(per_minute=settings.rate_limit_auth_per_minute, name="auth")
