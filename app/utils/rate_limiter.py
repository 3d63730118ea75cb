"""
Rate limiting for API endpoints

Requests are counted per caller: signed-in user, then guest identifier,
then client IP, so guests sharing a NAT do not throttle each other.
"""
import time
from collections import defaultdict, deque
from fastapi import Request, HTTPException
from typing import Deque, Dict, List, Tuple
import logging

from app.config import settings
from app.utils.security import decode_access_token

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    In-memory sliding window rate limiter
    Counters are per process; several workers each apply the limits
    """

    def __init__(self, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        # (window seconds, allowed requests, label)
        self.windows: List[Tuple[int, int, str]] = [
            (60, requests_per_minute, "minute"),
            (3600, requests_per_hour, "hour"),
        ]
        self.history: Dict[str, Deque[float]] = defaultdict(deque)

    def client_key(self, request: Request) -> str:
        authorization = request.headers.get("Authorization", "")
        if authorization.startswith("Bearer "):
            claims = decode_access_token(authorization[len("Bearer "):].strip())
            if claims and claims.get("sub"):
                return f"user:{claims['sub']}"

        guest_identifier = request.headers.get(settings.GUEST_IDENTIFIER_HEADER, "").strip()
        if guest_identifier:
            return f"guest:{guest_identifier}"

        return f"ip:{request.client.host if request.client else 'unknown'}"

    def _cleanup_old_entries(self, now: float) -> None:
        """Drop timestamps older than the longest window for every caller, then forget idle callers"""
        cutoff = now - max(window for window, _, _ in self.windows)
        for key in list(self.history.keys()):
            timestamps = self.history[key]
            while timestamps and timestamps[0] <= cutoff:
                timestamps.popleft()
            if not timestamps:
                del self.history[key]

    async def check_rate_limit(self, request: Request) -> None:
        """
        Count the request against every window

        Raises:
            HTTPException: 429 if any window is full
        """
        key = self.client_key(request)
        now = time.time()
        self._cleanup_old_entries(now)
        timestamps = self.history[key]

        for window, limit, label in self.windows:
            recent = sum(1 for ts in timestamps if ts > now - window)
            if recent >= limit:
                logger.warning(f"Rate limit exceeded ({label}): {key}")
                raise HTTPException(
                    status_code=429,
                    detail={
                        "error": "rate_limit_exceeded",
                        "message": f"Too many requests. Limit: {limit} requests per {label}",
                        "retry_after": window
                    }
                )

        timestamps.append(now)


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR
)
