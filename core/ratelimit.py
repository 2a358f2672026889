"""Per-IP request quota for callers without their own API key."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping

from limits import RateLimitItemPerMinute
from limits.storage import Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter as _LimitsFixedWindow

logger = logging.getLogger(__name__)

FALLBACK_IP_ADDRESS = "0.0.0.0"
RATE_LIMIT_PREFIX = "keystrokeimagen"
RATE_LIMIT_CAPACITY = 100
RATE_LIMIT_WINDOW_MINUTES = 1440
NO_REQUESTS_LEFT_MESSAGE = "No requests left. Please add your own API Key or try again in 24h"


class RateLimiter(ABC):
    """Quota-check capability consulted once per request."""

    @abstractmethod
    def limit(self, identifier: str) -> bool:
        """Consume one unit of quota for ``identifier``; False once exhausted."""


class FixedWindowRateLimiter(RateLimiter):
    """Fixed-window limiter backed by a ``limits`` storage (memory, Redis...)."""

    def __init__(
        self,
        storage: Storage,
        capacity: int = RATE_LIMIT_CAPACITY,
        window_minutes: int = RATE_LIMIT_WINDOW_MINUTES,
        prefix: str = RATE_LIMIT_PREFIX,
    ) -> None:
        self.item = RateLimitItemPerMinute(capacity, window_minutes)
        self.prefix = prefix
        self._strategy = _LimitsFixedWindow(storage)

    @classmethod
    def from_uri(cls, storage_uri: str, **kwargs) -> FixedWindowRateLimiter:
        logger.info("Rate limiting enabled (storage=%s)", storage_uri.split("://", 1)[0])
        return cls(storage_from_string(storage_uri), **kwargs)

    def limit(self, identifier: str) -> bool:
        return self._strategy.hit(self.item, self.prefix, identifier)


def resolve_client_ip(headers: Mapping[str, str]) -> str:
    """Client IP from proxy headers: first X-Forwarded-For entry, then X-Real-IP."""
    forwarded_for = headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip() or FALLBACK_IP_ADDRESS
    real_ip = (headers.get("X-Real-IP") or "").strip()
    return real_ip or FALLBACK_IP_ADDRESS
