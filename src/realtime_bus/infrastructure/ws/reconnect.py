from __future__ import annotations

import random
from dataclasses import dataclass

from realtime_bus.config import Settings

# 2 ** attempt overflows a float past ~1024; beyond this the ceiling is max_delay anyway
_MAX_EXPONENT = 32


@dataclass(frozen=True, slots=True)
class ReconnectPolicy:
    """Exponential backoff with full jitter between re-dials."""

    base_delay: float = 0.5
    max_delay: float = 30.0
    max_attempts: int | None = None

    def delay(self, attempt: int) -> float | None:
        """Seconds to wait before re-dial number ``attempt`` (0-based), or None to give up."""
        if self.max_attempts is not None and attempt >= self.max_attempts:
            return None
        ceiling = min(self.base_delay * (2 ** min(attempt, _MAX_EXPONENT)), self.max_delay)
        return random.uniform(0, ceiling)

    @classmethod
    def from_settings(cls, settings: Settings) -> ReconnectPolicy | None:
        if not settings.WS_RECONNECT:
            return None
        return cls(
            base_delay=settings.WS_RECONNECT_BASE_DELAY,
            max_delay=settings.WS_RECONNECT_MAX_DELAY,
            max_attempts=settings.WS_RECONNECT_MAX_ATTEMPTS,
        )
