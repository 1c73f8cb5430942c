from __future__ import annotations

import random
import time
from dataclasses import dataclass, field

from app.integrations.common import settings_value


def linear_delay(step_seconds: float = 0.5):
    """attempt 1 -> step, attempt 2 -> 2*step, ..."""

    def _delay(attempt: int) -> float:
        return max(0.0, float(step_seconds)) * max(1, int(attempt))

    return _delay


def jittered_exponential(base_seconds: float = 0.25, cap_seconds: float = 5.0, rng=None):
    rng = rng or random.Random()

    def _delay(attempt: int) -> float:
        ceiling = min(float(cap_seconds), float(base_seconds) * (2 ** max(0, int(attempt) - 1)))
        return rng.uniform(0.0, ceiling)

    return _delay


def _no_delay(attempt: int) -> float:
    return 0.0


@dataclass(frozen=True)
class BackoffPolicy:
    max_attempts: int = 3
    delay: object = field(default_factory=linear_delay)
    sleep: object = time.sleep

    def __post_init__(self):
        if int(self.max_attempts) < 1:
            raise ValueError("max_attempts must be >= 1")

    def delay_for(self, attempt: int) -> float:
        return float(self.delay(attempt))

    @classmethod
    def immediate(cls, max_attempts: int = 3) -> "BackoffPolicy":
        return cls(max_attempts=max_attempts, delay=_no_delay, sleep=lambda _s: None)

    @classmethod
    def from_settings(cls, settings) -> "BackoffPolicy":
        attempts = int(settings_value(settings, "MODERATION_PROMOTE_ATTEMPTS", 3) or 3)
        backoff_ms = int(settings_value(settings, "MODERATION_BACKOFF_MS", 500) or 0)
        attempts = max(1, min(attempts, 10))
        backoff_ms = max(0, min(backoff_ms, 10000))
        return cls(max_attempts=attempts, delay=linear_delay(backoff_ms / 1000.0))
