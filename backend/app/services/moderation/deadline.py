from __future__ import annotations

import threading
import time

from app.services.moderation.errors import ModerationDeadlineExceeded


class Deadline:
    """Request-scoped time budget plus an optional cancellation event.

    Every storage and classifier call takes its timeout from here, and
    the promoter checks it between steps.
    """

    def __init__(
        self,
        timeout_seconds: float | None = None,
        *,
        cancel_event: threading.Event | None = None,
        clock=time.monotonic,
    ):
        self._clock = clock
        self._expires_at = None if timeout_seconds is None else clock() + float(timeout_seconds)
        self.cancel_event = cancel_event

    @classmethod
    def none(cls) -> "Deadline":
        return cls(None)

    @property
    def cancelled(self) -> bool:
        return bool(self.cancel_event is not None and self.cancel_event.is_set())

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        if self.cancelled:
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def check(self, step: str = "") -> None:
        if self.cancelled:
            raise ModerationDeadlineExceeded(f"moderation cancelled before {step or 'next step'}")
        if self.expired:
            raise ModerationDeadlineExceeded(f"moderation deadline exceeded before {step or 'next step'}")

    def timeout_for(self, default: float | None = None) -> float | None:
        remaining = self.remaining()
        if remaining is None:
            return default
        if default is None:
            return remaining
        return min(float(default), remaining)

    def sleep(self, seconds: float, sleeper=time.sleep) -> None:
        """Sleep for ``seconds`` but never past the deadline."""
        if seconds <= 0:
            return
        remaining = self.remaining()
        if remaining is not None and seconds >= remaining:
            raise ModerationDeadlineExceeded("moderation deadline exceeded during backoff")
        if self.cancelled:
            raise ModerationDeadlineExceeded("moderation cancelled during backoff")
        if self.cancel_event is not None and sleeper is time.sleep:
            if self.cancel_event.wait(seconds):
                raise ModerationDeadlineExceeded("moderation cancelled during backoff")
            return
        sleeper(seconds)
        if self.cancelled:
            raise ModerationDeadlineExceeded("moderation cancelled during backoff")
