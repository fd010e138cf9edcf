"""Caller-supplied time budget threaded through storage calls"""

import time
from typing import Callable, Optional
from billflow.domain.exceptions import DeadlineExceededError


class Deadline:
    """Absolute point on a monotonic clock after which storage calls must not start"""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires_at = clock() + seconds

    @classmethod
    def from_seconds(cls, seconds: Optional[float]) -> Optional["Deadline"]:
        """None or a non-positive budget means no deadline"""
        if not seconds or seconds <= 0:
            return None
        return cls(seconds)

    def remaining(self) -> float:
        return max(self._expires_at - self._clock(), 0.0)

    def expired(self) -> bool:
        return self._clock() >= self._expires_at

    def check(self, step: str) -> None:
        if self.expired():
            raise DeadlineExceededError(f"Deadline exceeded before {step}")
