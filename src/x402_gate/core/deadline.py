"""
Overall time budget shared by every blocking step of a paid request.

``requests`` only knows per-call timeouts, so each step asks the deadline for
the time that is left and uses it as that call's timeout.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import DeadlineExceeded

__all__ = ["Deadline", "call_timeout"]


@dataclass(frozen=True)
class Deadline:
    expires_at: float
    clock: Callable[[], float] = time.monotonic

    @classmethod
    def after(cls, seconds: float, *, clock: Callable[[], float] = time.monotonic) -> "Deadline":
        return cls(expires_at=clock() + seconds, clock=clock)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self.clock())

    def expired(self) -> bool:
        return self.clock() >= self.expires_at

    def check(self, stage: str) -> None:
        if self.expired():
            raise DeadlineExceeded(stage)

    def timeout(self, default: Optional[float], stage: str) -> float:
        """
        Per-call timeout: the smaller of ``default`` and the time left.

        Raises :class:`DeadlineExceeded` if nothing is left.
        """
        remaining = self.remaining()
        if remaining <= 0:
            raise DeadlineExceeded(stage)
        if default is None:
            return remaining
        return min(default, remaining)


def call_timeout(deadline: Optional[Deadline], default: Optional[float], stage: str) -> Optional[float]:
    if deadline is None:
        return default
    return deadline.timeout(default, stage)
