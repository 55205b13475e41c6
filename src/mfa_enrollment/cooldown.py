"""Resend cool-down countdown owned by SMS/email setup steps."""

from __future__ import annotations

import math
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class ResendCooldown:
    """Countdown that gates re-sending a verification code.

    The countdown never blocks submitting a code or cancelling the wizard;
    it only tells the step whether "Send code" is available.

    Example:
        ```python
        cooldown = ResendCooldown(60)
        cooldown.start()
        cooldown.enabled    # False
        cooldown.remaining  # 60
        ```
    """

    def __init__(
        self,
        duration_seconds: int,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.duration_seconds = duration_seconds
        self._clock = clock
        self._started_at: float | None = None

    def start(self) -> None:
        """Begin (or restart) the countdown."""
        self._started_at = self._clock()

    def reset(self) -> None:
        """Make sending available immediately."""
        self._started_at = None

    @property
    def remaining(self) -> int:
        """Whole seconds left before sending is available again."""
        if self._started_at is None:
            return 0
        left = self.duration_seconds - (self._clock() - self._started_at)
        return max(0, math.ceil(left))

    @property
    def enabled(self) -> bool:
        """Whether a code may be sent now."""
        return self.remaining == 0


__all__: list[str] = ["ResendCooldown"]
