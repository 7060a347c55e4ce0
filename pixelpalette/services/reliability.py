"""
PixelPalette Reliability & Cancellation
Cancellation tokens and deadlines polled at strip and iteration boundaries.
"""
import threading
import time
from typing import Optional

from loguru import logger

from pixelpalette.errors import InvalidParameterError, OperationCancelledError


class CancellationToken:
    """
    Cooperative cancellation flag with an optional deadline.

    Workers never get interrupted; long-running loops call
    ``raise_if_cancelled`` between units of work instead.
    """

    def __init__(self, deadline: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = deadline
        self._reason: Optional[str] = None

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancellationToken":
        """Create a token that trips once ``seconds`` have elapsed."""
        if seconds <= 0:
            raise InvalidParameterError(f"Timeout must be positive, got {seconds}")
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()
            logger.info(f"Cancellation requested: {reason}")

    @property
    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("deadline exceeded")
            return True
        return False

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def raise_if_cancelled(self, stage: str) -> None:
        if self.cancelled:
            raise OperationCancelledError(f"{stage} cancelled: {self._reason}")


def check_cancelled(token: Optional[CancellationToken], stage: str) -> None:
    """No-op when no token was supplied."""
    if token is not None:
        token.raise_if_cancelled(stage)
