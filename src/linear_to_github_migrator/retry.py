"""Cooperative cancellation and retry-until-success loops.

Both migration phases retry a failing page or issue forever with a fixed
backoff. The only way out of such a loop is a ``CancellationToken`` firing,
either from the interrupt handler installed by the CLI or from the phase
deadline. Cancellation is observed only while waiting, never inside the
operation, so a remote call in flight always runs to completion.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from .exceptions import MigrationCancelled

logger: logging.Logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Thread-safe cancellation flag with an optional monotonic deadline."""

    def __init__(self, deadline: float | None = None) -> None:
        self._event: threading.Event = threading.Event()
        self.deadline: float | None = deadline

    @classmethod
    def with_timeout(cls, seconds: float | None) -> CancellationToken:
        return cls(time.monotonic() + seconds if seconds is not None else None)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self._deadline_passed()

    def _deadline_passed(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancelled or past the deadline."""
        end = time.monotonic() + seconds
        if self.deadline is not None:
            end = min(end, self.deadline)
        # Event.wait may wake marginally early; keep waiting until ``end``.
        while not self._event.wait(max(0.0, end - time.monotonic())):
            if time.monotonic() >= end:
                return self._deadline_passed()
        return True

    def pause(self, seconds: float) -> None:
        """Sleep up to ``seconds``; raise MigrationCancelled if cancelled meanwhile."""
        if self.wait(seconds):
            raise MigrationCancelled(self.reason)

    @property
    def reason(self) -> str:
        if self._event.is_set():
            return "interrupted"
        return "deadline exceeded"


@dataclass(frozen=True)
class BackoffPolicy:
    """Fixed delay between attempts."""

    interval: float = 300.0

    def delay(self, attempt: int) -> float:  # noqa: ARG002 - fixed backoff ignores the attempt number
        return self.interval


def retry_until_cancelled(
    operation: Callable[[], T],
    policy: BackoffPolicy,
    token: CancellationToken,
    *,
    retry_on: tuple[type[BaseException], ...],
    describe: str,
) -> T:
    """Call ``operation`` until it succeeds.

    Args:
        operation: Zero-argument callable performing one attempt
        policy: Delay between attempts
        token: Checked at every wait; firing it ends the loop
        retry_on: Exception types considered transient; anything else propagates
        describe: Short description for log messages (e.g., "ENG-12: export")

    Returns:
        The operation's result

    Raises:
        MigrationCancelled: If the token fires while waiting to retry
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return operation()
        except retry_on as e:
            delay = policy.delay(attempt)
            logger.error(f"{describe} failed (attempt {attempt}, retrying in {delay:g}s): {e}")
            if token.wait(delay):
                logger.warning(f"{describe}: giving up, {token.reason}")
                raise MigrationCancelled(token.reason) from e
