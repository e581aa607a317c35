"""
Bounded retry with linear or exponential backoff.

One helper drives every retry loop in the provisioner:
- topic batch creation: linear backoff (2s, 4s, 6s, ...), not cancellable
- gateway session creation: exponential backoff capped at 20s, cancellable

An attempt signals "try again" by raising AttemptFailed. Any other
exception propagates immediately without consuming further attempts.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, TypeVar

from libs.errors import DeploymentCancelled, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AttemptFailed(Exception):
    """Raised by an attempt callable to request another attempt."""

    def __str__(self) -> str:
        message = super().__str__()
        return f"{message}: {self.__cause__}" if self.__cause__ else message


@dataclass(frozen=True)
class RetryPolicy:
    """
    Shape of a bounded retry loop.

    The delay after attempt n is `d(n) = min(cap, d(n-1) * multiplier + increment)`
    with `d(1) = initial_delay`. Linear backoff uses multiplier=1 and a
    positive increment; exponential backoff uses multiplier>1.
    """

    max_attempts: int
    initial_delay: float
    multiplier: float = 1.0
    increment: float = 0.0
    cap: Optional[float] = None
    cancellable: bool = False

    def delays(self) -> Iterator[float]:
        """Yield one delay per attempt (the last one is never slept)."""
        delay = self.initial_delay
        for _ in range(self.max_attempts):
            yield min(delay, self.cap) if self.cap is not None else delay
            delay = delay * self.multiplier + self.increment

    @classmethod
    def linear(cls, max_attempts: int, step: float) -> "RetryPolicy":
        return cls(max_attempts=max_attempts, initial_delay=step, increment=step)

    @classmethod
    def exponential(
        cls,
        max_attempts: int,
        initial_delay: float,
        cap: float,
        multiplier: float = 2.0,
        cancellable: bool = True,
    ) -> "RetryPolicy":
        return cls(
            max_attempts=max_attempts,
            initial_delay=initial_delay,
            multiplier=multiplier,
            cap=cap,
            cancellable=cancellable,
        )


def _raise_if_cancelled(operation: str, cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise DeploymentCancelled(f"{operation} cancelled")


def retry_call(
    operation: str,
    attempt_fn: Callable[[int], T],
    policy: RetryPolicy,
    *,
    cancel_event: Optional[threading.Event] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run `attempt_fn(attempt)` until it returns or the policy is exhausted.

    Args:
        operation: Human-readable name used in logs and errors.
        attempt_fn: Callable receiving the 1-based attempt number.
        policy: Attempt budget and backoff shape.
        cancel_event: Observed before every attempt and during backoff
            sleeps when the policy is cancellable.
        sleep: Sleep function for non-cancellable waits.

    Returns:
        Whatever the first successful attempt returned.

    Raises:
        RetryExhaustedError: every attempt raised AttemptFailed.
        DeploymentCancelled: cancellation was observed.
    """
    watch = cancel_event if policy.cancellable else None
    last_error: Optional[BaseException] = None

    for attempt, delay in enumerate(policy.delays(), start=1):
        _raise_if_cancelled(operation, watch)

        try:
            return attempt_fn(attempt)
        except AttemptFailed as exc:
            last_error = exc
            logger.warning(
                "Attempt failed.",
                extra={
                    "operation": operation,
                    "attempt": attempt,
                    "max_attempts": policy.max_attempts,
                    "error": str(last_error),
                },
            )

        if attempt >= policy.max_attempts:
            break

        logger.info(
            "Retrying after backoff.",
            extra={"operation": operation, "attempt": attempt, "wait_sec": delay},
        )
        if watch is not None:
            if watch.wait(delay):
                raise DeploymentCancelled(f"{operation} cancelled during backoff")
        else:
            sleep(delay)

    raise RetryExhaustedError(operation, policy.max_attempts, last_error)
