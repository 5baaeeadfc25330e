"""Bounded exponential backoff with jitter, and the cancellation token it honours."""

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from .errors import ClassifiedError, NonRetryableError, OperationCancelled, classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """
    Cancellation signal shared by every task of one run.

    The token fires either when ``cancel`` is called or when its optional
    deadline passes. Waiting on it is the cancellable sleep used between
    retry attempts.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._reason: Optional[str] = None
        self._lock = threading.Lock()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self, reason: str = "operation cancelled") -> None:
        with self._lock:
            if self._reason is None:
                self._reason = reason
        self._event.set()

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

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if the token fired meanwhile."""
        remaining = self.remaining()
        if remaining is not None and remaining <= seconds:
            if not self._event.wait(remaining):
                self.cancel("deadline exceeded")
            return True
        self._event.wait(seconds)
        return self.cancelled

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelled(self._reason or "operation cancelled")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Immutable retry configuration.

    Attributes:
        max_attempts: Retries after the first try (total tries = max_attempts + 1)
        initial_interval: Backoff before the first retry, in seconds
        max_interval: Upper bound of any single backoff, in seconds
        multiplier: Growth factor applied per retry
        jitter_factor: Fraction of symmetric randomization around the interval
    """

    max_attempts: int = 3
    initial_interval: float = 1.0
    max_interval: float = 30.0
    multiplier: float = 2.0
    jitter_factor: float = 0.1

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if self.initial_interval < 0 or self.max_interval < 0:
            raise ValueError("Backoff intervals must be non-negative")
        if self.multiplier <= 1:
            raise ValueError("multiplier must be greater than 1")
        if not 0 <= self.jitter_factor <= 1:
            raise ValueError("jitter_factor must be between 0 and 1")

    @property
    def total_attempts(self) -> int:
        return self.max_attempts + 1

    def base_interval(self, retry_index: int) -> float:
        """Un-jittered backoff before retry ``retry_index`` (0-indexed)."""
        return min(self.max_interval, self.initial_interval * (self.multiplier ** retry_index))


DEFAULT_RETRY_POLICY = RetryPolicy()


class Retrier:
    """Runs a zero-argument operation under a ``RetryPolicy``."""

    def __init__(
        self,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        classifier: Callable[[BaseException], ClassifiedError] = classify_error,
        rng: Optional[random.Random] = None,
    ):
        self.policy = policy
        self.classifier = classifier
        self._rng = rng or random.Random()
        self.attempts = 0

    def backoff_interval(self, retry_index: int) -> float:
        interval = self.policy.base_interval(retry_index)
        jitter = 1.0 + self.policy.jitter_factor * (2 * self._rng.random() - 1)
        return min(self.policy.max_interval, interval * jitter)

    def execute(
        self,
        operation: Callable[[], T],
        token: Optional[CancellationToken] = None,
        description: str = "operation",
    ) -> T:
        """
        Call ``operation`` until it succeeds, fails non-retryably or the
        attempt budget is spent.

        Returns:
            The operation's result

        Raises:
            OperationCancelled: The token fired before an attempt or during backoff
            NonRetryableError: First non-retryable failure, no further attempts
            RetryableError: Last failure once all attempts are exhausted
        """
        token = token or CancellationToken()
        total = self.policy.total_attempts
        self.attempts = 0
        last_error: Optional[ClassifiedError] = None

        for attempt in range(total):
            token.raise_if_cancelled()
            self.attempts += 1
            try:
                return operation()
            except Exception as e:
                if token.cancelled:
                    raise OperationCancelled(token.reason or "operation cancelled") from e
                classified = self.classifier(e)

            if isinstance(classified, OperationCancelled):
                raise classified
            if isinstance(classified, NonRetryableError) or not classified.retryable:
                logger.debug(f"{description} failed with non-retryable error: {classified}")
                raise classified

            last_error = classified
            if attempt == total - 1:
                break

            delay = self.backoff_interval(attempt)
            logger.warning(
                f"Retrying {description} after {delay:.2f}s "
                f"(attempt {attempt + 1}/{total}): {classified}"
            )
            if token.wait(delay):
                raise OperationCancelled(token.reason or "operation cancelled")

        logger.error(f"Max retries reached for {description}. Last error: {last_error}")
        raise last_error
