from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RetryDecision:
    """What a retry policy decided after a failed attempt."""

    should_retry: bool
    delay_seconds: float = 0.0


RetryPolicy = Callable[[BaseException, int], RetryDecision]
"""Policy: (error, attempt number starting at 1) -> decision."""


def no_retry(_error: BaseException, _attempt: int) -> RetryDecision:
    return RetryDecision(should_retry=False)


def exponential_backoff(
    *,
    max_attempts: int = 3,
    initial_delay_seconds: float = 2.0,
    max_delay_seconds: float = 30.0,
) -> RetryPolicy:
    """Build a policy retrying up to `max_attempts` total attempts.

    The delay before attempt n+1 is
    ``min(initial_delay_seconds * 2 ** (n - 1), max_delay_seconds)``.
    """

    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def policy(_error: BaseException, attempt: int) -> RetryDecision:
        if attempt >= max_attempts:
            return RetryDecision(should_retry=False)
        delay = min(initial_delay_seconds * 2 ** (attempt - 1), max_delay_seconds)
        return RetryDecision(should_retry=True, delay_seconds=delay)

    return policy
