"""Bounded retry loop with a flat backoff between attempts."""

import logging
import time
from typing import Any, Callable, Tuple, Type, Union

from core.state import RetryState

logger = logging.getLogger(__name__)


def run_with_retries(
    attempt_fn: Callable[[RetryState], Any],
    max_attempts: int,
    retry_on: Union[Type[Exception], Tuple[Type[Exception], ...]],
    delay: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "task",
) -> Tuple[Any, RetryState]:
    """Call attempt_fn(retry_state) until it returns or the budget is spent.

    Exceptions listed in retry_on consume one attempt; anything else
    propagates immediately. When the budget is exhausted the last retryable
    error is re-raised with an ``attempts`` attribute attached.

    Returns (result, retry_state).
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    retry = RetryState(max_attempts=max_attempts)
    while not retry.exhausted:
        retry.attempt += 1
        try:
            return attempt_fn(retry), retry
        except retry_on as e:
            retry.last_error = e
            if retry.exhausted:
                break
            logger.warning(
                "[%s] attempt %d/%d failed: %s; retrying in %.1fs",
                label, retry.attempt, retry.max_attempts, e, delay,
            )
            if delay:
                sleep(delay)

    logger.error("[%s] giving up after %d attempt(s): %s", label, retry.attempt, retry.last_error)
    retry.last_error.attempts = retry.attempt
    raise retry.last_error
