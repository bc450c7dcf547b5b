"""
Retry helper shared by every call site that talks over an unreliable network.
"""

import logging
import time
from typing import Callable, Tuple, Type, TypeVar

from ..exceptions import TransientNetworkError

T = TypeVar("T")

logger = logging.getLogger(__name__)


def retry_with_backoff(
    fn: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (TransientNetworkError,),
    sleep: Callable[[float], None] = time.sleep,
    description: str = "operation",
) -> T:
    """
    Call ``fn`` and retry it with exponential backoff.

    The first call is followed by at most ``max_retries`` retries, waiting
    ``base_delay * 2**attempt`` seconds before each one. Only exceptions in
    ``retry_on`` are retried; anything else propagates immediately. When the
    budget is exhausted the last error is re-raised.

    Args:
        fn: Zero-argument callable to invoke.
        max_retries: Number of retries after the first attempt.
        base_delay: Delay before the first retry, in seconds.
        retry_on: Exception types considered transient.
        sleep: Sleep function (injectable for tests and cooperative runtimes).
        description: Label used in log messages.

    Returns:
        Whatever ``fn`` returns on the first successful attempt.
    """
    attempt = 0
    while True:
        try:
            return fn()
        except retry_on as e:
            if attempt >= max_retries:
                logger.error(f"{description} failed after {attempt + 1} attempts: {e}")
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                f"{description} attempt {attempt + 1}/{max_retries + 1} failed ({e}), "
                f"retrying in {delay:g}s"
            )
            sleep(delay)
            attempt += 1
