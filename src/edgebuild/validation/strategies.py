"""
Retry helpers for flaky operations such as network fetches.
"""

import logging
import time
from typing import Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


def simple_retry(
    func: Callable[[], T],
    max_attempts: int = 3,
    delay: float = 1.0,
    context: str = "operation",
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    """
    Call ``func`` until it succeeds or ``max_attempts`` is reached.

    Args:
        func: Function to retry
        max_attempts: Maximum number of attempts
        delay: Delay between attempts in seconds
        context: Context description for log messages
        retry_on: Exception types that trigger another attempt

    Returns:
        Result from func if successful

    Raises:
        Exception: Last exception if all attempts fail
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_exception = None

    for attempt in range(max_attempts):
        try:
            result = func()
            if attempt > 0:
                logger.info(f"Operation '{context}' succeeded on attempt {attempt + 1}")
            return result
        except retry_on as e:
            last_exception = e
            if attempt < max_attempts - 1:
                logger.warning(f"Attempt {attempt + 1}/{max_attempts} failed for {context}: {e}")
                time.sleep(delay)
            else:
                logger.error(f"All {max_attempts} attempts failed for {context}: {e}")

    raise last_exception

