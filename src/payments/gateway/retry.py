"""Caller-side retries for gateway calls.

Only transport failures are retried. A ``GatewayError`` means the gateway
answered and refused; repeating the request will not change that.
"""

import time
from collections.abc import Callable
from typing import TypeVar

import httpx
import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def retry_with_backoff(
    call: Callable[[], T],
    attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``call``, retrying ``httpx.TransportError`` with exponential backoff."""
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return call()
        except httpx.TransportError as exc:
            if attempt == attempts:
                logger.warning("Gateway call failed, giving up", attempts=attempts, error=str(exc))
                raise
            delay = min(base_delay * 2 ** (attempt - 1), max_delay)
            logger.info("Gateway call failed, retrying", attempt=attempt, delay=delay, error=str(exc))
            sleep(delay)
    raise AssertionError("unreachable")
