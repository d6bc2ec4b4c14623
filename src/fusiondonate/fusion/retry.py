"""Rate-limit retry for settlement provider calls.

Only HTTP 429 is treated as transient: the call is retried up to
``retries`` times with a linearly growing delay (1s, 2s, 3s), then the error
propagates. Every other failure propagates immediately.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from fusiondonate.fusion.client import FusionAPIError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RATE_LIMIT_RETRIES = 3
RETRY_BASE_DELAY = 1.0


async def with_rate_limit_retry(
    operation: Callable[..., Awaitable[T]],
    *args,
    retries: int = MAX_RATE_LIMIT_RETRIES,
    base_delay: float = RETRY_BASE_DELAY,
    description: str = "",
    **kwargs,
) -> T:
    """Await ``operation(*args, **kwargs)``, retrying on rate limiting."""
    label = description or getattr(operation, "__name__", "provider call")
    retry = 0
    while True:
        try:
            return await operation(*args, **kwargs)
        except FusionAPIError as e:
            if not e.is_rate_limited or retry >= retries:
                raise
            retry += 1
            delay = base_delay * retry
            logger.warning(
                f"Rate limited on {label}. Retrying in {delay:.0f}s "
                f"({retries - retry} retries left after this one)"
            )
            await asyncio.sleep(delay)
