"""
Retry Utility Module
Rate-limit handling for TestRail requests.

TestRail answers 429 while a rate-limit window is open. The request is
repeated after a fixed interval until the server answers with anything else.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

logger = logging.getLogger(__name__)

RATE_LIMITED_STATUS = 429
DEFAULT_RETRY_INTERVAL = 60.0


class RateLimitPolicy:
    """
    Configuration for rate-limit retry behavior.

    Args:
        interval: Seconds to wait between attempts
        max_attempts: Total attempts before giving up, None for no limit
        sleep: Awaitable delay used between attempts
    """

    def __init__(
        self,
        interval: float = DEFAULT_RETRY_INTERVAL,
        max_attempts: Optional[int] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        if interval < 0:
            raise ValueError("interval must not be negative")
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.interval = interval
        self.max_attempts = max_attempts
        self.sleep = sleep or asyncio.sleep


async def retry_while_rate_limited(
    send: Callable[[], Awaitable[httpx.Response]],
    policy: Optional[RateLimitPolicy] = None,
    description: str = "request",
) -> httpx.Response:
    """
    Issue ``send()`` until the response is not a 429.

    Args:
        send: Zero-argument coroutine factory issuing the identical request
        policy: Retry configuration, defaults to 60 second unbounded retries
        description: Label used in log lines

    Returns:
        The first non-429 response, or the last 429 response once a finite
        ``max_attempts`` is exhausted
    """
    if policy is None:
        policy = RateLimitPolicy()

    attempt = 0
    while True:
        attempt += 1
        response = await send()
        if response.status_code != RATE_LIMITED_STATUS:
            if attempt > 1:
                logger.info(f"{description} succeeded after {attempt} attempts")
            return response

        if policy.max_attempts is not None and attempt >= policy.max_attempts:
            logger.error(
                f"{description} still rate limited after {attempt} attempts, giving up"
            )
            return response

        logger.warning(
            f"{description} rate limited by TestRail (attempt {attempt}). "
            f"Retrying in {policy.interval:.0f} seconds..."
        )
        await policy.sleep(policy.interval)
