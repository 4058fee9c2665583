"""
Retry policy for rate-limited (HTTP 429) and transient network failures.

Delays use the server's Retry-After header when present, otherwise
exponential backoff: base_delay * 2**(attempt - 1) plus up to 10% jitter.
The retry sleeps block the calling thread.
"""

import logging
import random
import time
from typing import Callable

import requests

from ..errors import NetworkError, RateLimitError
from .response import Response

logger = logging.getLogger(__name__)

RETRYABLE_EXCEPTIONS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


class RateLimiter:
    """
    Wraps a single HTTP attempt with retry-on-429 and retry-on-network-error.

    A 429 is never returned to the caller; every other status is returned
    as-is for classification.
    """

    MAX_RETRIES = 3
    BASE_DELAY = 1.0  # seconds
    JITTER = 0.1

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        base_delay: float = BASE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep

    def with_retry(self, func: Callable[[], Response]) -> Response:
        """
        Call func until it returns a non-429 response.

        Args:
            func: Zero-argument callable performing exactly one HTTP attempt

        Returns:
            The first response whose status is not 429

        Raises:
            RateLimitError: 429 persisted past max_retries
            NetworkError: Connection failures persisted past max_retries
        """
        retries = 0

        while True:
            try:
                response = func()
            except RETRYABLE_EXCEPTIONS as e:
                retries += 1
                if retries > self.max_retries:
                    logger.error(f"Network error after {self.max_retries} retries: {e}")
                    raise NetworkError(
                        f"Network error after {self.max_retries} retries: {e}"
                    ) from e

                delay = self.exponential_backoff(retries)
                logger.warning(
                    f"Network error ({type(e).__name__}), retry {retries}/{self.max_retries} in {delay:.2f}s"
                )
                self._sleep(delay)
                continue

            if response.status_code != 429:
                return response

            retries += 1
            if retries > self.max_retries:
                logger.error(f"Rate limit exceeded after {self.max_retries} retries")
                raise RateLimitError(
                    f"Rate limit exceeded after {self.max_retries} retries",
                    response,
                    retries=self.max_retries,
                )

            delay = self.calculate_delay(response, retries)
            logger.warning(f"Rate limited (429), retry {retries}/{self.max_retries} in {delay:.2f}s")
            self._sleep(delay)

    def calculate_delay(self, response: Response, retry_count: int) -> float:
        """Retry-After when positive, exponential backoff otherwise."""
        retry_after = response.retry_after
        if retry_after and retry_after > 0:
            return float(retry_after)
        return self.exponential_backoff(retry_count)

    def exponential_backoff(self, retry_count: int) -> float:
        delay = self.base_delay * (2 ** (retry_count - 1))
        return delay + random.random() * delay * self.JITTER
