# shoppy/http_client.py
"""
Outbound HTTP with bounded retries.

Transport errors and 429/5xx answers are retried with exponential backoff
plus jitter; any other 4xx is returned to the caller on the first attempt.
"""
import logging
from typing import Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from .config import HTTP_MAX_ATTEMPTS

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class RetryableStatusError(Exception):
    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code} from {response.request.url}")
        self.response = response


def build_retrying(max_attempts: int = HTTP_MAX_ATTEMPTS, wait: Optional[wait_base] = None) -> AsyncRetrying:
    return AsyncRetrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait or wait_exponential_jitter(initial=0.5, max=5, jitter=0.5),
        retry=retry_if_exception_type((httpx.TransportError, RetryableStatusError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_attempts: int = HTTP_MAX_ATTEMPTS,
    wait: Optional[wait_base] = None,
    **kwargs,
) -> httpx.Response:
    """Send a request, retrying transient failures. Raises the last error once attempts run out."""
    async for attempt in build_retrying(max_attempts, wait):
        with attempt:
            response = await client.request(method, url, **kwargs)
            if response.status_code in RETRYABLE_STATUS_CODES:
                raise RetryableStatusError(response)
    return response
