"""Shared HTTP request retry utilities using tenacity."""

from dataclasses import dataclass

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

# Upstream answers worth another attempt
RETRYABLE_STATUS_CODES = frozenset({502, 503, 504})


@dataclass
class RequestRetryConfig:
    """Configuration for HTTP request retries with exponential backoff."""

    max_attempts: int = 3
    min_wait: float = 1.0
    max_wait: float = 10.0
    multiplier: float = 1.0
    retry_server_errors: bool = False


def is_retryable_request_error(exc: BaseException, *, retry_server_errors: bool = False) -> bool:
    """Network errors are always retried; gateway errors only when enabled."""
    if isinstance(exc, httpx.RequestError):
        return True
    if retry_server_errors and isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return False


def get_request_retrying(config: RequestRetryConfig | None = None) -> AsyncRetrying:
    """Get configured AsyncRetrying for failed HTTP requests.

    Usage:
        async for attempt in get_request_retrying():
            with attempt:
                response = await client.get(url)
                response.raise_for_status()
    """
    cfg = config or RequestRetryConfig()
    return AsyncRetrying(
        retry=retry_if_exception(
            lambda e: is_retryable_request_error(e, retry_server_errors=cfg.retry_server_errors)
        ),
        stop=stop_after_attempt(cfg.max_attempts),
        wait=wait_exponential(
            multiplier=cfg.multiplier,
            min=cfg.min_wait,
            max=cfg.max_wait,
        ),
        reraise=True,
    )
