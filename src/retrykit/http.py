"""
httpx integration for AttemptRetrier.

Retries requests on transport errors and retryable status codes. A 429
response's Retry-After header overrides the next delay.
"""

import asyncio
import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Iterable

import httpx

from .exceptions import (
    HTTPRetryError,
    RateLimitError,
    RequestTimeoutError,
    ServerError,
    TransportError,
)
from .retry import AttemptRetrier, RetrierConfig

logger = logging.getLogger(__name__)

DEFAULT_RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def parse_retry_after(value: str | None) -> float | None:
    """
    Parse a Retry-After header value.

    Args:
        value: Delta seconds or an HTTP date

    Returns:
        Delay in milliseconds, or None if absent or unparseable
    """
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return int(value) * 1000.0
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    delta = (when - datetime.now(timezone.utc)).total_seconds()
    return max(0.0, delta * 1000)


def _status_error(response: httpx.Response) -> HTTPRetryError:
    url = str(response.request.url)
    status = response.status_code
    if status == 429:
        return RateLimitError(
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
            status_code=status,
            url=url,
        )
    return ServerError(f"Server error: {response.reason_phrase}", status_code=status, url=url)


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    retrier: AttemptRetrier | None = None,
    retryable_status_codes: Iterable[int] = DEFAULT_RETRYABLE_STATUS_CODES,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send a request, retrying transient failures.

    Args:
        client: Client used for every attempt
        method: HTTP method
        url: Request URL
        retrier: Retry policy (default: conservative preset)
        retryable_status_codes: Status codes reported as failed attempts
        **kwargs: Passed to client.request()

    Returns:
        The first response whose status is not retryable

    Raises:
        RetryTerminatedError: When the retrier's limits are reached; the
            last HTTP failure is available as `last_error`
        Exception: Any non-transport error raised by the request; it cancels
            the session without retrying
    """
    retrier = retrier or AttemptRetrier(RetrierConfig.conservative())
    retryable = frozenset(retryable_status_codes)
    tasks: set[asyncio.Future] = set()
    unexpected: list[BaseException] = []

    async def send() -> httpx.Response:
        return await client.request(method, url, **kwargs)

    def route(task: asyncio.Future) -> None:
        tasks.discard(task)
        error = asyncio.CancelledError() if task.cancelled() else task.exception()
        if session.done():
            return

        if isinstance(error, asyncio.CancelledError):
            retrier.failed(error)
        elif isinstance(error, httpx.TimeoutException):
            report(RequestTimeoutError(f"Request timed out: {error}", url=url))
        elif isinstance(error, httpx.TransportError):
            report(TransportError(f"Failed to connect: {error}", url=url))
        elif error is not None:
            # Not transient: cancel the session and re-raise below.
            unexpected.append(error)
            session.cancel()
        else:
            response = task.result()
            if response.status_code in retryable:
                closing = asyncio.ensure_future(response.aclose())
                tasks.add(closing)
                closing.add_done_callback(tasks.discard)
                report(_status_error(response))
            else:
                retrier.succeeded(response)

    def report(error: HTTPRetryError) -> None:
        delay = error.retry_after if isinstance(error, RateLimitError) else None
        retrier.failed(error, delay)
        if retrier.pending:
            logger.warning(
                f"[{method} {url}] {error}, "
                f"retrying (attempt {retrier.attempt_index + 1})"
            )

    def on_attempt(attempt_index: int) -> None:
        task = asyncio.ensure_future(send())
        tasks.add(task)
        task.add_done_callback(route)

    retrier.on("attempt", on_attempt)
    try:
        session = retrier.start()
        try:
            return await session
        except asyncio.CancelledError:
            # Cancelling the session future has already ended the session.
            for task in list(tasks):
                task.remove_done_callback(route)
                task.cancel()
            if unexpected:
                raise unexpected[0] from None
            raise
    finally:
        retrier.off("attempt", on_attempt)
