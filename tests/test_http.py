"""Tests for the httpx integration - behavior focused with mock transports."""

import asyncio
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from unittest.mock import MagicMock, patch

import httpx
import pytest

from retrykit.exceptions import (
    AttemptsCountExceededError,
    RateLimitError,
    RequestTimeoutError,
    RetryCancelledError,
    ServerError,
    TransportError,
)
from retrykit.http import parse_retry_after, request_with_retry
from retrykit.retry import AttemptRetrier


# --- Helpers ---


class MalformedPayload(Exception):
    """Non-transport failure raised by the mock transport."""


def scripted_transport(*steps):
    """
    Transport replaying `steps` in order; each step is a status code,
    a (status, headers) pair, or an exception class to raise.
    """
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        step = steps[min(len(calls), len(steps) - 1)]
        calls.append(request)
        if isinstance(step, type) and issubclass(step, httpx.RequestError):
            raise step("scripted failure", request=request)
        if isinstance(step, type) and issubclass(step, Exception):
            raise step("scripted failure")
        if isinstance(step, tuple):
            status, headers = step
            return httpx.Response(status, headers=headers, text="body")
        return httpx.Response(step, text="body")

    return httpx.MockTransport(handler), calls


def fast_retrier(**options) -> AttemptRetrier:
    return AttemptRetrier(min_delay=1, max_delay=10, **options)


# --- request_with_retry ---


class TestRequestWithRetry:
    """Test retry behavior over HTTP."""

    @pytest.mark.asyncio
    async def test_returns_response_on_success(self):
        """Given 200, returns the response after one attempt."""
        transport, calls = scripted_transport(200)

        async with httpx.AsyncClient(transport=transport) as client:
            response = await request_with_retry(
                client, "GET", "http://test/items", retrier=fast_retrier()
            )

        assert response.status_code == 200
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        """Given 503 twice then 200, returns the 200 response."""
        transport, calls = scripted_transport(503, 503, 200)

        async with httpx.AsyncClient(transport=transport) as client:
            response = await request_with_retry(
                client, "GET", "http://test/items", retrier=fast_retrier()
            )

        assert response.status_code == 200
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_does_not_retry_client_errors(self):
        """Given 404, returns it without retrying."""
        transport, calls = scripted_transport(404, 200)

        async with httpx.AsyncClient(transport=transport) as client:
            response = await request_with_retry(
                client, "GET", "http://test/items", retrier=fast_retrier()
            )

        assert response.status_code == 404
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_custom_retryable_status_codes(self):
        """Only the given status codes are retried."""
        transport, calls = scripted_transport(409, 200)

        async with httpx.AsyncClient(transport=transport) as client:
            response = await request_with_retry(
                client,
                "POST",
                "http://test/items",
                retrier=fast_retrier(),
                retryable_status_codes={409},
                json={"name": "x"},
            )

        assert response.status_code == 200
        assert calls[0].method == "POST"

    @pytest.mark.asyncio
    async def test_raises_terminal_error_with_last_failure(self):
        """When attempts run out, the last HTTP failure is attached."""
        transport, calls = scripted_transport(503)

        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(AttemptsCountExceededError) as exc_info:
                await request_with_retry(
                    client,
                    "GET",
                    "http://test/items",
                    retrier=fast_retrier(max_attempts_count=2),
                )

        assert len(calls) == 2
        last_error = exc_info.value.last_error
        assert isinstance(last_error, ServerError)
        assert last_error.status_code == 503

    @pytest.mark.asyncio
    async def test_retry_after_overrides_delay(self):
        """A 429 Retry-After header becomes the next delay."""
        transport, calls = scripted_transport((429, {"Retry-After": "0"}), 200)
        retrier = fast_retrier()

        async with httpx.AsyncClient(transport=transport) as client:
            with patch.object(retrier, "failed", wraps=retrier.failed) as failed:
                response = await request_with_retry(
                    client, "GET", "http://test/items", retrier=retrier
                )

        assert response.status_code == 200
        error, delay = failed.call_args.args
        assert isinstance(error, RateLimitError)
        assert delay == 0.0

    @pytest.mark.asyncio
    async def test_retries_connection_errors(self):
        """Transport failures are reported as TransportError and retried."""
        transport, calls = scripted_transport(httpx.ConnectError, 200)
        retrier = fast_retrier()

        async with httpx.AsyncClient(transport=transport) as client:
            with patch.object(retrier, "failed", wraps=retrier.failed) as failed:
                response = await request_with_retry(
                    client, "GET", "http://test/items", retrier=retrier
                )

        assert response.status_code == 200
        assert isinstance(failed.call_args.args[0], TransportError)

    @pytest.mark.asyncio
    async def test_timeouts_map_to_request_timeout_error(self):
        """Timeouts are retried and surface as RequestTimeoutError."""
        transport, calls = scripted_transport(httpx.ReadTimeout)

        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(AttemptsCountExceededError) as exc_info:
                await request_with_retry(
                    client,
                    "GET",
                    "http://test/items",
                    retrier=fast_retrier(max_attempts_count=3),
                )

        assert len(calls) == 3
        assert isinstance(exc_info.value.last_error, RequestTimeoutError)

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_not_retried(self):
        """Non-transport exceptions end the session and propagate."""
        transport, calls = scripted_transport(MalformedPayload)

        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(MalformedPayload):
                await request_with_retry(
                    client, "GET", "http://test/items", retrier=fast_retrier()
                )

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_not_reported_as_success(self):
        """A non-transport error cancels the session instead of succeeding."""
        transport, _ = scripted_transport(MalformedPayload)
        retrier = fast_retrier()
        on_succeeded = MagicMock()
        on_cancelled = MagicMock()
        retrier.on("succeeded", on_succeeded)
        retrier.on("cancelled", on_cancelled)

        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(MalformedPayload):
                await request_with_retry(
                    client, "GET", "http://test/items", retrier=retrier
                )

        on_succeeded.assert_not_called()
        on_cancelled.assert_called_once_with()
        assert retrier.in_progress is False

    @pytest.mark.asyncio
    async def test_cancel_during_request_frees_retrier(self):
        """Cancelling the caller mid-request ends the retrier's session."""

        async def slow(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(10)
            return httpx.Response(200)

        retrier = fast_retrier()

        async with httpx.AsyncClient(transport=httpx.MockTransport(slow)) as client:
            request = asyncio.ensure_future(
                request_with_retry(client, "GET", "http://test/slow", retrier=retrier)
            )
            await asyncio.sleep(0.05)
            request.cancel()
            with pytest.raises(asyncio.CancelledError):
                await request

        assert retrier.in_progress is False
        assert retrier.listener_count("attempt") == 0
        second = retrier.start()
        retrier.cancel()
        with pytest.raises(RetryCancelledError):
            await second

    @pytest.mark.asyncio
    async def test_retrier_reusable_after_request(self):
        """The retrier is idle and listener-free after a request."""
        transport, _ = scripted_transport(200)
        retrier = fast_retrier()

        async with httpx.AsyncClient(transport=transport) as client:
            await request_with_retry(client, "GET", "http://test/a", retrier=retrier)
            await request_with_retry(client, "GET", "http://test/b", retrier=retrier)

        assert retrier.in_progress is False
        assert retrier.listener_count("attempt") == 0


# --- parse_retry_after ---


class TestParseRetryAfter:
    """Test Retry-After header parsing."""

    def test_delta_seconds(self):
        """Integer seconds convert to milliseconds."""
        assert parse_retry_after("120") == 120_000.0

    @pytest.mark.parametrize("value", [None, "", "soon"])
    def test_missing_or_invalid(self, value):
        """Missing or unparseable values give None."""
        assert parse_retry_after(value) is None

    def test_past_http_date_is_zero(self):
        """A date in the past means retry immediately."""
        past = datetime.now(timezone.utc) - timedelta(minutes=5)
        assert parse_retry_after(format_datetime(past, usegmt=True)) == 0.0

    def test_future_http_date(self):
        """A future date converts to the remaining milliseconds."""
        future = datetime.now(timezone.utc) + timedelta(seconds=30)
        delay = parse_retry_after(format_datetime(future, usegmt=True))

        assert 25_000 < delay <= 30_000
