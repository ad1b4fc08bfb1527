"""Tests for HTTP retry helper."""

import logging
from unittest.mock import Mock

import aiohttp
import pytest
from aioresponses import aioresponses as aioresponses_cls
from yarl import URL

from run_k6_action.reporting.http import (
    RequestFailedError,
    ResponseStatusError,
    RetryOptions,
    request_json,
)

URL_UNDER_TEST = "http://api.test/resource"
NO_DELAY = RetryOptions(max_retries=2, initial_delay=0)


def request_count(aioresponses: aioresponses_cls, method: str = "GET") -> int:
    return len(aioresponses.requests.get((method, URL(URL_UNDER_TEST)), []))


def test_retry_wait_grows_exponentially() -> None:
    options = RetryOptions(initial_delay=1.0, backoff_factor=2.0)

    waits = [options.wait(Mock(attempt_number=attempt)) for attempt in (1, 2, 3)]

    assert waits == [1.0, 2.0, 4.0]


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (ResponseStatusError(503, "Service Unavailable", ""), True),
        (ResponseStatusError(404, "Not Found", ""), False),
        (aiohttp.ClientConnectionError("reset"), True),
        (TimeoutError(), True),
        (ValueError("bug"), False),
    ],
)
def test_should_retry(exc: BaseException, expected: bool) -> None:
    assert RetryOptions().should_retry(exc) is expected


class TestRequestJson:
    """Tests for request_json."""

    async def test_returns_decoded_json(self, aioresponses: aioresponses_cls) -> None:
        aioresponses.get(URL_UNDER_TEST, payload={"id": 1})

        async with aiohttp.ClientSession() as session:
            result = await request_json(session, "GET", URL_UNDER_TEST, NO_DELAY)

        assert result == {"id": 1}

    async def test_returns_none_for_empty_body(
        self, aioresponses: aioresponses_cls
    ) -> None:
        aioresponses.post(URL_UNDER_TEST, status=204, body="")

        async with aiohttp.ClientSession() as session:
            result = await request_json(session, "POST", URL_UNDER_TEST, NO_DELAY)

        assert result is None

    async def test_returns_text_when_not_json(
        self, aioresponses: aioresponses_cls
    ) -> None:
        aioresponses.get(URL_UNDER_TEST, body="accepted")

        async with aiohttp.ClientSession() as session:
            result = await request_json(session, "GET", URL_UNDER_TEST, NO_DELAY)

        assert result == "accepted"

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 405, 422])
    async def test_does_not_retry_client_errors(
        self, aioresponses: aioresponses_cls, status: int
    ) -> None:
        """Permanent errors return None after a single attempt."""
        aioresponses.get(URL_UNDER_TEST, status=status, body="nope", repeat=True)

        async with aiohttp.ClientSession() as session:
            result = await request_json(session, "GET", URL_UNDER_TEST, NO_DELAY)

        assert result is None
        assert request_count(aioresponses) == 1

    async def test_retries_server_errors(
        self, aioresponses: aioresponses_cls
    ) -> None:
        aioresponses.get(URL_UNDER_TEST, status=502)
        aioresponses.get(URL_UNDER_TEST, status=500)
        aioresponses.get(URL_UNDER_TEST, payload={"ok": True})

        async with aiohttp.ClientSession() as session:
            result = await request_json(session, "GET", URL_UNDER_TEST, NO_DELAY)

        assert result == {"ok": True}
        assert request_count(aioresponses) == 3

    async def test_retries_connection_errors(
        self, aioresponses: aioresponses_cls
    ) -> None:
        aioresponses.get(
            URL_UNDER_TEST, exception=aiohttp.ClientConnectionError("reset")
        )
        aioresponses.get(URL_UNDER_TEST, payload=[1, 2])

        async with aiohttp.ClientSession() as session:
            result = await request_json(session, "GET", URL_UNDER_TEST, NO_DELAY)

        assert result == [1, 2]

    async def test_raises_after_all_retries(
        self, aioresponses: aioresponses_cls
    ) -> None:
        aioresponses.get(URL_UNDER_TEST, status=503, repeat=True)

        async with aiohttp.ClientSession() as session:
            with pytest.raises(RequestFailedError, match="after 2 retries"):
                await request_json(session, "GET", URL_UNDER_TEST, NO_DELAY)

        assert request_count(aioresponses) == 3

    async def test_logs_each_retry(
        self, aioresponses: aioresponses_cls, caplog: pytest.LogCaptureFixture
    ) -> None:
        aioresponses.get(URL_UNDER_TEST, status=500)
        aioresponses.get(URL_UNDER_TEST, payload={})

        with caplog.at_level(logging.INFO):
            async with aiohttp.ClientSession() as session:
                await request_json(session, "GET", URL_UNDER_TEST, NO_DELAY)

        assert f"Request to {URL_UNDER_TEST} failed: HTTP error 500" in caplog.text
        assert "Retrying in 0.0s... (1/2)" in caplog.text

    async def test_client_error_body_is_logged(
        self, aioresponses: aioresponses_cls, caplog: pytest.LogCaptureFixture
    ) -> None:
        aioresponses.get(URL_UNDER_TEST, status=422, body="invalid filter")

        with caplog.at_level(logging.INFO):
            async with aiohttp.ClientSession() as session:
                await request_json(session, "GET", URL_UNDER_TEST, NO_DELAY)

        assert "failed with status 422: invalid filter" in caplog.text
