"""HTTP requests with retry and exponential backoff."""

import logging
from collections.abc import Collection
from dataclasses import dataclass
from functools import partial
from typing import Any

import aiohttp
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

log = logging.getLogger(__name__)


class RequestFailedError(Exception):
    """Raised when a request still fails after all retries."""


class ResponseStatusError(Exception):
    """An error status returned by the server."""

    def __init__(self, status: int, reason: str | None, body: str) -> None:
        self.status = status
        self.reason = reason
        self.body = body
        super().__init__(f"HTTP error {status}: {reason}")


@dataclass(frozen=True, kw_only=True)
class RetryOptions:
    """How often and how fast to retry a failed request."""

    max_retries: int = 3
    initial_delay: float = 1.0
    backoff_factor: float = 2.0
    # Permanent client errors, retrying them cannot succeed
    non_retry_statuses: Collection[int] = frozenset({400, 401, 403, 404, 405, 422})

    @property
    def wait(self) -> wait_exponential:
        """Wait ``initial_delay * backoff_factor ** n`` before retry ``n``."""
        return wait_exponential(
            multiplier=self.initial_delay, exp_base=self.backoff_factor
        )

    def should_retry(self, exc: BaseException) -> bool:
        if isinstance(exc, ResponseStatusError):
            return exc.status not in self.non_retry_statuses
        return isinstance(exc, (aiohttp.ClientError, TimeoutError))


DEFAULT_RETRY_OPTIONS = RetryOptions()


def _describe(exc: BaseException | None) -> str:
    if exc is None:
        return "unknown error"
    return str(exc) or type(exc).__name__


def _log_retry(url: str, max_retries: int, retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    log.info(
        "Request to %s failed: %s. Retrying in %.1fs... (%d/%d)",
        url,
        _describe(exc),
        delay,
        retry_state.attempt_number,
        max_retries,
    )


async def _request_once(
    session: aiohttp.ClientSession, method: str, url: str, **kwargs: Any
) -> Any | None:
    async with session.request(method, url, **kwargs) as response:
        text = await response.text()
        if not response.ok:
            raise ResponseStatusError(response.status, response.reason, text)
        if not text:
            return None
        try:
            return await response.json(content_type=None)
        except ValueError:
            return text


async def request_json(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    retry: RetryOptions = DEFAULT_RETRY_OPTIONS,
    **kwargs: Any,
) -> Any | None:
    """Send a request and return its decoded JSON body.

    Retries network errors and error statuses, except the statuses listed in
    ``retry.non_retry_statuses``.

    Returns:
        The decoded body, the raw text if the body is not JSON, or None when
        the response has a status that is not retried.

    Raises:
        RequestFailedError: If every attempt failed with a retryable error

    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(retry.max_retries + 1),
        wait=retry.wait,
        retry=retry_if_exception(retry.should_retry),
        before_sleep=partial(_log_retry, url, retry.max_retries),
    )

    try:
        return await retrying(_request_once, session, method, url, **kwargs)
    except ResponseStatusError as exc:
        log.info(
            "API request to %s failed with status %s: %s", url, exc.status, exc.body
        )
        return None
    except RetryError as exc:
        raise RequestFailedError(
            f"Request to {url} failed after {retry.max_retries} retries: "
            f"{_describe(exc.last_attempt.exception())}"
        ) from exc
