"""Client for the Grafana Cloud k6 results API."""

import logging
import re
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import aiohttp
from pydantic import ValidationError

from run_k6_action.config import CloudSettings
from run_k6_action.models.summary import Check, ChecksResponse, TestRunSummary
from run_k6_action.reporting.http import (
    DEFAULT_RETRY_OPTIONS,
    RequestFailedError,
    RetryOptions,
    request_json,
)

log = logging.getLogger(__name__)

TEST_RUN_ID_PATTERN = re.compile(r"/runs/(\d+)$")


def extract_test_run_id(test_run_url: str) -> str | None:
    """Extract the test run ID from a test run URL.

    ``https://xxx.grafana.net/a/k6-app/runs/4050582`` gives ``"4050582"``.
    """
    match = TEST_RUN_ID_PATTERN.search(test_run_url)
    return match.group(1) if match else None


@dataclass(frozen=True, kw_only=True)
class CloudResultsClient:
    """Fetches the results of finished cloud test runs."""

    settings: CloudSettings
    session: aiohttp.ClientSession = field(repr=False)
    retry: RetryOptions = DEFAULT_RETRY_OPTIONS

    @classmethod
    @asynccontextmanager
    async def from_settings(
        cls, settings: CloudSettings, retry: RetryOptions = DEFAULT_RETRY_OPTIONS
    ) -> AsyncGenerator["CloudResultsClient", None]:
        """Create client with managed session lifecycle."""
        headers = {
            "Authorization": f"Token {settings.token.get_secret_value()}",
            "Content-Type": "application/json",
        }
        async with aiohttp.ClientSession(headers=headers) as session:
            yield cls(settings=settings, session=session, retry=retry)

    def _url(self, test_run_id: str, resource: str) -> str:
        base_url = self.settings.base_url.rstrip("/")
        return f"{base_url}/test_runs({test_run_id})/{resource}"

    async def fetch_test_run_summary(self, test_run_id: str) -> TestRunSummary | None:
        """Fetch the metrics summary of a test run, None if unavailable."""
        url = self._url(test_run_id, "result_summary")
        data = await self._get(url, params={"$select": "metrics_summary"})
        if not isinstance(data, dict):
            return None

        try:
            return TestRunSummary.model_validate(data)
        except ValidationError as exc:
            log.warning("Unexpected result summary for run %s: %s", test_run_id, exc)
            return None

    async def fetch_checks(self, test_run_id: str) -> Sequence[Check]:
        """Fetch the checks of a test run, empty if unavailable."""
        data = await self._get(self._url(test_run_id, "checks"))
        if not isinstance(data, dict):
            return []

        try:
            return ChecksResponse.model_validate(data).value
        except ValidationError as exc:
            log.warning("Unexpected checks for run %s: %s", test_run_id, exc)
            return []

    async def _get(self, url: str, **kwargs: object) -> object | None:
        try:
            return await request_json(self.session, "GET", url, self.retry, **kwargs)
        except RequestFailedError as exc:
            log.error("Exception during API request to %s: %s", url, exc)
            return None
