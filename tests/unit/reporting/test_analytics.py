"""Tests for usage statistics."""

import hashlib
import logging

import pytest
from aioresponses import aioresponses as aioresponses_cls
from yarl import URL

from run_k6_action.reporting.analytics import (
    UsageReport,
    build_analytics_payload,
    get_usage_stats_id,
    send_analytics,
)
from run_k6_action.reporting.http import RetryOptions

ANALYTICS_URL = "http://stats.test/"
ENV = {
    "GITHUB_ACTION": "run-k6",
    "GITHUB_WORKFLOW": "Load tests",
    "GRAFANA_ANALYTICS_URL": ANALYTICS_URL,
}


@pytest.fixture
def report() -> UsageReport:
    return UsageReport(
        total_test_scripts_executed=2,
        is_cloud_run=False,
        is_using_flags=True,
        is_using_inspect_flags=False,
        fail_fast=True,
        comment_on_pr=False,
        parallel_flag=True,
        cloud_run_locally=True,
        only_verify_scripts=False,
    )


def test_usage_stats_id_is_stable_hash() -> None:
    expected = hashlib.sha256(b"run-k6-Load tests").hexdigest()

    assert get_usage_stats_id(ENV) == expected


def test_build_analytics_payload(report: UsageReport) -> None:
    payload = build_analytics_payload(report, "0.57.0", ENV)

    assert payload["totalTestScriptsExecuted"] == 2
    assert payload["isUsingFlags"] is True
    assert payload["parallelFlag"] is True
    assert payload["source"] == "github-action"
    assert payload["k6Version"] == "0.57.0"
    assert payload["usageStatsId"] == get_usage_stats_id(ENV)


def test_build_analytics_payload_unknown_version(report: UsageReport) -> None:
    assert build_analytics_payload(report, None, ENV)["k6Version"] == "unknown"


async def test_send_analytics_posts_payload(
    report: UsageReport, aioresponses: aioresponses_cls
) -> None:
    aioresponses.post(ANALYTICS_URL, status=200, body="")

    await send_analytics(report, "0.57.0", ENV)

    call = aioresponses.requests[("POST", URL(ANALYTICS_URL))][0]
    assert call.kwargs["json"]["failFast"] is True


async def test_send_analytics_failure_is_logged(
    report: UsageReport,
    aioresponses: aioresponses_cls,
    caplog: pytest.LogCaptureFixture,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Statistics never fail the run."""
    monkeypatch.setattr(
        "run_k6_action.reporting.analytics.ANALYTICS_RETRY",
        RetryOptions(max_retries=1, initial_delay=0),
    )
    aioresponses.post(ANALYTICS_URL, status=503, repeat=True)

    with caplog.at_level(logging.WARNING):
        await send_analytics(report, "0.57.0", ENV)

    assert "Error sending analytics" in caplog.text
