"""Anonymous usage statistics."""

import hashlib
import logging
import os
import platform
from collections.abc import Mapping
from dataclasses import asdict, dataclass

import aiohttp

from run_k6_action.reporting.http import RequestFailedError, RetryOptions, request_json

log = logging.getLogger(__name__)

ANALYTICS_SOURCE = "github-action"
DEFAULT_ANALYTICS_URL = "https://stats.grafana.org"
ANALYTICS_RETRY = RetryOptions(max_retries=1)


@dataclass(frozen=True, kw_only=True)
class UsageReport:
    """What the user asked for in this invocation."""

    total_test_scripts_executed: int
    is_cloud_run: bool
    is_using_flags: bool
    is_using_inspect_flags: bool
    fail_fast: bool
    comment_on_pr: bool
    parallel_flag: bool
    cloud_run_locally: bool
    only_verify_scripts: bool


def get_usage_stats_id(env: Mapping[str, str] | None = None) -> str:
    """Hash the action and workflow names into a stable anonymous id."""
    env = os.environ if env is None else env
    seed = f"{env.get('GITHUB_ACTION', '')}-{env.get('GITHUB_WORKFLOW', '')}"
    return hashlib.sha256(seed.encode()).hexdigest()


def build_analytics_payload(
    report: UsageReport,
    k6_version: str | None,
    env: Mapping[str, str] | None = None,
) -> dict[str, object]:
    return {
        **{_camel_case(key): value for key, value in asdict(report).items()},
        "source": ANALYTICS_SOURCE,
        "usageStatsId": get_usage_stats_id(env),
        "osPlatform": platform.system().lower(),
        "osArch": platform.machine(),
        "osType": platform.system(),
        "k6Version": k6_version or "unknown",
    }


def _camel_case(name: str) -> str:
    first, *rest = name.split("_")
    return first + "".join(part.capitalize() for part in rest)


async def send_analytics(
    report: UsageReport,
    k6_version: str | None,
    env: Mapping[str, str] | None = None,
) -> None:
    """Send the usage report, logging instead of raising on failure."""
    env = os.environ if env is None else env
    url = env.get("GRAFANA_ANALYTICS_URL") or DEFAULT_ANALYTICS_URL
    payload = build_analytics_payload(report, k6_version, env)

    try:
        async with aiohttp.ClientSession() as session:
            await request_json(session, "POST", url, ANALYTICS_RETRY, json=payload)
    except (RequestFailedError, aiohttp.ClientError) as exc:
        log.warning("Error sending analytics: %s", exc)
