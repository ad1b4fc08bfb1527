"""Render test run summaries as GitHub flavored markdown."""

from collections.abc import Mapping, Sequence

from run_k6_action.models.summary import (
    Check,
    ChecksMetricSummary,
    GrpcMetricSummary,
    HttpMetricSummary,
    TestRunSummary,
    ThresholdsSummary,
    TrendSummary,
    WsMetricSummary,
)

TEST_RUN_STATUS_PASSED = 3
TEST_RUN_STATUS_TIMED_OUT = 4


def format_number(value: float | None, default: str = "0") -> str:
    """Format a number with thousands separators."""
    if value is None:
        return default
    return f"{value:,}"


def format_float(value: float | None, unit: str = "", default: str = "0") -> str:
    """Format a float with two decimals and an optional unit."""
    if value is None:
        return default
    return f"{value:.2f} {unit}" if unit else f"{value:.2f}"


def trend_markdown(trend: TrendSummary | None, title: str) -> str:
    if trend is None:
        return ""

    return "\n".join(
        [
            title,
            f"  - ⬇️ Minimum: <b>{format_float(trend.min, 'ms')}</b> "
            f"⬆️ Maximum: <b>{format_float(trend.max, 'ms')}</b>",
            f"  - ⏺️ Average: <b>{format_float(trend.mean, 'ms')}</b> "
            f"🔀 Standard Deviation: <b>{format_float(trend.stdev, 'ms')}</b>",
            f"  - 🔝 P95: <b>{format_float(trend.p95, 'ms')}</b> "
            f"🚀 P99: <b>{format_float(trend.p99, 'ms')}</b>",
        ]
    )


def http_metrics_markdown(metrics: HttpMetricSummary | None) -> list[str]:
    if metrics is None or not metrics.model_fields_set:
        return []

    p95 = metrics.duration.p95 if metrics.duration else None
    sections = [
        "### 🌐 HTTP Metrics",
        "",
        f"- ⏳ 95th Percentile Response Time: **{format_float(p95, 'ms')}** ⚡",
        f"- 🔢 Total Requests: **{format_number(metrics.requests_count)}**",
        f"- ⚠️ Failed Requests: **{format_number(metrics.failures_count)}**",
        f"- 🚀 Average Request Rate: **{format_float(metrics.rps_mean)}**",
        f"- 🔝 Peak RPS: **{format_float(metrics.rps_max)}**",
    ]
    if metrics.duration is not None:
        duration = trend_markdown(metrics.duration, "🕒 Request Duration")
        sections.append(f"- {duration}")
    sections.append("")
    return sections


def ws_metrics_markdown(metrics: WsMetricSummary | None) -> list[str]:
    if metrics is None or not metrics.model_fields_set:
        return []

    sections = [
        "### 🔌 WebSocket Metrics",
        "",
        f"- 📤 Messages Sent: **{format_number(metrics.msgs_sent)}**",
        f"- 📥 Messages Received: **{format_number(metrics.msgs_received)}**",
        f"- 👥 Total Sessions: **{format_number(metrics.sessions)}**",
    ]
    if metrics.session_duration is not None:
        sections.append(
            f"- {trend_markdown(metrics.session_duration, '⏱️ Session Duration')}"
        )
    sections.append("")
    return sections


def grpc_metrics_markdown(metrics: GrpcMetricSummary | None) -> list[str]:
    if metrics is None or not metrics.model_fields_set:
        return []

    sections = [
        "### 📡 gRPC Metrics",
        "",
        f"- 🔢 Total Requests: **{format_number(metrics.requests_count)}**",
        f"- 🚀 Average Request Rate: **{format_float(metrics.rps_mean)}**",
        f"- 🔝 Peak RPS: **{format_float(metrics.rps_max)}**",
    ]
    if metrics.duration is not None:
        duration = trend_markdown(metrics.duration, "🕒 Request Duration")
        sections.append(f"- {duration}")
    sections.append("")
    return sections


def checks_markdown(
    metrics: ChecksMetricSummary | None, checks: Sequence[Check] = ()
) -> list[str]:
    """List failed checks, grouped by name, or confirm all passed."""
    if metrics is None or metrics.total is None or metrics.total <= 0:
        return []

    if metrics.successes is None or metrics.successes >= metrics.total:
        return [f"- ✅ All **{format_number(metrics.total)}** checks were successful."]

    sections = [
        f"- ❌ **{format_number(metrics.total - metrics.successes)}** out of "
        f"**{format_number(metrics.total)}** checks were not successful."
    ]

    by_name: dict[str, list[int]] = {}
    for check in checks:
        counts = by_name.setdefault(check.name, [0, 0])
        counts[0] += check.metric_summary.success_count
        counts[1] += check.metric_summary.fail_count

    for name, (successes, failures) in by_name.items():
        if failures > 0:
            sections.append(
                f"  - `{name}`: Failed **{format_number(failures)}**, out of "
                f"**{format_number(successes + failures)}** times."
            )

    return sections


def thresholds_markdown(metrics: ThresholdsSummary | None) -> list[str]:
    if metrics is None or metrics.total is None or metrics.total <= 0:
        return []

    if metrics.successes is not None and metrics.successes < metrics.total:
        return [
            f"- ❌ **{format_number(metrics.total - metrics.successes)}** out of "
            f"**{format_number(metrics.total)}** thresholds were not met."
        ]
    return [f"- ✅ All **{format_number(metrics.total)}** thresholds were met."]


def run_status_markdown(status: int | None) -> str:
    if status is None:
        label = "❓ Unknown"
    elif status == TEST_RUN_STATUS_PASSED:
        label = "✅ Passed"
    elif status == TEST_RUN_STATUS_TIMED_OUT:
        label = "⚠️ Timed out"
    else:
        label = "❌ Failed"
    return f"- **Overall Status:** {label}"


def run_summary_markdown(
    summary: TestRunSummary | None, checks: Sequence[Check] = ()
) -> str:
    """Render the status and every available metric section of a test run."""
    if summary is None:
        return "No metrics data available."

    metrics = summary.metrics_summary
    sections = [
        run_status_markdown(summary.test_run_status),
        *checks_markdown(metrics.checks_metric_summary, checks),
        *thresholds_markdown(metrics.thresholds_summary),
        *http_metrics_markdown(metrics.http_metric_summary),
        *ws_metrics_markdown(metrics.ws_metric_summary),
        *grpc_metrics_markdown(metrics.grpc_metric_summary),
    ]
    return "\n".join(sections)


def results_comment_markdown(
    test_run_urls: Mapping[str, str], details: Mapping[str, str] | None = None
) -> str:
    """Render the pull request comment listing every test run.

    Args:
        test_run_urls: Test run URL per (cleaned) script path
        details: Optional rendered summary per script path

    """
    details = details or {}
    lines = [
        "# Performance Test Results 🚀",
        "",
        "Click on the links below to view the test results on Grafana Cloud k6:",
        "",
    ]

    for script_path, url in test_run_urls.items():
        lines.append(f"## 🔗 [{script_path}]({url})")
        if detail := details.get(script_path):
            lines.extend(["", detail])
        lines.append("")

    return "\n".join(lines)
