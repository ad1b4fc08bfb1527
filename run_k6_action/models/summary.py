"""Pydantic models for Grafana Cloud k6 API responses."""

from collections.abc import Sequence

from pydantic import Field

from run_k6_action.models.base import Model


class TrendSummary(Model):
    """Distribution of a trend metric, in milliseconds."""

    count: int | None = None
    min: float | None = None
    max: float | None = None
    mean: float | None = None
    stdev: float | None = None
    p95: float | None = None
    p99: float | None = None


class HttpMetricSummary(Model):
    requests_count: int | None = None
    failures_count: int | None = None
    rps_mean: float | None = None
    rps_max: float | None = None
    duration: TrendSummary | None = None
    duration_median: float | None = None


class WsMetricSummary(Model):
    msgs_sent: int | None = None
    msgs_received: int | None = None
    sessions: int | None = None
    connecting: TrendSummary | None = None
    session_duration: TrendSummary | None = None


class GrpcMetricSummary(Model):
    requests_count: int | None = None
    rps_mean: float | None = None
    rps_max: float | None = None
    duration: TrendSummary | None = None


class ChecksMetricSummary(Model):
    total: int | None = None
    successes: int | None = None
    hits_total: int | None = None
    hits_successes: int | None = None


class ThresholdsSummary(Model):
    total: int | None = None
    successes: int | None = None


class MetricsSummary(Model):
    """Aggregated metrics of a test run, per protocol."""

    http_metric_summary: HttpMetricSummary | None = None
    ws_metric_summary: WsMetricSummary | None = None
    grpc_metric_summary: GrpcMetricSummary | None = None
    checks_metric_summary: ChecksMetricSummary | None = None
    thresholds_summary: ThresholdsSummary | None = None


class TestRunSummary(Model):
    """Response from the test run result summary API."""

    __test__ = False

    metrics_summary: MetricsSummary
    test_run_status: int | None = None


class CheckMetricSummary(Model):
    success_count: int = 0
    fail_count: int = 0
    success_rate: float | None = None


class Check(Model):
    """A single k6 check of a test run."""

    id: str
    name: str
    group_id: str | None = None
    scenario_id: str | None = None
    metric_summary: CheckMetricSummary


class ChecksResponse(Model):
    """Response from the test run checks API."""

    count: int | None = Field(default=None, alias="@count")
    value: Sequence[Check] = Field(default_factory=list)
