"""Test factories for generating test data."""

from polyfactory import Use
from polyfactory.factories import DataclassFactory
from polyfactory.factories.pydantic_factory import ModelFactory

from run_k6_action.models.run import RunCommand, RunOutcome
from run_k6_action.models.summary import (
    Check,
    CheckMetricSummary,
    ChecksMetricSummary,
    MetricsSummary,
    TestRunSummary,
    ThresholdsSummary,
)


class RunCommandFactory(DataclassFactory[RunCommand]):
    """Factory for RunCommand."""

    __model__ = RunCommand

    executable = "k6"
    args = Use(lambda: ["run", "--address=", "test.js"])
    script_path = "test.js"


class RunOutcomeFactory(DataclassFactory[RunOutcome]):
    """Factory for passed RunOutcome."""

    __model__ = RunOutcome

    exit_code = 0
    signal = None


class CheckMetricSummaryFactory(ModelFactory[CheckMetricSummary]):
    """Factory for CheckMetricSummary."""


class CheckFactory(ModelFactory[Check]):
    """Factory for Check."""

    group_id = None


class ChecksMetricSummaryFactory(ModelFactory[ChecksMetricSummary]):
    """Factory for ChecksMetricSummary."""


class ThresholdsSummaryFactory(ModelFactory[ThresholdsSummary]):
    """Factory for ThresholdsSummary."""


class MetricsSummaryFactory(ModelFactory[MetricsSummary]):
    """Factory for an empty MetricsSummary."""

    http_metric_summary = None
    ws_metric_summary = None
    grpc_metric_summary = None
    checks_metric_summary = None
    thresholds_summary = None


class TestRunSummaryFactory(ModelFactory[TestRunSummary]):
    """Factory for TestRunSummary."""

    __test__ = False

    metrics_summary = Use(MetricsSummaryFactory.build)
    test_run_status = 3
