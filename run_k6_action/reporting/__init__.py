"""Reporters receiving the test run URLs of a cloud run."""

from run_k6_action.reporting.base import ResultReporter
from run_k6_action.reporting.console import ConsoleReporter
from run_k6_action.reporting.github import PullRequestCommentReporter

__all__ = ["ConsoleReporter", "PullRequestCommentReporter", "ResultReporter"]
