"""CLI entry point for running k6 tests."""

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Mapping, Sequence
from contextlib import AsyncExitStack

from pydantic import ValidationError

from run_k6_action.command_builder import generate_k6_run_command, split_flags
from run_k6_action.config import ActionConfig, CloudSettings, read_action_inputs
from run_k6_action.errors import (
    NoInputError,
    NoValidScriptsError,
    RunK6ActionError,
)
from run_k6_action.executor import RunExecutor
from run_k6_action.lifecycle import InterruptHandler
from run_k6_action.models.run import RunReport
from run_k6_action.path_resolver import find_tests_to_run
from run_k6_action.processes import ProcessRegistry
from run_k6_action.reporting.analytics import UsageReport, send_analytics
from run_k6_action.reporting.base import ResultReporter
from run_k6_action.reporting.cloud import CloudResultsClient
from run_k6_action.reporting.console import ConsoleReporter
from run_k6_action.reporting.github import (
    GitHubCommenter,
    GitHubConfig,
    PullRequestCommentReporter,
)
from run_k6_action.results import ResultCollector
from run_k6_action.validator import validate_test_paths
from run_k6_action.versioning import (
    get_installed_k6_version,
    supports_cloud_run_command,
)

log = logging.getLogger("run_k6_action")


def log_run_summary(log: logging.Logger, report: RunReport) -> None:
    """Log one line per script run and the totals."""
    log.info("=" * 80)
    log.info("Test Results Summary:")
    log.info("=" * 80)

    for outcome in report.outcomes:
        if outcome.passed:
            log.info("✅ %s: passed", outcome.script_path)
        else:
            log.info(
                "❌ %s: failed (exit code %s, signal %s)",
                outcome.script_path,
                outcome.exit_code,
                outcome.signal,
            )

    failed = len(report.failures)
    log.info("%d passed, %d failed", len(report.outcomes) - failed, failed)
    if report.fail_fast_triggered:
        log.info("🚨 Fail fast stopped the remaining tests")
    if not report.all_passed:
        log.info("🚨 Some tests failed")


async def build_reporters(
    stack: AsyncExitStack,
    config: ActionConfig,
    cloud: CloudSettings,
    env: Mapping[str, str],
) -> Sequence[ResultReporter]:
    """Create the reporters receiving the test run URLs of a cloud run."""
    reporters: list[ResultReporter] = [ConsoleReporter()]

    if config.cloud_comment_on_pr and config.github_token is not None:
        github_config = GitHubConfig.from_env(config.github_token, env)
        commenter = await stack.enter_async_context(
            GitHubCommenter.from_config(github_config)
        )
        cloud_client = await stack.enter_async_context(
            CloudResultsClient.from_settings(cloud)
        )
        reporters.append(
            PullRequestCommentReporter(commenter=commenter, cloud_client=cloud_client)
        )

    return reporters


async def run(config: ActionConfig, env: Mapping[str, str] | None = None) -> int:
    """Validate and run k6 tests and return exit code."""
    env = os.environ if env is None else env

    try:
        return await run_tests(config, env)
    except RunK6ActionError as exc:
        log.error("%s", exc)
        return 1


async def run_tests(config: ActionConfig, env: Mapping[str, str]) -> int:
    """Run the k6 tests described by the config.

    Raises:
        NoInputError: If no file matches the path patterns
        NoValidScriptsError: If no file passes validation
        ConfigurationConflictError: If the settings contradict each other

    """
    log.debug("Flag to show k6 progress output set to: %s", config.debug)

    test_paths = find_tests_to_run(config.path)
    log.debug("🔍 Found following %d test run files:", len(test_paths))
    for index, test_path in enumerate(test_paths, start=1):
        log.debug("%d. %s", index, test_path)

    if not test_paths:
        raise NoInputError(config.path)

    verified_paths = await validate_test_paths(
        test_paths, split_flags(config.inspect_flags), config.k6_executable
    )
    if not verified_paths:
        raise NoValidScriptsError(len(test_paths))

    log.info(
        "🧪 Found %d valid k6 tests out of total %d test files.",
        len(verified_paths),
        len(test_paths),
    )
    for index, test_path in enumerate(verified_paths, start=1):
        log.info("  %d. %s", index, test_path)

    if config.only_verify_scripts:
        log.info("🔍 Only verifying scripts. Skipping test execution")
        return 0

    cloud = CloudSettings.from_env(env)
    config.check_conflicts(is_cloud=cloud is not None)

    supports_cloud_run = False
    if cloud is not None:
        supports_cloud_run = await supports_cloud_run_command(config.k6_executable)

    commands = [
        generate_k6_run_command(
            test_path,
            config.flags,
            is_cloud=cloud is not None,
            cloud_run_locally=config.cloud_run_locally,
            supports_cloud_run=supports_cloud_run,
            executable=config.k6_executable,
        )
        for test_path in verified_paths
    ]

    registry = ProcessRegistry()
    interrupt_handler = InterruptHandler(registry=registry)

    async with AsyncExitStack() as stack:
        results: ResultCollector | None = None
        if cloud is not None:
            reporters = await build_reporters(stack, config, cloud, env)
            results = ResultCollector(
                total=len(commands),
                on_complete=[reporter.report for reporter in reporters],
            )

        executor = RunExecutor(registry=registry, results=results, debug=config.debug)

        with interrupt_handler.installed():
            try:
                report = await executor.run(
                    commands, parallel=config.parallel, fail_fast=config.fail_fast
                )
                if results is not None:
                    await results.wait_for_reporting()
            except asyncio.CancelledError:
                if not interrupt_handler.interrupted:
                    raise
                if (task := asyncio.current_task()) is not None:
                    task.uncancel()
                log.error("🚨 Test run interrupted")
                return 1

    log_run_summary(log, report)

    if not config.disable_analytics:
        await send_analytics(
            UsageReport(
                total_test_scripts_executed=len(report.outcomes),
                is_cloud_run=cloud is not None,
                is_using_flags=bool(config.flags),
                is_using_inspect_flags=bool(config.inspect_flags),
                fail_fast=config.fail_fast,
                comment_on_pr=config.cloud_comment_on_pr,
                parallel_flag=config.parallel,
                cloud_run_locally=config.cloud_run_locally,
                only_verify_scripts=config.only_verify_scripts,
            ),
            await get_installed_k6_version(config.k6_executable),
            env,
        )

    return 0 if report.all_passed else 1


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser.

    Every option defaults to None so that unset options fall back to the
    ``INPUT_*`` environment variables of the GitHub Action.
    """
    parser = argparse.ArgumentParser(description="Validate and run k6 test scripts")
    parser.add_argument(
        "--path",
        help="Glob pattern(s) of the test scripts, one per line",
    )
    parser.add_argument("--flags", help="Extra flags passed to k6 run")
    parser.add_argument("--inspect-flags", help="Extra flags passed to k6 inspect")
    parser.add_argument("--github-token", help="Token used to comment on PRs")
    parser.add_argument("--k6-executable", help="Name or path of the k6 binary")

    for name, help_text in (
        ("parallel", "Run all tests at the same time"),
        ("fail-fast", "Stop at the first failed test"),
        ("cloud-run-locally", "Run cloud tests locally and upload the results"),
        ("only-verify-scripts", "Only validate the scripts, do not run them"),
        ("cloud-comment-on-pr", "Comment the test run URLs on the pull request"),
        ("debug", "Show the complete k6 output"),
        ("disable-analytics", "Do not send anonymous usage statistics"),
    ):
        parser.add_argument(
            f"--{name}", action=argparse.BooleanOptionalAction, help=help_text
        )

    return parser


def load_config(
    args: argparse.Namespace, env: Mapping[str, str] | None = None
) -> ActionConfig:
    """Merge CLI options over ``INPUT_*`` environment variables."""
    inputs: dict[str, object] = dict(read_action_inputs(env))
    inputs.update(
        {key: value for key, value in vars(args).items() if value is not None}
    )
    return ActionConfig.model_validate(inputs)


def main() -> None:
    """CLI entry point."""
    args = build_parser().parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(args)
    except (ValidationError, RunK6ActionError) as exc:
        log.error("Invalid configuration: %s", exc)
        sys.exit(1)

    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    exit_code = asyncio.run(run(config))
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
