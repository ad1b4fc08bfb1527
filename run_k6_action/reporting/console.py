"""Log test run URLs to the console."""

import logging
from collections.abc import Mapping

from run_k6_action.command_builder import clean_script_path
from run_k6_action.reporting.base import ResultReporter

log = logging.getLogger(__name__)


class ConsoleReporter(ResultReporter):
    """Logs one line per test run URL."""

    async def report(self, test_run_urls: Mapping[str, str]) -> None:
        log.info("🌐 Test run URLs:")
        for script_path, url in test_run_urls.items():
            log.info("  %s: %s", clean_script_path(script_path), url)
