"""Abstract base class for test run URL reporters."""

from abc import ABC, abstractmethod
from collections.abc import Mapping


class ResultReporter(ABC):
    """Receives the test run URLs once every script reported one."""

    @abstractmethod
    async def report(self, test_run_urls: Mapping[str, str]) -> None:
        """Publish the test run URLs.

        Args:
            test_run_urls: Test run URL per script path, in the order the
                runs reported them

        """
