"""Collect cloud test run URLs and report them once all are known."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

log = logging.getLogger(__name__)

CompletionCallback = Callable[[Mapping[str, str]], Awaitable[None]]


@dataclass(kw_only=True)
class ResultCollector:
    """Map of script path to test run URL, in the order URLs were reported.

    The map is complete once it holds ``total`` entries. Completion freezes
    the map and starts every ``on_complete`` callback exactly once with the
    final mapping.
    """

    total: int
    on_complete: Sequence[CompletionCallback] = ()
    _urls: dict[str, str] = field(default_factory=dict, init=False)
    _completed: bool = field(default=False, init=False)
    _pending: list[asyncio.Task[None]] = field(default_factory=list, init=False)

    @property
    def is_complete(self) -> bool:
        return self._completed

    @property
    def urls(self) -> Mapping[str, str]:
        """Read-only view of the collected URLs."""
        return MappingProxyType(self._urls)

    def __len__(self) -> int:
        return len(self._urls)

    def record(self, script_path: str, url: str) -> bool:
        """Store the URL of a script run and check for completion.

        Returns:
            True if the entry was stored, False if the map is already
            complete or already has an URL for this script.

        """
        if self._completed or script_path in self._urls:
            return False

        self._urls[script_path] = url
        log.debug(
            "Recorded test run URL %d/%d: %s -> %s",
            len(self._urls),
            self.total,
            script_path,
            url,
        )
        self._check_completion()
        return True

    def _check_completion(self) -> None:
        if self._completed or len(self._urls) < self.total:
            return

        self._completed = True
        final_urls = MappingProxyType(dict(self._urls))
        log.debug("All %d test run URLs collected", self.total)

        loop = asyncio.get_running_loop()
        for callback in self.on_complete:
            self._pending.append(loop.create_task(callback(final_urls)))

    async def wait_for_reporting(self) -> None:
        """Wait for the completion callbacks, logging their failures."""
        if not self._pending:
            return

        results = await asyncio.gather(*self._pending, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                log.warning(
                    "Reporting test run URLs failed: %s", result, exc_info=result
                )
