"""Forward interrupts to running k6 processes."""

import asyncio
import logging
import signal
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field

from run_k6_action.processes import ProcessRegistry, signal_name

log = logging.getLogger(__name__)


@dataclass(kw_only=True)
class InterruptHandler:
    """Stops all tracked k6 processes when the orchestrator is interrupted.

    On a signal, the same signal is sent to every live process in the registry
    and the guarded task is cancelled. The caller turns the cancellation into
    a failed exit status.
    """

    registry: ProcessRegistry
    signals: Sequence[signal.Signals] = (signal.SIGINT, signal.SIGTERM)
    interrupted: bool = field(default=False, init=False)
    _task: asyncio.Task[object] | None = field(default=None, init=False, repr=False)

    def handle_interrupt(self, signum: int = signal.SIGINT) -> None:
        log.warning("🚨 Caught %s. Stopping all tests", signal_name(signum))
        self.interrupted = True
        self.registry.signal_all(signum)

        if self._task is not None and not self._task.done():
            self._task.cancel()

    @contextmanager
    def installed(self, task: asyncio.Task[object] | None = None) -> Iterator[None]:
        """Install the signal handlers for the duration of the block.

        Args:
            task: Task to cancel on interrupt, defaults to the current task

        """
        loop = asyncio.get_running_loop()
        self._task = task or asyncio.current_task()

        installed: list[signal.Signals] = []
        for sig in self.signals:
            try:
                loop.add_signal_handler(sig, self.handle_interrupt, sig)
            except (NotImplementedError, RuntimeError) as exc:
                log.debug("Cannot handle %s: %s", sig.name, exc)
            else:
                installed.append(sig)

        try:
            yield
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            self._task = None
