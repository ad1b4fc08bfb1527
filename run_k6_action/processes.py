"""Track live k6 child processes."""

import asyncio
import logging
import signal
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from run_k6_action.errors import SignalPropagationFailure
from run_k6_action.models.run import RunOutcome

log = logging.getLogger(__name__)


@dataclass(kw_only=True)
class ProcessHandle:
    """A spawned k6 process and the script it runs."""

    script_path: str
    process: asyncio.subprocess.Process = field(repr=False)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def alive(self) -> bool:
        return self.process.returncode is None

    def outcome(self) -> RunOutcome:
        """Build the outcome of the exited process.

        Raises:
            RuntimeError: If the process is still running

        """
        returncode = self.process.returncode
        if returncode is None:
            raise RuntimeError(f"Process {self.pid} has not exited yet")

        if returncode < 0:
            return RunOutcome(
                script_path=self.script_path,
                exit_code=None,
                signal=signal_name(-returncode),
            )
        return RunOutcome(script_path=self.script_path, exit_code=returncode)


def signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


class ProcessRegistry:
    """Live k6 processes, keyed by PID.

    A script is tracked by at most one process at a time and a process is
    removed as soon as it exits.
    """

    def __init__(self) -> None:
        self._handles: dict[int, ProcessHandle] = {}

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[ProcessHandle]:
        return iter(list(self._handles.values()))

    def __contains__(self, handle: object) -> bool:
        return isinstance(handle, ProcessHandle) and handle.pid in self._handles

    @property
    def pids(self) -> Sequence[int]:
        return list(self._handles)

    def register(self, handle: ProcessHandle) -> None:
        """Start tracking a process.

        Raises:
            ValueError: If the script is already run by a tracked process

        """
        for tracked in self._handles.values():
            if tracked.script_path == handle.script_path:
                raise ValueError(
                    f"Script {handle.script_path} is already running "
                    f"as PID {tracked.pid}"
                )
        self._handles[handle.pid] = handle

    def unregister(self, handle: ProcessHandle) -> None:
        self._handles.pop(handle.pid, None)

    def signal_all(
        self, signum: int = signal.SIGINT
    ) -> Sequence[SignalPropagationFailure]:
        """Send a signal to every tracked process still running.

        Delivery is best effort: failures are logged and returned, never
        raised. Processes that already exited are skipped.
        """
        failures: list[SignalPropagationFailure] = []

        for handle in self:
            if not handle.alive:
                continue
            try:
                handle.process.send_signal(signum)
            except ProcessLookupError:
                log.debug("Process %d already exited", handle.pid)
            except OSError as exc:
                failure = SignalPropagationFailure(handle.pid, str(exc))
                log.error("%s", failure)
                failures.append(failure)
            else:
                log.debug("Sent %s to PID %d", signal_name(signum), handle.pid)

        return failures
