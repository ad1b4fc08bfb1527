"""Models for k6 run commands and their outcomes."""

import shlex
from collections.abc import Sequence
from dataclasses import dataclass

from run_k6_action.errors import ProcessFailure


@dataclass(frozen=True, kw_only=True)
class RunCommand:
    """A fully formed k6 invocation bound to exactly one script."""

    executable: str
    args: Sequence[str]
    script_path: str

    def argv(self) -> list[str]:
        """Return the command as an argument vector."""
        return [self.executable, *self.args]

    def display(self) -> str:
        """Render the command as a single shell-quoted string."""
        return shlex.join(self.argv())


@dataclass(frozen=True, kw_only=True)
class RunOutcome:
    """Final state of a single script run.

    A run passed iff the process exited with code 0. A process killed by a
    signal has no exit code and carries the signal name instead.
    """

    script_path: str
    exit_code: int | None
    signal: str | None = None

    @property
    def passed(self) -> bool:
        return self.exit_code == 0

    def to_failure(self) -> ProcessFailure:
        return ProcessFailure(self.script_path, self.exit_code, self.signal)


@dataclass(frozen=True, kw_only=True)
class RunReport:
    """Outcomes of an execution, in the order they were observed."""

    outcomes: Sequence[RunOutcome]
    fail_fast_triggered: bool = False

    @property
    def all_passed(self) -> bool:
        """Whether every observed run passed and nothing was cut short."""
        return not self.fail_fast_triggered and all(
            outcome.passed for outcome in self.outcomes
        )

    @property
    def failures(self) -> Sequence[RunOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.passed]
