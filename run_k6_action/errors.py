"""Errors raised while orchestrating k6 test runs."""


class RunK6ActionError(Exception):
    """Base class for all orchestration errors."""


class NoInputError(RunK6ActionError):
    """Raised when the path patterns matched no test files."""

    def __init__(self, patterns: str) -> None:
        super().__init__(f"No test files found matching: {patterns!r}")
        self.patterns = patterns


class NoValidScriptsError(RunK6ActionError):
    """Raised when every candidate script failed validation."""

    def __init__(self, total: int) -> None:
        super().__init__(f"No valid test files found out of {total} candidate(s)")
        self.total = total


class ConfigurationConflictError(RunK6ActionError):
    """Raised when a setting is enabled without its prerequisite."""


class VersionComparisonError(RunK6ActionError):
    """Raised when two version strings cannot be compared."""


class ProcessFailure(RunK6ActionError):
    """A k6 run exited unsuccessfully."""

    def __init__(
        self, script_path: str, exit_code: int | None, signal: str | None
    ) -> None:
        super().__init__(
            f"Test {script_path} failed with code: {exit_code} and signal: {signal}"
        )
        self.script_path = script_path
        self.exit_code = exit_code
        self.signal = signal


class SignalPropagationFailure(RunK6ActionError):
    """Forwarding a signal to a child process failed."""

    def __init__(self, pid: int, reason: str) -> None:
        super().__init__(f"Failed to signal process with PID {pid}: {reason}")
        self.pid = pid
        self.reason = reason
