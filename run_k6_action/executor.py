"""Run k6 commands as child processes, sequentially or in parallel."""

import asyncio
import codecs
import logging
import signal
import sys
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from run_k6_action.models.run import RunCommand, RunOutcome, RunReport
from run_k6_action.output_parser import K6OutputParser, write_stdout
from run_k6_action.processes import ProcessHandle, ProcessRegistry
from run_k6_action.results import ResultCollector

log = logging.getLogger(__name__)

Spawner = Callable[..., Awaitable[asyncio.subprocess.Process]]

READ_CHUNK_SIZE = 64 * 1024
STDERR_PREFIX = "🚨 "


def write_stderr(text: str) -> None:
    sys.stderr.write(text)
    sys.stderr.flush()


@dataclass(kw_only=True)
class RunExecutor:
    """Drives k6 runs to completion and reports their outcomes.

    Stdout of every process goes through a ``K6OutputParser``, stderr is
    forwarded with a prefix. Fail-fast stops at the first failed run: no
    further command is started and, in parallel mode, every process still
    running is interrupted.
    """

    registry: ProcessRegistry = field(default_factory=ProcessRegistry)
    results: ResultCollector | None = None
    debug: bool = False
    stdout_sink: Callable[[str], None] = write_stdout
    stderr_sink: Callable[[str], None] = write_stderr
    spawn: Spawner = asyncio.create_subprocess_exec

    async def run(
        self,
        commands: Sequence[RunCommand],
        *,
        parallel: bool = False,
        fail_fast: bool = False,
    ) -> RunReport:
        """Run all commands and collect their outcomes.

        Args:
            commands: Commands to run, one per script
            parallel: Start all commands at once instead of one by one
            fail_fast: Stop at the first failed run

        Returns:
            Outcomes in completion order; ``fail_fast_triggered`` is set when
            the run was cut short.

        """
        if parallel:
            return await self._run_parallel(commands, fail_fast)
        return await self._run_sequential(commands, fail_fast)

    async def _run_sequential(
        self, commands: Sequence[RunCommand], fail_fast: bool
    ) -> RunReport:
        outcomes: list[RunOutcome] = []

        for command in commands:
            outcome = await self.run_command(command)
            outcomes.append(outcome)
            if fail_fast and not outcome.passed:
                log.info("🚨 Fail fast enabled. Stopping further tests.")
                return RunReport(outcomes=outcomes, fail_fast_triggered=True)

        return RunReport(outcomes=outcomes)

    async def _run_parallel(
        self, commands: Sequence[RunCommand], fail_fast: bool
    ) -> RunReport:
        outcomes: list[RunOutcome] = []
        pending: set[asyncio.Task[RunOutcome]] = set()

        for command in commands:
            try:
                handle = await self.start(command)
            except OSError as exc:
                outcome = self._spawn_failed(command, exc)
                outcomes.append(outcome)
                if fail_fast:
                    await self._abort(pending)
                    return RunReport(outcomes=outcomes, fail_fast_triggered=True)
                continue
            pending.add(asyncio.create_task(self.wait(handle)))

        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                finished = [task.result() for task in done]
                outcomes.extend(finished)
                if fail_fast and not all(outcome.passed for outcome in finished):
                    await self._abort(pending)
                    return RunReport(outcomes=outcomes, fail_fast_triggered=True)
        except asyncio.CancelledError:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise

        return RunReport(outcomes=outcomes)

    async def _abort(self, pending: set[asyncio.Task[RunOutcome]]) -> None:
        """Interrupt every running process and stop waiting for them."""
        log.info("🚨 Fail fast enabled. Stopping further tests.")
        self.registry.signal_all(signal.SIGINT)

        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def run_command(self, command: RunCommand) -> RunOutcome:
        """Run a single command and wait for it to exit."""
        try:
            handle = await self.start(command)
        except OSError as exc:
            return self._spawn_failed(command, exc)
        return await self.wait(handle)

    async def start(self, command: RunCommand) -> ProcessHandle:
        """Spawn the k6 process for a command and start tracking it.

        Raises:
            OSError: If the process cannot be started

        """
        log.info("🤖 Running test: %s", command.display())
        process = await self.spawn(
            *command.argv(),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
        handle = ProcessHandle(script_path=command.script_path, process=process)
        self.registry.register(handle)
        return handle

    async def wait(self, handle: ProcessHandle) -> RunOutcome:
        """Stream the output of a process until it exits.

        The process leaves the registry before its outcome is evaluated. If
        the wait is cancelled the process stays tracked, since it may still
        be running.
        """
        parser = K6OutputParser(
            results=self.results, debug=self.debug, sink=self.stdout_sink
        )
        process = handle.process

        await asyncio.gather(
            self._pump_stdout(process.stdout, parser),
            self._pump_stderr(process.stderr),
            process.wait(),
        )

        self.registry.unregister(handle)
        outcome = handle.outcome()

        if outcome.passed:
            log.info("✅ Test passed: %s", outcome.script_path)
        else:
            log.info("🚨 %s", outcome.to_failure())
        return outcome

    async def _pump_stdout(
        self, stream: asyncio.StreamReader | None, parser: K6OutputParser
    ) -> None:
        if stream is None:
            return
        while chunk := await stream.read(READ_CHUNK_SIZE):
            parser.feed(chunk)

    async def _pump_stderr(self, stream: asyncio.StreamReader | None) -> None:
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while chunk := await stream.read(READ_CHUNK_SIZE):
            if text := decoder.decode(chunk):
                self.stderr_sink(f"{STDERR_PREFIX}{text}")

    def _spawn_failed(self, command: RunCommand, exc: OSError) -> RunOutcome:
        log.error("Failed to start %s: %s", command.display(), exc)
        return RunOutcome(script_path=command.script_path, exit_code=None)
