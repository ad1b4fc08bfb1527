"""Fixtures for integration tests running a fake k6 binary."""

import json
import stat
import sys
from pathlib import Path
from typing import Protocol

import pytest

FAKE_K6_SOURCE = '''\
import json
import os
import sys
import time

args = sys.argv[1:]
with open(os.environ["FAKE_K6_CALLS"], "a") as calls:
    calls.write(json.dumps(args) + "\\n")

if args[0] == "version":
    version = os.environ.get("FAKE_K6_VERSION", "v0.50.0")
    print(f"k6 {version} (go1.22.1, linux/amd64)")
    sys.exit(0)

script = args[-1]
directives = {}
with open(script) as source:
    for line in source:
        if line.startswith("// ") and "=" in line:
            key, _, value = line[3:].strip().partition("=")
            directives[key] = value

if args[0] == "inspect":
    sys.exit(int(directives.get("inspect", "0")))

if "url" in directives:
    url = directives["url"]
    print(f"     script: {script}\\n     output: cloud ({url})")
    sys.stdout.flush()
    time.sleep(0.05)

if "stdout" in directives:
    print(directives["stdout"])
if "stderr" in directives:
    sys.stderr.write(directives["stderr"] + "\\n")
sys.stdout.flush()
sys.stderr.flush()

time.sleep(float(directives.get("sleep", "0")))
sys.exit(int(directives.get("exit", "0")))
'''


class WriteScriptFn(Protocol):
    """Protocol for the test script writer."""

    def __call__(self, name: str, **directives: str | int | float) -> str:
        """Write a k6 script driving the fake k6 and return its path."""


class FakeK6:
    """A k6 stand-in that records every invocation."""

    def __init__(self, directory: Path) -> None:
        self.executable = directory / "k6"
        self.calls_file = directory / "k6-calls.log"
        self.executable.write_text(f"#!{sys.executable}\n{FAKE_K6_SOURCE}")
        self.executable.chmod(self.executable.stat().st_mode | stat.S_IXUSR)
        self.calls_file.touch()

    @property
    def path(self) -> str:
        return str(self.executable)

    def calls(self) -> list[list[str]]:
        """Return the argument vectors of every invocation, in order."""
        return [
            json.loads(line)
            for line in self.calls_file.read_text().splitlines()
            if line
        ]

    def run_calls(self) -> list[list[str]]:
        return [call for call in self.calls() if call[0] in {"run", "cloud"}]


@pytest.fixture
def fake_k6(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FakeK6:
    """Install a fake k6 binary for the test."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    fake = FakeK6(bin_dir)
    monkeypatch.setenv("FAKE_K6_CALLS", str(fake.calls_file))
    return fake


@pytest.fixture
def scripts_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "scripts"
    directory.mkdir()
    return directory


@pytest.fixture
def write_script(scripts_dir: Path) -> WriteScriptFn:
    """Return a function writing k6 scripts with fake k6 directives.

    Directives are ``// key=value`` comments read by the fake k6: ``inspect``
    and ``exit`` set exit codes, ``sleep`` delays the exit, ``url`` prints a
    cloud test run header, ``stdout`` and ``stderr`` print a line.
    """

    def _write(name: str, **directives: str | int | float) -> str:
        path = scripts_dir / name
        lines = [f"// {key}={value}" for key, value in directives.items()]
        lines.append("export default function () {}")
        path.write_text("\n".join(lines) + "\n")
        return str(path)

    return _write
