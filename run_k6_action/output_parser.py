"""Classify k6 stdout: extract test run URLs and drop progress noise."""

import codecs
import re
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from run_k6_action.results import ResultCollector

SCRIPT_PATTERN = re.compile(r"^\s*script:\s*(.+?)\s*$", re.MULTILINE)
OUTPUT_PATTERN = re.compile(r"^\s*output:\s*(.+?)\s*$", re.MULTILINE)
CLOUD_OUTPUT_PATTERN = re.compile(r"^cloud\s*\((.+)\)$")

PROGRESS_PATTERNS: Sequence[re.Pattern[str]] = (
    # running (10s), 10/10 VUs, 100 complete and 0 interrupted iterations
    re.compile(
        r"running \(.*\), \d+/\d+ VUs, \d+ complete and \d+ interrupted iterations"
    ),
    # default   [  20% ] 10 VUs  1.0s/5s
    # createBrowser   [  61% ] 035/500 VUs  0m36.5s/1m0s  5.00 iters/s
    re.compile(r"\[\s*\d+%\s*\]\s*\d+(/\d+)? VUs"),
    # Init   [   0% ] Loading test script...
    re.compile(r"^\s*(init|run)\s+\[\s*\d+%\s*\]", re.IGNORECASE),
)


def write_stdout(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


class BannerDetector(Protocol):
    """Recognizes the decorative banner k6 prints on startup."""

    def split_banner(self, text: str) -> str | None:
        """Return the text after a leading banner, or None without a banner."""


@dataclass(frozen=True, kw_only=True)
class AsciiArtBannerDetector:
    """Detect the k6 logo by its characters.

    The logo looks like this and ends with the ``.io`` marker::

                  /\\      |‾‾| /‾‾/   /‾‾/
             /\\  /  \\     |  |/  /   /  /
            /  \\/    \\    |     (   /   ‾‾\\
           /          \\   |  |\\  \\ |  (‾)  |
          / __________ \\  |__| \\__\\ \\_____/ .io

    A chunk starts with the banner if everything before the first marker is
    made of the logo characters and whitespace only. k6 may write the run
    header in the same chunk, after the marker.
    """

    marker: str = ".io"
    charset: frozenset[str] = frozenset("|/\\‾()_ \t\r\n")

    def split_banner(self, text: str) -> str | None:
        end = text.find(self.marker)
        if end == -1:
            return None

        art = text[:end]
        if not art.strip() or not set(art) <= self.charset:
            return None
        return text[end + len(self.marker) :]


def is_progress_line(line: str) -> bool:
    """Check if a line is a transient k6 progress gauge."""
    return any(pattern.search(line) for pattern in PROGRESS_PATTERNS)


def extract_test_run_url(text: str) -> tuple[str, str] | None:
    """Extract the script path and test run URL from a k6 header chunk.

    The ``output:`` value is either ``cloud (<url>)`` or the bare URL.
    """
    script_match = SCRIPT_PATTERN.search(text)
    output_match = OUTPUT_PATTERN.search(text)
    if script_match is None or output_match is None:
        return None

    output = output_match.group(1)
    if cloud_match := CLOUD_OUTPUT_PATTERN.match(output):
        output = cloud_match.group(1).strip()

    return script_match.group(1), output


@dataclass(kw_only=True)
class K6OutputParser:
    """Forward the stdout of one k6 process, chunk by chunk.

    Unless ``debug`` is set, the parser hides the run header once its test run
    URL was captured, the startup banner and progress gauges. With ``debug``
    every chunk is forwarded as is.
    """

    results: ResultCollector | None = None
    debug: bool = False
    sink: Callable[[str], None] = write_stdout
    banner_detector: BannerDetector = field(default_factory=AsciiArtBannerDetector)
    _decoder: codecs.IncrementalDecoder = field(
        default_factory=lambda: codecs.getincrementaldecoder("utf-8")(
            errors="replace"
        ),
        init=False,
        repr=False,
    )

    def feed(self, data: bytes) -> None:
        """Classify one chunk of output and forward what should be shown."""
        text = self._decoder.decode(data)
        if text:
            self.parse(text)

    def parse(self, text: str) -> None:
        if self.results is not None and not self.results.is_complete:
            if (extracted := extract_test_run_url(text)) is not None:
                self.results.record(*extracted)
                if not self.debug:
                    return

        if self.debug:
            self.sink(text)
            return

        if (after_banner := self.banner_detector.split_banner(text)) is not None:
            if not after_banner.strip():
                return
            text = after_banner

        lines = text.split("\n")
        filtered = [line for line in lines if not is_progress_line(line)]

        if len(filtered) < len(lines) and not "".join(filtered).strip():
            # Only progress gauges and blank lines
            return

        self.sink("\n".join(filtered))
