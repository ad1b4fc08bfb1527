"""Resolve glob patterns into the list of k6 scripts to run."""

import glob
import logging
import os
import stat
from collections.abc import Sequence

log = logging.getLogger(__name__)


def find_tests_to_run(patterns: str) -> Sequence[str]:
    """Expand newline separated glob patterns into script paths.

    Args:
        patterns: One pattern per line. Blank lines and lines starting with
            ``#`` are ignored, a leading ``!`` excludes what the rest of the
            line matches, ``**`` matches any number of directories.

    Returns:
        Matching paths in pattern order (sorted within each pattern), without
        duplicates and without directories.

    """
    includes, excludes = parse_patterns(patterns)

    matched: dict[str, None] = {}
    for pattern in includes:
        for path in expand_pattern(pattern):
            matched.setdefault(path, None)

    excluded = {path for pattern in excludes for path in expand_pattern(pattern)}
    if excluded:
        log.debug("Excluding %d path(s) matched by negated patterns", len(excluded))

    return [
        path for path in matched if path not in excluded and not is_directory(path)
    ]


def parse_patterns(patterns: str) -> tuple[Sequence[str], Sequence[str]]:
    """Split raw pattern text into include and exclude patterns."""
    includes: list[str] = []
    excludes: list[str] = []

    for line in patterns.splitlines():
        pattern = line.strip()
        if not pattern or pattern.startswith("#"):
            continue
        if pattern.startswith("!"):
            if negated := pattern[1:].strip():
                excludes.append(negated)
        else:
            includes.append(pattern)

    return includes, excludes


def expand_pattern(pattern: str) -> Sequence[str]:
    """Return the sorted paths matching a single glob pattern."""
    return sorted(glob.glob(os.path.expanduser(pattern), recursive=True))


def is_directory(path: str) -> bool:
    """Check if a path is a directory, treating stat failures as files."""
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return False
    return stat.S_ISDIR(mode)
