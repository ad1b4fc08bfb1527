"""Detect and compare k6 versions."""

import asyncio
import logging
import re

from run_k6_action.errors import VersionComparisonError

log = logging.getLogger(__name__)

# First release shipping ``k6 cloud run --local-execution``.
CLOUD_RUN_MIN_VERSION = "0.57.0"

K6_VERSION_PATTERN = re.compile(r"\bk6 v(\d+(?:\.\d+)*)")


def compare_versions(left: str, right: str) -> int:
    """Compare two dot separated numeric versions.

    Both versions must have the same number of segments: ``"1.2"`` against
    ``"1.2.0"`` is an error rather than an implicit zero padding.

    Returns:
        A negative number, zero or a positive number when ``left`` is lower
        than, equal to or greater than ``right``.

    Raises:
        VersionComparisonError: If a version is not numeric or the segment
            counts differ

    """
    left_parts = _parse_version(left)
    right_parts = _parse_version(right)

    if len(left_parts) != len(right_parts):
        raise VersionComparisonError(
            f"Cannot compare versions with different segment counts: "
            f"{left!r} and {right!r}"
        )

    for left_part, right_part in zip(left_parts, right_parts, strict=True):
        if left_part != right_part:
            return left_part - right_part
    return 0


def is_version_at_least(version: str, minimum: str) -> bool:
    """Check if ``version`` is greater than or equal to ``minimum``."""
    return compare_versions(version, minimum) >= 0


def _parse_version(version: str) -> tuple[int, ...]:
    parts = version.strip().split(".")
    if not all(part.isdigit() for part in parts):
        raise VersionComparisonError(f"Invalid version string: {version!r}")
    return tuple(int(part) for part in parts)


def parse_k6_version(output: str) -> str | None:
    """Extract ``X.Y.Z`` from ``k6 version`` output.

    Pre-release and build suffixes (``v0.57.0-rc1``, ``v1.0.0+abc``) are
    dropped.
    """
    match = K6_VERSION_PATTERN.search(output)
    return match.group(1) if match else None


async def get_installed_k6_version(executable: str = "k6") -> str | None:
    """Return the version of the installed k6 binary, or None if unknown."""
    try:
        process = await asyncio.create_subprocess_exec(
            executable,
            "version",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        log.warning("Unable to run %s version: %s", executable, exc)
        return None

    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        log.warning(
            "%s version failed with code %s: %s",
            executable,
            process.returncode,
            stderr.decode(errors="replace").strip(),
        )
        return None

    version = parse_k6_version(stdout.decode(errors="replace"))
    if version is None:
        log.warning("Could not parse k6 version from: %s", stdout.decode().strip())
    else:
        log.debug("Installed k6 version: %s", version)
    return version


async def supports_cloud_run_command(executable: str = "k6") -> bool:
    """Check if the installed k6 has the ``cloud run --local-execution`` form."""
    version = await get_installed_k6_version(executable)
    if version is None:
        return False
    return is_version_at_least(version, CLOUD_RUN_MIN_VERSION)
