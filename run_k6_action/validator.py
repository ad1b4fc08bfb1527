"""Validate k6 scripts with a dry inspection run."""

import asyncio
import logging
from collections.abc import Sequence

log = logging.getLogger(__name__)


async def validate_test_paths(
    test_paths: Sequence[str],
    flags: Sequence[str] = (),
    executable: str = "k6",
) -> Sequence[str]:
    """Keep only the scripts that k6 can inspect successfully.

    All inspections run concurrently. A script is kept iff
    ``k6 inspect --execution-requirements`` exits with code 0.

    Args:
        test_paths: Candidate script paths
        flags: Extra flags passed to ``k6 inspect`` before the script path
        executable: Name or path of the k6 binary

    Returns:
        The valid scripts, in the same relative order as ``test_paths``.

    """
    log.info("🔍 Validating test run files.")
    results = await asyncio.gather(
        *(is_valid_script(path, flags, executable) for path in test_paths)
    )
    return [path for path, valid in zip(test_paths, results, strict=True) if valid]


async def is_valid_script(
    test_path: str,
    flags: Sequence[str] = (),
    executable: str = "k6",
) -> bool:
    """Check if a single script passes ``k6 inspect``.

    Stdout is discarded, stderr goes straight to our own stderr so the user
    sees why a script was rejected.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            executable,
            "inspect",
            "--execution-requirements",
            *flags,
            test_path,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=None,
        )
    except OSError as exc:
        log.debug("Could not start validation for %s: %s", test_path, exc)
        return False

    await process.wait()
    log.debug("Validation of %s exited with code %s", test_path, process.returncode)
    return process.returncode == 0
