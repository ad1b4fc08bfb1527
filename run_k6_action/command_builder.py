"""Build k6 run commands."""

import logging
import os
from collections.abc import Sequence

from run_k6_action.models.run import RunCommand

log = logging.getLogger(__name__)


def split_flags(flags: str) -> Sequence[str]:
    """Split a raw flag string on whitespace."""
    return flags.split()


def generate_k6_run_command(
    script_path: str,
    flags: str,
    is_cloud: bool,
    cloud_run_locally: bool,
    supports_cloud_run: bool = False,
    executable: str = "k6",
) -> RunCommand:
    """Generate the command running one k6 script.

    Args:
        script_path: Script to run, always the last argument
        flags: Extra k6 flags, whitespace separated, passed through untouched
        is_cloud: Whether results are associated with a cloud project
        cloud_run_locally: Generate load locally and upload results instead of
            running in the cloud
        supports_cloud_run: Whether the installed k6 has
            ``k6 cloud run --local-execution``
        executable: Name or path of the k6 binary

    Returns:
        The command to spawn

    """
    extra_args: list[str] = []

    if not is_cloud:
        verb = ["run"]
    elif supports_cloud_run:
        verb = ["cloud", "run"]
        if cloud_run_locally:
            extra_args.append("--local-execution")
    elif cloud_run_locally:
        verb = ["run"]
        extra_args.append("--out=cloud")
    else:
        verb = ["cloud"]

    command = RunCommand(
        executable=executable,
        args=[*verb, "--address=", *split_flags(flags), *extra_args, script_path],
        script_path=script_path,
    )
    log.debug("🤖 Generated command: %s", command.display())
    return command


def clean_script_path(script_path: str, base_dir: str | None = None) -> str:
    """Strip the workspace prefix and leading separators from a script path.

    Args:
        script_path: Path as resolved or reported by k6
        base_dir: Workspace directory, defaults to ``GITHUB_WORKSPACE``

    """
    if base_dir is None:
        base_dir = os.environ.get("GITHUB_WORKSPACE", "")

    cleaned = os.path.normpath(script_path) if script_path else script_path
    if base_dir:
        normalized_base = os.path.normpath(base_dir)
        if cleaned.startswith(normalized_base):
            cleaned = cleaned[len(normalized_base) :]

    return cleaned.lstrip(os.sep).strip()
