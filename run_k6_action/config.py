"""Configuration for a k6 action invocation."""

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, SecretStr, field_validator

from run_k6_action.errors import ConfigurationConflictError

TRUE_VALUES = frozenset({"true", "yes", "1", "on"})
FALSE_VALUES = frozenset({"false", "no", "0", "off", ""})

DEFAULT_CLOUD_BASE_URL = "https://api.k6.io/cloud/v5"


def parse_bool(value: str | bool) -> bool:
    """Parse a boolean input the way GitHub Actions inputs are written."""
    if isinstance(value, bool):
        return value
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ConfigurationConflictError(f"Invalid boolean input value: {value!r}")


class ActionConfig(BaseModel):
    """Inputs of one invocation."""

    model_config = ConfigDict(frozen=True)

    path: str
    parallel: bool = False
    fail_fast: bool = False
    flags: str = ""
    inspect_flags: str = ""
    cloud_run_locally: bool = True
    only_verify_scripts: bool = False
    cloud_comment_on_pr: bool = False
    github_token: SecretStr | None = None
    debug: bool = False
    disable_analytics: bool = False
    k6_executable: str = "k6"

    @field_validator(
        "parallel",
        "fail_fast",
        "cloud_run_locally",
        "only_verify_scripts",
        "cloud_comment_on_pr",
        "debug",
        "disable_analytics",
        mode="before",
    )
    @classmethod
    def _parse_bool(cls, value: str | bool) -> bool:
        return parse_bool(value)

    @field_validator("github_token", mode="before")
    @classmethod
    def _empty_token_is_none(cls, value: object) -> object:
        return None if value == "" else value

    @field_validator("path")
    @classmethod
    def _require_path(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("path must not be empty")
        return value

    def check_conflicts(self, is_cloud: bool) -> None:
        """Reject settings enabled without their prerequisite.

        Raises:
            ConfigurationConflictError: If commenting on pull requests is
                requested without a GitHub token

        """
        if self.cloud_comment_on_pr and is_cloud and self.github_token is None:
            raise ConfigurationConflictError(
                "github-token must be set when cloud-comment-on-pr is enabled"
            )


class CloudSettings(BaseModel):
    """Grafana Cloud k6 settings, read from the environment."""

    model_config = ConfigDict(frozen=True)

    token: SecretStr
    project_id: str
    base_url: str = DEFAULT_CLOUD_BASE_URL

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "CloudSettings | None":
        """Build the settings, or None when no cloud token is configured.

        Raises:
            ConfigurationConflictError: If the token is set without a project id

        """
        env = os.environ if env is None else env

        token = env.get("K6_CLOUD_TOKEN", "")
        if not token:
            return None

        project_id = env.get("K6_CLOUD_PROJECT_ID", "")
        if not project_id:
            raise ConfigurationConflictError(
                "K6_CLOUD_PROJECT_ID must be set when K6_CLOUD_TOKEN is set"
            )

        return cls(
            token=SecretStr(token),
            project_id=project_id,
            base_url=env.get("K6_CLOUD_BASE_URL") or DEFAULT_CLOUD_BASE_URL,
        )


def read_action_inputs(env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Read GitHub Actions ``INPUT_*`` variables into config field names.

    ``INPUT_FAIL-FAST`` becomes ``fail_fast``. Unknown inputs are ignored.
    """
    env = os.environ if env is None else env
    inputs: dict[str, str] = {}

    for key, value in env.items():
        if not key.startswith("INPUT_"):
            continue
        name = key.removeprefix("INPUT_").lower().replace("-", "_")
        if name in ActionConfig.model_fields:
            inputs[name] = value

    return inputs
