"""Tests for action configuration."""

import pytest
from pydantic import SecretStr, ValidationError

from run_k6_action.config import (
    DEFAULT_CLOUD_BASE_URL,
    ActionConfig,
    CloudSettings,
    parse_bool,
    read_action_inputs,
)
from run_k6_action.errors import ConfigurationConflictError


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("true", True),
        ("TRUE", True),
        (" yes ", True),
        ("1", True),
        ("on", True),
        ("false", False),
        ("No", False),
        ("0", False),
        ("off", False),
        ("", False),
        (True, True),
        (False, False),
    ],
)
def test_parse_bool(value: str | bool, expected: bool) -> None:
    assert parse_bool(value) is expected


def test_parse_bool_rejects_unknown_value() -> None:
    with pytest.raises(ConfigurationConflictError, match="Invalid boolean"):
        parse_bool("maybe")


def test_action_config_defaults() -> None:
    config = ActionConfig(path="*.js")

    assert config.parallel is False
    assert config.fail_fast is False
    assert config.cloud_run_locally is True
    assert config.github_token is None
    assert config.k6_executable == "k6"


def test_action_config_parses_string_inputs() -> None:
    """GitHub Actions inputs are strings."""
    config = ActionConfig.model_validate(
        {"path": "*.js", "parallel": "true", "cloud_run_locally": "false"}
    )

    assert config.parallel is True
    assert config.cloud_run_locally is False


def test_action_config_empty_token_is_none() -> None:
    assert ActionConfig(path="*.js", github_token="").github_token is None


def test_action_config_requires_path() -> None:
    with pytest.raises(ValidationError):
        ActionConfig(path="  \n")


def test_action_config_token_is_secret() -> None:
    config = ActionConfig(path="*.js", github_token="ghp_secret")

    assert "ghp_secret" not in repr(config)
    assert config.github_token is not None
    assert config.github_token.get_secret_value() == "ghp_secret"


def test_check_conflicts_comment_without_token() -> None:
    """Commenting on pull requests needs a token on cloud runs."""
    config = ActionConfig(path="*.js", cloud_comment_on_pr=True)

    with pytest.raises(ConfigurationConflictError, match="github-token"):
        config.check_conflicts(is_cloud=True)

    config.check_conflicts(is_cloud=False)


def test_check_conflicts_comment_with_token() -> None:
    config = ActionConfig(path="*.js", cloud_comment_on_pr=True, github_token="t")

    config.check_conflicts(is_cloud=True)


def test_cloud_settings_absent_without_token() -> None:
    assert CloudSettings.from_env({"K6_CLOUD_PROJECT_ID": "123"}) is None


def test_cloud_settings_from_env() -> None:
    settings = CloudSettings.from_env(
        {"K6_CLOUD_TOKEN": "token", "K6_CLOUD_PROJECT_ID": "123"}
    )

    assert settings == CloudSettings(
        token=SecretStr("token"), project_id="123", base_url=DEFAULT_CLOUD_BASE_URL
    )


def test_cloud_settings_custom_base_url() -> None:
    settings = CloudSettings.from_env(
        {
            "K6_CLOUD_TOKEN": "token",
            "K6_CLOUD_PROJECT_ID": "123",
            "K6_CLOUD_BASE_URL": "http://localhost:8080/v5",
        }
    )

    assert settings is not None
    assert settings.base_url == "http://localhost:8080/v5"


def test_cloud_settings_token_without_project() -> None:
    """A cloud token alone is a conflict."""
    with pytest.raises(ConfigurationConflictError, match="K6_CLOUD_PROJECT_ID"):
        CloudSettings.from_env({"K6_CLOUD_TOKEN": "token"})


def test_read_action_inputs() -> None:
    """Known INPUT_ variables are mapped to config fields."""
    env = {
        "INPUT_PATH": "tests/*.js",
        "INPUT_FAIL-FAST": "true",
        "INPUT_INSPECT-FLAGS": "--compatibility-mode=base",
        "INPUT_UNKNOWN": "x",
        "PATH": "/usr/bin",
    }

    assert read_action_inputs(env) == {
        "path": "tests/*.js",
        "fail_fast": "true",
        "inspect_flags": "--compatibility-mode=base",
    }
