"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from docs_agent.config import Settings, load_settings
from docs_agent.errors import ConfigError

REQUIRED = {
    "REPO_URL": "https://github.com/owner/docs.git",
    "GITHUB_OWNER": "owner",
    "GITHUB_REPO": "docs",
    "GITHUB_TOKEN": "token",
}


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    for name in [
        *REQUIRED,
        "DOCS_AGENT_CONFIG",
        "DOCS_AGENT_WORK_DIR",
        "DOCS_AGENT_BRANCH_PREFIX",
        "DOCS_AGENT_BASE_BRANCH",
        "DOCS_AGENT_LOG_LEVEL",
    ]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def _set_required(env: pytest.MonkeyPatch) -> None:
    for name, value in REQUIRED.items():
        env.setenv(name, value)


def test_load_settings_from_environment(env: pytest.MonkeyPatch) -> None:
    _set_required(env)

    settings = load_settings()

    assert settings.repo_url == "https://github.com/owner/docs.git"
    assert settings.github_owner == "owner"
    assert settings.github_repo == "docs"
    assert settings.work_dir == "/tmp/docs-agent"
    assert settings.base_branch == "main"
    assert settings.naming_policy().branch_name("abc") == "docs-agent/abc"


def test_missing_required_values_listed(env: pytest.MonkeyPatch) -> None:
    env.setenv("REPO_URL", "https://github.com/owner/docs.git")
    env.setenv("GITHUB_TOKEN", "   ")

    with pytest.raises(ConfigError) as excinfo:
        load_settings()

    message = str(excinfo.value)
    assert "GITHUB_OWNER" in message
    assert "GITHUB_REPO" in message
    assert "GITHUB_TOKEN" in message
    assert "REPO_URL" not in message


def test_yaml_supplies_defaults_and_env_overrides(env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = tmp_path / "docs-agent.yml"
    config_path.write_text(
        """
repo_url: https://github.com/owner/yaml-docs.git
github_owner: owner
github_repo: yaml-docs
work_dir: ~/docs-workspaces
base_branch: trunk
log_level: debug
""",
        encoding="utf-8",
    )
    env.setenv("GITHUB_TOKEN", "token")
    env.setenv("DOCS_AGENT_BASE_BRANCH", "develop")

    settings = load_settings(str(config_path))

    assert settings.repo_url == "https://github.com/owner/yaml-docs.git"
    assert settings.work_dir == str(Path.home() / "docs-workspaces")
    assert settings.base_branch == "develop"
    assert settings.log_level == "DEBUG"


def test_config_path_from_environment(env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = tmp_path / "custom.yml"
    config_path.write_text("branch_prefix: bot/\n", encoding="utf-8")
    _set_required(env)
    env.setenv("DOCS_AGENT_CONFIG", str(config_path))

    assert load_settings().branch_prefix == "bot/"


def test_missing_config_file_uses_defaults(env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _set_required(env)

    settings = load_settings(str(tmp_path / "missing.yml"))

    assert settings.branch_prefix == "docs-agent/"


def test_token_not_accepted_from_yaml(env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = tmp_path / "docs-agent.yml"
    config_path.write_text("github_token: leaked\n", encoding="utf-8")
    _set_required(env)

    with pytest.raises(ConfigError, match="GITHUB_TOKEN"):
        load_settings(str(config_path))


def test_unknown_yaml_key_rejected(env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = tmp_path / "docs-agent.yml"
    config_path.write_text("poll_interval: 60\n", encoding="utf-8")
    _set_required(env)

    with pytest.raises(ConfigError, match="poll_interval"):
        load_settings(str(config_path))


def test_invalid_branch_prefix() -> None:
    with pytest.raises(ConfigError, match="branch_prefix"):
        Settings(
            repo_url="url", github_owner="owner", github_repo="docs",
            github_token="t", branch_prefix="docs-agent",
        )


def test_invalid_owner() -> None:
    with pytest.raises(ConfigError, match="github_owner"):
        Settings(repo_url="url", github_owner="own er", github_repo="docs", github_token="t")


def test_invalid_log_level() -> None:
    with pytest.raises(ConfigError, match="log_level"):
        Settings(
            repo_url="url", github_owner="owner", github_repo="docs",
            github_token="t", log_level="chatty",
        )
