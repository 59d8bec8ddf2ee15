"""Configuration management for the docs agent."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from .errors import ConfigError
from .naming import DEFAULT_BASE_DIR, DEFAULT_BRANCH_PREFIX, BranchNamingPolicy

# Environment variables that must be present before any tool call runs.
REQUIRED_ENV = {
    "repo_url": "REPO_URL",
    "github_owner": "GITHUB_OWNER",
    "github_repo": "GITHUB_REPO",
    "github_token": "GITHUB_TOKEN",
}

OPTIONAL_ENV = {
    "work_dir": "DOCS_AGENT_WORK_DIR",
    "branch_prefix": "DOCS_AGENT_BRANCH_PREFIX",
    "base_branch": "DOCS_AGENT_BASE_BRANCH",
    "log_level": "DOCS_AGENT_LOG_LEVEL",
    "git_cli": "DOCS_AGENT_GIT_CLI",
    "gh_cli": "DOCS_AGENT_GH_CLI",
    "author_name": "DOCS_AGENT_AUTHOR_NAME",
    "author_email": "DOCS_AGENT_AUTHOR_EMAIL",
}

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


@dataclass
class Settings:
    """Settings for the workspace manager and its git/gh collaborators."""

    repo_url: str
    github_owner: str
    github_repo: str
    github_token: str
    work_dir: str = str(DEFAULT_BASE_DIR)
    branch_prefix: str = DEFAULT_BRANCH_PREFIX
    base_branch: str = "main"
    log_level: str = "INFO"
    git_cli: str = "git"
    gh_cli: str = "gh"
    author_name: str = "docs-agent"
    author_email: str = "docs-agent@users.noreply.github.com"

    def __post_init__(self) -> None:
        missing = [
            env_name
            for attr, env_name in REQUIRED_ENV.items()
            if not str(getattr(self, attr) or "").strip()
        ]
        if missing:
            raise ConfigError(
                f"Missing required configuration: {', '.join(missing)}"
            )

        self.work_dir = str(Path(self.work_dir).expanduser())

        for attr in ("github_owner", "github_repo"):
            value = getattr(self, attr)
            if not _NAME_PATTERN.match(value):
                raise ConfigError(f"Invalid {attr}: {value}")

        if not self.branch_prefix.endswith("/"):
            raise ConfigError(
                f"Invalid branch_prefix: {self.branch_prefix}. Must end with '/'"
            )

        self.log_level = self.log_level.upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigError(f"Invalid log_level: {self.log_level}")

    def naming_policy(self) -> BranchNamingPolicy:
        return BranchNamingPolicy(base_dir=Path(self.work_dir), prefix=self.branch_prefix)


def _default_config_path() -> Path | None:
    env_config = os.environ.get("DOCS_AGENT_CONFIG")
    if env_config:
        return Path(env_config)
    cwd_config = Path.cwd() / "config" / "docs-agent.yml"
    if cwd_config.exists():
        return cwd_config
    return None


def load_yaml_config(config_path: str | None = None) -> dict[str, str]:
    """Load non-secret settings from a YAML file. A missing file means defaults."""
    path = Path(config_path) if config_path else _default_config_path()
    if path is None or not path.exists():
        return {}

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown settings in {path}: {', '.join(unknown)}")
    if "github_token" in data:
        raise ConfigError("github_token must come from the GITHUB_TOKEN environment variable")

    return {key: str(value) for key, value in data.items() if value is not None}


def load_settings(config_path: str | None = None) -> Settings:
    """Resolve settings by priority: ENV > YAML > defaults."""
    values = load_yaml_config(config_path)

    for attr, env_name in {**REQUIRED_ENV, **OPTIONAL_ENV}.items():
        env_value = os.environ.get(env_name, "").strip()
        if env_value:
            values[attr] = env_value

    for attr in REQUIRED_ENV:
        values.setdefault(attr, "")

    return Settings(**values)
