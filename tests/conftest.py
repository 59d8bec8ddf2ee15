"""Shared fakes for workspace manager tests."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from docs_agent.git_operations import GitResult
from docs_agent.naming import BranchNamingPolicy
from docs_agent.workspace import WorkspaceManager

OK = GitResult(success=True, output="")


@dataclass
class FakeRemote:
    """State shared by every FakeGit created for one test."""

    remote_branches: set[str] = field(default_factory=set)
    local_branches: dict[Path, set[str]] = field(default_factory=dict)
    clones: list[Path] = field(default_factory=list)
    pushes: list[str] = field(default_factory=list)
    calls: list[tuple] = field(default_factory=list)
    clone_error: str | None = None
    clone_delay: float = 0.0
    pull_error: str | None = None
    commit_error: str | None = None
    push_error: str | None = None
    has_changes: bool = True


class FakeGit:
    def __init__(self, workspace_path: Path, remote: FakeRemote):
        self.workspace = Path(workspace_path)
        self.remote = remote

    @property
    def path(self) -> Path:
        return self.workspace

    def _log(self, *call) -> None:
        self.remote.calls.append((self.workspace, *call))

    def is_repository(self) -> bool:
        return (self.workspace / ".git").exists()

    def clone(self, url: str) -> GitResult:
        self._log("clone", url)
        time.sleep(self.remote.clone_delay)
        self.remote.clones.append(self.workspace)
        if self.remote.clone_error:
            self.workspace.mkdir(parents=True, exist_ok=True)
            return GitResult(success=False, output="", error=self.remote.clone_error)
        (self.workspace / ".git").mkdir(parents=True)
        return OK

    def fetch(self, remote: str = "origin") -> GitResult:
        self._log("fetch")
        return OK

    def remote_branch_exists(self, name: str, remote: str = "origin") -> bool:
        return name in self.remote.remote_branches

    def local_branch_exists(self, name: str) -> bool:
        return name in self.remote.local_branches.get(self.workspace, set())

    def checkout(self, name: str) -> GitResult:
        self._log("checkout", name)
        return OK

    def checkout_local_branch(self, name: str, start_point: str | None = None) -> GitResult:
        self._log("checkout_local_branch", name, start_point)
        self.remote.local_branches.setdefault(self.workspace, set()).add(name)
        return OK

    def pull(self, remote: str, branch: str) -> GitResult:
        self._log("pull", remote, branch)
        if self.remote.pull_error:
            return GitResult(success=False, output="", error=self.remote.pull_error)
        return OK

    def stage_all(self) -> GitResult:
        self._log("stage_all")
        return OK

    def has_staged_changes(self) -> bool:
        return self.remote.has_changes

    def commit(self, message: str) -> GitResult:
        self._log("commit", message)
        if self.remote.commit_error:
            return GitResult(success=False, output="", error=self.remote.commit_error)
        return OK

    def push(self, remote: str, branch: str) -> GitResult:
        self._log("push", remote, branch)
        if self.remote.push_error:
            return GitResult(success=False, output="", error=self.remote.push_error)
        self.remote.pushes.append(branch)
        self.remote.remote_branches.add(branch)
        return OK

    def head_commit(self) -> str:
        return "0123456789abcdef0123"


class FakePulls:
    def __init__(self, url: str = "https://github.com/owner/docs/pull/7"):
        self.url = url
        self.requests: list[dict[str, str]] = []
        self.error: Exception | None = None

    def create_pull_request(self, owner, repo, head, base, title, body) -> str:
        self.requests.append(
            {"owner": owner, "repo": repo, "head": head, "base": base, "title": title, "body": body}
        )
        if self.error:
            raise self.error
        return self.url


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def pulls() -> FakePulls:
    return FakePulls()


@pytest.fixture
def manager(tmp_path: Path, remote: FakeRemote, pulls: FakePulls) -> WorkspaceManager:
    return WorkspaceManager(
        "https://github.com/owner/docs.git",
        "owner",
        "docs",
        pulls,
        naming=BranchNamingPolicy(base_dir=tmp_path / "workspaces"),
        git_factory=lambda path: FakeGit(path, remote),
    )
