"""
Conversation-scoped workspace management.

Each conversation gets its own clone under the configured base directory, on
its own branch. Operations for one conversation are serialized by a
per-conversation lock; different conversations run concurrently, with the
blocking git/gh/filesystem work pushed to worker threads.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from .errors import (
    CleanupFailure,
    CommitFailure,
    InvalidPathError,
    PushFailure,
    SetupFailure,
    WriteFailure,
)
from .git_operations import GitOperations
from .github_client import GitHubClient
from .naming import MAIN_CHECKOUT_NAME, BranchNamingPolicy
from .registry import KeyedLocks, WorkspaceRegistry, WorkspaceState

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)

REMOTE = "origin"


class PullRequestClient(Protocol):
    def create_pull_request(
        self,
        owner: str,
        repo: str,
        head: str,
        base: str,
        title: str,
        body: str,
    ) -> str: ...


@dataclass(frozen=True)
class SetupOutcome:
    """What ensure_workspace actually had to do."""

    reused_existing: bool = False
    cloned: bool = False
    branch_created: bool = False
    remote_branch_found: bool = False


@dataclass(frozen=True)
class SetupResult:
    state: WorkspaceState
    outcome: SetupOutcome


@dataclass(frozen=True)
class Change:
    """A full-content file write, relative to the workspace root."""

    path: str
    content: str | bytes

    @classmethod
    def coerce(cls, value: Change | Mapping[str, Any]) -> Change:
        if isinstance(value, Change):
            return value
        try:
            path, content = value["path"], value["content"]
        except (KeyError, TypeError) as e:
            raise InvalidPathError(
                f"Change must have 'path' and 'content': {value!r}"
            ) from e
        if not isinstance(path, str) or not isinstance(content, (str, bytes)):
            raise InvalidPathError(f"Invalid change: {value!r}")
        return cls(path=path, content=content)

    def data(self) -> bytes:
        if isinstance(self.content, bytes):
            return self.content
        return self.content.encode("utf-8")


@dataclass(frozen=True)
class DocsResolution:
    """Where a reader should look for documentation right now."""

    path: Path
    branch: str
    is_main_branch: bool


def resolve_in_workspace(root: Path, relative_path: str) -> Path:
    """
    Resolve ``relative_path`` under ``root``, refusing anything that escapes it.

    Absolute paths, ``..`` segments and the ``.git`` directory are rejected
    outright; the resolved location is checked as well so symlinks inside the
    checkout cannot point elsewhere.
    """
    if not relative_path or not relative_path.strip():
        raise InvalidPathError("Path must not be empty")

    candidate = Path(relative_path)
    if candidate.is_absolute() or relative_path.startswith(("/", "\\")):
        raise InvalidPathError(f"Path must be relative: {relative_path}")
    if ".." in candidate.parts or ".." in relative_path.replace("\\", "/").split("/"):
        raise InvalidPathError(f"Path cannot contain '..': {relative_path}")
    if candidate.parts and candidate.parts[0] == ".git":
        raise InvalidPathError(f"Path cannot point into .git: {relative_path}")

    root_resolved = root.resolve()
    target = (root_resolved / candidate).resolve()
    try:
        target.relative_to(root_resolved)
    except ValueError as e:
        raise InvalidPathError(f"Path escapes the workspace: {relative_path}") from e
    return target


class WorkspaceManager:
    """Manages one isolated clone and branch per conversation."""

    def __init__(
        self,
        repo_url: str,
        owner: str,
        repo: str,
        pulls: PullRequestClient,
        *,
        naming: BranchNamingPolicy | None = None,
        registry: WorkspaceRegistry | None = None,
        git_factory: Callable[[Path], GitOperations] = GitOperations,
        base_branch: str = "main",
    ):
        self.repo_url = repo_url
        self.owner = owner
        self.repo = repo
        self.pulls = pulls
        self.naming = naming or BranchNamingPolicy()
        self.registry = registry if registry is not None else WorkspaceRegistry()
        self.git_factory = git_factory
        self.base_branch = base_branch
        self._locks = KeyedLocks()
        self._checkout_locks = KeyedLocks()
        self._setups: dict[str, asyncio.Future[SetupResult]] = {}

    @classmethod
    def from_settings(
        cls, settings: Settings, registry: WorkspaceRegistry | None = None
    ) -> WorkspaceManager:
        pulls = GitHubClient(gh_cli=settings.gh_cli, token=settings.github_token)
        git_factory = partial(
            GitOperations,
            git_cli=settings.git_cli,
            author_name=settings.author_name,
            author_email=settings.author_email,
        )
        return cls(
            settings.repo_url,
            settings.github_owner,
            settings.github_repo,
            pulls,
            naming=settings.naming_policy(),
            registry=registry,
            git_factory=git_factory,
            base_branch=settings.base_branch,
        )

    # ========== Lookups ==========

    def get_state(self, conversation_id: str) -> WorkspaceState | None:
        return self.registry.get(conversation_id)

    def workspace_exists(self, conversation_id: str) -> bool:
        state = self.registry.get(conversation_id)
        return state is not None and state.local_path.exists()

    def reattach(self, conversation_id: str) -> WorkspaceState | None:
        """Register a clone left on disk by an earlier process. No network I/O."""
        state = self.registry.get(conversation_id)
        if state is not None:
            return state

        path = self.naming.workspace_path(conversation_id)
        if not (path / ".git").exists():
            return None

        state = WorkspaceState(
            local_path=path, branch_name=self.naming.branch_name(conversation_id)
        )
        self.registry.set(conversation_id, state)
        logger.info(f"Reattached existing workspace {path} for {conversation_id}")
        return state

    # ========== Setup ==========

    async def ensure_workspace(self, conversation_id: str) -> SetupResult:
        """Clone and check out the conversation's workspace if needed.

        Concurrent first-time calls for the same conversation share one
        setup: the first one clones, the rest await its result or its
        SetupFailure.
        """
        joined = await self._join_setup(conversation_id)
        if joined is not None:
            return SetupResult(joined.state, SetupOutcome(reused_existing=True))

        async with self._locks.hold(conversation_id):
            return await self._ensure(conversation_id)

    async def _join_setup(self, conversation_id: str) -> SetupResult | None:
        """Wait for a setup already running for this conversation.

        Returns None when nothing is in flight. A failed setup raises its
        SetupFailure here too; callers that arrive while it runs never start
        a second clone.
        """
        pending = self._setups.get(conversation_id)
        if pending is None:
            return None
        logger.debug(f"Joining in-flight setup for {conversation_id}")
        return await asyncio.shield(pending)

    async def _ensure(self, conversation_id: str) -> SetupResult:
        state = self.registry.get(conversation_id)
        if state is not None and state.local_path.exists():
            return SetupResult(state, SetupOutcome(reused_existing=True))

        setup = asyncio.ensure_future(self._setup(conversation_id))
        self._setups[conversation_id] = setup
        try:
            return await setup
        finally:
            self._setups.pop(conversation_id, None)

    async def _setup(self, conversation_id: str) -> SetupResult:
        path = self.naming.workspace_path(conversation_id)
        branch = self.naming.branch_name(conversation_id)
        git = self.git_factory(path)

        outcome = await asyncio.to_thread(self._setup_checkout, git, branch)

        state = WorkspaceState(local_path=path, branch_name=branch)
        self.registry.set(conversation_id, state)
        logger.info(
            f"Workspace ready for {conversation_id}: {path} on {branch} "
            f"(cloned={outcome.cloned}, remote_branch={outcome.remote_branch_found})"
        )
        return SetupResult(state, outcome)

    def _clone_if_missing(self, git: GitOperations) -> bool:
        """Clone into ``git.path`` unless a checkout is already there."""
        path = git.path
        if path.exists() and not git.is_repository():
            logger.warning(f"Removing incomplete checkout at {path}")
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                else:
                    path.unlink()
            except OSError as e:
                raise SetupFailure(f"Could not clear {path}: {e}") from e

        if path.exists():
            logger.debug(f"Repo already exists in {path}")
            return False

        result = git.clone(self.repo_url)
        if not result.success:
            shutil.rmtree(path, ignore_errors=True)
            raise SetupFailure(f"Failed to clone {self.repo_url}: {result.error}")
        return True

    def _setup_checkout(self, git: GitOperations, branch: str) -> SetupOutcome:
        cloned = self._clone_if_missing(git)

        fetch = git.fetch(REMOTE)
        if not fetch.success:
            logger.warning(f"Fetch failed in {git.path}: {fetch.error}")

        remote_exists = git.remote_branch_exists(branch, REMOTE)
        branch_created = False

        if git.local_branch_exists(branch):
            logger.info(f"Checking out existing branch: {branch}")
            result = git.checkout(branch)
        elif remote_exists:
            logger.info(f"Tracking remote branch: {REMOTE}/{branch}")
            result = git.checkout_local_branch(branch, f"{REMOTE}/{branch}")
        else:
            logger.info(f"Creating branch: {branch}")
            result = git.checkout_local_branch(branch)
            branch_created = True

        if not result.success:
            raise SetupFailure(f"Failed to check out {branch}: {result.error}")

        if remote_exists:
            pull = git.pull(REMOTE, branch)
            if not pull.success:
                raise SetupFailure(f"Failed to pull {REMOTE}/{branch}: {pull.error}")
        else:
            # Expected until the conversation's first push.
            logger.info(
                f"Remote branch {branch} does not exist yet. Continuing on local branch."
            )

        return SetupOutcome(
            cloned=cloned,
            branch_created=branch_created,
            remote_branch_found=remote_exists,
        )

    # ========== Writes ==========

    async def apply_changes(
        self,
        conversation_id: str,
        changes: Iterable[Change | Mapping[str, Any]],
    ) -> int:
        """Write full file contents into the workspace. Returns files written.

        Every path is validated before anything is written. A filesystem
        error stops the remaining writes; files written before it stay
        written and WriteFailure.applied says how many.
        """
        normalized = [Change.coerce(change) for change in changes]
        await self._join_setup(conversation_id)
        async with self._locks.hold(conversation_id):
            state = (await self._ensure(conversation_id)).state
            return await asyncio.to_thread(
                self._write_changes, state.local_path, normalized
            )

    def _write_changes(self, root: Path, changes: list[Change]) -> int:
        targets = [resolve_in_workspace(root, change.path) for change in changes]
        for change, target in zip(changes, targets):
            if target == root.resolve():
                raise InvalidPathError(f"Path is the workspace root: {change.path}")

        applied = 0
        for change, target in zip(changes, targets):
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(change.data())
            except OSError as e:
                raise WriteFailure(
                    f"Failed to write {change.path}: {e}", applied=applied
                ) from e
            applied += 1
            logger.debug(f"Wrote {change.path} in {root}")

        logger.info(f"Applied {applied} change(s) in {root}")
        return applied

    async def commit_and_push(self, conversation_id: str, message: str) -> str:
        """Stage everything, commit and push the branch. Returns the commit sha."""
        await self._join_setup(conversation_id)
        async with self._locks.hold(conversation_id):
            state = (await self._ensure(conversation_id)).state
            return await asyncio.to_thread(self._commit_and_push, state, message)

    def _commit_and_push(self, state: WorkspaceState, message: str) -> str:
        git = self.git_factory(state.local_path)

        staged = git.stage_all()
        if not staged.success:
            raise CommitFailure(f"Failed to stage changes: {staged.error}")
        if not git.has_staged_changes():
            raise CommitFailure("No changes to commit")

        committed = git.commit(message)
        if not committed.success:
            raise CommitFailure(f"Commit rejected: {committed.error}")

        pushed = git.push(REMOTE, state.branch_name)
        if not pushed.success:
            raise PushFailure(f"Push of {state.branch_name} rejected: {pushed.error}")

        sha = git.head_commit() or ""
        logger.info(f"Pushed {sha[:12]} to {REMOTE}/{state.branch_name}")
        return sha

    async def create_pr(
        self,
        conversation_id: str,
        title: str,
        body: str,
        base: str | None = None,
    ) -> str:
        """Open a pull request from the conversation branch. Returns its URL.

        There is no duplicate check; a second call for the same branch fails
        with whatever the hosting API says.
        """
        await self._join_setup(conversation_id)
        async with self._locks.hold(conversation_id):
            state = (await self._ensure(conversation_id)).state
            return await asyncio.to_thread(
                self.pulls.create_pull_request,
                self.owner,
                self.repo,
                state.branch_name,
                base or self.base_branch,
                title,
                body,
            )

    # ========== Teardown ==========

    async def cleanup(self, conversation_id: str) -> bool:
        """Remove the workspace. Returns False when there was nothing to remove."""
        async with self._locks.hold(conversation_id):
            state = self.registry.get(conversation_id)
            if state is None or not state.local_path.exists():
                self.registry.remove(conversation_id)
                logger.info(f"No workspace to clean up for {conversation_id}")
                return False

            try:
                await asyncio.to_thread(shutil.rmtree, state.local_path)
            except OSError as e:
                raise CleanupFailure(
                    f"Failed to remove {state.local_path}: {e}"
                ) from e

            self.registry.remove(conversation_id)
            logger.info(f"Removed workspace {state.local_path}")
            return True

    # ========== Reads ==========

    async def get_docs_path(self, conversation_id: str) -> DocsResolution:
        """Find the freshest readable docs for a conversation.

        Once the conversation's branch exists on the remote, that is its own
        clone. Before its first push, it is the shared main checkout, which
        must only ever be read.
        """
        branch = self.naming.branch_name(conversation_id)

        async with self._checkout_locks.hold(MAIN_CHECKOUT_NAME):
            has_branch = await asyncio.to_thread(self._refresh_main_checkout, branch)

        if has_branch:
            state = (await self.ensure_workspace(conversation_id)).state
            return DocsResolution(state.local_path, state.branch_name, is_main_branch=False)

        return DocsResolution(
            self.naming.main_checkout_path(), self.base_branch, is_main_branch=True
        )

    def _refresh_main_checkout(self, branch: str) -> bool:
        """Clone the shared checkout if needed; True when ``branch`` is on the remote."""
        git = self.git_factory(self.naming.main_checkout_path())
        self._clone_if_missing(git)

        if git.remote_branch_exists(branch, REMOTE):
            return True

        steps = (
            lambda: git.fetch(REMOTE),
            lambda: git.checkout(self.base_branch),
            lambda: git.pull(REMOTE, self.base_branch),
        )
        for step in steps:
            result = step()
            if not result.success:
                # A stale checkout is still readable.
                logger.warning(
                    f"Could not refresh {self.base_branch} in {git.path}: {result.error}"
                )
                break
        return False
