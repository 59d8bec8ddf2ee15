"""Git operations for conversation workspaces."""

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class GitResult:
    """Result of a git operation."""

    success: bool
    output: str
    error: str | None = None


class GitOperations:
    """Remote repository primitives run against one working copy."""

    def __init__(
        self,
        workspace_path: Path,
        git_cli: str = "git",
        author_name: str = "docs-agent",
        author_email: str = "docs-agent@users.noreply.github.com",
    ):
        """
        Initialize git operations.

        Args:
            workspace_path: Working copy the commands run in (clone destination)
            git_cli: git executable
            author_name: Identity recorded on commits
            author_email: Identity recorded on commits
        """
        self.workspace = Path(workspace_path)
        self.git = git_cli
        self.author_name = author_name
        self.author_email = author_email

    def _format_cmd(self, args: list[str]) -> str:
        """Format command for logs."""
        cmd = [self.git] + args
        return " ".join(shlex.quote(part) for part in cmd)

    def _run(
        self,
        args: list[str],
        cwd: Path | None = None,
    ) -> GitResult:
        """Run a git command."""
        cmd = [self.git] + args
        work_dir = cwd or self.workspace

        logger.debug(f"Running: {self._format_cmd(args)} in {work_dir}")

        try:
            result = subprocess.run(
                cmd,
                cwd=work_dir,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            return GitResult(success=False, output="", error=str(e))

        if result.returncode != 0:
            return GitResult(
                success=False,
                output=result.stdout,
                error=result.stderr.strip() or f"Exit code: {result.returncode}",
            )
        return GitResult(success=True, output=result.stdout)

    def is_repository(self) -> bool:
        """Whether the workspace holds a git checkout."""
        return (self.workspace / ".git").exists()

    def clone(self, url: str) -> GitResult:
        """Clone ``url`` into the workspace path."""
        logger.info(f"Cloning repository to: {self.workspace}")
        self.workspace.parent.mkdir(parents=True, exist_ok=True)
        return self._run(
            ["clone", url, str(self.workspace)],
            cwd=self.workspace.parent,
        )

    def fetch(self, remote: str = "origin") -> GitResult:
        return self._run(["fetch", remote])

    def checkout(self, name: str) -> GitResult:
        """Checkout an existing branch."""
        return self._run(["checkout", name])

    def checkout_local_branch(
        self, name: str, start_point: str | None = None
    ) -> GitResult:
        """Create and checkout a new local branch."""
        args = ["checkout", "-b", name]
        if start_point:
            args.append(start_point)
        return self._run(args)

    def local_branch_exists(self, name: str) -> bool:
        result = self._run(["rev-parse", "--verify", "--quiet", f"refs/heads/{name}"])
        return result.success

    def remote_branch_exists(self, name: str, remote: str = "origin") -> bool:
        """Ask the remote itself, not the possibly stale remote-tracking refs."""
        result = self._run(["ls-remote", "--exit-code", "--heads", remote, name])
        return result.success and bool(result.output.strip())

    def pull(self, remote: str, branch: str) -> GitResult:
        """Fast-forward the current branch; never creates a merge commit."""
        return self._run(["pull", "--ff-only", remote, branch])

    def stage_all(self) -> GitResult:
        """Stage all changes."""
        return self._run(["add", "-A"])

    def has_staged_changes(self) -> bool:
        # diff --cached --quiet exits 1 when the index differs from HEAD
        result = self._run(["diff", "--cached", "--quiet"])
        return not result.success

    def commit(self, message: str) -> GitResult:
        """Create a commit from whatever is staged."""
        return self._run(
            [
                "-c",
                f"user.name={self.author_name}",
                "-c",
                f"user.email={self.author_email}",
                "commit",
                "-m",
                message,
            ]
        )

    def push(self, remote: str, branch: str) -> GitResult:
        """Push branch to the remote. Never forces."""
        return self._run(["push", "-u", remote, branch])

    def head_commit(self) -> str | None:
        result = self._run(["rev-parse", "HEAD"])
        return result.output.strip() if result.success else None

    @property
    def path(self) -> Path:
        """Get the workspace path."""
        return self.workspace
