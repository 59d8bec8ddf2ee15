"""GitHub pull request client using gh CLI."""

import logging
import os
import subprocess

from .errors import PRFailure

logger = logging.getLogger(__name__)


class GitHubClient:
    """Pull request operations via gh CLI."""

    def __init__(self, gh_cli: str = "gh", token: str | None = None):
        self.gh = gh_cli
        self.token = token

    def _env(self) -> dict[str, str] | None:
        if not self.token:
            return None
        env = dict(os.environ)
        env["GH_TOKEN"] = self.token
        return env

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        """Run gh CLI command."""
        cmd = [self.gh] + args
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
                encoding="utf-8",
                env=self._env(),
            )
        except OSError as e:
            raise PRFailure(f"Could not run {self.gh}: {e}") from e

        if result.returncode != 0:
            logger.warning(f"Command failed: {result.stderr}")

        return result

    def create_pull_request(
        self,
        owner: str,
        repo: str,
        head: str,
        base: str,
        title: str,
        body: str,
    ) -> str:
        """Create a pull request and return its URL.

        gh's own error text is raised unchanged, including the message for a
        pull request that already exists for ``head``.
        """
        args = [
            "pr",
            "create",
            "--repo",
            f"{owner}/{repo}",
            "--title",
            title,
            "--body",
            body,
            "--head",
            head,
            "--base",
            base,
        ]

        result = self._run(args)
        if result.returncode != 0:
            logger.error(f"Failed to create PR: {result.stderr}")
            raise PRFailure(result.stderr.strip() or f"Exit code: {result.returncode}")

        url = result.stdout.strip().splitlines()[-1] if result.stdout.strip() else ""
        logger.info(f"Created PR {url} ({head} -> {base})")
        return url
