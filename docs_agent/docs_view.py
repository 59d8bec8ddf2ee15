"""Per-reader view of a conversation's documentation.

A view starts unresolved and settles into one of two states:

* ``Shared`` - the conversation has not pushed anything yet, so reads go to
  the shared main checkout that every such conversation reads from.
* ``Dedicated`` - reads (and writes) go to the conversation's own clone.

Writes never happen in ``Shared``: ``edit_file`` moves the view to
``Dedicated`` first and the view stays there.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .workspace import Change, DocsResolution, WorkspaceManager, resolve_in_workspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Shared:
    path: Path
    branch: str


@dataclass(frozen=True)
class Dedicated:
    path: Path
    branch: str


class DocsView:
    """Cached read-path resolution for one conversation."""

    def __init__(self, manager: WorkspaceManager, conversation_id: str):
        self.manager = manager
        self.conversation_id = conversation_id
        self._state: Shared | Dedicated | None = None

    @property
    def state(self) -> Shared | Dedicated | None:
        return self._state

    @property
    def is_main_branch(self) -> bool:
        return isinstance(self._state, Shared)

    def invalidate(self) -> None:
        self._state = None

    async def resolve(self, force: bool = False) -> DocsResolution:
        if force:
            self.invalidate()
        if self._state is None:
            resolution = await self.manager.get_docs_path(self.conversation_id)
            if resolution.is_main_branch:
                self._state = Shared(resolution.path, resolution.branch)
            else:
                self._state = Dedicated(resolution.path, resolution.branch)
            logger.info(
                f"Docs path for {self.conversation_id}: {resolution.path} "
                f"(branch {resolution.branch})"
            )
        return DocsResolution(
            self._state.path,
            self._state.branch,
            is_main_branch=isinstance(self._state, Shared),
        )

    async def _leave_shared(self) -> None:
        if isinstance(self._state, Dedicated):
            return
        state = (await self.manager.ensure_workspace(self.conversation_id)).state
        self._state = Dedicated(state.local_path, state.branch_name)
        logger.info(f"{self.conversation_id} now reads from {state.local_path}")

    async def read_file(self, path: str) -> str:
        root = (await self.resolve()).path
        target = resolve_in_workspace(root, path)
        return await asyncio.to_thread(target.read_text, encoding="utf-8")

    async def list_files(self, path: str = ".") -> list[str]:
        """List files below ``path``, relative to the docs root."""
        root = (await self.resolve()).path
        start = root.resolve() if path in ("", ".", "./") else resolve_in_workspace(root, path)
        return await asyncio.to_thread(_walk_files, root.resolve(), start)

    async def edit_file(self, path: str, content: str) -> str:
        """Write, commit and push one file. Returns the commit sha."""
        await self._leave_shared()
        await self.manager.apply_changes(self.conversation_id, [Change(path, content)])
        return await self.manager.commit_and_push(self.conversation_id, f"Update {path}")


def _walk_files(root: Path, start: Path) -> list[str]:
    if not start.is_dir():
        raise NotADirectoryError(f"Not a directory: {start.relative_to(root)}")

    files: list[str] = []
    for dirpath, dirnames, filenames in os.walk(start):
        dirnames[:] = sorted(d for d in dirnames if d != ".git")
        for name in sorted(filenames):
            files.append((Path(dirpath) / name).relative_to(root).as_posix())
    return files
