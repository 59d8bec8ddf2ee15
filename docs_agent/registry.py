"""In-memory workspace registry and per-conversation locks."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkspaceState:
    """Where a conversation's working copy lives and which branch it is on."""

    local_path: Path
    branch_name: str


class WorkspaceRegistry:
    """Process-lifetime mapping of conversation id to WorkspaceState.

    Nothing is persisted. After a restart the clones on disk are found again by
    re-deriving their paths from the conversation id.
    """

    def __init__(self) -> None:
        self._states: dict[str, WorkspaceState] = {}

    def get(self, conversation_id: str) -> WorkspaceState | None:
        return self._states.get(conversation_id)

    def set(self, conversation_id: str, state: WorkspaceState) -> None:
        self._states[conversation_id] = state

    def remove(self, conversation_id: str) -> WorkspaceState | None:
        return self._states.pop(conversation_id, None)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._states

    def __len__(self) -> int:
        return len(self._states)


class KeyedLocks:
    """One asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1

        try:
            if lock.locked():
                logger.debug(f"Waiting for in-flight operation on {key}")
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
