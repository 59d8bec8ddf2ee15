"""Agent-facing tools over the workspace manager.

Tools are plain data (name, description, JSON-schema parameters) plus an async
handler, so any agent runtime can register them. Handlers always return a
short status string; failures come back as ``"Error: ..."`` text for the
agent to read instead of escaping into the agent loop.
"""

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from .docs_view import DocsView
from .errors import WorkspaceError
from .workspace import WorkspaceManager

logger = logging.getLogger(__name__)

Handler = Callable[[Mapping[str, Any]], Awaitable[str]]


class WorkspaceCapability(Protocol):
    """The five workspace operations, already bound to one conversation."""

    async def clone_repo(self) -> str: ...

    async def apply_changes(self, changes: list[Mapping[str, Any]]) -> str: ...

    async def commit_and_push(self, message: str) -> str: ...

    async def create_pr(self, title: str, body: str, base: str | None = None) -> str: ...

    async def cleanup(self) -> str: ...


class ConversationWorkspace:
    """WorkspaceCapability for a single conversation id."""

    def __init__(self, manager: WorkspaceManager, conversation_id: str):
        self._manager = manager
        self._conversation_id = conversation_id

    async def clone_repo(self) -> str:
        result = await self._manager.ensure_workspace(self._conversation_id)
        if result.outcome.reused_existing:
            return f"Workspace already exists at {result.state.local_path}"
        return (
            f"Workspace ready at {result.state.local_path} "
            f"on branch {result.state.branch_name}"
        )

    async def apply_changes(self, changes: list[Mapping[str, Any]]) -> str:
        count = await self._manager.apply_changes(self._conversation_id, changes)
        return f"Changes applied ({count} file(s))."

    async def commit_and_push(self, message: str) -> str:
        sha = await self._manager.commit_and_push(self._conversation_id, message)
        return f"Committed and pushed changes ({sha[:12]})."

    async def create_pr(self, title: str, body: str, base: str | None = None) -> str:
        url = await self._manager.create_pr(self._conversation_id, title, body, base)
        return f"PR created: {url}"

    async def cleanup(self) -> str:
        removed = await self._manager.cleanup(self._conversation_id)
        return "Temporary directory removed." if removed else "No workspace to clean up."


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    parameters: dict[str, Any]
    handler: Handler

    def schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }

    async def invoke(self, arguments: Mapping[str, Any] | str | None = None) -> str:
        """Run the tool; errors are returned as text."""
        try:
            if isinstance(arguments, str):
                arguments = json.loads(arguments) if arguments.strip() else {}
            args = dict(arguments or {})
            for required in self.parameters.get("required", []):
                if required not in args:
                    raise ValueError(f"Missing required argument '{required}'")
            return await self.handler(args)
        except (WorkspaceError, OSError, ValueError, TypeError) as e:
            logger.warning(f"Tool {self.name} failed: {e}")
            return f"Error: {e}"


def _object_schema(properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


_CHANGES_SCHEMA = {
    "type": "array",
    "description": "Array of file changes.",
    "items": _object_schema(
        {
            "path": {"type": "string", "description": "Relative file path."},
            "content": {"type": "string", "description": "New file content."},
        },
        ["path", "content"],
    ),
}

_PR_PROPERTIES = {
    "title": {"type": "string", "description": "PR title."},
    "body": {"type": "string", "description": "PR body."},
    "base": {"type": "string", "description": "Base branch (default: main)."},
}


def build_workspace_tools(workspace: WorkspaceCapability) -> list[ToolDefinition]:
    """Tools for an agent that drives git directly."""

    async def apply_changes(args: Mapping[str, Any]) -> str:
        changes = args["changes"]
        if not isinstance(changes, list):
            raise ValueError("'changes' must be an array")
        return await workspace.apply_changes(changes)

    async def commit_and_push(args: Mapping[str, Any]) -> str:
        return await workspace.commit_and_push(str(args["message"]))

    async def create_pr(args: Mapping[str, Any]) -> str:
        return await workspace.create_pr(
            str(args["title"]), str(args["body"]), args.get("base") or None
        )

    return [
        ToolDefinition(
            "clone_repo",
            "Clone the repository to a temporary directory.",
            _object_schema({}, []),
            lambda args: workspace.clone_repo(),
        ),
        ToolDefinition(
            "apply_changes",
            "Apply file changes (edits/creates) in the repo.",
            _object_schema({"changes": _CHANGES_SCHEMA}, ["changes"]),
            apply_changes,
        ),
        ToolDefinition(
            "commit_and_push",
            "Commit and push changes to remote.",
            _object_schema(
                {"message": {"type": "string", "description": "Commit message."}},
                ["message"],
            ),
            commit_and_push,
        ),
        ToolDefinition(
            "create_pr",
            "Create a pull request on GitHub.",
            _object_schema(_PR_PROPERTIES, ["title", "body"]),
            create_pr,
        ),
        ToolDefinition(
            "cleanup",
            "Remove the temporary cloned repository directory.",
            _object_schema({}, []),
            lambda args: workspace.cleanup(),
        ),
    ]


def build_docs_tools(
    view: DocsView, workspace: WorkspaceCapability
) -> list[ToolDefinition]:
    """Tools for the documentation agent: read the docs, edit them, open a PR."""

    async def read_file(args: Mapping[str, Any]) -> str:
        paths = args["paths"]
        if not isinstance(paths, list):
            raise ValueError("'paths' must be an array")
        results = [{"path": p, "content": await view.read_file(str(p))} for p in paths]
        return json.dumps(results)

    async def list_files(args: Mapping[str, Any]) -> str:
        return "\n".join(await view.list_files(str(args.get("path") or ".")))

    async def edit_file(args: Mapping[str, Any]) -> str:
        await view.edit_file(str(args["path"]), str(args["content"]))
        return "File updated, committed, and pushed successfully"

    async def create_pr(args: Mapping[str, Any]) -> str:
        return await workspace.create_pr(
            str(args["title"]), str(args["body"]), args.get("base") or None
        )

    return [
        ToolDefinition(
            "read_file",
            "Read the contents of the given relative file paths. "
            "Do not use this with directory names.",
            _object_schema(
                {
                    "paths": {
                        "type": "array",
                        "items": {
                            "type": "string",
                            "description": "The relative path of a file in the working directory.",
                        },
                    }
                },
                ["paths"],
            ),
            read_file,
        ),
        ToolDefinition(
            "list_files",
            "List the files in a given relative directory path. "
            "Do not use this with file names.",
            _object_schema(
                {
                    "path": {
                        "type": "string",
                        "description": "The relative path of a directory. Defaults to './'.",
                    }
                },
                ["path"],
            ),
            list_files,
        ),
        ToolDefinition(
            "edit_file",
            "Replace the contents of a given relative file path, creating it "
            "if needed, then commit and push.",
            _object_schema(
                {
                    "path": {
                        "type": "string",
                        "description": "The relative path of a file in the working directory.",
                    },
                    "content": {
                        "type": "string",
                        "description": "The new content of the file.",
                    },
                },
                ["path", "content"],
            ),
            edit_file,
        ),
        ToolDefinition(
            "create_pr",
            "Create a pull request for the current conversation's branch.",
            _object_schema(_PR_PROPERTIES, ["title", "body"]),
            create_pr,
        ),
    ]
