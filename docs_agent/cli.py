"""docs-agent CLI entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import logging
from importlib import metadata

from .config import load_settings
from .console import print_error, print_info, print_success, print_workspace
from .errors import ConfigError, WorkspaceError
from .registry import WorkspaceState
from .workspace import Change, WorkspaceManager

DEFAULT_CONVERSATION_ID = "test-convo"


def _version() -> str:
    try:
        return metadata.version("docs-agent")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _add_conversation_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "conversation_id",
        nargs="?",
        default=DEFAULT_CONVERSATION_ID,
        help=f"Conversation ID (default: {DEFAULT_CONVERSATION_ID})",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docs-agent",
        description="Manage conversation-scoped documentation workspaces",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_version()}",
    )
    parser.add_argument("--config", help="Path to a YAML settings file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    init = commands.add_parser("init", help="Initialize workspace")
    _add_conversation_arg(init)

    apply = commands.add_parser("apply", help="Apply a file change")
    apply.add_argument("file", help="File path")
    apply.add_argument("content", help="File content")
    _add_conversation_arg(apply)

    commit = commands.add_parser("commit", help="Commit and push changes")
    commit.add_argument("message", help="Commit message")
    _add_conversation_arg(commit)

    pr = commands.add_parser("pr", help="Create a pull request")
    pr.add_argument("title", help="PR title")
    pr.add_argument("body", help="PR body")
    pr.add_argument("--base", default=None, help="Base branch (default: main)")
    _add_conversation_arg(pr)

    cleanup = commands.add_parser("cleanup", help="Cleanup workspace")
    _add_conversation_arg(cleanup)

    state = commands.add_parser("state", help="Show workspace state")
    _add_conversation_arg(state)

    docs_path = commands.add_parser(
        "docs-path", help="Show where the conversation's docs are read from"
    )
    _add_conversation_arg(docs_path)

    return parser


async def _dispatch(manager: WorkspaceManager, args: argparse.Namespace) -> int:
    conversation_id = args.conversation_id
    if args.command in ("cleanup", "state"):
        # Each CLI run is a fresh process: pick up a clone left by an earlier run.
        manager.reattach(conversation_id)

    if args.command == "init":
        result = await manager.ensure_workspace(conversation_id)
        print_success(f"Workspace initialized for conversation: {conversation_id}")
        print_workspace(conversation_id, result.state, on_disk=True)
    elif args.command == "apply":
        await manager.apply_changes(
            conversation_id, [Change(path=args.file, content=args.content)]
        )
        print_success(f"Change applied to {args.file} in conversation: {conversation_id}")
    elif args.command == "commit":
        sha = await manager.commit_and_push(conversation_id, args.message)
        print_success(f"Committed and pushed {sha[:12]} for conversation: {conversation_id}")
    elif args.command == "pr":
        url = await manager.create_pr(conversation_id, args.title, args.body, args.base)
        print_success(f"PR created for conversation {conversation_id}: {url}")
    elif args.command == "cleanup":
        if await manager.cleanup(conversation_id):
            print_success(f"Cleaned up workspace for conversation: {conversation_id}")
        else:
            print_info(f"No workspace to clean up for conversation: {conversation_id}")
    elif args.command == "state":
        state = manager.get_state(conversation_id)
        if state is None:
            state = WorkspaceState(
                local_path=manager.naming.workspace_path(conversation_id),
                branch_name=manager.naming.branch_name(conversation_id),
            )
            print_info(f"No active workspace for conversation: {conversation_id}")
        print_workspace(conversation_id, state, on_disk=state.local_path.exists())
    elif args.command == "docs-path":
        resolution = await manager.get_docs_path(conversation_id)
        where = "shared main checkout" if resolution.is_main_branch else "conversation branch"
        print_info(f"{resolution.path} ({resolution.branch}, {where})")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        print_error(str(e))
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    manager = WorkspaceManager.from_settings(settings)
    try:
        return asyncio.run(_dispatch(manager, args))
    except WorkspaceError as e:
        print_error(str(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
