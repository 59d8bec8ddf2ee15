# Conversation-scoped documentation workspaces
from .config import Settings, load_settings
from .docs_view import DocsView
from .errors import (
    CleanupFailure,
    CommitFailure,
    ConfigError,
    InvalidPathError,
    PRFailure,
    PushFailure,
    SetupFailure,
    WorkspaceError,
    WriteFailure,
)
from .github_client import GitHubClient
from .naming import BranchNamingPolicy, conversation_slug
from .registry import WorkspaceRegistry, WorkspaceState
from .tools import ConversationWorkspace, build_docs_tools, build_workspace_tools
from .workspace import Change, DocsResolution, SetupOutcome, SetupResult, WorkspaceManager

__all__ = [
    "BranchNamingPolicy",
    "Change",
    "CleanupFailure",
    "CommitFailure",
    "ConfigError",
    "ConversationWorkspace",
    "DocsResolution",
    "DocsView",
    "GitHubClient",
    "InvalidPathError",
    "PRFailure",
    "PushFailure",
    "SetupFailure",
    "SetupOutcome",
    "SetupResult",
    "Settings",
    "WorkspaceError",
    "WorkspaceManager",
    "WorkspaceRegistry",
    "WorkspaceState",
    "WriteFailure",
    "build_docs_tools",
    "build_workspace_tools",
    "conversation_slug",
    "load_settings",
]
