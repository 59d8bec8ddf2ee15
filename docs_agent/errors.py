"""Error types raised by the workspace manager and its collaborators."""


class WorkspaceError(Exception):
    """Base class for workspace lifecycle failures."""


class ConfigError(WorkspaceError, ValueError):
    """Required configuration is missing or invalid."""


class SetupFailure(WorkspaceError):
    """Cloning or checking out a conversation workspace failed."""


class WriteFailure(WorkspaceError):
    """Writing a change set into a workspace failed.

    ``applied`` is the number of changes already written when the failure
    happened; earlier writes are not rolled back.
    """

    def __init__(self, message: str, applied: int = 0):
        super().__init__(message)
        self.applied = applied


class InvalidPathError(WriteFailure):
    """A change path points outside the workspace root."""


class CommitFailure(WorkspaceError):
    """Nothing was staged, or git refused the commit."""


class PushFailure(WorkspaceError):
    """The remote rejected the push (diverged history, auth, ...)."""


class PRFailure(WorkspaceError):
    """The hosting API refused to open the pull request."""


class CleanupFailure(WorkspaceError):
    """The workspace directory could not be removed."""
