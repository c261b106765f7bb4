"""
Errors

Every failure a command can hit is a StrandError. Library code raises
these; only the CLI catches them, prints the message and exits.

Conditions that are part of normal operation (a tracked file that was
deleted from disk, for example) are NOT errors; they are reported as
values by the command that discovers them (see engine.status).
"""


class StrandError(Exception):
    """Base class for all Strand failures."""


class NotInitialized(StrandError, ValueError):
    """Raised when the repository state cannot be found or read."""

    def __init__(self, start_path, detail: str | None = None):
        self.start_path = start_path
        message = (
            f"Repository hasn't been initialized yet (searched from {start_path})\n"
            f"  Run 'strand init' to create one, or use '-C <path>' to specify a directory."
        )
        if detail:
            message = f"{message}\n  Cause: {detail}"
        super().__init__(message)


class ContentMissing(StrandError):
    """Raised when a blob digest is not present in the content store."""

    def __init__(self, digest: str):
        self.digest = digest
        super().__init__(f"Content {digest} is missing from the blob store")


class ContentStoreLimitError(StrandError, ValueError):
    """Raised when a blob exceeds the configured size limit."""


class FileNotFound(StrandError):
    """Raised when a working-tree file cannot be read."""

    def __init__(self, path, reason: str | None = None):
        self.path = str(path)
        message = f"Can't get content of file {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UntrackedPath(StrandError):
    """Raised when a path-restoring checkout names a file HEAD does not track."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Path '{path}' is not tracked by HEAD")


class UnknownRevision(StrandError):
    """Raised when a revision does not name any known commit."""

    def __init__(self, revision: str, reason: str = "There are no commits with given hash"):
        self.revision = revision
        super().__init__(f"{reason}: {revision}")


class InsufficientHistory(StrandError):
    """Raised when HEAD~n walks past the root commit."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Given number of commits is greater than a real number of commits "
            f"(asked for {requested}, HEAD has {available} ancestors)"
        )


class HeadDetached(StrandError):
    """Raised when a command needs HEAD at the tip of its line."""

    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Error while performing {command}: Head is detached")


class PersistenceFailure(StrandError):
    """Raised when the repository state cannot be written."""
