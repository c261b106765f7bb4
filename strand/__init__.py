"""
Strand: Single-Line Version Control

Tracks snapshots of a working directory in a content-addressed store
and moves the directory backward and forward along one linear history
of commits.
"""

__version__ = "0.1.0"

__all__ = [
    # Core
    "Repository",
    # Content-addressed store
    "ContentStore",
    # State
    "Commit",
    "RepositoryState",
    "StagingArea",
    "StatusReport",
    # Errors
    "StrandError",
    "NotInitialized",
    "ContentMissing",
    "ContentStoreLimitError",
    "FileNotFound",
    "UntrackedPath",
    "UnknownRevision",
    "InsufficientHistory",
    "HeadDetached",
    "PersistenceFailure",
]

_ERRORS = (
    "StrandError",
    "NotInitialized",
    "ContentMissing",
    "ContentStoreLimitError",
    "FileNotFound",
    "UntrackedPath",
    "UnknownRevision",
    "InsufficientHistory",
    "HeadDetached",
    "PersistenceFailure",
)


# Lazy imports, only resolve when accessed
def __getattr__(name):
    if name == "Repository":
        from .repo import Repository

        return Repository
    if name == "ContentStore":
        from .cas import ContentStore

        return ContentStore
    if name in ("Commit", "RepositoryState", "StagingArea"):
        from . import state

        return getattr(state, name)
    if name == "StatusReport":
        from .engine import StatusReport

        return StatusReport
    if name in _ERRORS:
        from . import errors

        return getattr(errors, name)
    raise AttributeError(f"module 'strand' has no attribute {name!r}")
