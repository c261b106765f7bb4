"""
Persistence boundary.

The Command Engine never touches the state file directly. A command
asks StateFile for the current RepositoryState once at the start and
hands the updated state back once at the end.

The write is atomic with respect to the state file itself (temp file +
rename), but NOT with respect to the working tree: a crash between the
two can leave them disagreeing.
"""

import logging
import os
import tempfile
import time
from pathlib import Path

from . import codec
from .errors import NotInitialized, PersistenceFailure
from .state import RepositoryState

logger = logging.getLogger(__name__)


def _replace_with_retry(src: Path, dst: Path):
    """Replace dst with src, retrying on Windows PermissionError.

    On Windows, antivirus or indexing services can briefly lock files,
    causing ``PermissionError`` on rename.  We retry up to 5 times with
    exponential backoff.  On POSIX, any error is raised immediately.
    """
    if os.name == "nt":
        for attempt in range(5):
            try:
                src.replace(dst)
                return
            except PermissionError:
                if attempt == 4:
                    raise
                time.sleep(0.01 * (2 ** attempt))
    else:
        src.replace(dst)


def atomic_write(path: Path, content: bytes):
    """Write content to a file via write-to-temp + rename."""
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        _replace_with_retry(Path(tmp_path), path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class StateFile:
    """Loads and saves the whole RepositoryState as one file."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> RepositoryState:
        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise NotInitialized(self.path.parent.parent, e.strerror) from e
        try:
            state = codec.load(data)
        except codec.CodecError as e:
            raise NotInitialized(self.path.parent.parent, str(e)) from e
        logger.debug("Loaded state: %d commits, HEAD %s", len(state.commits), state.head_hash[:12])
        return state

    def save(self, state: RepositoryState):
        try:
            atomic_write(self.path, codec.save(state))
        except OSError as e:
            raise PersistenceFailure(f"Error while writing metainfo to {self.path}: {e}") from e
        logger.debug("Saved state: %d commits, HEAD %s", len(state.commits), state.head_hash[:12])
