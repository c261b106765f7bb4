"""
Content-Addressed Store (CAS)

The foundational storage layer. Every file version is stored exactly
once, addressed by the SHA-256 of its bytes:

- Automatic deduplication (adding an unchanged file costs nothing)
- Integrity verification (the name of a blob is its checksum)
- Cheap snapshots (commits share unchanged blobs)

Blobs are plain files under ``.strand/blobs/<aa>/<digest>``. They are
never mutated and never deleted.
"""

import hashlib
import logging
import os
import tempfile
from pathlib import Path

from .errors import ContentMissing, ContentStoreLimitError, FileNotFound

logger = logging.getLogger(__name__)


class ContentStore:
    """
    Filesystem-backed content-addressed store.

    Thread Safety:
        Not safe for concurrent writers. Commands are expected to run
        one at a time against a repository.
    """

    # Default: 100 MB max blob size
    # Note: 0 or missing value uses DEFAULT_MAX_BLOB_SIZE
    #       For effectively unlimited, set to very large value (e.g., 10**12)
    DEFAULT_MAX_BLOB_SIZE = 100 * 1024 * 1024

    def __init__(self, blobs_dir: Path, max_blob_size: int = 0):
        self.blobs_dir = blobs_dir
        self.max_blob_size = max_blob_size if max_blob_size > 0 else self.DEFAULT_MAX_BLOB_SIZE

    # ── Core Operations ───────────────────────────────────────────

    @staticmethod
    def hash_content(content: bytes) -> str:
        """SHA-256 of the raw bytes, as a hex string."""
        return hashlib.sha256(content).hexdigest()

    def store(self, content: bytes) -> str:
        """
        Store content and return its digest. Idempotent: storing
        the same content twice is a no-op that returns the same digest.

        Size limit is checked AFTER deduplication to allow re-storing
        existing large blobs (e.g., if limits are lowered on existing repos).
        """
        digest = self.hash_content(content)

        if self.exists(digest):
            return digest

        if len(content) > self.max_blob_size:
            raise ContentStoreLimitError(
                f"Blob size {len(content)} bytes exceeds limit of {self.max_blob_size} bytes"
            )

        self._write_blob(digest, content)
        logger.debug("Stored blob %s (%d bytes)", digest[:12], len(content))
        return digest

    def fetch(self, digest: str) -> bytes:
        """Read back previously stored bytes."""
        path = self._blob_path(digest)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise ContentMissing(digest) from None

    def exists(self, digest: str) -> bool:
        return self._blob_path(digest).is_file()

    def store_file(self, path: Path) -> str:
        """Store the current content of a working-tree file."""
        try:
            content = path.read_bytes()
        except OSError as e:
            raise FileNotFound(path, e.strerror) from e
        return self.store(content)

    def materialize(self, digest: str, target: Path):
        """Write a blob's bytes to ``target``, replacing whatever is there."""
        content = self.fetch(digest)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

    # ── Filesystem Layout ─────────────────────────────────────────

    def _blob_path(self, digest: str) -> Path:
        """1-level fanout path for a blob."""
        return self.blobs_dir / digest[:2] / digest

    def _write_blob(self, digest: str, content: bytes):
        """Write a blob atomically via temp file + rename."""
        path = self._blob_path(digest)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=".blob.")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            Path(tmp_path).replace(path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ── Statistics ────────────────────────────────────────────────

    def stats(self) -> dict:
        """Storage statistics."""
        total_objects = 0
        total_bytes = 0
        if self.blobs_dir.exists():
            for path in self.blobs_dir.glob("*/*"):
                if path.is_file() and not path.name.startswith("."):
                    total_objects += 1
                    total_bytes += path.stat().st_size
        return {
            "total_objects": total_objects,
            "total_bytes": total_bytes,
        }
