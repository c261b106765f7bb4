"""
Working tree.

Everything the engine does to the user's files goes through here:
resolving repository-relative paths, hashing files for status,
deleting files a checkout no longer wants, and walking the directory
for untracked files.

Paths inside the engine are always repository-relative POSIX strings
("src/app.py"), whatever the host OS.
"""

import logging
import os
from collections.abc import Iterator
from pathlib import Path, PurePosixPath

from .cas import ContentStore
from .errors import FileNotFound

logger = logging.getLogger(__name__)


class WorkingTree:
    """The directory a repository tracks, minus its metadata directory."""

    def __init__(self, root: Path, metadata_dir_name: str):
        self.root = root
        self.metadata_dir_name = metadata_dir_name

    def normalize(self, path: str) -> str:
        """
        Turn a user-supplied path into a repository-relative POSIX path.

        Absolute paths must lie inside the root. ``..`` may not climb out
        of it, and the metadata directory itself is off limits.
        """
        raw = Path(path)
        if raw.is_absolute():
            try:
                raw = raw.resolve().relative_to(self.root)
            except ValueError:
                raise FileNotFound(path, "outside the repository") from None

        parts: list[str] = []
        for part in PurePosixPath(raw.as_posix()).parts:
            if part in ("", "."):
                continue
            if part == "..":
                if not parts:
                    raise FileNotFound(path, "outside the repository")
                parts.pop()
                continue
            parts.append(part)

        if not parts:
            raise FileNotFound(path, "not a file")
        if parts[0] == self.metadata_dir_name:
            raise FileNotFound(path, "inside the repository metadata directory")
        return "/".join(parts)

    def path_of(self, rel_path: str) -> Path:
        return self.root.joinpath(*rel_path.split("/"))

    def hash_file(self, rel_path: str) -> str | None:
        """Digest of a file's current content, or None if it can't be read."""
        try:
            content = self.path_of(rel_path).read_bytes()
        except OSError:
            return None
        return ContentStore.hash_content(content)

    def remove(self, rel_path: str):
        """
        Delete a file if it is there.

        Parent directories left empty are removed too, up to (not including)
        the root, so a later checkout can write a file where one of them was.
        """
        target = self.path_of(rel_path)
        try:
            target.unlink()
            logger.debug("Deleted %s", rel_path)
        except FileNotFoundError:
            return
        except IsADirectoryError:
            logger.warning("Not deleting %s: it is a directory", rel_path)
            return
        self._prune_empty_parents(target)

    def _prune_empty_parents(self, path: Path):
        parent = path.parent
        while parent != self.root:
            try:
                parent.rmdir()
            except OSError:
                # Not empty, so no ancestor is either
                return
            logger.debug("Removed empty directory %s", parent)
            parent = parent.parent

    def walk(self) -> Iterator[str]:
        """
        Lazily yield the relative path of every regular file.

        Skips directories named like the metadata directory and does not
        follow symlinks. Directories are visited in sorted order.
        """
        pending = [self.root]
        while pending:
            directory = pending.pop()
            try:
                entries = sorted(os.scandir(directory), key=lambda e: e.name)
            except OSError as e:
                logger.warning("Cannot list %s: %s", directory, e)
                continue

            subdirs = []
            for entry in entries:
                if entry.is_symlink():
                    logger.debug("Skipping symlink: %s", entry.path)
                    continue
                if entry.is_dir():
                    if entry.name != self.metadata_dir_name:
                        subdirs.append(Path(entry.path))
                elif entry.is_file():
                    yield Path(entry.path).relative_to(self.root).as_posix()
            # Reversed so the smallest name is popped first
            pending.extend(reversed(subdirs))
