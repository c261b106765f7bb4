"""
Repository State

The unit of versioning is a Commit: a complete, immutable snapshot of
every tracked path at a point in time. Commits do not store diffs:
``tracked_files`` is the whole working tree as ``path -> digest``.

Commits form a single line through two links:

- ``previous_commit``: the parent, fixed at construction
- ``next_commit``: the one recorded successor, written when a child is
  created and cleared when ``reset`` moves HEAD back onto this commit

``next_commit`` is the only mutable field of a commit. It is not a
branch pointer; it exists so the tip of history can be found by walking
forward from HEAD. A commit never records more than one successor.

RepositoryState aggregates the commit chain, the HEAD pointer and the
staging area. It is loaded once at the start of a command and saved
once at the end (see storage.StateFile).
"""

import hashlib
import json
import logging
import re
import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .errors import InsufficientHistory, UnknownRevision
from .serializable import Serializable

logger = logging.getLogger(__name__)

HEAD = "HEAD"
RELATIVE_PREFIX = "HEAD~"
DEFAULT_TIP_NAME = "master"
ROOT_MESSAGE = "Initial commit"
# Shortest hash prefix accepted as a revision
MIN_PREFIX_LENGTH = 4

_COUNT_RE = re.compile(r"[0-9]+")


def compute_commit_hash(
    previous_commit: str,
    message: str,
    author: str,
    date: float,
    tracked_files: Mapping[str, str],
) -> str:
    """
    Hash a commit's semantic content.

    Uses a type prefix (like git does) and canonical JSON so the same
    fields always produce the same hash, independent of dict ordering.
    """
    payload = json.dumps(
        {
            "previous_commit": previous_commit,
            "message": message,
            "author": author,
            "date": date,
            "tracked_files": dict(tracked_files),
        },
        sort_keys=True,
        separators=(",", ":"),
    ).encode()
    return hashlib.sha256(b"commit:" + payload).hexdigest()


@dataclass
class StagingArea(Serializable):
    """Pending additions and deletions, applied on top of HEAD at commit time."""

    added: dict[str, str] = field(default_factory=dict)
    deleted: set[str] = field(default_factory=set)

    def stage_add(self, path: str, digest: str):
        self.deleted.discard(path)
        self.added[path] = digest

    def stage_delete(self, path: str):
        self.added.pop(path, None)
        self.deleted.add(path)

    def discard(self, path: str) -> bool:
        """Drop a staged addition without staging a deletion."""
        return self.added.pop(path, None) is not None

    def is_empty(self) -> bool:
        return not self.added and not self.deleted


@dataclass(frozen=True)
class Commit(Serializable):
    """An immutable snapshot of the tracked files, plus one successor link."""

    hash: str
    previous_commit: str
    tracked_files: Mapping[str, str]
    message: str
    author: str
    date: float
    next_commit: str = ""

    def __post_init__(self):
        # Callers cannot reach the snapshot's backing dict
        object.__setattr__(self, "tracked_files", MappingProxyType(dict(self.tracked_files)))

    def __hash__(self):
        return hash(self.hash)

    @classmethod
    def root(cls, author: str, date: float | None = None) -> "Commit":
        """The first commit of a repository: no parent, nothing tracked."""
        date = time.time() if date is None else date
        return cls(
            hash=compute_commit_hash("", ROOT_MESSAGE, author, date, {}),
            previous_commit="",
            tracked_files={},
            message=ROOT_MESSAGE,
            author=author,
            date=date,
        )

    @classmethod
    def from_parent(
        cls,
        message: str,
        parent: "Commit",
        staging_area: StagingArea,
        author: str,
        date: float | None = None,
    ) -> "Commit":
        """
        Build the child of ``parent``.

        The snapshot is the parent's, minus every staged deletion, overlaid
        with every staged addition.
        """
        date = time.time() if date is None else date
        tracked = dict(parent.tracked_files)
        for path in staging_area.deleted:
            tracked.pop(path, None)
        tracked.update(staging_area.added)
        return cls(
            hash=compute_commit_hash(parent.hash, message, author, date, tracked),
            previous_commit=parent.hash,
            tracked_files=tracked,
            message=message,
            author=author,
            date=date,
        )

    @property
    def is_root(self) -> bool:
        return not self.previous_commit

    def record_successor(self, commit_hash: str):
        """Record the single child of this commit."""
        if self.next_commit and self.next_commit != commit_hash:
            raise ValueError(
                f"Commit {self.hash[:12]} already has successor {self.next_commit[:12]}"
            )
        object.__setattr__(self, "next_commit", commit_hash)

    def clear_successor(self):
        object.__setattr__(self, "next_commit", "")


@dataclass
class RepositoryState(Serializable):
    """All commits, the HEAD pointer, and the staging area."""

    commits: dict[str, Commit]
    head_hash: str
    staging_area: StagingArea = field(default_factory=StagingArea)

    @classmethod
    def new(cls, author: str, date: float | None = None) -> "RepositoryState":
        root = Commit.root(author, date)
        return cls(commits={root.hash: root}, head_hash=root.hash)

    # ── HEAD ──────────────────────────────────────────────────────

    @property
    def head(self) -> Commit:
        return self.get(self.head_hash)

    def move_head(self, commit: Commit):
        logger.debug("HEAD %s -> %s", self.head_hash[:12], commit.hash[:12])
        self.head_hash = commit.hash

    def is_head_detached(self) -> bool:
        """True when HEAD is not the newest commit of its own line."""
        return bool(self.head.next_commit)

    # ── Commit Chain ──────────────────────────────────────────────

    def get(self, commit_hash: str) -> Commit:
        commit = self.commits.get(commit_hash)
        if commit is None:
            raise UnknownRevision(commit_hash)
        return commit

    def add_commit(self, commit: Commit):
        """Append a child of HEAD to the chain and move HEAD onto it."""
        if commit.previous_commit != self.head_hash:
            raise ValueError(
                f"Commit {commit.hash[:12]} is not a child of HEAD {self.head_hash[:12]}"
            )
        self.head.record_successor(commit.hash)
        self.commits[commit.hash] = commit
        self.move_head(commit)

    def history(self, start: Commit | None = None) -> Iterator[Commit]:
        """Yield ``start`` (default HEAD) and each ancestor down to the root."""
        commit = start or self.head
        while True:
            yield commit
            if commit.is_root:
                return
            commit = self.get(commit.previous_commit)

    # ── Revision Resolution ───────────────────────────────────────

    def resolve(self, revision: str, tip_name: str = DEFAULT_TIP_NAME) -> Commit:
        """
        Resolve a revision specifier to a commit.

        Accepts ``HEAD``, ``HEAD~n``, the tip marker (``master`` unless
        configured otherwise), a full commit hash, or an unambiguous hash
        prefix of at least MIN_PREFIX_LENGTH characters.
        """
        if revision == HEAD:
            return self.head
        if revision.startswith(RELATIVE_PREFIX):
            count = revision[len(RELATIVE_PREFIX):]
            if not _COUNT_RE.fullmatch(count):
                raise UnknownRevision(revision, "Malformed relative revision")
            return self.ancestor(int(count))
        if revision == tip_name:
            return self.tip()
        commit = self.commits.get(revision)
        if commit is not None:
            return commit
        return self._resolve_prefix(revision)

    def ancestor(self, n: int) -> Commit:
        """Follow ``previous_commit`` exactly ``n`` times from HEAD."""
        commit = self.head
        for step in range(n):
            if commit.is_root:
                raise InsufficientHistory(n, step)
            commit = self.get(commit.previous_commit)
        return commit

    def tip(self) -> Commit:
        """
        Walk ``next_commit`` forward from HEAD until it runs out.

        Only descendants of HEAD are reachable: once ``reset`` clears a
        successor link, the commits beyond it are no longer found here.
        """
        commit = self.head
        for _ in range(len(self.commits)):
            if not commit.next_commit:
                return commit
            commit = self.get(commit.next_commit)
        raise ValueError(f"Successor links form a cycle starting at {self.head_hash[:12]}")

    def _resolve_prefix(self, prefix: str) -> Commit:
        if len(prefix) < MIN_PREFIX_LENGTH:
            raise UnknownRevision(prefix)
        matches = [h for h in self.commits if h.startswith(prefix)]
        if not matches:
            raise UnknownRevision(prefix)
        if len(matches) > 1:
            raise UnknownRevision(prefix, f"Ambiguous revision ({len(matches)} commits match)")
        return self.commits[matches[0]]
