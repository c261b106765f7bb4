"""
Command Engine

One function per command. Each takes the RepositoryState loaded for
this invocation plus an EngineContext (content store, working tree and
per-repository settings), applies one logical operation, and returns
the updated state for the caller to persist. The engine holds no state
of its own and never reads or writes the state file.

Working-tree effects happen here too: checkout and reset rewrite files
on disk to match the target commit's snapshot.

Operations update the state object they are given and return it.
Failures raise StrandError subclasses and nothing is rolled back: if
``add`` fails on its third path, the first two are already staged in
the state object, which the caller may still persist (see
Repository.add).
"""

import logging
from dataclasses import dataclass, field

from .cas import ContentStore
from .errors import HeadDetached, UntrackedPath
from .serializable import Serializable
from .state import DEFAULT_TIP_NAME, Commit, RepositoryState
from .worktree import WorkingTree

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "--"


@dataclass
class EngineContext:
    """What a command needs besides the state itself."""

    store: ContentStore
    tree: WorkingTree
    author: str
    tip_name: str = DEFAULT_TIP_NAME


@dataclass
class StatusReport(Serializable):
    """Result of ``status``: three independent checks against HEAD."""

    staged_new: list[str] = field(default_factory=list)
    staged_modified: list[str] = field(default_factory=list)
    unstaged_modified: list[str] = field(default_factory=list)
    unstaged_deleted: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)

    @property
    def has_staged_changes(self) -> bool:
        return bool(self.staged_new or self.staged_modified)

    @property
    def has_unstaged_changes(self) -> bool:
        return bool(self.unstaged_modified or self.unstaged_deleted)

    @property
    def clean(self) -> bool:
        return not (self.has_staged_changes or self.has_unstaged_changes or self.untracked)


def _require_attached(state: RepositoryState, command: str):
    if state.is_head_detached():
        raise HeadDetached(command)


# ── Commands ──────────────────────────────────────────────────

def init(ctx: EngineContext, date: float | None = None) -> RepositoryState:
    """A fresh state: only the root commit, nothing staged."""
    state = RepositoryState.new(ctx.author, date)
    logger.debug("Initialized repository with root commit %s", state.head_hash[:12])
    return state


def add(state: RepositoryState, ctx: EngineContext, paths: list[str]) -> RepositoryState:
    """
    Store each file's content and stage it.

    Paths are processed in order; a failure on one path leaves the
    earlier ones staged in ``state``.
    """
    _require_attached(state, "add")
    for raw in paths:
        path = ctx.tree.normalize(raw)
        digest = ctx.store.store_file(ctx.tree.path_of(path))
        state.staging_area.stage_add(path, digest)
        logger.debug("Staged %s as %s", path, digest[:12])
    return state


def remove(state: RepositoryState, ctx: EngineContext, paths: list[str]) -> RepositoryState:
    """Stage deletions. The files need not exist or be tracked."""
    _require_attached(state, "rm")
    for raw in paths:
        path = ctx.tree.normalize(raw)
        state.staging_area.stage_delete(path)
        logger.debug("Staged deletion of %s", path)
    return state


def commit(
    state: RepositoryState,
    ctx: EngineContext,
    message: str,
    date: float | None = None,
) -> RepositoryState:
    """Turn the staging area into a new commit on top of HEAD."""
    _require_attached(state, "commit")
    new_commit = Commit.from_parent(message, state.head, state.staging_area, ctx.author, date)
    state.add_commit(new_commit)
    state.staging_area.added.clear()
    state.staging_area.deleted.clear()
    logger.debug("Committed %s (%d files tracked)", new_commit.hash[:12], len(new_commit.tracked_files))
    return state


def checkout(state: RepositoryState, ctx: EngineContext, revision: str) -> RepositoryState:
    """
    Move HEAD to ``revision`` and make the working tree match it.

    Checking out anything but the tip detaches HEAD; commands that
    create history refuse to run until HEAD is back at the tip.
    """
    target = state.resolve(revision, ctx.tip_name)
    _rewrite_working_tree(state, ctx, target)
    state.move_head(target)
    return state


def checkout_paths(state: RepositoryState, ctx: EngineContext, paths: list[str]) -> RepositoryState:
    """
    Throw away uncommitted edits to individual files.

    Each path loses its staged addition and is rewritten from HEAD's
    snapshot. ``--`` tokens are ignored.
    """
    head_files = state.head.tracked_files
    for raw in paths:
        if raw == PATH_SEPARATOR:
            continue
        path = ctx.tree.normalize(raw)
        digest = head_files.get(path)
        if digest is None:
            raise UntrackedPath(path)
        state.staging_area.discard(path)
        ctx.store.materialize(digest, ctx.tree.path_of(path))
        logger.debug("Restored %s from HEAD", path)
    return state


def reset(state: RepositoryState, ctx: EngineContext, revision: str) -> RepositoryState:
    """
    Move HEAD to ``revision`` and forget everything after it.

    Same working-tree rewrite as checkout, then the target's successor
    link is cleared. Later commits stay in the commit set but can no
    longer be reached by walking forward from HEAD.
    """
    target = state.resolve(revision, ctx.tip_name)
    _rewrite_working_tree(state, ctx, target)
    state.move_head(target)
    if target.next_commit:
        logger.debug("Abandoning successor %s of %s", target.next_commit[:12], target.hash[:12])
    target.clear_successor()
    return state


def log(state: RepositoryState, ctx: EngineContext, revision: str | None = None) -> list[Commit]:
    """Commits from HEAD (or ``revision``) back to the root, newest first."""
    start = state.resolve(revision, ctx.tip_name) if revision is not None else state.head
    return list(state.history(start))


def status(state: RepositoryState, ctx: EngineContext) -> StatusReport:
    """Compare the staging area and working tree against HEAD."""
    _require_attached(state, "status")
    head_files = state.head.tracked_files
    staging = state.staging_area
    report = StatusReport()

    # Staged: every addition is either new or a modification of HEAD
    for path in sorted(staging.added):
        if path in head_files:
            report.staged_modified.append(path)
        else:
            report.staged_new.append(path)

    # Unstaged: tracked files whose disk content drifted from HEAD
    for path in sorted(head_files):
        if path in staging.added:
            continue
        current = ctx.tree.hash_file(path)
        if current is None:
            report.unstaged_deleted.append(path)
        elif current != head_files[path]:
            report.unstaged_modified.append(path)

    # Untracked: on disk but unknown to HEAD and staging, or staged for deletion
    for path in ctx.tree.walk():
        if (path not in head_files and path not in staging.added) or path in staging.deleted:
            report.untracked.append(path)
    report.untracked.sort()

    return report


# ── Helpers ───────────────────────────────────────────────────

def _rewrite_working_tree(state: RepositoryState, ctx: EngineContext, target: Commit):
    """
    Make the working tree hold exactly ``target``'s snapshot.

    Files the old HEAD tracked but the target does not are deleted.
    Staged additions the target does not track are dropped from the
    staging area and deleted from disk. Every file the target tracks is
    written, skipping those whose content already matches.
    """
    target_files = target.tracked_files

    for path in state.head.tracked_files:
        if path not in target_files:
            ctx.tree.remove(path)

    for path in list(state.staging_area.added):
        if path not in target_files:
            ctx.tree.remove(path)
            state.staging_area.discard(path)

    written = 0
    for path, digest in target_files.items():
        if ctx.tree.hash_file(path) == digest:
            continue
        ctx.store.materialize(digest, ctx.tree.path_of(path))
        written += 1
    logger.debug("Materialized %s: %d of %d files written", target.hash[:12], written, len(target_files))
