"""
Repository

The high-level API the CLI (and tests) interact with. This ties
together the content store, the working tree and the persisted state
into one object per repository root:

    repo = Repository.init("/path/to/project")
    repo.add(["a.txt"])
    first = repo.commit("first")

    repo.checkout("HEAD~1")     # HEAD is now detached
    repo.checkout("master")     # back at the tip

Every command method is one full cycle: load the state file, run one
engine operation, save the state file. Nothing is cached between calls,
so two Repository objects on the same root always agree.

Layout:

    project/
    ├── .strand/
    │   ├── config.json   ← author, tip name, limits
    │   ├── state.json    ← commits, HEAD, staging area
    │   └── blobs/        ← one file per unique content
    └── a.txt
"""

import getpass
import json
import logging
import os
import time
from pathlib import Path

from . import engine
from .cas import ContentStore
from .engine import EngineContext, StatusReport
from .errors import NotInitialized, PersistenceFailure, StrandError
from .state import DEFAULT_TIP_NAME, RELATIVE_PREFIX, Commit, RepositoryState, StagingArea
from .storage import StateFile
from .worktree import WorkingTree

logger = logging.getLogger(__name__)

REPO_DIR_NAME = ".strand"
CONFIG_FILE_NAME = "config.json"
STATE_FILE_NAME = "state.json"
BLOBS_DIR_NAME = "blobs"
# Overrides the configured author for a single invocation
AUTHOR_ENV_VAR = "STRAND_AUTHOR"
CONFIG_VERSION = "1.0"


def _default_author() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


class Repository:
    """
    A Strand repository.

    Stores all data in a .strand directory at the repository root; the
    root itself is the working tree.
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve()
        self.strand_dir = self.root / REPO_DIR_NAME

        if not self.strand_dir.is_dir():
            raise NotInitialized(self.root)

        config = self._read_config()
        max_blob_size = config.get("max_blob_size", 0)

        # Validate limits - reject negative values
        if max_blob_size < 0:
            raise ValueError(
                f"Invalid config: max_blob_size must be >= 0, got {max_blob_size}\n"
                f"  Use 0 for default limit ({ContentStore.DEFAULT_MAX_BLOB_SIZE} bytes)\n"
                f"  Set to very large value (e.g., 10**12) for effectively unlimited"
            )

        self.config = config
        self.store = ContentStore(self.strand_dir / BLOBS_DIR_NAME, max_blob_size=max_blob_size)
        self.tree = WorkingTree(self.root, REPO_DIR_NAME)
        self.state_file = StateFile(self.strand_dir / STATE_FILE_NAME)
        self.ctx = EngineContext(
            store=self.store,
            tree=self.tree,
            author=os.environ.get(AUTHOR_ENV_VAR) or config.get("author") or _default_author(),
            tip_name=config.get("tip_name", DEFAULT_TIP_NAME),
        )

    @classmethod
    def init(cls, path: Path, author: str | None = None) -> "Repository":
        """
        Initialize a repository at ``path``.

        Running init on an existing repository is allowed: it recreates
        the empty history (a lone root commit, nothing staged). The
        config and stored blobs are kept.
        """
        root = Path(path).resolve()
        strand_dir = root / REPO_DIR_NAME
        config_path = strand_dir / CONFIG_FILE_NAME

        if strand_dir.exists():
            logger.info("Reinitializing existing repository at %s", root)

        try:
            (strand_dir / BLOBS_DIR_NAME).mkdir(parents=True, exist_ok=True)
            if not config_path.exists():
                config_path.write_text(json.dumps({
                    "version": CONFIG_VERSION,
                    "created_at": time.time(),
                    "author": author or _default_author(),
                    "tip_name": DEFAULT_TIP_NAME,
                    "max_blob_size": ContentStore.DEFAULT_MAX_BLOB_SIZE,
                }, indent=2))
        except OSError as e:
            raise PersistenceFailure(f"Error while creating a {REPO_DIR_NAME} directory: {e}") from e

        repo = cls(root)
        repo._save(engine.init(repo.ctx))
        return repo

    @classmethod
    def find(cls, start_path: Path | None = None) -> "Repository":
        """Find a repository by walking up from the given path."""
        path = (start_path or Path.cwd()).resolve()
        # Check the path itself and then walk up parents
        while True:
            if (path / REPO_DIR_NAME).is_dir():
                return cls(path)
            parent = path.parent
            if parent == path:
                break
            path = parent
        raise NotInitialized(start_path or Path.cwd())

    # ── Commands ──────────────────────────────────────────────────

    def add(self, paths: list[str]) -> dict[str, str]:
        """
        Stage files for the next commit. Returns the staged additions.

        If a path fails (unreadable, or over the blob size limit), the paths
        before it remain staged.
        """
        state = self._load()
        try:
            state = engine.add(state, self.ctx, paths)
        except StrandError:
            self._save(state)
            raise
        self._save(state)
        return dict(state.staging_area.added)

    def remove(self, paths: list[str]) -> set[str]:
        """Stage deletions. Returns the staged deletions."""
        state = engine.remove(self._load(), self.ctx, paths)
        self._save(state)
        return set(state.staging_area.deleted)

    def commit(self, message: str) -> Commit:
        state = engine.commit(self._load(), self.ctx, message)
        self._save(state)
        return state.head

    def checkout(self, revision: str) -> Commit:
        """Move HEAD (and the working tree) to ``revision``."""
        state = engine.checkout(self._load(), self.ctx, revision)
        self._save(state)
        return state.head

    def checkout_paths(self, paths: list[str]):
        """Restore individual files from HEAD, discarding their edits."""
        state = self._load()
        try:
            state = engine.checkout_paths(state, self.ctx, paths)
        except StrandError:
            self._save(state)
            raise
        self._save(state)

    def reset(self, revision: str) -> Commit:
        """Move HEAD to ``revision`` and drop its successor link."""
        state = engine.reset(self._load(), self.ctx, revision)
        self._save(state)
        return state.head

    def log(self, revision: str | None = None) -> list[Commit]:
        return engine.log(self._load(), self.ctx, revision)

    def status(self) -> StatusReport:
        return engine.status(self._load(), self.ctx)

    # ── Queries ───────────────────────────────────────────────────

    def head(self) -> Commit:
        return self._load().head

    def resolve(self, revision: str) -> Commit:
        return self._load().resolve(revision, self.ctx.tip_name)

    def relative_revision(self, n: int) -> str:
        """Hash of the commit ``n`` steps behind HEAD."""
        return self.resolve(f"{RELATIVE_PREFIX}{n}").hash

    def staging_area(self) -> StagingArea:
        return self._load().staging_area

    def is_head_detached(self) -> bool:
        return self._load().is_head_detached()

    def commits(self) -> dict[str, Commit]:
        return self._load().commits

    # ── Helpers ───────────────────────────────────────────────────

    def _load(self) -> RepositoryState:
        return self.state_file.load()

    def _save(self, state: RepositoryState):
        self.state_file.save(state)

    def _read_config(self) -> dict:
        """Read repository configuration."""
        config_path = self.strand_dir / CONFIG_FILE_NAME
        if config_path.exists():
            return json.loads(config_path.read_text())
        return {}
