"""
Shared pytest configuration and fixtures.

Every repository fixture pins the commit author so tests don't depend
on the login name of whoever runs them.
"""

import pytest

from strand.repo import AUTHOR_ENV_VAR, Repository

TEST_AUTHOR = "Test user"


@pytest.fixture(autouse=True)
def _no_author_override(monkeypatch):
    monkeypatch.delenv(AUTHOR_ENV_VAR, raising=False)


@pytest.fixture
def project(tmp_path):
    """An empty project directory (no repository yet)."""
    p = tmp_path / "project"
    p.mkdir()
    return p


@pytest.fixture
def repo(project):
    """Freshly initialized repository with nothing committed."""
    return Repository.init(project, author=TEST_AUTHOR)


def write(repo, rel_path: str, content: str):
    """Write a working-tree file, creating parent directories."""
    target = repo.root / rel_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content)
    return target


def read(repo, rel_path: str) -> str:
    return (repo.root / rel_path).read_text()
