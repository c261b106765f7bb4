"""
CLI tests.

Uses subprocess to invoke the CLI and verify exit codes and output.
"""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

CLI_AUTHOR = "CLI tester"


def run_strand(*args, cwd=None, expect_fail=False):
    """Run a strand CLI command and return (returncode, stdout, stderr)."""
    cmd = [sys.executable, "-X", "utf8", "-m", "strand.cli"] + list(args)
    result = subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        cwd=cwd,
        env={
            **os.environ,
            "PYTHONPATH": str(Path(__file__).parent.parent),
            "STRAND_AUTHOR": CLI_AUTHOR,
        },
    )
    if not expect_fail:
        if result.returncode != 0:
            print(f"STDOUT: {result.stdout}")
            print(f"STDERR: {result.stderr}")
    return result.returncode, result.stdout, result.stderr


@pytest.fixture
def empty_dir(tmp_path):
    """An empty temporary directory (no repo)."""
    return tmp_path


@pytest.fixture
def repo_dir(tmp_path):
    """A temporary directory with an initialized repo and one untracked file."""
    (tmp_path / "a.txt").write_text("hello")
    rc, out, err = run_strand("init", cwd=tmp_path)
    assert rc == 0, f"Init failed: {err}"
    return tmp_path


@pytest.fixture
def two_commit_dir(repo_dir):
    """Repo with 'first' (a.txt=hello) and 'second' (a.txt=world)."""
    assert run_strand("add", "a.txt", cwd=repo_dir)[0] == 0
    assert run_strand("commit", "first", cwd=repo_dir)[0] == 0
    (repo_dir / "a.txt").write_text("world")
    assert run_strand("add", "a.txt", cwd=repo_dir)[0] == 0
    assert run_strand("commit", "second", cwd=repo_dir)[0] == 0
    return repo_dir


class TestErrorOutsideRepo:
    def test_status_outside_repo(self, empty_dir):
        rc, out, err = run_strand("status", cwd=empty_dir, expect_fail=True)
        assert rc == 1
        assert "Error:" in err
        assert "strand init" in err

    def test_json_error(self, empty_dir):
        rc, out, err = run_strand("--json", "log", cwd=empty_dir, expect_fail=True)
        assert rc == 1
        assert "error" in json.loads(out)

    def test_no_command_prints_help(self, empty_dir):
        rc, out, err = run_strand(cwd=empty_dir, expect_fail=True)
        assert rc == 1
        assert "usage" in out.lower()


class TestInit:
    def test_init_message(self, empty_dir):
        rc, out, err = run_strand("init", cwd=empty_dir)
        assert rc == 0
        assert out.strip() == "Project initialized"
        assert (empty_dir / ".strand" / "state.json").exists()

    def test_init_with_path_option(self, empty_dir):
        target = empty_dir / "elsewhere"
        target.mkdir()
        rc, out, err = run_strand("-C", str(target), "init", cwd=empty_dir)
        assert rc == 0
        assert (target / ".strand").is_dir()

    def test_init_json(self, empty_dir):
        rc, out, err = run_strand("--json", "init", cwd=empty_dir)
        assert rc == 0
        data = json.loads(out)
        assert len(data["head"]) == 64


class TestAddCommitLog:
    def test_messages(self, repo_dir):
        rc, out, _ = run_strand("add", "a.txt", cwd=repo_dir)
        assert rc == 0
        assert out.strip() == "Add completed successful"
        rc, out, _ = run_strand("commit", "first", cwd=repo_dir)
        assert rc == 0
        assert out.strip() == "Files committed"

    def test_add_missing_file(self, repo_dir):
        rc, out, err = run_strand("add", "ghost.txt", cwd=repo_dir, expect_fail=True)
        assert rc == 1
        assert "ghost.txt" in err

    def test_rm_message(self, repo_dir):
        rc, out, _ = run_strand("rm", "a.txt", cwd=repo_dir)
        assert rc == 0
        assert out.strip() == "Rm completed successful"

    def test_log_lists_newest_first(self, two_commit_dir):
        rc, out, _ = run_strand("log", cwd=two_commit_dir)
        assert rc == 0
        blocks = out.strip().split("\n\n")
        messages = [b for b in blocks if not b.startswith("Commit ")]
        assert messages == ["second", "first", "Initial commit"]
        assert f"Author: {CLI_AUTHOR}" in out

    def test_log_json(self, two_commit_dir):
        rc, out, _ = run_strand("--json", "log", cwd=two_commit_dir)
        assert rc == 0
        commits = json.loads(out)
        assert [c["message"] for c in commits] == ["second", "first", "Initial commit"]
        assert commits[0]["previous_commit"] == commits[1]["hash"]
        assert commits[1]["tracked_files"] == {
            "a.txt": "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
        }

    def test_log_from_revision_quiet(self, two_commit_dir):
        rc, out, _ = run_strand("-q", "log", "HEAD~1", cwd=two_commit_dir)
        assert rc == 0
        assert len(out.split()) == 2

    def test_commit_json_and_hash_prefix_checkout(self, repo_dir):
        run_strand("add", "a.txt", cwd=repo_dir)
        rc, out, _ = run_strand("--json", "commit", "first", cwd=repo_dir)
        first = json.loads(out)["hash"]
        (repo_dir / "a.txt").write_text("changed")
        run_strand("add", "a.txt", cwd=repo_dir)
        run_strand("commit", "second", cwd=repo_dir)

        rc, out, _ = run_strand("checkout", first[:8], cwd=repo_dir)
        assert rc == 0
        assert (repo_dir / "a.txt").read_text() == "hello"


class TestCheckout:
    def test_checkout_revision_and_back(self, two_commit_dir):
        rc, out, _ = run_strand("checkout", "HEAD~1", cwd=two_commit_dir)
        assert rc == 0
        assert out.strip() == "Checkout completed successful"
        assert (two_commit_dir / "a.txt").read_text() == "hello"

        rc, out, _ = run_strand("checkout", "master", cwd=two_commit_dir)
        assert rc == 0
        assert (two_commit_dir / "a.txt").read_text() == "world"

    def test_checkout_paths(self, two_commit_dir):
        (two_commit_dir / "a.txt").write_text("scribbles")
        rc, out, _ = run_strand("checkout", "--", "a.txt", cwd=two_commit_dir)
        assert rc == 0
        assert out.strip() == "Checkout completed successful"
        assert (two_commit_dir / "a.txt").read_text() == "world"

    def test_checkout_untracked_path_fails(self, two_commit_dir):
        rc, out, err = run_strand("checkout", "--", "ghost.txt", cwd=two_commit_dir, expect_fail=True)
        assert rc == 1
        assert "ghost.txt" in err

    def test_commit_while_detached_fails_with_hint(self, two_commit_dir):
        run_strand("checkout", "HEAD~1", cwd=two_commit_dir)
        rc, out, err = run_strand("commit", "nope", cwd=two_commit_dir, expect_fail=True)
        assert rc == 1
        assert "Head is detached" in err
        assert "strand checkout master" in err

    def test_relative_revision_past_root(self, two_commit_dir):
        rc, out, err = run_strand("checkout", "HEAD~5", cwd=two_commit_dir, expect_fail=True)
        assert rc == 1
        assert "strand log" in err

    def test_unknown_revision(self, two_commit_dir):
        rc, out, err = run_strand("checkout", "deadbeef", cwd=two_commit_dir, expect_fail=True)
        assert rc == 1
        assert "Error:" in err


class TestReset:
    def test_reset_abandons_later_commit(self, two_commit_dir):
        rc, out, _ = run_strand("reset", "HEAD~1", cwd=two_commit_dir)
        assert rc == 0
        assert out.strip() == "Reset successful"
        assert (two_commit_dir / "a.txt").read_text() == "hello"

        rc, out, _ = run_strand("log", cwd=two_commit_dir)
        assert "second" not in out

        # HEAD is the tip again, so committing works
        (two_commit_dir / "b.txt").write_text("b")
        assert run_strand("add", "b.txt", cwd=two_commit_dir)[0] == 0
        assert run_strand("commit", "third", cwd=two_commit_dir)[0] == 0


class TestStatus:
    def test_everything_up_to_date(self, two_commit_dir):
        rc, out, _ = run_strand("status", cwd=two_commit_dir)
        assert rc == 0
        assert "Current branch is 'master'" in out
        assert "Everything up to date" in out

    def test_sections(self, two_commit_dir):
        (two_commit_dir / "a.txt").write_text("edited")
        (two_commit_dir / "new.txt").write_text("n")
        (two_commit_dir / "staged.txt").write_text("s")
        run_strand("add", "staged.txt", cwd=two_commit_dir)

        rc, out, _ = run_strand("status", cwd=two_commit_dir)
        assert rc == 0
        assert "Ready to commit:" in out
        assert "Changes not staged for commit:" in out
        assert "Untracked files:" in out
        assert "Everything up to date" not in out
        ready, rest = out.split("Changes not staged for commit:")
        assert "staged.txt" in ready
        unstaged, untracked = rest.split("Untracked files:")
        assert "a.txt" in unstaged
        assert "new.txt" in untracked

    def test_quiet_status(self, two_commit_dir):
        (two_commit_dir / "a.txt").unlink()
        (two_commit_dir / "new.txt").write_text("n")
        rc, out, _ = run_strand("-q", "status", cwd=two_commit_dir)
        assert rc == 0
        assert out.splitlines() == ["D a.txt", "? new.txt"]

    def test_json_status(self, two_commit_dir):
        (two_commit_dir / "new.txt").write_text("n")
        rc, out, _ = run_strand("--json", "status", cwd=two_commit_dir)
        assert rc == 0
        data = json.loads(out)
        assert data["untracked"] == ["new.txt"]
        assert data["clean"] is False
        assert data["storage"]["total_objects"] == 2

    def test_status_from_subdirectory(self, two_commit_dir):
        sub = two_commit_dir / "sub"
        sub.mkdir()
        rc, out, _ = run_strand("status", cwd=sub)
        assert rc == 0
        assert "Everything up to date" in out


class TestPathsFromSubdirectory:
    def test_add_resolves_against_working_directory(self, repo_dir):
        sub = repo_dir / "sub"
        sub.mkdir()
        (sub / "b.txt").write_text("nested")
        (repo_dir / "b.txt").write_text("top level")

        rc, out, err = run_strand("add", "b.txt", cwd=sub)
        assert rc == 0, err

        rc, out, _ = run_strand("--json", "status", cwd=repo_dir)
        data = json.loads(out)
        assert data["staged_new"] == ["sub/b.txt"]
        assert "b.txt" in data["untracked"]

    def test_add_parent_relative_path(self, repo_dir):
        sub = repo_dir / "sub"
        sub.mkdir()
        rc, out, err = run_strand("--json", "add", "../a.txt", cwd=sub)
        assert rc == 0, err
        assert list(json.loads(out)["staged"]) == ["a.txt"]

    def test_rm_resolves_against_working_directory(self, repo_dir):
        sub = repo_dir / "sub"
        sub.mkdir()
        rc, out, _ = run_strand("--json", "rm", "c.txt", cwd=sub)
        assert rc == 0
        assert json.loads(out)["deleted"] == ["sub/c.txt"]

    def test_checkout_paths_resolves_against_working_directory(self, repo_dir):
        sub = repo_dir / "sub"
        sub.mkdir()
        (sub / "c.txt").write_text("v1")
        assert run_strand("add", "c.txt", cwd=sub)[0] == 0
        assert run_strand("commit", "add c", cwd=repo_dir)[0] == 0

        (sub / "c.txt").write_text("scribbles")
        rc, out, err = run_strand("checkout", "--", "c.txt", cwd=sub)
        assert rc == 0, err
        assert (sub / "c.txt").read_text() == "v1"

    def test_paths_relative_to_path_option(self, repo_dir, tmp_path_factory):
        elsewhere = tmp_path_factory.mktemp("elsewhere")
        rc, out, err = run_strand("-C", str(repo_dir), "add", "a.txt", cwd=elsewhere)
        assert rc == 0, err
        rc, out, _ = run_strand("--json", "status", cwd=repo_dir)
        assert json.loads(out)["staged_new"] == ["a.txt"]
