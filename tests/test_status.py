"""Status report tests: staged, unstaged and untracked checks."""

from conftest import write

from strand.repo import REPO_DIR_NAME


def _commit_file(repo, rel, content, message="commit"):
    write(repo, rel, content)
    repo.add([rel])
    return repo.commit(message)


class TestCleanRepository:
    def test_fresh_repo_is_clean(self, repo):
        report = repo.status()
        assert report.clean
        assert report.to_dict() == {
            "staged_new": [],
            "staged_modified": [],
            "unstaged_modified": [],
            "unstaged_deleted": [],
            "untracked": [],
        }

    def test_clean_after_commit(self, repo):
        _commit_file(repo, "a.txt", "hello")
        assert repo.status().clean


class TestStaged:
    def test_new_file(self, repo):
        write(repo, "a.txt", "hello")
        repo.add(["a.txt"])
        report = repo.status()
        assert report.staged_new == ["a.txt"]
        assert report.staged_modified == []
        assert report.untracked == []

    def test_modified_file(self, repo):
        _commit_file(repo, "a.txt", "hello")
        write(repo, "a.txt", "world")
        repo.add(["a.txt"])
        report = repo.status()
        assert report.staged_modified == ["a.txt"]
        assert report.staged_new == []
        assert report.unstaged_modified == []

    def test_staged_deletion_not_reported_as_staged(self, repo):
        _commit_file(repo, "a.txt", "hello")
        repo.remove(["a.txt"])
        assert not repo.status().has_staged_changes


class TestUnstaged:
    def test_modified_after_commit(self, repo):
        _commit_file(repo, "a.txt", "hello")
        write(repo, "a.txt", "world")
        report = repo.status()
        assert report.unstaged_modified == ["a.txt"]
        assert report.untracked == []
        assert not report.clean

    def test_deleted_from_disk(self, repo):
        _commit_file(repo, "a.txt", "hello")
        (repo.root / "a.txt").unlink()
        report = repo.status()
        assert report.unstaged_deleted == ["a.txt"]
        assert report.unstaged_modified == []

    def test_edit_after_staging_hidden_by_staged_entry(self, repo):
        _commit_file(repo, "a.txt", "hello")
        write(repo, "a.txt", "world")
        repo.add(["a.txt"])
        write(repo, "a.txt", "again")
        report = repo.status()
        assert report.staged_modified == ["a.txt"]
        assert report.unstaged_modified == []

    def test_restoring_content_clears_modification(self, repo):
        _commit_file(repo, "a.txt", "hello")
        write(repo, "a.txt", "world")
        write(repo, "a.txt", "hello")
        assert repo.status().clean


class TestUntracked:
    def test_new_files_untracked(self, repo):
        write(repo, "b.txt", "b")
        write(repo, "a.txt", "a")
        assert repo.status().untracked == ["a.txt", "b.txt"]

    def test_nested_files_reported_with_posix_paths(self, repo):
        write(repo, "src/pkg/mod.py", "x = 1")
        assert repo.status().untracked == ["src/pkg/mod.py"]

    def test_metadata_directory_ignored(self, repo):
        assert (repo.root / REPO_DIR_NAME / "state.json").exists()
        assert repo.status().untracked == []

    def test_staged_deletion_still_on_disk_is_untracked(self, repo):
        _commit_file(repo, "a.txt", "hello")
        repo.remove(["a.txt"])
        report = repo.status()
        assert report.untracked == ["a.txt"]
        assert report.unstaged_modified == []

    def test_file_dropped_by_commit_is_untracked(self, repo):
        _commit_file(repo, "a.txt", "hello")
        repo.remove(["a.txt"])
        repo.commit("drop a")
        assert repo.status().untracked == ["a.txt"]


class TestReadOnly:
    def test_status_does_not_touch_state_file(self, repo):
        _commit_file(repo, "a.txt", "hello")
        write(repo, "a.txt", "world")
        write(repo, "new.txt", "n")
        state_path = repo.root / REPO_DIR_NAME / "state.json"
        before = state_path.read_bytes()
        repo.status()
        repo.status()
        assert state_path.read_bytes() == before

    def test_status_stores_no_blobs(self, repo):
        write(repo, "new.txt", "never added")
        repo.status()
        assert repo.store.stats()["total_objects"] == 0
