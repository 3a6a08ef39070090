"""Unit tests for the Repository facade."""

from pathlib import Path

import pytest

from gitlet.constants import GITLET_DIR
from gitlet.core import Repository, format_commit
from gitlet.errors import (
    DuplicateObjectError,
    InvalidStateError,
    NotFoundError,
    UntrackedOverwriteError,
)
from gitlet.storage.commit import Commit
from gitlet.storage.object_store import compute_hash


class TestInit:
    """Test repository creation."""

    def test_layout(self, repo: Repository, workspace: Path) -> None:
        gitlet_dir = workspace / GITLET_DIR
        assert (gitlet_dir / "blobs").is_dir()
        assert (gitlet_dir / "commits").is_dir()
        assert (gitlet_dir / "refs" / "heads" / "master").is_file()
        assert (gitlet_dir / "HEAD").read_text() == "ref: refs/heads/master"
        assert (gitlet_dir / "index").is_file()

    def test_root_commit(self, repo: Repository) -> None:
        head = repo.head_commit()
        assert head == Commit.initial()
        assert repo.refs.current_branch() == "master"

    def test_init_twice(self, repo: Repository, workspace: Path) -> None:
        with pytest.raises(DuplicateObjectError, match="already exists in the current directory"):
            Repository.init(workspace)

    def test_open_uninitialized(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidStateError, match="Not in an initialized Gitlet directory."):
            Repository(tmp_path)


class TestAdd:
    """Test staging files."""

    def test_add_stages_blob(self, repo: Repository, write_file) -> None:
        write_file("a.txt", "hello")

        assert repo.add("a.txt") is True
        entries = repo.staging.load()
        assert entries["a.txt"]["blob_hash"] == compute_hash(b"hello")
        assert entries["a.txt"]["size_bytes"] == 5
        assert repo.object_store.blob_exists(compute_hash(b"hello"))

    def test_add_missing_file(self, repo: Repository) -> None:
        with pytest.raises(NotFoundError, match="File does not exist."):
            repo.add("missing.txt")

    def test_add_unchanged_file_unstages(self, repo: Repository, write_file) -> None:
        write_file("a.txt", "v1")
        repo.add("a.txt")
        repo.commit("v1")
        write_file("a.txt", "v2")
        repo.add("a.txt")
        write_file("a.txt", "v1")

        assert repo.add("a.txt") is False
        assert repo.staging.load() == {}

    def test_add_cancels_removal(self, repo: Repository, write_file) -> None:
        write_file("a.txt", "v1")
        repo.add("a.txt")
        repo.commit("v1")
        repo.rm("a.txt")
        write_file("a.txt", "v1")

        repo.add("a.txt")
        assert repo.staging.load() == {}

    def test_add_nested_path(self, repo: Repository, write_file) -> None:
        write_file("dir/sub/a.txt", "nested")
        repo.add("dir/sub/a.txt")
        assert "dir/sub/a.txt" in repo.staging.load()

    def test_add_outside_workspace(self, repo: Repository) -> None:
        with pytest.raises(InvalidStateError, match="outside the workspace"):
            repo.add("../elsewhere.txt")

    def test_add_inside_gitlet_dir(self, repo: Repository) -> None:
        with pytest.raises(InvalidStateError, match="Cannot track"):
            repo.add(".gitlet/HEAD")


class TestCommit:
    """Test snapshot creation."""

    def test_commit_snapshot(self, repo: Repository, write_file) -> None:
        write_file("keep.txt", "keep")
        write_file("drop.txt", "drop")
        repo.add("keep.txt")
        repo.add("drop.txt")
        first = repo.commit("two files")

        write_file("new.txt", "new")
        repo.add("new.txt")
        repo.rm("drop.txt")
        second = repo.commit("swap")

        assert second.first_parent == first.hash
        assert second.files == {
            "keep.txt": compute_hash(b"keep"),
            "new.txt": compute_hash(b"new"),
        }
        assert repo.refs.read_branch("master") == second.hash
        assert repo.staging.load() == {}
        assert repo.object_store.read_commit(second.hash) == second

    def test_commit_uses_clock(self, repo: Repository, write_file, clock) -> None:
        write_file("a.txt", "a")
        repo.add("a.txt")
        commit = repo.commit("timed")
        assert commit.timestamp == int(clock.now)

    def test_empty_message(self, repo: Repository, write_file) -> None:
        write_file("a.txt", "a")
        repo.add("a.txt")
        with pytest.raises(InvalidStateError, match="Please enter a commit message."):
            repo.commit("   ")

    def test_nothing_staged(self, repo: Repository) -> None:
        with pytest.raises(InvalidStateError, match="No changes added to the commit."):
            repo.commit("empty")

    def test_commit_on_detached_head(self, repo: Repository, write_file) -> None:
        root = repo.refs.resolve_head()
        repo.refs.detach_head(root)
        write_file("a.txt", "a")
        repo.add("a.txt")
        commit = repo.commit("detached")

        assert repo.refs.resolve_head() == commit.hash
        assert repo.refs.read_branch("master") == root


class TestRm:
    def test_rm_staged_file(self, repo: Repository, write_file, workspace: Path) -> None:
        write_file("a.txt", "a")
        repo.add("a.txt")
        repo.rm("a.txt")

        assert repo.staging.load() == {}
        assert (workspace / "a.txt").exists()

    def test_rm_tracked_file(self, repo: Repository, write_file, workspace: Path) -> None:
        write_file("a.txt", "a")
        repo.add("a.txt")
        repo.commit("track a")
        repo.rm("a.txt")

        assert repo.staging.load() == {"a.txt": {"action": "remove"}}
        assert not (workspace / "a.txt").exists()

    def test_rm_without_reason(self, repo: Repository, write_file) -> None:
        write_file("staged.txt", "s")
        repo.add("staged.txt")
        write_file("stray.txt", "?")
        before = repo.staging.index_path.read_bytes()

        with pytest.raises(InvalidStateError, match="No reason to remove the file."):
            repo.rm("stray.txt")
        assert repo.staging.index_path.read_bytes() == before


class TestHistory:
    """Test log, global-log and find."""

    def test_log_follows_first_parents(self, repo: Repository, write_file) -> None:
        write_file("a.txt", "1")
        repo.add("a.txt")
        first = repo.commit("first")
        write_file("a.txt", "2")
        repo.add("a.txt")
        second = repo.commit("second")

        assert [c.hash for c in repo.log()] == [
            second.hash,
            first.hash,
            Commit.initial().hash,
        ]

    def test_global_log_includes_other_branches(self, repo: Repository, write_file) -> None:
        repo.branch("side")
        repo.checkout_branch("side")
        write_file("a.txt", "side")
        repo.add("a.txt")
        side = repo.commit("on side")
        repo.checkout_branch("master")

        hashes = {c.hash for c in repo.global_log()}
        assert side.hash in hashes
        assert side.hash not in {c.hash for c in repo.log()}

    def test_find(self, repo: Repository, write_file) -> None:
        write_file("a.txt", "1")
        repo.add("a.txt")
        one = repo.commit("same message")
        write_file("a.txt", "2")
        repo.add("a.txt")
        two = repo.commit("same message")

        assert repo.find("same message") == sorted([one.hash, two.hash])
        assert repo.find("initial commit") == [Commit.initial().hash]

    def test_find_nothing(self, repo: Repository) -> None:
        with pytest.raises(NotFoundError, match="Found no commit with that message."):
            repo.find("never written")

    def test_format_commit(self) -> None:
        commit = Commit("hello", 0)
        lines = format_commit(commit).splitlines()

        assert lines[0] == "==="
        assert lines[1] == f"commit {commit.hash}"
        assert lines[2].startswith("Date: ")
        assert lines[2].split()[-2] in ("1969", "1970")
        assert lines[3] == "hello"

    def test_format_merge_commit(self) -> None:
        commit = Commit("merge", 5, first_parent="1" * 40, second_parent="2" * 40)
        lines = format_commit(commit).splitlines()

        assert lines[2] == "Merge: 1111111 2222222"


class TestStatus:
    def test_status_sections(self, repo: Repository, write_file) -> None:
        write_file("tracked.txt", "t")
        write_file("gone.txt", "g")
        write_file("removed.txt", "r")
        repo.add("tracked.txt")
        repo.add("gone.txt")
        repo.add("removed.txt")
        repo.commit("setup")
        repo.branch("other")

        write_file("tracked.txt", "edited")
        (repo.workspace_root / "gone.txt").unlink()
        repo.rm("removed.txt")
        write_file("staged.txt", "s")
        repo.add("staged.txt")
        write_file("stray.txt", "?")

        report = repo.status()
        assert report.branches == ["master", "other"]
        assert report.current_branch == "master"
        assert report.staged == ["staged.txt"]
        assert report.removed == ["removed.txt"]
        assert report.modified == ["gone.txt (deleted)", "tracked.txt (modified)"]
        assert report.untracked == ["stray.txt"]


class TestCheckout:
    """Test restoring files and switching branches."""

    def test_checkout_file(self, repo: Repository, write_file, workspace: Path) -> None:
        write_file("a.txt", "committed")
        repo.add("a.txt")
        repo.commit("a")
        write_file("a.txt", "scribbled")

        repo.checkout_file("a.txt")
        assert (workspace / "a.txt").read_text() == "committed"
        assert repo.staging.load() == {}

    def test_checkout_file_not_in_commit(self, repo: Repository) -> None:
        with pytest.raises(NotFoundError, match="File does not exist in that commit."):
            repo.checkout_file("nope.txt")

    def test_checkout_commit_file_by_prefix(
        self, repo: Repository, write_file, workspace: Path
    ) -> None:
        write_file("a.txt", "old")
        repo.add("a.txt")
        old = repo.commit("old")
        write_file("a.txt", "new")
        repo.add("a.txt")
        repo.commit("new")

        repo.checkout_commit_file(old.hash[:8], "a.txt")
        assert (workspace / "a.txt").read_text() == "old"

    def test_checkout_commit_file_unknown_commit(self, repo: Repository) -> None:
        with pytest.raises(NotFoundError, match="No commit with that id exists."):
            repo.checkout_commit_file("deadbeef", "a.txt")

    def test_checkout_branch(self, repo: Repository, write_file, workspace: Path) -> None:
        write_file("shared.txt", "base")
        repo.add("shared.txt")
        repo.commit("base")
        repo.branch("other")
        write_file("master_only.txt", "m")
        repo.add("master_only.txt")
        repo.commit("master only")

        repo.checkout_branch("other")

        assert repo.refs.current_branch() == "other"
        assert not (workspace / "master_only.txt").exists()
        assert (workspace / "shared.txt").read_text() == "base"

    def test_checkout_missing_branch(self, repo: Repository) -> None:
        with pytest.raises(NotFoundError, match="No such branch exists."):
            repo.checkout_branch("nope")

    def test_checkout_current_branch(self, repo: Repository) -> None:
        with pytest.raises(InvalidStateError, match="No need to checkout the current branch."):
            repo.checkout_branch("master")

    def test_checkout_branch_untracked_guard(
        self, repo: Repository, write_file, workspace: Path
    ) -> None:
        repo.branch("other")
        repo.checkout_branch("other")
        write_file("clash.txt", "theirs")
        repo.add("clash.txt")
        repo.commit("other adds clash")
        repo.checkout_branch("master")
        write_file("clash.txt", "mine")
        write_file("pending.txt", "p")
        repo.add("pending.txt")
        index_before = repo.staging.index_path.read_bytes()

        with pytest.raises(UntrackedOverwriteError):
            repo.checkout_branch("other")

        assert repo.refs.current_branch() == "master"
        assert (workspace / "clash.txt").read_text() == "mine"
        assert repo.staging.index_path.read_bytes() == index_before

    def test_checkout_keeps_unrelated_untracked_files(
        self, repo: Repository, write_file, workspace: Path
    ) -> None:
        repo.branch("other")
        write_file("stray.txt", "keep me")

        repo.checkout_branch("other")
        assert (workspace / "stray.txt").read_text() == "keep me"

    def test_checkout_between_file_and_directory(
        self, repo: Repository, write_file, workspace: Path
    ) -> None:
        write_file("a/b.txt", "nested")
        repo.add("a/b.txt")
        repo.commit("nested layout")
        repo.branch("flat")
        repo.checkout_branch("flat")
        repo.rm("a/b.txt")
        write_file("a", "flat")
        repo.add("a")
        repo.commit("flat layout")

        repo.checkout_branch("master")
        assert (workspace / "a" / "b.txt").read_text() == "nested"

        repo.checkout_branch("flat")
        assert (workspace / "a").is_file()
        assert (workspace / "a").read_text() == "flat"

    def test_checkout_branch_blocked_by_untracked_nested_file(
        self, repo: Repository, write_file, workspace: Path
    ) -> None:
        write_file("a/b.txt", "nested")
        repo.add("a/b.txt")
        repo.commit("nested layout")
        repo.branch("flat")
        repo.checkout_branch("flat")
        repo.rm("a/b.txt")
        write_file("a", "flat")
        repo.add("a")
        repo.commit("flat layout")
        repo.checkout_branch("master")
        write_file("a/c.txt", "mine")

        with pytest.raises(UntrackedOverwriteError):
            repo.checkout_branch("flat")

        assert repo.refs.current_branch() == "master"
        assert (workspace / "a" / "b.txt").read_text() == "nested"
        assert (workspace / "a" / "c.txt").read_text() == "mine"

    def test_checkout_commit_file_blocked_by_untracked_parent(
        self, repo: Repository, write_file, workspace: Path
    ) -> None:
        write_file("a/b.txt", "nested")
        repo.add("a/b.txt")
        old = repo.commit("nested layout")
        repo.rm("a/b.txt")
        repo.commit("drop nested")
        write_file("a", "mine")

        with pytest.raises(UntrackedOverwriteError):
            repo.checkout_commit_file(old.hash, "a/b.txt")

        assert (workspace / "a").read_text() == "mine"


class TestBranches:
    def test_branch_points_at_head(self, repo: Repository) -> None:
        repo.branch("feature")

        assert repo.refs.read_branch("feature") == repo.refs.resolve_head()
        assert repo.refs.current_branch() == "master"

    def test_branch_exists(self, repo: Repository) -> None:
        with pytest.raises(DuplicateObjectError, match="A branch with that name already exists."):
            repo.branch("master")

    def test_branch_invalid_name(self, repo: Repository) -> None:
        with pytest.raises(InvalidStateError):
            repo.branch("../escape")

    def test_rm_branch(self, repo: Repository) -> None:
        repo.branch("feature")
        repo.rm_branch("feature")
        assert repo.refs.list_branches() == ["master"]


class TestReset:
    def test_reset(self, repo: Repository, write_file, workspace: Path) -> None:
        write_file("a.txt", "v1")
        repo.add("a.txt")
        v1 = repo.commit("v1")
        write_file("a.txt", "v2")
        write_file("b.txt", "b")
        repo.add("a.txt")
        repo.add("b.txt")
        repo.commit("v2")

        repo.reset(v1.hash[:6])

        assert repo.refs.read_branch("master") == v1.hash
        assert repo.refs.current_branch() == "master"
        assert (workspace / "a.txt").read_text() == "v1"
        assert not (workspace / "b.txt").exists()
        assert repo.staging.load() == {}

    def test_reset_unknown_commit(self, repo: Repository) -> None:
        with pytest.raises(NotFoundError, match="No commit with that id exists."):
            repo.reset("0000000")
