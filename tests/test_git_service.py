"""Tests for the git worktree and branch services"""
import os
import shutil
from pathlib import Path

import pytest

from branchlet.config import Config
from branchlet.exceptions import (
    BranchDeletionBlockedError,
    GitCommandError,
    GitQueryError,
)
from branchlet.services.git import BranchService, GitWorktreeService, parse_worktree_porcelain


PORCELAIN = """worktree /code/repo
HEAD 1111111111111111111111111111111111111111
branch refs/heads/main

worktree /code/repo.worktree/feat
HEAD 2222222222222222222222222222222222222222
branch refs/heads/team/feat

worktree /code/repo.worktree/detached
HEAD 3333333333333333333333333333333333333333
detached

worktree /code/repo.worktree/gone
HEAD 4444444444444444444444444444444444444444
branch refs/heads/gone
prunable gitdir file points to non-existent location
"""


class TestParseWorktreePorcelain:
    """Test parsing of `git worktree list --porcelain`."""

    def test_parses_all_entries(self):
        """Test every block becomes one entry."""
        entries = parse_worktree_porcelain(PORCELAIN)
        assert [e["path"] for e in entries] == [
            "/code/repo",
            "/code/repo.worktree/feat",
            "/code/repo.worktree/detached",
            "/code/repo.worktree/gone",
        ]

    def test_first_entry_is_main(self):
        """Test only the first entry is the main working tree."""
        entries = parse_worktree_porcelain(PORCELAIN)
        assert [e["is_main"] for e in entries] == [True, False, False, False]

    def test_branch_names_are_short(self):
        """Test refs/heads/ is stripped and slashes in names survive."""
        entries = parse_worktree_porcelain(PORCELAIN)
        assert entries[1]["branch"] == "team/feat"
        assert entries[1]["HEAD"] == "2" * 40

    def test_detached_and_prunable(self):
        """Test detached HEAD and prunable markers."""
        entries = parse_worktree_porcelain(PORCELAIN)
        assert entries[2]["branch"] == "detached"
        assert entries[3].get("prunable") is True

    def test_missing_trailing_blank_line(self):
        """Test the last block is kept without a trailing newline."""
        entries = parse_worktree_porcelain("worktree /a\nHEAD abc\nbranch refs/heads/main")
        assert len(entries) == 1
        assert entries[0]["branch"] == "main"

    def test_empty_output(self):
        """Test empty output yields no entries."""
        assert parse_worktree_porcelain("") == []


class TestBranchService:
    """Test branch queries."""

    def test_list_branch_names(self, git_repo_with_branches):
        """Test all local branches are listed."""
        service = BranchService(git_repo_with_branches.working_dir)
        assert set(service.list_branch_names()) == {"main", "develop", "feature/existing"}

    def test_current_branch(self, git_repo_with_branches):
        """Test the checked-out branch is reported."""
        service = BranchService(git_repo_with_branches.working_dir)
        assert service.get_current_branch() == "main"

    def test_current_branch_detached(self, git_repo):
        """Test a detached HEAD reports no branch."""
        git_repo.git.checkout("--detach")
        service = BranchService(git_repo.working_dir)
        assert service.get_current_branch() is None

    def test_default_branch_without_remote(self, git_repo_with_branches):
        """Test main is the default when origin/HEAD is unknown."""
        service = BranchService(git_repo_with_branches.working_dir)
        assert service.get_default_branch() == "main"

    def test_list_branches_marks_current_and_default(self, git_repo_with_branches):
        """Test BranchInfo markers."""
        service = BranchService(git_repo_with_branches.working_dir)
        branches = {b.name: b for b in service.list_branches()}
        assert branches["main"].is_current and branches["main"].is_default
        assert not branches["develop"].is_current

    def test_count_unique_commits(self, git_repo_with_branches):
        """Test commits only on one branch are counted."""
        service = BranchService(git_repo_with_branches.working_dir)
        assert service.count_unique_commits("feature/existing") == 1
        assert service.count_unique_commits("develop") == 0

    def test_count_unique_commits_sees_other_branches(self, git_repo_with_branches):
        """Test commits also reachable from another branch are not unique."""
        service = BranchService(git_repo_with_branches.working_dir)
        git_repo_with_branches.git.branch("feature/copy", "feature/existing")
        assert service.count_unique_commits("feature/existing") == 0
        assert service.count_unique_commits("feature/copy") == 0

    def test_delete_missing_branch_raises(self, git_repo):
        """Test git's refusal surfaces as GitCommandError with stderr."""
        service = BranchService(git_repo.working_dir)
        with pytest.raises(GitCommandError) as exc_info:
            service.delete_branch("does-not-exist")
        assert exc_info.value.stderr
        assert exc_info.value.target == "does-not-exist"

    def test_not_a_repository(self, temp_dir):
        """Test queries outside a repository raise GitQueryError."""
        plain = temp_dir / "plain"
        plain.mkdir()
        with pytest.raises(GitQueryError):
            BranchService(str(plain)).list_branch_names()


class TestWorktreeQueries:
    """Test worktree listing and status."""

    def test_list_main_only(self, git_service, repo_path):
        """Test a fresh repository has only the main worktree."""
        worktrees = git_service.list_worktrees()
        assert len(worktrees) == 1
        assert worktrees[0].is_main
        assert worktrees[0].path == repo_path
        assert worktrees[0].branch == "main"

    def test_list_with_linked_worktree(self, git_service, add_worktree):
        """Test linked worktrees are listed after the main one."""
        path = add_worktree("feat")
        worktrees = git_service.list_worktrees()
        assert [wt.is_main for wt in worktrees] == [True, False]
        assert worktrees[1].path == path
        assert worktrees[1].branch == "feat"
        assert worktrees[1].is_clean

    def test_dirty_worktree_detected(self, git_service, add_worktree):
        """Test untracked files make a worktree unclean."""
        path = add_worktree("feat")
        Path(path, "scratch.txt").write_text("x")
        assert git_service.is_worktree_clean(path) is False
        details = git_service.get_worktree_status_details(path)
        assert details == {"modified": False, "untracked": True, "staged": False}

    def test_modified_and_staged(self, git_service, add_worktree, git_repo):
        """Test modified and staged flags."""
        path = add_worktree("feat")
        Path(path, "README.md").write_text("changed\n")
        Path(path, "new.txt").write_text("new\n")
        git_repo.git.execute(["git", "-C", path, "add", "new.txt"])
        details = git_service.get_worktree_status_details(path)
        assert details["modified"] is True
        assert details["staged"] is True

    def test_clean_check_missing_directory(self, git_service, temp_dir):
        """Test a missing directory is a query error, not 'clean'."""
        with pytest.raises(GitQueryError):
            git_service.is_worktree_clean(str(temp_dir / "nowhere"))

    def test_orphaned_worktree(self, git_service, add_worktree):
        """Test a worktree whose directory vanished is flagged."""
        path = add_worktree("feat")
        shutil.rmtree(path)
        worktree = git_service.list_worktrees()[1]
        assert worktree.is_orphaned

    def test_prune_orphaned_worktree(self, git_service, add_worktree):
        """Test pruning drops metadata of a vanished worktree."""
        shutil.rmtree(add_worktree("feat"))
        git_service.prune_worktrees()
        assert len(git_service.list_worktrees()) == 1

    def test_repository_info(self, git_repo_with_branches, add_worktree):
        """Test the repository descriptor."""
        add_worktree("feat")
        service = GitWorktreeService(git_repo_with_branches.working_dir)
        info = service.get_repository_info()
        assert info.root_path == git_repo_with_branches.working_dir
        assert info.current_branch == "main"
        assert info.find_branch("feat") is not None
        assert len(info.additional_worktrees) == 1

    def test_current_worktree_info_in_main(self, git_service, repo_path):
        """Test the main working tree is not reported as a worktree."""
        info = git_service.get_current_worktree_info(repo_path)
        assert info.is_worktree is False
        assert info.main_repo_path == repo_path

    def test_current_worktree_info_in_linked(self, git_service, add_worktree, repo_path):
        """Test a linked worktree subdirectory is recognised."""
        path = add_worktree("feat")
        sub = Path(path, "src")
        sub.mkdir()
        info = git_service.get_current_worktree_info(str(sub))
        assert info.is_worktree is True
        assert info.worktree_path == path
        assert info.main_repo_path == repo_path
        assert info.branch == "feat"


class TestWorktreeMutations:
    """Test creating and deleting worktrees."""

    def test_create_with_new_branch(self, git_service, temp_dir):
        """Test a new branch is created from the source."""
        base = str(temp_dir / "trees")
        path = git_service.create_worktree("feat", "main", "team/feat", base)
        assert path == os.path.join(base, "feat")
        assert os.path.isfile(os.path.join(path, "README.md"))
        assert git_service.branches.branch_exists("team/feat")

    def test_create_with_existing_branch(self, git_repo_with_branches, temp_dir):
        """Test checking out an existing branch without creating one."""
        service = GitWorktreeService(git_repo_with_branches.working_dir)
        path = service.create_worktree("dev", "develop", "develop", str(temp_dir / "trees"))
        assert service.list_worktrees()[1].branch == "develop"
        assert os.path.isdir(path)

    def test_create_existing_branch_name_fails(self, git_repo_with_branches, temp_dir):
        """Test git's refusal carries its stderr."""
        service = GitWorktreeService(git_repo_with_branches.working_dir)
        with pytest.raises(GitCommandError) as exc_info:
            service.create_worktree("x", "main", "develop", str(temp_dir / "trees"))
        assert "develop" in exc_info.value.stderr

    def test_delete_clean_worktree(self, git_service, add_worktree):
        """Test a clean worktree is removed and its branch kept by default."""
        path = add_worktree("feat")
        result = git_service.delete_worktree(path)
        assert not os.path.exists(path)
        assert result.branch == "feat"
        assert result.branch_deleted is False
        assert git_service.branches.branch_exists("feat")

    def test_delete_dirty_without_force_fails(self, git_service, add_worktree):
        """Test git refuses to remove a dirty worktree without force."""
        path = add_worktree("feat")
        Path(path, "scratch.txt").write_text("x")
        with pytest.raises(GitCommandError):
            git_service.delete_worktree(path)
        assert os.path.exists(path)

    def test_delete_dirty_with_force_warns(self, git_service, add_worktree):
        """Test forced removal reports discarded changes."""
        path = add_worktree("feat")
        Path(path, "scratch.txt").write_text("x")
        result = git_service.delete_worktree(path, force=True)
        assert not os.path.exists(path)
        assert any("discarded" in w for w in result.warnings)

    def test_delete_with_branch(self, repo_path, add_worktree):
        """Test the branch goes too when configured."""
        service = GitWorktreeService(repo_path, Config(delete_branch_with_worktree=True))
        path = add_worktree("feat")
        result = service.delete_worktree(path)
        assert result.branch_deleted is True
        assert not service.branches.branch_exists("feat")

    def test_delete_branch_with_unique_commits_warns(self, repo_path, add_worktree, git_repo):
        """Test losing unique commits is reported as a warning."""
        service = GitWorktreeService(repo_path, Config(delete_branch_with_worktree=True))
        path = add_worktree("feat")
        Path(path, "work.txt").write_text("work\n")
        git_repo.git.execute(["git", "-C", path, "add", "work.txt"])
        git_repo.git.execute(["git", "-C", path, "commit", "-m", "work"])

        result = service.delete_worktree(path)
        assert result.branch_deleted is True
        assert any("1 commit" in w for w in result.warnings)

    def test_delete_branch_strict_mode_blocks(self, repo_path, add_worktree, git_repo):
        """Test strict mode refuses before removing anything."""
        service = GitWorktreeService(repo_path, Config(delete_branch_with_worktree=True))
        path = add_worktree("feat")
        Path(path, "work.txt").write_text("work\n")
        git_repo.git.execute(["git", "-C", path, "add", "work.txt"])
        git_repo.git.execute(["git", "-C", path, "commit", "-m", "work"])

        with pytest.raises(BranchDeletionBlockedError):
            service.delete_worktree(path, strict=True)
        assert os.path.exists(path)
        assert service.branches.branch_exists("feat")

    def test_delete_orphaned_worktree(self, git_service, add_worktree):
        """Test a worktree whose directory is gone is pruned."""
        path = add_worktree("feat")
        shutil.rmtree(path)
        git_service.delete_worktree(path)
        assert len(git_service.list_worktrees()) == 1

    def test_refuses_main_worktree(self, git_service, repo_path):
        """Test the main working tree is never removed."""
        with pytest.raises(GitCommandError):
            git_service.delete_worktree(repo_path)
        assert os.path.isdir(repo_path)
