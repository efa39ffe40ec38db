"""Tests for navigation targets"""
import os

from branchlet.core.navigation import find_worktree_containing_path, resolve_target_path


class TestResolveTargetPath:
    """Test mapping the cwd onto another worktree."""

    def test_mirrors_existing_subdirectory(self, temp_dir):
        """Test the same relative directory is used when it exists."""
        (temp_dir / "wt" / "sub").mkdir(parents=True)
        (temp_dir / "main" / "sub").mkdir(parents=True)
        target = resolve_target_path(str(temp_dir / "wt"), str(temp_dir / "main"), str(temp_dir / "wt" / "sub"))
        assert target == os.path.join(str(temp_dir / "main"), "sub")

    def test_falls_back_to_root_when_missing(self, temp_dir):
        """Test a missing subdirectory falls back to the destination root."""
        (temp_dir / "wt" / "sub").mkdir(parents=True)
        (temp_dir / "main").mkdir()
        target = resolve_target_path(str(temp_dir / "wt"), str(temp_dir / "main"), str(temp_dir / "wt" / "sub"))
        assert target == str(temp_dir / "main")

    def test_cwd_at_root(self, temp_dir):
        """Test standing at the source root yields the destination root."""
        (temp_dir / "wt").mkdir()
        (temp_dir / "main").mkdir()
        assert resolve_target_path(str(temp_dir / "wt"), str(temp_dir / "main"), str(temp_dir / "wt")) == str(temp_dir / "main")

    def test_cwd_outside_source(self, temp_dir):
        """Test a cwd outside the source root yields the destination root."""
        (temp_dir / "wt").mkdir()
        (temp_dir / "main" / "other").mkdir(parents=True)
        (temp_dir / "other").mkdir()
        target = resolve_target_path(str(temp_dir / "wt"), str(temp_dir / "main"), str(temp_dir / "other"))
        assert target == str(temp_dir / "main")

    def test_missing_inputs(self):
        """Test unknown source or cwd yields the destination root."""
        assert resolve_target_path(None, "/dest", "/x") == "/dest"
        assert resolve_target_path("/src", "/dest", None) == "/dest"


class TestFindWorktreeContainingPath:
    """Test locating the worktree around a path."""

    def test_deepest_match_wins(self, temp_dir):
        """Test nested worktrees resolve to the innermost one."""
        outer = temp_dir / "outer"
        inner = outer / "inner"
        (inner / "src").mkdir(parents=True)
        found = find_worktree_containing_path([str(outer), str(inner)], str(inner / "src"))
        assert found == str(inner)

    def test_no_match(self, temp_dir):
        """Test paths outside every worktree."""
        assert find_worktree_containing_path([str(temp_dir / "a")], str(temp_dir / "ab")) is None
