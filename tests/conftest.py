"""Pytest fixtures for branchlet tests"""
import tempfile
from pathlib import Path

import pytest
import git

from branchlet.config import Config
from branchlet.services.config_service import ConfigService
from branchlet.services.git import GitWorktreeService


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        # Resolve symlinks (/tmp -> /private/tmp) so paths match what git reports
        yield Path(tmpdir).resolve()


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    # Initialize repository
    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    # Create initial commit on main branch
    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    repo.git.branch("-M", "main")

    yield repo

    # Cleanup
    repo.close()


@pytest.fixture
def repo_path(git_repo):
    """Working directory of the test repository as a string."""
    return str(Path(git_repo.working_dir))


@pytest.fixture
def git_repo_with_branches(git_repo):
    """Create a Git repository with a feature branch holding its own commit."""
    repo = git_repo
    repo_path = Path(repo.working_dir)

    repo.git.checkout("-b", "feature/existing")
    feature_file = repo_path / "feature.txt"
    feature_file.write_text("Feature content\n")
    repo.index.add(["feature.txt"])
    repo.index.commit("Add feature")

    repo.git.checkout("main")
    repo.git.branch("develop")

    yield repo


@pytest.fixture
def add_worktree(git_repo, temp_dir):
    """Factory that adds a linked worktree on a new branch and returns its path."""

    def _add(name: str, branch: str = None) -> str:
        path = temp_dir / "test_repo.worktree" / name
        git_repo.git.worktree("add", "-b", branch or name, str(path), "main")
        return str(path)

    return _add


@pytest.fixture
def git_service(repo_path):
    """GitWorktreeService with default configuration."""
    return GitWorktreeService(repo_path, Config())


@pytest.fixture
def home_dir(temp_dir, monkeypatch):
    """Point HOME at a scratch directory so the global config stays isolated."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def config_service(temp_dir):
    """ConfigService whose global settings file lives in the temp directory."""
    return ConfigService(global_config_file_path=temp_dir / "home" / ".branchlet" / "settings.json")
