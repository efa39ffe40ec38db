"""Tests for the command-line interface and its stdout handoff"""
import json
import os
from pathlib import Path

import pytest

from branchlet.cli.args import parse_args
from branchlet.cli.main import main


@pytest.fixture
def in_repo(git_repo, home_dir, monkeypatch):
    """Run commands from the repository root with an isolated HOME."""
    monkeypatch.chdir(git_repo.working_dir)
    return git_repo


class TestParseArgs:
    """Test argument parsing."""

    def test_global_flags_before_and_after_subcommand(self):
        """Test --from-wrapper works in either position."""
        assert parse_args(["--from-wrapper", "create", "x"]).from_wrapper is True
        assert parse_args(["create", "x", "--from-wrapper"]).from_wrapper is True
        assert parse_args(["create", "x"]).from_wrapper is False

    def test_create_options(self):
        """Test create's positional name and --from."""
        args = parse_args(["create", "feat", "--from", "develop"])
        assert args.command == "create"
        assert args.name == "feat"
        assert args.from_branch == "develop"

    def test_delete_takes_several_paths(self):
        """Test delete accepts multiple targets."""
        assert parse_args(["delete", "a", "b", "-y"]).paths == ["a", "b"]


class TestCreateCommand:
    """Test `branchlet create`."""

    def test_prints_only_the_path_on_stdout(self, in_repo, temp_dir, capsys):
        """Test the wrapper handoff is a single bare path."""
        assert main(["create", "feat", "--from-wrapper"]) == 0

        out = capsys.readouterr().out
        expected = str(temp_dir / "test_repo.worktree" / "feat")
        assert out == expected + "\n"
        assert os.path.isdir(expected)

    def test_no_stdout_without_wrapper(self, in_repo, capsys):
        """Test stdout stays empty without --from-wrapper."""
        assert main(["create", "feat"]) == 0
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Created worktree" in captured.err

    def test_collision_fails(self, in_repo, capsys):
        """Test an existing branch name is rejected with exit code 1."""
        in_repo.git.branch("taken")
        assert main(["create", "taken", "--from-wrapper"]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "already exists" in captured.err

    def test_global_config_created(self, in_repo, home_dir):
        """Test the first run writes the global settings file."""
        main(["list"])
        assert (home_dir / ".branchlet" / "settings.json").exists()


class TestCloseCommand:
    """Test `branchlet close`."""

    def test_emits_json_payload(self, in_repo, add_worktree, monkeypatch, capsys):
        """Test the close handoff is the navigateTo/deleteWorktree object."""
        path = add_worktree("feat")
        monkeypatch.chdir(path)

        assert main(["close", "--from-wrapper", "-y"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload == {"navigateTo": in_repo.working_dir, "deleteWorktree": path}
        assert os.path.isdir(path)

    def test_requires_wrapper(self, in_repo, add_worktree, monkeypatch, capsys):
        """Test close refuses to run without shell integration."""
        monkeypatch.chdir(add_worktree("feat"))
        assert main(["close", "-y"]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "shell integration" in " ".join(captured.err.split())

    def test_from_main_tree_fails(self, in_repo, capsys):
        """Test close outside a linked worktree."""
        assert main(["close", "--from-wrapper", "-y"]) == 1
        assert "Not in a worktree" in capsys.readouterr().err


class TestOtherCommands:
    """Test list, switch, delete and prefix."""

    def test_list(self, in_repo, add_worktree, capsys):
        """Test worktrees are listed on stderr."""
        add_worktree("feat")
        assert main(["list"]) == 0
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "feat" in captured.err

    def test_switch(self, in_repo, add_worktree, capsys):
        """Test switch prints the target directory."""
        path = add_worktree("feat")
        assert main(["switch", "feat"]) == 0
        assert capsys.readouterr().out == path + "\n"

    def test_switch_unknown(self, in_repo, capsys):
        """Test an unknown target."""
        assert main(["switch", "nothing"]) == 1
        assert capsys.readouterr().out == ""

    def test_delete(self, in_repo, add_worktree):
        """Test deleting by directory name."""
        path = add_worktree("feat")
        assert main(["delete", "feat", "-y"]) == 0
        assert not os.path.exists(path)

    def test_delete_reports_failures(self, in_repo, add_worktree, capsys):
        """Test one bad target does not stop the others."""
        path = add_worktree("feat")
        assert main(["delete", "/does/not/exist", "feat", "-y"]) == 1
        assert not os.path.exists(path)
        assert "Failed to delete /does/not/exist" in capsys.readouterr().err

    def test_prefix_set_and_clear(self, in_repo):
        """Test the prefix is stored in the project's local config."""
        local = Path(in_repo.working_dir) / ".branchlet.json"

        assert main(["prefix", "team"]) == 0
        assert json.loads(local.read_text()) == {"branchPrefix": "team/"}

        assert main(["prefix", "--clear"]) == 0
        assert json.loads(local.read_text()) == {"branchPrefix": ""}

    def test_prefix_applied_by_create(self, in_repo):
        """Test a stored prefix is used for new branches."""
        main(["prefix", "team/"])
        assert main(["create", "login"]) == 0
        assert "team/login" in [h.name for h in in_repo.heads]

    def test_invalid_prefix(self, in_repo):
        """Test invalid prefixes are refused."""
        assert main(["prefix", "bad prefix"]) == 1

    def test_outside_repository(self, temp_dir, home_dir, monkeypatch, capsys):
        """Test a clear error outside git."""
        plain = temp_dir / "plain"
        plain.mkdir()
        monkeypatch.chdir(plain)
        assert main(["list"]) == 1
        err = " ".join(capsys.readouterr().err.split())
        assert "not inside a git repository" in err


class TestConfigCommand:
    """Test `branchlet config`."""

    def test_show(self, in_repo, capsys):
        """Test the effective configuration is listed on stderr."""
        assert main(["config"]) == 0
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "worktreePathTemplate" in captured.err
        assert "Local:" in captured.err

    def test_set_local_field(self, in_repo):
        """Test a string field is written to the project's local file."""
        local = Path(in_repo.working_dir) / ".branchlet.json"
        assert main(["config", "terminalCommand", "code $WORKTREE_PATH"]) == 0
        assert json.loads(local.read_text()) == {"terminalCommand": "code $WORKTREE_PATH"}

    def test_set_list_field(self, in_repo):
        """Test list fields take JSON or a single bare word."""
        local = Path(in_repo.working_dir) / ".branchlet.json"
        assert main(["config", "postCreateCmd", '["npm install", "npm test"]']) == 0
        assert json.loads(local.read_text())["postCreateCmd"] == ["npm install", "npm test"]

        assert main(["config", "worktree_copy_patterns", ".env"]) == 0
        assert json.loads(local.read_text())["worktreeCopyPatterns"] == [".env"]

    def test_invalid_value_rejected(self, in_repo, capsys):
        """Test a wrongly typed value is refused and nothing is written."""
        local = Path(in_repo.working_dir) / ".branchlet.json"
        assert main(["config", "deleteBranchWithWorktree", "sometimes"]) == 1
        assert not local.exists()
        assert "must be a boolean" in " ".join(capsys.readouterr().err.split())

    def test_unknown_field(self, in_repo):
        assert main(["config", "colour", "blue"]) == 1

    def test_set_global_and_unset(self, in_repo, home_dir):
        """Test --global writes the settings file and --unset restores the default."""
        settings = home_dir / ".branchlet" / "settings.json"
        assert main(["config", "deleteBranchWithWorktree", "true", "--global"]) == 0
        assert json.loads(settings.read_text())["deleteBranchWithWorktree"] is True

        assert main(["config", "deleteBranchWithWorktree", "--unset", "--global"]) == 0
        assert "deleteBranchWithWorktree" not in json.loads(settings.read_text())

    def test_local_unset_inherits_global(self, in_repo, capsys):
        """Test removing a local field falls back to the global value."""
        main(["config", "branchPrefix", "global/", "--global"])
        main(["config", "branchPrefix", "local/"])
        assert main(["config", "branchPrefix", "--unset"]) == 0
        capsys.readouterr()

        assert main(["config", "branchPrefix"]) == 0
        assert 'branchPrefix: "global/"' in capsys.readouterr().err

    def test_reset(self, in_repo, home_dir):
        """Test resetting the local and the global file."""
        local = Path(in_repo.working_dir) / ".branchlet.json"
        settings = home_dir / ".branchlet" / "settings.json"
        main(["config", "terminalCommand", "vim", "--global"])
        main(["config", "terminalCommand", "code ."])

        assert main(["config", "--reset", "-y"]) == 0
        assert json.loads(local.read_text()) == {}

        assert main(["config", "--reset", "--global", "-y"]) == 0
        assert json.loads(settings.read_text())["terminalCommand"] == ""
