"""Tests for the command-line interface."""

import pytest
from click.testing import CliRunner

from multitree_cli.cli import cli
from multitree_cli.config import ConfigModel
from multitree_cli.storage import Storage


@pytest.fixture
def run(config_file):
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(cli, ["--config", str(config_file), *args])

    return invoke


@pytest.fixture
def stored(config_file, tmp_path):
    """Read back the task store the CLI wrote."""
    def load():
        return Storage(ConfigModel(data_dir=str(tmp_path / "data"))).load()
    return load


class TestCommands:
    """Tests for the one-shot commands."""

    def test_add_and_show_tree(self, run):
        result = run("add", "Write report")
        assert result.exit_code == 0
        assert "Added task 1" in result.output

        result = run("tree")
        assert result.exit_code == 0
        assert "Write report" in result.output

    def test_add_under_several_parents(self, run, stored):
        run("add", "Home")
        run("add", "Work")
        result = run("add", "Taxes", "-p", "1", "-p", "2")
        assert result.exit_code == 0
        assert stored().parents(3) == {1, 2}

    def test_unknown_parent_fails(self, run):
        result = run("add", "Lost", "-p", "9")
        assert result.exit_code == 1
        assert "task 9 not found" in result.output

    def test_save_failure_is_reported(self, run, tmp_path):
        """A store that cannot be written fails cleanly instead of crashing."""
        (tmp_path / "data" / "tasks.md.tmp").mkdir(parents=True)
        result = run("add", "Lost")
        assert result.exit_code == 1
        assert "Error" in result.output
        assert not isinstance(result.exception, OSError)

    def test_rename(self, run, stored):
        run("add", "Old")
        result = run("rename", "1", "--name", "New")
        assert result.exit_code == 0
        assert stored().get(1).name == "New"

    def test_due_and_undue(self, run, stored):
        run("add", "Dentist")
        result = run("due", "1", "tomorrow 4pm")
        assert result.exit_code == 0
        assert stored().get(1).due.hour == 16

        result = run("undue", "1")
        assert result.exit_code == 0
        assert stored().get(1).due is None

    def test_malformed_due(self, run):
        run("add", "Dentist")
        result = run("due", "1", "next week")
        assert result.exit_code == 1
        assert "cannot understand" in result.output

    def test_sessions(self, run, stored):
        run("add", "Gym")
        result = run("session", "add", "1", "today 9am to 10am")
        assert result.exit_code == 0

        result = run("sessions")
        assert result.exit_code == 0
        assert "Gym" in result.output

        result = run("session", "delete", "1")
        assert result.exit_code == 0
        assert list(stored().sessions()) == []

    def test_backwards_session_fails(self, run):
        run("add", "Gym")
        result = run("session", "add", "1", "today 10am to 9am")
        assert result.exit_code == 1

    def test_up_and_down(self, run, stored):
        for name in ("a", "b", "c"):
            run("add", name)
        assert run("up", "3").exit_code == 0
        assert stored().children(0) == [1, 3, 2]
        assert run("down", "3").exit_code == 0
        assert stored().children(0) == [1, 2, 3]

    def test_cut_and_share(self, run, stored):
        for name in ("a", "b", "c"):
            run("add", name)
        assert run("share", "3", "--to", "1").exit_code == 0
        assert stored().parents(3) == {0, 1}

        result = run("cut", "3", "--to", "2")
        assert result.exit_code == 1
        assert "specify which one" in result.output

        assert run("cut", "3", "--to", "2", "--from", "0").exit_code == 0
        assert stored().parents(3) == {1, 2}

    def test_cycle_is_rejected(self, run, stored):
        run("add", "parent")
        run("add", "child", "-p", "1")
        result = run("cut", "1", "--to", "2")
        assert result.exit_code == 1
        assert "cannot move task" in result.output
        assert stored().parents(1) == {0}

    def test_delete_cascades(self, run, stored):
        run("add", "parent")
        run("add", "child", "-p", "1")
        result = run("delete", "1")
        assert result.exit_code == 0
        assert "Deleted 2 task(s)" in result.output
        assert len(stored()) == 0

    def test_root_is_protected(self, run):
        result = run("delete", "0")
        assert result.exit_code == 1
        assert "cannot delete the root task" in result.output

    def test_export_and_import(self, run, stored, tmp_path):
        run("add", "keep me")
        target = tmp_path / "out.md"
        assert run("export", str(target)).exit_code == 0
        assert target.exists()

        run("delete", "1")
        assert len(stored()) == 0

        result = run("import", str(target))
        assert result.exit_code == 0
        assert stored().get(1).name == "keep me"

    def test_import_missing_file(self, run, tmp_path):
        result = run("import", str(tmp_path / "missing.md"))
        assert result.exit_code == 1
