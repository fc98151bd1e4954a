"""Tests for main CLI entry point.

Tests the main CLI group, lazy command loading and alias resolution, and
how errors become exit codes.
"""

from unittest import mock

import click
import pytest
from click.testing import CliRunner

from devkit import __version__
from devkit.cli.main import ALIASES, COMMANDS, LazyGroup, cli, main
from devkit.commands.docker import RestartCommand, UpCommand
from devkit.deployment.docker_service import DockerService
from devkit.io.step_level import Verbosity
from tests.conftest import RecordingRunner, create_env_dir


@pytest.fixture
def runner():
    """Provide a Click CLI runner for testing."""
    return CliRunner()


class TestLazyGroup:
    """Test the LazyGroup command loading mechanism."""

    def test_get_command_by_full_name(self):
        group = LazyGroup(name="test")
        cmd = group.get_command(mock.Mock(), "docker:up")

        assert isinstance(cmd, click.Command)
        assert cmd.name == "docker:up"

    def test_get_command_by_alias(self):
        group = LazyGroup(name="test")

        assert group.get_command(mock.Mock(), "phpconfig").name == "infrastructure:phpconfig"

    def test_get_command_returns_none_for_invalid_command(self):
        group = LazyGroup(name="test")

        assert group.get_command(mock.Mock(), "nonexistent_command") is None

    def test_get_command_imports_lazily(self):
        group = LazyGroup(name="test")

        with mock.patch("importlib.import_module") as mock_import:
            group.get_command(mock.Mock(), "dump")

        mock_import.assert_called_once_with("devkit.cli.database_cmd")

    def test_list_commands_returns_full_names(self):
        group = LazyGroup(name="test")

        commands = group.list_commands(mock.Mock())

        assert commands == sorted(COMMANDS)
        assert "env:create" in commands
        assert "create" not in commands

    def test_every_alias_is_unique(self):
        assert len(ALIASES) == len(COMMANDS)
        assert ALIASES["exec"] == "docker:exec"


class TestCliGroup:
    """Test the root group's options."""

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for name in COMMANDS:
            assert name in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert f"ss-dev-kit, version {__version__}" in result.output

    def test_alias_runs_the_full_command(self, runner):
        with mock.patch("devkit.cli.docker_cmd.run_command") as mock_run:
            result = runner.invoke(cli, ["up", "--build", "-p", "/tmp/site"])

        assert result.exit_code == 0
        output, command_cls = mock_run.call_args.args
        assert command_cls is UpCommand
        assert mock_run.call_args.kwargs["build"] is True
        assert mock_run.call_args.kwargs["env_path"] == "/tmp/site"

    @pytest.mark.parametrize(
        "flags,verbosity",
        [
            ([], Verbosity.NORMAL),
            (["-q"], Verbosity.QUIET),
            (["-v"], Verbosity.VERBOSE),
            (["-vv"], Verbosity.VERY_VERBOSE),
            (["-vvv"], Verbosity.DEBUG),
        ],
    )
    def test_verbosity_flags(self, runner, flags, verbosity):
        with mock.patch("devkit.cli.docker_cmd.run_command") as mock_run:
            runner.invoke(cli, [*flags, "start"])

        output = mock_run.call_args.args[0]
        assert output.verbosity is verbosity

    def test_no_interaction(self, runner):
        with mock.patch("devkit.cli.docker_cmd.run_command") as mock_run:
            runner.invoke(cli, ["-n", "stop"])

        assert mock_run.call_args.args[0].interactive is False

    def test_exec_passes_options_through(self, runner):
        with mock.patch("devkit.cli.docker_cmd.run_command") as mock_run:
            runner.invoke(cli, ["exec", "-c", "database", "--", "ls", "-la"])

        assert mock_run.call_args.kwargs["cmd"] == ("ls", "-la")
        assert mock_run.call_args.kwargs["container"] == "database"


class TestCommandResults:
    """Test commands run through the CLI end to end."""

    def test_restart_single_container(self, runner, tmp_path):
        project = create_env_dir(tmp_path)
        recorded = []

        def build(environment, output):
            recording = RecordingRunner(output)
            recorded.append(recording)
            return DockerService(environment, output, tool="docker", runner=recording)

        with mock.patch("devkit.commands.base.DockerService", side_effect=build):
            result = runner.invoke(cli, ["restart", "-c", "webserver", "--no-deps", "-t", "0", "-p", str(project)])

        assert result.exit_code == 0
        assert recorded[0].argvs == [["docker", "compose", "restart", "--no-deps", "-t0", "webserver"]]

    def test_command_failure_exit_code(self, runner):
        with mock.patch.object(RestartCommand, "run", return_value=1):
            result = runner.invoke(cli, ["restart"])

        assert result.exit_code == 1

    def test_missing_environment(self, runner, tmp_path):
        result = runner.invoke(cli, ["details", str(tmp_path)])

        assert result.exit_code == 1
        assert "[ERROR]" in result.output

    def test_validation_error(self, runner, tmp_path):
        result = runner.invoke(cli, ["create", str(tmp_path / "site"), "--db", "postgres"])

        assert result.exit_code == 1
        assert "--db must be one of mysql, mariadb" in result.output
        assert not (tmp_path / "site").exists()

    def test_usage_error(self, runner):
        result = runner.invoke(cli, ["exec"])

        assert result.exit_code == 2


class TestMain:
    """Test the console script entry point."""

    def test_exit_code_from_command(self):
        with mock.patch.object(cli, "main", return_value=3):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 3

    def test_success(self):
        with mock.patch.object(cli, "main", return_value=None):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 0

    @pytest.mark.parametrize("error", [KeyboardInterrupt(), click.exceptions.Abort()])
    def test_interrupt(self, error, capsys):
        with mock.patch.object(cli, "main", side_effect=error):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 130
        assert "Aborted!" in capsys.readouterr().err

    def test_click_exception(self, capsys):
        with mock.patch.object(cli, "main", side_effect=click.UsageError("No such option: --nope")):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 2
        assert "No such option: --nope" in capsys.readouterr().err

    def test_unexpected_error(self, capsys):
        with mock.patch.object(cli, "main", side_effect=RuntimeError("something broke")):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1
        assert "something broke" in capsys.readouterr().out
