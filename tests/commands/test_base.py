"""Tests for the command lifecycle."""

import pytest

from devkit.base.errors import CommandValidationError, ContractViolationError, EnvironmentNotFoundError
from devkit.commands.base import FAILURE, SUCCESS, BaseCommand, CommandState
from devkit.io.step_level import StepLevel
from tests.conftest import create_env_dir, transcript


class RecordingCommand(BaseCommand):
    """A command whose hooks record calls and can be told to fail."""

    name = "test:record"

    def __init__(self, output, execute=None, rollback_error=None, **params):
        super().__init__(output, **params)
        self.execute = execute or (lambda command: SUCCESS)
        self.rollback_error = rollback_error
        self.calls = []

    def validate(self):
        self.calls.append("validate")
        if self.params.get("invalid"):
            raise CommandValidationError("Invalid options")

    def prepare(self):
        self.calls.append("prepare")

    def do_execute(self):
        self.calls.append("execute")
        self.output.start_step(StepLevel.COMMAND, "Running")
        return self.execute(self)

    def rollback(self):
        self.calls.append("rollback")
        if self.rollback_error:
            raise self.rollback_error


class TestLifecycle:
    """Test state transitions through a run."""

    def test_success(self, make_output):
        command = RecordingCommand(make_output())

        assert command.state is CommandState.CREATED
        assert command.run() == SUCCESS
        assert command.state is CommandState.SUCCEEDED
        assert command.calls == ["validate", "prepare", "execute"]

    def test_output_is_reset_after_run(self, make_output):
        output = make_output()
        RecordingCommand(output).run()

        assert output.current_step is StepLevel.NONE

    def test_validation_failure(self, make_output):
        command = RecordingCommand(make_output(), invalid=True)

        with pytest.raises(CommandValidationError):
            command.run()

        assert command.state is CommandState.FAILED
        assert command.calls == ["validate"]

    def test_initialize_once(self, make_output):
        command = RecordingCommand(make_output())
        command.initialize()
        assert command.state is CommandState.INITIALIZED

        command.run()

        assert command.calls.count("validate") == 1

    def test_failure_without_rollback(self, make_output):
        command = RecordingCommand(make_output(), execute=lambda command: FAILURE)

        assert command.run() == FAILURE
        assert command.state is CommandState.FAILED
        assert "rollback" not in command.calls

    def test_failure_after_rollback(self, make_output):
        def execute(command):
            command.perform_rollback()
            return FAILURE

        command = RecordingCommand(make_output(), execute=execute)

        assert command.run() == FAILURE
        assert command.state is CommandState.ROLLED_BACK


class TestRollback:
    """Test that rollback runs at most once."""

    def test_exception_triggers_rollback(self, make_output):
        def execute(command):
            raise RuntimeError("boom")

        command = RecordingCommand(make_output(), execute=execute)

        with pytest.raises(RuntimeError, match="boom"):
            command.run()

        assert command.calls.count("rollback") == 1
        assert command.state is CommandState.ROLLED_BACK

    def test_rollback_runs_once(self, make_output):
        """An explicit rollback followed by an exception doesn't roll back twice."""

        def execute(command):
            command.perform_rollback()
            raise RuntimeError("boom")

        command = RecordingCommand(make_output(), execute=execute)

        with pytest.raises(RuntimeError):
            command.run()

        assert command.calls.count("rollback") == 1

    def test_contract_violation_is_not_rolled_back(self, make_output):
        def execute(command):
            raise ContractViolationError("bug")

        command = RecordingCommand(make_output(), execute=execute)

        with pytest.raises(ContractViolationError):
            command.run()

        assert "rollback" not in command.calls
        assert command.state is CommandState.FAILED

    def test_failed_rollback_keeps_original_error(self, make_output):
        def execute(command):
            raise RuntimeError("original")

        output = make_output()
        command = RecordingCommand(output, execute=execute, rollback_error=OSError("disk full"))

        with pytest.raises(RuntimeError, match="original"):
            command.run()

        assert "Rollback failed: disk full" in transcript(output)


class EnvCommand(RecordingCommand):
    needs_environment = True
    uses_docker = True


class OptionalEnvCommand(RecordingCommand):
    needs_environment = True
    environment_optional = True


class TestCollaborators:
    """Test resolving the environment and services."""

    def test_environment_from_env_path(self, tmp_path, make_output):
        project = create_env_dir(tmp_path)
        command = EnvCommand(make_output(), env_path=str(project / "app"))
        (project / "app").mkdir()

        command.run()

        assert command.env.project_root == project
        assert command.docker_service.environment is command.env
        assert command.php_service.docker_service is command.docker_service
        assert command.project_path("public") == project / "public"

    def test_env_path_defaults_to_cwd(self, tmp_path, make_output, monkeypatch):
        project = create_env_dir(tmp_path)
        monkeypatch.chdir(project)
        command = EnvCommand(make_output())

        command.initialize()

        assert command.env_path == "./"
        assert command.env.project_root == project

    def test_missing_environment(self, tmp_path, make_output):
        command = EnvCommand(make_output(), env_path=str(tmp_path))

        with pytest.raises(EnvironmentNotFoundError):
            command.run()

        assert command.state is CommandState.FAILED
        assert "execute" not in command.calls

    def test_optional_environment(self, tmp_path, make_output):
        command = OptionalEnvCommand(make_output(), env_path=str(tmp_path))

        command.run()

        assert command.env.project_root is None

    def test_docker_needs_environment(self, make_output):
        command = RecordingCommand(make_output())

        with pytest.raises(ContractViolationError):
            command.docker_service

    def test_injected_environment_is_kept(self, fake_env, make_output):
        command = EnvCommand(make_output(), environment=fake_env)
        command.initialize()

        assert command.env is fake_env
