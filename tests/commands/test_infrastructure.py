"""Tests for the infrastructure:phpconfig command."""

import pytest

from devkit.base.errors import CommandValidationError, PHPServiceError
from devkit.commands.base import FAILURE, SUCCESS, CommandState
from devkit.commands.infrastructure import PhpConfigCommand
from devkit.deployment.docker_service import DockerService
from devkit.deployment.process_runner import Captured, OutputMode
from tests.conftest import RecordingRunner, transcript


@pytest.fixture
def output(make_output):
    return make_output()


def build(fake_env, output, results=None, **params):
    runner = RecordingRunner(output, results=results)
    docker = DockerService(fake_env, output, tool="docker", runner=runner)
    return PhpConfigCommand(output, environment=fake_env, docker_service=docker, **params), runner


class TestPhpConfig:
    def test_needs_an_option(self, fake_env, output):
        command, _ = build(fake_env, output)

        with pytest.raises(CommandValidationError, match="At least one option"):
            command.run()

    def test_info(self, fake_env, output):
        command, runner = build(fake_env, output, info=True)

        assert command.run() == SUCCESS
        assert runner.commands == ["php -i"]
        assert runner.invocations[0].output_mode is OutputMode.ALWAYS
        assert "[OK] Successfully completed command" in transcript(output)

    def test_turn_debug_on(self, fake_env, output):
        command, runner = build(
            fake_env, output, results=[Captured(text="8.1"), Captured(text=";zend_extension=xdebug.so")],
            toggle_debug=True,
        )

        assert command.run() == SUCCESS

        toggle = runner.commands[-1]
        assert toggle == (
            'echo "zend_extension=xdebug.so" > "/etc/php/8.1/mods-available/xdebug.ini"'
            " && /etc/init.d/apache2 reload"
        )
        assert "-u" not in runner.argvs[-1]

    def test_turn_debug_off(self, fake_env, output):
        command, runner = build(
            fake_env, output, results=[Captured(text="8.1"), Captured(text="zend_extension=xdebug.so")],
            toggle_debug=True,
        )

        command.run()

        assert runner.commands[-1].startswith('echo ";zend_extension=xdebug.so"')

    def test_swap_then_info(self, fake_env, output):
        """The version is swapped before anything else runs."""
        command, runner = build(
            fake_env, output, results=[Captured(text="8.1"), Captured(text="php8.3.conf")],
            php_version="8.3", info=True,
        )

        assert command.run() == SUCCESS
        assert "/usr/bin/php8.3" in runner.commands[2]
        assert runner.commands[-1] == "php -i"

    def test_failed_swap(self, fake_env, output):
        command, runner = build(
            fake_env, output, results=[Captured(text="8.1"), Captured(text="php8.1.conf"), False],
            php_version="8.2", info=True,
        )

        assert command.run() == FAILURE
        assert "Couldn't swap to PHP 8.2" in transcript(output)
        assert "php -i" not in runner.commands

    def test_unavailable_version_rolls_back(self, fake_env, output):
        command, _ = build(fake_env, output, php_version="5.6")

        with pytest.raises(PHPServiceError):
            command.run()

        assert command.state is CommandState.ROLLED_BACK
