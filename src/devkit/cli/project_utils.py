"""Helpers shared by all CLI commands.

Every command module is a thin click wrapper: it declares options, then
hands them to :func:`run_command` along with the command class that does the
work. The :class:`~devkit.io.output.CommandOutput` built by the root group
travels to each command through ``click.Context.obj``.
"""

import click

from devkit.base.errors import DevKitError
from devkit.commands.base import BaseCommand
from devkit.io.output import CommandOutput
from devkit.utils.logger import get_logger

logger = get_logger("cli")

# Injects the session's CommandOutput, creating a default one when a
# command is invoked without the root group (e.g. in tests)
pass_output = click.make_pass_decorator(CommandOutput, ensure=True)


def env_path_option(help_text: str = "The full path to the directory of the environment."):
    """The ``-p/--env-path`` option used by commands that act on an existing environment."""
    return click.option(
        "--env-path",
        "-p",
        default="./",
        show_default=True,
        help=help_text,
    )


def run_command(output: CommandOutput, command_cls: type[BaseCommand], **params) -> None:
    """Run a command through its full lifecycle and exit with its exit code.

    Errors the dev kit raises deliberately become an error banner and exit
    code 1. Anything else propagates to :func:`devkit.cli.main.main`.
    """
    ctx = click.get_current_context()
    command = command_cls(output, **params)
    try:
        exit_code = command.run()
    except DevKitError as e:
        logger.debug(f"{command_cls.__name__} failed in state {command.state.value}: {e!r}")
        output.error(str(e))
        ctx.exit(1)
    ctx.exit(exit_code)
