"""Main CLI entry point for the dev kit.

This module provides the root ``dev-kit`` group. Sub-commands are named
``<namespace>:<command>`` (``docker:up``, ``env:create``) and each also
answers to its short alias (``up``, ``create``).

Performance Note: Uses lazy imports so that ``dev-kit --help`` doesn't load
every command module.
"""

import importlib
import logging
import sys

import click

from devkit import __version__
from devkit.io.output import CommandOutput
from devkit.io.step_level import Verbosity
from devkit.io.styles import initialize_theme_from_config
from devkit.utils.logger import configure_logging, get_logger

logger = get_logger("cli")

# Command name -> (module, function)
COMMANDS = {
    "database:dump": ("devkit.cli.database_cmd", "dump"),
    "database:restore": ("devkit.cli.database_cmd", "restore"),
    "docker:down": ("devkit.cli.docker_cmd", "down"),
    "docker:exec": ("devkit.cli.docker_cmd", "exec_"),
    "docker:restart": ("devkit.cli.docker_cmd", "restart"),
    "docker:start": ("devkit.cli.docker_cmd", "start"),
    "docker:stop": ("devkit.cli.docker_cmd", "stop"),
    "docker:up": ("devkit.cli.docker_cmd", "up"),
    "env:create": ("devkit.cli.env_cmd", "create"),
    "env:destroy": ("devkit.cli.env_cmd", "destroy"),
    "env:details": ("devkit.cli.env_cmd", "details"),
    "infrastructure:phpconfig": ("devkit.cli.infrastructure_cmd", "phpconfig"),
}

# Short alias -> command name
ALIASES = {name.split(":", 1)[1]: name for name in COMMANDS}


class LazyGroup(click.Group):
    """Click group that lazily loads subcommands only when invoked."""

    def get_command(self, ctx, cmd_name):
        """Lazily import and return the command when it's invoked."""
        cmd_name = ALIASES.get(cmd_name, cmd_name)
        if cmd_name not in COMMANDS:
            return None

        module_name, attribute = COMMANDS[cmd_name]
        mod = importlib.import_module(module_name)
        return getattr(mod, attribute)

    def resolve_command(self, ctx, args):
        # Report the full name, not the alias that was typed
        _, cmd, args = super().resolve_command(ctx, args)
        return (cmd.name if cmd else None), cmd, args

    def list_commands(self, ctx):
        """Return list of available commands (for --help)."""
        return sorted(COMMANDS)


@click.group(cls=LazyGroup)
@click.version_option(version=__version__, prog_name="ss-dev-kit")
@click.option("-q", "--quiet", is_flag=True, help="Only output errors and warnings.")
@click.option("-v", "--verbose", count=True, help="More output: -v, -vv or -vvv (debug).")
@click.option(
    "-n",
    "--no-interaction",
    is_flag=True,
    help="Never ask questions, use the default answers instead.",
)
@click.pass_context
def cli(ctx, quiet: bool, verbose: int, no_interaction: bool):
    """Bootstrap and manage dockerised Silverstripe CMS development environments.

    Every command also answers to the part of its name after the colon.

    Examples:

    \b
      dev-kit create ~/projects/my-site       Create a new project and environment
      dev-kit create . --attach               Add an environment to an existing project
      dev-kit details                         Show URLs, PHP and container status
      dev-kit exec -- vendor/bin/sake dev/build
      dev-kit dump ~/backups                  Dump the database
      dev-kit destroy ~/projects/my-site      Tear the environment down
    """
    initialize_theme_from_config()

    verbosity = Verbosity.from_flags(verbose, quiet)
    configure_logging(verbosity)
    ctx.obj = CommandOutput(verbosity=verbosity, interactive=not no_interaction)


def main():
    """Entry point for the dev-kit CLI."""
    try:
        exit_code = cli.main(standalone_mode=False)
    except (click.exceptions.Abort, KeyboardInterrupt):
        click.echo("\nAborted!", err=True)
        sys.exit(130)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except Exception as e:
        CommandOutput(interactive=False).error(str(e) or type(e).__name__)
        if logging.getLogger().isEnabledFor(logging.DEBUG):
            logger.exception("Unhandled error")
        sys.exit(1)
    sys.exit(exit_code or 0)


if __name__ == "__main__":
    main()
