"""Infrastructure commands."""

import click

from devkit.cli.project_utils import env_path_option, pass_output, run_command
from devkit.commands.infrastructure import PhpConfigCommand


@click.command("infrastructure:phpconfig")
@click.option("--php-version", "-P", default=None, help="Swap to a specific PHP version.")
@click.option("--toggle-debug", "-d", is_flag=True, help="Toggle xdebug on/off.")
@click.option("--info", "-i", is_flag=True, help="Print out phpinfo (for webserver - assumed same for cli).")
@env_path_option()
@pass_output
def phpconfig(output, **params):
    """Make changes to PHP config (e.g. change php version, toggle xdebug).

    This command is for setting new configuration, with the exception of
    --info. To see the current configuration use "env:details".
    """
    run_command(output, PhpConfigCommand, **params)
