"""Database commands: dump and restore."""

import click

from devkit.cli.project_utils import env_path_option, pass_output, run_command
from devkit.commands.database import VALID_FILE_TYPES, DumpCommand, RestoreCommand


@click.command("database:dump")
@click.argument("destination_dir", metavar="DESTINATION_DIR")
@click.argument("filename", required=False, default=None)
@env_path_option("The full path to the directory of the environment to dump.")
@pass_output
def dump(output, **params):
    """Dump the database to a file.

    FILENAME is the dump's name minus its extension. By default it's the
    environment name and the current date and time.
    """
    run_command(output, DumpCommand, **params)


@click.command(
    "database:restore",
    help=f"Restore the database from a file.\n\nValid filetypes are {', '.join(VALID_FILE_TYPES)}",
)
@click.argument("source_file", metavar="SOURCE_FILE")
@env_path_option("The full path to the directory of the environment to restore.")
@pass_output
def restore(output, **params):
    run_command(output, RestoreCommand, **params)
