"""Environment commands: create, destroy and details."""

import click

from devkit.cli.project_utils import pass_output, run_command
from devkit.commands.env import RECIPE_SHORTCUTS, VALID_DB_DRIVERS, CreateCommand, DestroyCommand, DetailsCommand

_RECIPE_HELP = ", ".join(f'"{shortcut}" ({recipe})' for shortcut, recipe in RECIPE_SHORTCUTS.items())


@click.command("env:create")
@click.argument("env_path", metavar="ENV_PATH")
@click.option(
    "--attach/--no-attach",
    "-a",
    default=False,
    help="Attach a docker environment to an existing Silverstripe project directory. "
    "--constraint and --recipe do nothing when this option is used.",
)
@click.option(
    "--recipe",
    "-r",
    default="installer",
    show_default=True,
    help=f"The recipe to install. Options: {_RECIPE_HELP}, or any recipe composer name "
    '(e.g. "silverstripe/recipe-kitchen-sink").',
)
@click.option(
    "--constraint",
    "-c",
    default="^5.0",
    show_default=True,
    help="The version constraint to use for the installed recipe.",
)
@click.option(
    "--extra-module",
    "-m",
    multiple=True,
    help="Any additional modules to be required before dev/build. Can be used more than once.",
)
@click.option(
    "--composer-option",
    "-o",
    multiple=True,
    help="Any additional arguments to be passed to the composer create-project command.",
)
@click.option("--php-version", "-P", default=None, help="The PHP version to use for this environment.")
@click.option(
    "--db",
    default="mysql",
    show_default=True,
    help=f"The database type to be used. Must be one of {', '.join(VALID_DB_DRIVERS)}.",
)
@click.option(
    "--db-version",
    default="latest",
    show_default=True,
    help="The version of the database docker image to be used.",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="The port to bind the webserver to. A random available port is used if not set.",
)
@click.option("--no-port", is_flag=True, help="Do not bind to any ports on the host machine.")
@pass_output
def create(output, **params):
    """Install Silverstripe CMS and set up a new docker environment with a webhost.

    The environment directory holds the docker-compose file, test artifacts,
    logs and the .env file for the project.
    """
    run_command(output, CreateCommand, **params)


@click.command("env:destroy")
@click.argument("env_path", metavar="[ENV_PATH]", default="./", required=False)
@click.option(
    "--detach/--no-detach",
    "-d",
    default=False,
    help="Detach the docker environment but do not remove the project directory.",
)
@pass_output
def destroy(output, **params):
    """Completely tear down an environment that was created with the "create" command.

    Pulls down the docker containers, images and volumes, then deletes the
    project's directory.
    """
    run_command(output, DestroyCommand, **params)


@click.command("env:details")
@click.argument("env_path", metavar="[ENV_PATH]", default="./", required=False)
@pass_output
def details(output, **params):
    """Get information about settings and container status in a dev environment."""
    run_command(output, DetailsCommand, **params)
