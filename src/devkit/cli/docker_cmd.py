"""Docker commands.

Thin wrappers around :mod:`devkit.commands.docker`, which run
``docker compose`` and ``docker exec`` in the context of an environment.
"""

import click

from devkit.cli.project_utils import env_path_option, pass_output, run_command
from devkit.commands.docker import (
    DownCommand,
    ExecCommand,
    RestartCommand,
    StartCommand,
    StopCommand,
    UpCommand,
)
from devkit.deployment.docker_service import CONTAINER_WEBSERVER


@click.command("docker:up")
@click.option("--build", is_flag=True, help="Build images before starting containers.")
@click.option("--no-build", is_flag=True, help="Don't build an image, even if it's missing.")
@click.option("--force-recreate", is_flag=True, help="Recreate containers even if their configuration hasn't changed.")
@click.option("--no-recreate", is_flag=True, help="If containers already exist, don't recreate them.")
@click.option("--remove-orphans", is_flag=True, help="Remove containers for services not defined in the compose file.")
@click.option("--no-wait", is_flag=True, help="Don't wait for services to be running or healthy.")
@env_path_option()
@pass_output
def up(output, **params):
    """Create and start the docker containers for an environment."""
    run_command(output, UpCommand, **params)


@click.command("docker:down")
@click.option("--remove-orphans", is_flag=True, help="Remove containers for services not defined in the compose file.")
@click.option("--rmi", is_flag=True, help="Remove images used by services that don't have a custom tag.")
@click.option("--volumes", is_flag=True, help="Remove named volumes and anonymous volumes attached to containers.")
@env_path_option()
@pass_output
def down(output, **params):
    """Stop and remove the docker containers for an environment."""
    run_command(output, DownCommand, **params)


@click.command("docker:start")
@env_path_option()
@pass_output
def start(output, **params):
    """Start the existing docker containers for an environment."""
    run_command(output, StartCommand, **params)


@click.command("docker:stop")
@env_path_option()
@pass_output
def stop(output, **params):
    """Stop the docker containers for an environment without removing them."""
    run_command(output, StopCommand, **params)


@click.command("docker:restart")
@click.option("--container", "-c", default="", help="Only restart this container, e.g. webserver or database.")
@click.option("--no-deps", is_flag=True, help="Don't restart dependent containers.")
@click.option("--timeout", "-t", type=int, default=None, help="Shutdown timeout in seconds.")
@env_path_option()
@pass_output
def restart(output, **params):
    """Restart the docker containers for an environment."""
    run_command(output, RestartCommand, **params)


@click.command("docker:exec", context_settings={"ignore_unknown_options": True})
@click.argument("cmd", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option(
    "--container",
    "-c",
    default=CONTAINER_WEBSERVER,
    show_default=True,
    help="The container to run the command in.",
)
@click.option("--workdir", "-w", default=None, help="Working directory inside the container.")
@click.option("--privileged", "-r", is_flag=True, help="Run the command as root.")
@env_path_option()
@pass_output
def exec_(output, **params):
    """Execute a command in a docker container.

    Use -- to pass options that the dev kit would otherwise consume:

    \b
      dev-kit exec -- ls -la -p
    """
    run_command(output, ExecCommand, **params)
