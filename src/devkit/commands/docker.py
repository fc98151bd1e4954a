"""Environment-aware aliases for ``docker compose`` and ``docker exec``.

Each command runs one :class:`DockerService` operation inside the command
step, streaming the container tool's output unless the session is quiet.
"""

from devkit.base.errors import CommandValidationError
from devkit.commands.base import FAILURE, SUCCESS, BaseCommand
from devkit.deployment.docker_service import CONTAINER_WEBSERVER
from devkit.deployment.process_runner import OutputMode, ProcessResult
from devkit.io.step_level import StepLevel


class DockerCommand(BaseCommand):
    """A command that runs a single docker operation."""

    needs_environment = True
    uses_docker = True

    start_message = ""
    success_message = ""

    def rollback(self) -> None:
        # Nothing to undo
        pass

    def do_execute(self) -> int:
        self.output.start_step(StepLevel.COMMAND, self.start_message)

        if not self.run_docker():
            self.output.end_step(StepLevel.COMMAND, "Command failed", success=False)
            return FAILURE

        self.output.end_step(StepLevel.COMMAND, self.success_message)
        return SUCCESS

    def run_docker(self) -> ProcessResult:
        raise NotImplementedError


class UpCommand(DockerCommand):
    """Create and start the docker containers."""

    name = "docker:up"
    start_message = "Creating and starting docker containers"
    success_message = "Docker containers created and started"

    def validate(self) -> None:
        if self.params.get("build") and self.params.get("no_build"):
            raise CommandValidationError("--build and --no-build can't be used together.")
        if self.params.get("force_recreate") and self.params.get("no_recreate"):
            raise CommandValidationError("--force-recreate and --no-recreate can't be used together.")

    def run_docker(self) -> ProcessResult:
        return self.docker_service.up(
            build=self.params.get("build", False),
            no_build=self.params.get("no_build", False),
            force_recreate=self.params.get("force_recreate", False),
            no_recreate=self.params.get("no_recreate", False),
            remove_orphans=self.params.get("remove_orphans", False),
            wait=not self.params.get("no_wait", False),
            output_mode=OutputMode.ALWAYS,
        )


class DownCommand(DockerCommand):
    """Stop and remove the docker containers."""

    name = "docker:down"
    start_message = "Stopping and removing docker containers"
    success_message = "Docker containers stopped and removed"

    def run_docker(self) -> ProcessResult:
        return self.docker_service.down(
            remove_orphans=self.params.get("remove_orphans", False),
            images=self.params.get("rmi", False),
            volumes=self.params.get("volumes", False),
            output_mode=OutputMode.ALWAYS,
        )


class StartCommand(DockerCommand):
    name = "docker:start"
    start_message = "Starting docker containers"
    success_message = "Docker containers started"

    def run_docker(self) -> ProcessResult:
        return self.docker_service.start(output_mode=OutputMode.ALWAYS)


class StopCommand(DockerCommand):
    name = "docker:stop"
    start_message = "Stopping docker containers"
    success_message = "Docker containers stopped"

    def run_docker(self) -> ProcessResult:
        return self.docker_service.stop(output_mode=OutputMode.ALWAYS)


class RestartCommand(DockerCommand):
    """Restart one container, or all of them."""

    name = "docker:restart"
    start_message = "Restarting docker container(s)"
    success_message = "Docker container(s) restarted"

    def run_docker(self) -> ProcessResult:
        return self.docker_service.restart(
            container=self.params.get("container") or "",
            no_deps=self.params.get("no_deps", False),
            timeout=self.params.get("timeout"),
            output_mode=OutputMode.ALWAYS,
        )


class ExecCommand(DockerCommand):
    """Run a shell command in a container."""

    name = "docker:exec"
    start_message = "Executing command in docker container"
    success_message = "Command executed successfully"

    def validate(self) -> None:
        if not " ".join(self.params.get("cmd") or ()).strip():
            raise CommandValidationError("A command to execute is required.")

    def run_docker(self) -> ProcessResult:
        return self.docker_service.exec(
            " ".join(self.params["cmd"]),
            working_dir=self.params.get("workdir"),
            as_root=self.params.get("privileged", False),
            interactive=self.output.interactive,
            container=self.params.get("container") or CONTAINER_WEBSERVER,
            output_mode=OutputMode.ALWAYS,
        )
