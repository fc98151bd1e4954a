"""Container operations for one environment.

:class:`DockerService` builds the argument vectors for the container tool
(``docker`` or ``podman``) and hands them to a :class:`ProcessRunner`. All
compose commands run in the environment's docker directory, and container
names are ``<environment name>_<service>``.
"""

import json

from devkit.base.errors import ContainerRuntimeError, ContractViolationError
from devkit.deployment.environment import Environment
from devkit.deployment.process_runner import (
    OutputMode,
    ProcessInvocation,
    ProcessResult,
    ProcessRunner,
    tty_supported,
)
from devkit.deployment.runtime_helper import get_container_tool
from devkit.io.output import CommandOutput
from devkit.utils.logger import get_logger

logger = get_logger("docker")

CONTAINER_WEBSERVER = "webserver"
CONTAINER_DATABASE = "database"

DEFAULT_WORKDIR = "/var/www"


class DockerService:
    """Runs compose and container commands for an environment.

    Args:
        environment: The environment whose containers are driven
        output: Shared command output
        tool: ``docker`` or ``podman``. Detected on first use when omitted.
        runner: Process runner, built from ``output`` when omitted
    """

    def __init__(
        self,
        environment: Environment,
        output: CommandOutput,
        tool: str | None = None,
        runner: ProcessRunner | None = None,
    ):
        self.environment = environment
        self.output = output
        self._tool = tool
        self.runner = runner or ProcessRunner(output)

    @property
    def tool(self) -> str:
        if self._tool is None:
            self._tool = get_container_tool()
        return self._tool

    def container_name(self, container: str) -> str:
        return f"{self.environment.name}_{container}"

    # ------------------------------------------------------------------
    # Compose
    # ------------------------------------------------------------------

    def up(
        self,
        build: bool = False,
        no_build: bool = False,
        force_recreate: bool = False,
        no_recreate: bool = False,
        remove_orphans: bool = False,
        wait: bool = True,
        output_mode: OutputMode = OutputMode.NORMAL,
    ) -> ProcessResult:
        """Create and start the containers.

        Raises:
            ContractViolationError: If both options of a conflicting pair are set.
        """
        if build and no_build:
            raise ContractViolationError("Can't use build and no-build at the same time.")
        if force_recreate and no_recreate:
            raise ContractViolationError("Can't use force-recreate and no-recreate at the same time.")

        options = []
        if build:
            options.append("--build")
        if no_build:
            options.append("--no-build")
        if force_recreate:
            options.append("--force-recreate")
        if no_recreate:
            options.append("--no-recreate")
        if remove_orphans:
            options.append("--remove-orphans")
        if wait:
            options.append("--wait")
        options.append("-d")

        return self.compose_command("up", options, output_mode)

    def down(
        self,
        remove_orphans: bool = False,
        images: bool = False,
        volumes: bool = False,
        output_mode: OutputMode = OutputMode.NORMAL,
    ) -> ProcessResult:
        """Stop and remove containers and networks, optionally images and volumes.

        Args:
            images: Remove images used by services that don't have a custom tag
            volumes: Remove named volumes and anonymous volumes attached to containers
        """
        options = []
        if remove_orphans:
            options.append("--remove-orphans")
        if volumes:
            options.append("--volumes")
        if images:
            options.append("--rmi=local")

        return self.compose_command("down", options, output_mode)

    def start(self, output_mode: OutputMode = OutputMode.NORMAL) -> ProcessResult:
        """Start services for containers that already exist."""
        return self.compose_command("start", output_mode=output_mode)

    def stop(self, output_mode: OutputMode = OutputMode.NORMAL) -> ProcessResult:
        """Stop services without removing the containers."""
        return self.compose_command("stop", output_mode=output_mode)

    def restart(
        self,
        container: str = "",
        no_deps: bool = False,
        timeout: int | None = None,
        output_mode: OutputMode = OutputMode.NORMAL,
    ) -> ProcessResult:
        """Restart one container, or all of them if none is given."""
        options = []
        if no_deps:
            options.append("--no-deps")
        if timeout is not None:
            options.append(f"-t{timeout}")
        if container:
            options.append(container)

        return self.compose_command("restart", options, output_mode)

    def compose_command(
        self,
        command: str,
        options: list[str] | None = None,
        output_mode: OutputMode = OutputMode.NORMAL,
    ) -> ProcessResult:
        """Run any compose subcommand."""
        return self._run([self.tool, "compose", command, *(options or [])], output_mode)

    def get_containers_status(self) -> dict[str, str]:
        """Get the state of each container, keyed by service name.

        The webserver and database are always present and ``missing`` when
        compose doesn't report them. Failure to read the status is reported as
        a warning, never raised.
        """
        containers = {CONTAINER_WEBSERVER: "missing", CONTAINER_DATABASE: "missing"}

        try:
            result = self._run([self.tool, "compose", "ps", "--all", "--format=json"], OutputMode.RETURN)
        except ContainerRuntimeError as e:
            logger.debug(str(e))
            self.output.warning("Couldn't get status of docker containers.")
            return containers

        if not result.succeeded:
            logger.debug(f"compose ps failed: {result.stderr.strip()}")
            self.output.warning("Couldn't get status of docker containers.")
            return containers

        try:
            records = _parse_ps_output(result.text)
        except ValueError as e:
            logger.debug(f"Unparsable compose ps output: {e}")
            self.output.warning("Couldn't get status of docker containers.")
            return containers

        prefix = f"{self.environment.name}_"
        for record in records:
            name = record.get("Name") or ""
            if name.startswith(prefix):
                name = name[len(prefix):]
            else:
                name = record.get("Service") or name
            state = record.get("State", "unknown")
            if record.get("Health"):
                state += f" ({record['Health']})"
            containers[name] = state
        return containers

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def copy_from_container(
        self,
        container: str,
        copy_from: str,
        copy_to: str,
        output_mode: OutputMode = OutputMode.NORMAL,
    ) -> ProcessResult:
        """Copy a file from a container to the host."""
        argv = [self.tool, "cp", f"{self.container_name(container)}:{copy_from}", str(copy_to)]
        return self._run(argv, output_mode)

    def copy_to_container(
        self,
        container: str,
        copy_from: str,
        copy_to: str,
        output_mode: OutputMode = OutputMode.NORMAL,
    ) -> ProcessResult:
        """Copy a file from the host into a container."""
        argv = [self.tool, "cp", str(copy_from), f"{self.container_name(container)}:{copy_to}"]
        return self._run(argv, output_mode)

    def exec(
        self,
        command: str,
        working_dir: str | None = None,
        as_root: bool = False,
        interactive: bool = True,
        container: str = CONTAINER_WEBSERVER,
        output_mode: OutputMode = OutputMode.NORMAL,
        merge_stderr: bool = False,
        redact: tuple[str, ...] = (),
    ) -> ProcessResult:
        """Run a shell command in a container, as the host user unless ``as_root``.

        Raises:
            ContractViolationError: If ``command`` is empty.
        """
        if not command or not command.strip():
            raise ContractViolationError("Cannot exec an empty command.")

        streaming = self.runner.should_stream(output_mode)
        argv = [self.tool, "exec"]
        if streaming and tty_supported():
            argv.append("-t")
        if streaming and interactive:
            argv.append("-i")
        if working_dir is not None:
            argv.extend(["--workdir", working_dir])
        elif container == CONTAINER_WEBSERVER:
            argv.extend(["--workdir", DEFAULT_WORKDIR])
        if not as_root:
            argv.extend(["-u", str(self.environment.www_data_uid)])
        argv.extend([self.container_name(container), "env", "TERM=xterm-256color", "bash", "-c", command])

        return self._run(argv, output_mode, interactive=interactive, merge_stderr=merge_stderr, redact=redact)

    def _run(
        self,
        argv: list[str],
        output_mode: OutputMode,
        interactive: bool = False,
        merge_stderr: bool = False,
        redact: tuple[str, ...] = (),
    ) -> ProcessResult:
        invocation = ProcessInvocation(
            argv=tuple(argv),
            cwd=str(self.environment.docker_dir),
            interactive=interactive,
            output_mode=output_mode,
            merge_stderr=merge_stderr,
            redact=tuple(redact),
        )
        return self.runner.run(invocation)


def is_running(status: str) -> bool:
    """Returns True if a status from get_containers_status() means the container is up.

    The state may carry a health suffix, e.g. ``running (healthy)``.
    """
    return status.split(" (", 1)[0] == "running"


def _parse_ps_output(text: str) -> list[dict]:
    """Parse ``compose ps --format=json``.

    Older compose releases print one JSON array, newer ones one object per line.
    """
    text = text.strip()
    if not text:
        return []
    if text.startswith("["):
        records = json.loads(text)
    else:
        records = [json.loads(line) for line in text.splitlines() if line.strip()]
    if not all(isinstance(record, dict) for record in records):
        raise ValueError("expected JSON objects")
    return records
