"""Command lifecycle.

Every dev kit command subclasses :class:`BaseCommand` and implements
:meth:`BaseCommand.do_execute` and :meth:`BaseCommand.rollback`. The
lifecycle is::

    CREATED -> INITIALIZED -> RUNNING -> SUCCEEDED
                                      -> ROLLED_BACK
            -> FAILED (validation or environment errors, nothing to undo)

Any exception escaping ``do_execute()`` triggers exactly one rollback before
it propagates. Contract violations are bugs rather than runtime failures and
propagate without a rollback.
"""

from enum import Enum
from pathlib import Path
from typing import Any

from devkit.base.errors import ContractViolationError
from devkit.deployment.docker_service import DockerService
from devkit.deployment.environment import Environment
from devkit.deployment.php_service import PHPService
from devkit.io.output import CommandOutput
from devkit.utils.logger import get_logger

logger = get_logger("command")

SUCCESS = 0
FAILURE = 1


class CommandState(Enum):
    CREATED = "created"
    INITIALIZED = "initialized"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


class BaseCommand:
    """Base class for all commands.

    Subclasses declare what they need with class attributes:

    * ``needs_environment`` - resolve an :class:`Environment` from ``env_path``
    * ``environment_optional`` - a missing environment is not an error
    * ``uses_docker`` - build a :class:`DockerService` for the environment

    Args:
        output: The shared output for this CLI invocation
        environment: Use this environment instead of resolving one
        docker_service: Use this docker service instead of building one
        **params: The command's options and arguments
    """

    name: str = ""
    needs_environment: bool = False
    environment_optional: bool = False
    uses_docker: bool = False

    def __init__(
        self,
        output: CommandOutput,
        *,
        environment: Environment | None = None,
        docker_service: DockerService | None = None,
        **params: Any,
    ):
        self.output = output
        self.params = params
        self.env = environment
        self._docker_service = docker_service
        self._php_service: PHPService | None = None
        self._rolled_back = False
        self.state = CommandState.CREATED

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Validate the command's parameters. Raise to abort before any side effects."""

    def prepare(self) -> None:
        """Runs after the environment is resolved, before execution starts."""

    def do_execute(self) -> int:
        """Execute the command, returning an exit code."""
        raise NotImplementedError

    def rollback(self) -> None:
        """Undo a failed execution. Read-only commands make this a no-op."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Validate parameters and resolve the environment and services."""
        try:
            self.validate()
            if self.needs_environment and self.env is None:
                self.env = Environment(self.env_path, allow_missing=self.environment_optional)
            if self.uses_docker and self.env is not None and self._docker_service is None:
                self._docker_service = DockerService(self.env, self.output)
            self.prepare()
        except Exception:
            self.state = CommandState.FAILED
            raise
        self.state = CommandState.INITIALIZED

    def run(self) -> int:
        """Run the full lifecycle and return the exit code."""
        try:
            if self.state is CommandState.CREATED:
                self.initialize()

            self.state = CommandState.RUNNING
            try:
                exit_code = self.do_execute()
            except ContractViolationError:
                self.state = CommandState.FAILED
                raise
            except Exception as e:
                self.perform_rollback(e)
                raise

            if exit_code == SUCCESS:
                self.state = CommandState.SUCCEEDED
            elif self._rolled_back:
                self.state = CommandState.ROLLED_BACK
            else:
                self.state = CommandState.FAILED
            return exit_code
        finally:
            self.output.reset()

    def perform_rollback(self, error: BaseException | None = None) -> None:
        """Roll back, at most once per run.

        A failure while rolling back is reported as a warning so that it
        never hides the error that caused the rollback.
        """
        if self._rolled_back:
            return
        self._rolled_back = True
        self.state = CommandState.ROLLED_BACK
        if error is not None:
            logger.debug(f"Rolling back {self.name or type(self).__name__} after: {error!r}")
        try:
            self.rollback()
        except Exception as rollback_error:
            logger.debug(f"Rollback failed: {rollback_error!r}")
            self.output.warning(f"Rollback failed: {rollback_error}")

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    @property
    def env_path(self) -> str:
        return self.params.get("env_path") or "./"

    @property
    def docker_service(self) -> DockerService:
        if self._docker_service is None:
            if self.env is None:
                raise ContractViolationError(f"{type(self).__name__} has no environment to run docker in.")
            self._docker_service = DockerService(self.env, self.output)
        return self._docker_service

    @property
    def php_service(self) -> PHPService:
        if self._php_service is None:
            self._php_service = PHPService(self.docker_service, self.output)
        return self._php_service

    def project_path(self, *parts: str) -> Path:
        return self.env.project_root.joinpath(*parts)
