"""Error Hierarchy - Exceptions Raised by the Dev Kit

This module defines every exception the dev kit raises deliberately. The
hierarchy separates two very different kinds of failure:

1. **Contract violations**: programmer or integration errors such as starting
   a step out of order, running an empty command in a container or passing
   mutually exclusive options to ``docker compose up``. These fail fast and
   are never handled by a command's rollback logic.

2. **User-facing failures**: invalid command input, a path that is not inside
   an environment, or a container that cannot report its PHP version. These
   are reported to the user with an error banner and a non-zero exit code.

Failures of external processes (``docker compose`` or commands run inside a
container) are deliberately *not* exceptions: they are returned to the caller
as results so each command can decide how to report them.

.. seealso::
   :mod:`devkit.commands.base` : Lifecycle that decides what gets rolled back
   :mod:`devkit.deployment.process_runner` : Result types for process failures
"""


class DevKitError(Exception):
    """Base class for all errors raised deliberately by the dev kit."""


class ContractViolationError(DevKitError):
    """A caller broke the contract of an API.

    These indicate a bug in the calling code rather than a problem with the
    user's input or environment, so they are never rolled back or retried.
    """


class StepProtocolError(ContractViolationError):
    """Steps were started or ended out of nesting order.

    Steps must nest strictly one level at a time, and a step can only be
    ended if it (or a deeper step) has been started.
    """


class CommandValidationError(DevKitError):
    """Command input failed validation before any side effects happened."""


class EnvironmentNotFoundError(DevKitError):
    """A path is not inside a valid dev kit environment."""

    def __init__(self, path: str, message: str | None = None):
        self.path = path
        super().__init__(message or f"Environment path '{path}' is not inside a valid environment.")


class PHPServiceError(DevKitError):
    """PHP version or debug information could not be read or changed."""


class ContainerRuntimeError(DevKitError):
    """No usable container tool (docker or podman with compose) was found."""
