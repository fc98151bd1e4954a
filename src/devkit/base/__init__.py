"""Base types shared across the dev kit."""

from .errors import (
    CommandValidationError,
    ContainerRuntimeError,
    ContractViolationError,
    DevKitError,
    EnvironmentNotFoundError,
    PHPServiceError,
    StepProtocolError,
)

__all__ = [
    "CommandValidationError",
    "ContainerRuntimeError",
    "ContractViolationError",
    "DevKitError",
    "EnvironmentNotFoundError",
    "PHPServiceError",
    "StepProtocolError",
]
