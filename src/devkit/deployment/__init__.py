"""Environments and the containers that run them.

This package provides environment discovery, container orchestration and
the process execution every command delegates its side effects to.
"""

from .docker_service import CONTAINER_DATABASE, CONTAINER_WEBSERVER, DockerService
from .environment import Environment
from .php_service import PHPService
from .process_runner import Captured, OutputMode, ProcessInvocation, ProcessRunner, Success

__all__ = [
    "CONTAINER_DATABASE",
    "CONTAINER_WEBSERVER",
    "Captured",
    "DockerService",
    "Environment",
    "OutputMode",
    "PHPService",
    "ProcessInvocation",
    "ProcessRunner",
    "Success",
]
