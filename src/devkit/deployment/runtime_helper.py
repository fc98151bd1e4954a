"""Container tool detection for Docker and Podman.

Detects the container tool used to drive environments. Both tools must
support the ``compose`` subcommand (Docker 20.10+ with the compose plugin,
or Podman 4.0+).

Examples:
    Basic usage::

        from devkit.deployment.runtime_helper import get_container_tool

        tool = get_container_tool()
        # Returns: 'docker' or 'podman'
"""

import os
import platform
import shutil
import subprocess

from devkit.base.errors import ContainerRuntimeError
from devkit.utils.config import get_config_value
from devkit.utils.logger import get_logger

logger = get_logger("runtime")

SUPPORTED_TOOLS = ["docker", "podman"]

# Module-level cache for the detected tool
_cached_tool: str | None = None


def get_container_tool() -> str:
    """Get the container tool to run environments with.

    Checks the ``CONTAINER_RUNTIME`` env var, then the ``container_runtime``
    setting, and auto-detects if neither names a tool. The result is cached
    after first detection.

    Returns:
        ``'docker'`` or ``'podman'``

    Raises:
        ContainerRuntimeError: If no container tool with compose support is usable
    """
    global _cached_tool

    if _cached_tool is not None:
        return _cached_tool

    # Priority: env var > config > auto
    requested = os.getenv("CONTAINER_RUNTIME") or get_config_value("container_runtime", "auto")

    if requested and requested.lower() in SUPPORTED_TOOLS:
        tools_to_try = [requested.lower()]
    else:
        tools_to_try = list(SUPPORTED_TOOLS)

    for tool in tools_to_try:
        if not shutil.which(tool):
            logger.debug(f"{tool} not found on PATH")
            continue

        try:
            result = subprocess.run([tool, "compose", "version"], capture_output=True, timeout=5)
            if result.returncode != 0:
                logger.debug(f"{tool} has no compose support")
                continue

            # Make sure the daemon (or podman machine) is actually reachable
            ps_result = subprocess.run([tool, "ps"], capture_output=True, timeout=5)
            if ps_result.returncode == 0:
                logger.key_info(f"Using container tool: {tool}")
                _cached_tool = tool
                return tool
        except (subprocess.TimeoutExpired, FileNotFoundError):
            continue

    installed = [tool for tool in SUPPORTED_TOOLS if shutil.which(tool) is not None]

    if installed:
        error_parts = ["Container runtime installed but not running:\n"]
        if "docker" in installed:
            error_parts.append("\n" + _get_docker_not_running_message())
        if "podman" in installed:
            error_parts.append("\n" + _get_podman_not_running_message())
        raise ContainerRuntimeError("".join(error_parts))

    raise ContainerRuntimeError(
        "No container runtime found. Install Docker with the compose plugin or Podman 4.0+\n"
        "Docker: https://docs.docker.com/get-docker/\n"
        "Podman: https://podman.io/getting-started/installation"
    )


def reset_container_tool_cache() -> None:
    """Forget the detected tool so the next call detects again."""
    global _cached_tool
    _cached_tool = None


def _get_docker_not_running_message() -> str:
    """Get platform-specific message for Docker not running."""
    system = platform.system()

    if system in ["Darwin", "Windows"]:
        return (
            "Docker Desktop is not running.\n\n"
            "To fix this:\n"
            "1. Start Docker Desktop\n"
            "2. Wait for Docker to finish starting\n"
            "3. Try your command again"
        )
    return (
        "Docker daemon is not running.\n\n"
        "To fix this:\n"
        "1. Start Docker: sudo systemctl start docker\n"
        "2. Check status: sudo systemctl status docker\n\n"
        "If permission issues, add user to docker group:\n"
        "sudo usermod -aG docker $USER\n"
        "(then log out and back in)"
    )


def _get_podman_not_running_message() -> str:
    """Get platform-specific message for Podman not running."""
    system = platform.system()

    if system in ["Darwin", "Windows"]:
        return (
            "Podman machine is not running.\n\n"
            "To fix this:\n"
            "1. Start Podman: podman machine start\n"
            "2. Check status: podman machine list"
        )
    return (
        "Podman service is not responding.\n\n"
        "To fix this:\n"
        "1. Check status: systemctl --user status podman.socket\n"
        "2. Start if needed: systemctl --user start podman.socket"
    )
