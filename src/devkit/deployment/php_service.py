"""PHP inside the webserver container.

Reads and changes the PHP version used by the CLI and by Apache, and the
state of the xdebug extension.
"""

import re

from devkit.base.errors import PHPServiceError
from devkit.deployment.docker_service import CONTAINER_WEBSERVER, DockerService
from devkit.deployment.process_runner import OutputMode
from devkit.io.output import CommandOutput
from devkit.io.step_level import Verbosity
from devkit.utils.config import get_config_value
from devkit.utils.logger import get_logger

logger = get_logger("php")

VERSION_PATTERN = r"\d+\.\d+(?:\.\d+)?"

_XDEBUG_CONNECT_ERROR = "Could not connect to debugging client"
_APACHE_MODULE = re.compile(r"^php([0-9.]+)\.conf$")


def get_available_versions() -> list[str]:
    """PHP versions installed in the webserver image."""
    versions = get_config_value("php_versions", [])
    if isinstance(versions, str):
        versions = versions.split(",")
    return [str(version).strip() for version in versions if str(version).strip()]


def version_is_available(version: str) -> bool:
    return version in get_available_versions()


class PHPService:
    """Inspects and swaps PHP in an environment's webserver container."""

    def __init__(self, docker_service: DockerService, output: CommandOutput):
        self.docker_service = docker_service
        self.output = output

    def get_cli_php_version(self, full_version: bool = False) -> str:
        """Get the CLI PHP version, e.g. ``8.1`` or with ``full_version`` ``8.1.17``.

        Raises:
            PHPServiceError: If the version can't be read.
        """
        self.output.writeln("Checking CLI PHP version", verbosity=Verbosity.DEBUG)
        echo = "PHP_VERSION" if full_version else "PHP_MAJOR_VERSION . '.' . PHP_MINOR_VERSION"
        result = self.docker_service.exec(f'echo $(php -r "echo {echo};")', output_mode=OutputMode.RETURN)
        if not result.succeeded:
            raise PHPServiceError("Error fetching PHP version")

        version = result.text.strip()
        # xdebug complains on every run when it's enabled but nothing is listening
        if _XDEBUG_CONNECT_ERROR in version:
            version = re.sub(rf".*?({VERSION_PATTERN})$", r"\1", version, flags=re.DOTALL)
        if not re.fullmatch(VERSION_PATTERN, version):
            raise PHPServiceError(f"Error fetching PHP version: {version}")
        return version

    def get_apache_php_version(self) -> str:
        """Get the PHP version of the enabled Apache module.

        Raises:
            PHPServiceError: If the version can't be read.
        """
        self.output.writeln("Checking apache PHP version", verbosity=Verbosity.DEBUG)
        result = self.docker_service.exec(
            r"ls /etc/apache2/mods-enabled/ | grep 'php[0-9.]*\.conf'",
            output_mode=OutputMode.RETURN,
        )
        module = result.text.strip()
        match = _APACHE_MODULE.match(module)
        if not result.succeeded or match is None:
            raise PHPServiceError(f"Error fetching PHP version: {module}")
        return match.group(1)

    def get_debug_path(self, version: str) -> str:
        """Path of the xdebug config for a PHP version."""
        return f"/etc/php/{version}/mods-available/xdebug.ini"

    def debug_is_enabled(self, version: str | None = None) -> bool:
        """Check whether xdebug is enabled for ``version`` (default: the CLI version).

        Assumes the CLI and Apache versions are in sync.
        """
        self.output.writeln("Checking if xdebug is enabled", verbosity=Verbosity.DEBUG)
        version = version or self.get_cli_php_version()
        result = self.docker_service.exec(f"cat {self.get_debug_path(version)}", output_mode=OutputMode.RETURN)
        debug = result.text.strip()
        if not result.succeeded:
            raise PHPServiceError(f"Error fetching debug status: {debug}")
        return debug != "" and not debug.startswith(";")

    def swap_to_version(self, version: str) -> bool:
        """Swap both the CLI and Apache to ``version``.

        Raises:
            PHPServiceError: If ``version`` isn't installed in the image.
        """
        if not version_is_available(version):
            raise PHPServiceError(f"PHP {version} is not available.")

        old_cli = self.get_cli_php_version()
        old_apache = self.get_apache_php_version()

        if old_cli == old_apache == version:
            self.output.writeln(f"Already using version [info]{version}[/info] - skipping.")
            return True

        success = True

        if old_cli != version:
            self.output.writeln(f"Swapping CLI PHP from [info]{old_cli}[/info] to [info]{version}[/info].")
            success = success and self._swap_cli_to_version(version)

        if old_apache != version:
            self.output.writeln(f"Swapping Apache PHP from [info]{old_apache}[/info] to [info]{version}[/info].")
            success = success and self._swap_apache_to_version(old_apache, version)

        if not success:
            logger.warning(f"Swapping to PHP {version} did not complete")
        return success

    def _swap_cli_to_version(self, version: str) -> bool:
        command = f"rm /etc/alternatives/php && ln -s /usr/bin/php{version} /etc/alternatives/php"
        return bool(self.docker_service.exec(command, as_root=True))

    def _swap_apache_to_version(self, from_version: str, to_version: str) -> bool:
        command = " && ".join(
            [
                f"rm /etc/apache2/mods-enabled/php{from_version}.conf",
                f"rm /etc/apache2/mods-enabled/php{from_version}.load",
                f"ln -s /etc/apache2/mods-available/php{to_version}.conf /etc/apache2/mods-enabled/php{to_version}.conf",
                f"ln -s /etc/apache2/mods-available/php{to_version}.load /etc/apache2/mods-enabled/php{to_version}.load",
            ]
        )
        if not self.docker_service.exec(command, as_root=True):
            return False
        return bool(self.docker_service.restart(CONTAINER_WEBSERVER, timeout=0))
