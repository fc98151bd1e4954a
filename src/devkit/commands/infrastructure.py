"""Changing PHP configuration in a running environment."""

from devkit.base.errors import CommandValidationError
from devkit.commands.base import FAILURE, SUCCESS, BaseCommand
from devkit.deployment.process_runner import OutputMode
from devkit.io.step_level import StepLevel

XDEBUG_EXTENSION = "zend_extension=xdebug.so"


class PhpConfigCommand(BaseCommand):
    """Swap the PHP version, toggle xdebug, or print PHP info.

    The version is swapped first so the other options apply to the new version.
    """

    name = "infrastructure:phpconfig"
    needs_environment = True
    uses_docker = True

    def validate(self) -> None:
        if not any(self.params.get(option) for option in ("php_version", "info", "toggle_debug")):
            raise CommandValidationError("At least one option must be used.")

    def rollback(self) -> None:
        # Nothing to undo
        pass

    def do_execute(self) -> int:
        self.output.start_step(StepLevel.COMMAND, "Updating PHP configuration")

        version = self.params.get("php_version")
        if version and not self.php_service.swap_to_version(version):
            self.output.end_step(StepLevel.COMMAND, f"Couldn't swap to PHP {version}", success=False)
            return FAILURE

        if self.params.get("toggle_debug") and not self.toggle_debug():
            self.output.end_step(StepLevel.COMMAND, "Couldn't toggle xdebug", success=False)
            return FAILURE

        if self.params.get("info") and not self.print_php_info():
            self.output.end_step(StepLevel.COMMAND, "Couldn't print PHP info", success=False)
            return FAILURE

        self.output.end_step(StepLevel.COMMAND, "Successfully completed command")
        return SUCCESS

    def toggle_debug(self) -> bool:
        version = self.php_service.get_cli_php_version()
        value = XDEBUG_EXTENSION
        on_off = "on"
        if self.php_service.debug_is_enabled(version):
            on_off = "off"
            value = f";{value}"

        self.output.writeln(f"Turning debug {on_off}")
        path = self.php_service.get_debug_path(version)
        command = f'echo "{value}" > "{path}" && /etc/init.d/apache2 reload'
        return bool(self.docker_service.exec(command, as_root=True, output_mode=OutputMode.DEBUG))

    def print_php_info(self) -> bool:
        self.output.writeln("Printing PHP info")
        return bool(self.docker_service.exec("php -i", output_mode=OutputMode.ALWAYS))
