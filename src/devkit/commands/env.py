"""Commands that create, inspect and tear down whole environments."""

import os
import re
import shutil
import socket
import time
from pathlib import Path
from typing import Any

from rich.markup import escape

from devkit.base.errors import CommandValidationError
from devkit.commands.base import FAILURE, SUCCESS, BaseCommand
from devkit.deployment.docker_service import CONTAINER_DATABASE, CONTAINER_WEBSERVER, is_running
from devkit.deployment.environment import ENV_META_DIR, Environment, dir_is_in_env
from devkit.deployment.php_service import get_available_versions, version_is_available
from devkit.deployment.process_runner import OutputMode
from devkit.deployment.templates import render_template_dir
from devkit.io.step_level import StepLevel, Verbosity
from devkit.utils import os_compat
from devkit.utils.config import get_config_value
from devkit.utils.logger import get_logger

logger = get_logger("env")

RECIPE_SHORTCUTS = {
    "installer": "silverstripe/installer",
    "blog": "silverstripe/recipe-blog",
    "core": "silverstripe/recipe-core",
    "cms": "silverstripe/recipe-cms",
}

VALID_DB_DRIVERS = ("mysql", "mariadb")

# Composer package names, see https://getcomposer.org/doc/04-schema.md#name
_PACKAGE_NAME = re.compile(r"^[a-z0-9]([_.-]?[a-z0-9]+)*/[a-z0-9](([_.]?|-{0,2})[a-z0-9]+)*$")

_CONFIRM = re.compile(r"^y(es)?$", re.IGNORECASE)


def find_port() -> int:
    """Ask the OS for a free port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("localhost", 0))
        return sock.getsockname()[1]


def _absolute(path: str | Path) -> Path:
    path = Path(path).expanduser()
    return Path(os.path.normpath(path if path.is_absolute() else Path.cwd() / path))


def compose_project_name(name: str) -> str:
    """Compose project names may only hold lowercase letters, digits, dashes and underscores."""
    return re.sub(r"[^a-z0-9_-]", "-", name.lower()).lstrip("-_") or "devkit"


class CreateCommand(BaseCommand):
    """Install a Silverstripe CMS project and set up a docker environment for it.

    With ``attach`` the environment is added to an existing project instead,
    and ``recipe`` and ``constraint`` do nothing.
    """

    name = "env:create"
    uses_docker = True

    def __init__(self, output, **kwargs):
        super().__init__(output, **kwargs)
        self._composer_args: list[str] | None = None
        # What this run created, and so what rollback may delete
        self._created_root = False
        self._created_meta = False

    @property
    def attach(self) -> bool:
        return bool(self.params.get("attach"))

    @property
    def recipe(self) -> str:
        recipe = self.params.get("recipe") or "installer"
        return RECIPE_SHORTCUTS.get(recipe, recipe)

    @property
    def composer_options(self) -> list[str]:
        return list(self.params.get("composer_option") or ())

    def validate(self) -> None:
        env_path = self.params.get("env_path")
        if not env_path:
            raise CommandValidationError("A path for the environment is required.")
        project_path = _absolute(env_path)

        if project_path.is_dir() and dir_is_in_env(project_path):
            raise CommandValidationError(
                "Project path is inside an existing environment. Cannot create nested environments."
            )
        if project_path.is_file():
            raise CommandValidationError("Project path must not be a file.")
        if self.attach and not project_path.is_dir():
            raise CommandValidationError("Project path must exist when --attach is used")
        if self.params.get("port") is not None and self.params.get("no_port"):
            raise CommandValidationError("Cannot use --port and --no-port together")

        db = self.params.get("db") or "mysql"
        if db not in VALID_DB_DRIVERS:
            raise CommandValidationError(f"--db must be one of {', '.join(VALID_DB_DRIVERS)}")

        php_version = self.params.get("php_version")
        if php_version is not None and not version_is_available(php_version):
            raise CommandValidationError(
                f"PHP version {php_version} is not available. Use one of {', '.join(get_available_versions())}"
            )

        if not _PACKAGE_NAME.match(self.recipe):
            raise CommandValidationError("recipe must be a valid composer package name.")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def do_execute(self) -> int:
        message = "Creating new project and attaching environment"
        if self.attach:
            message = "Attaching environment to existing project"
        self.output.start_step(StepLevel.COMMAND, message)

        self.env = Environment(self.params["env_path"], is_new=True)
        self.env.port = self.find_port()

        if not self.prepare_project_root() or not self.spin_up_docker():
            self.perform_rollback()
            return FAILURE

        if self.params.get("php_version"):
            self.set_php_version()

        self.share_github_token()

        if self.attach:
            self.composer_install_if_necessary()
        elif not self.build_composer_project():
            self.perform_rollback()
            return FAILURE
        self.add_extra_modules()

        if not self.copy_webroot_files():
            self.perform_rollback()
            return FAILURE

        self.build_database()

        url = self.env.base_url
        self.output.end_step(StepLevel.COMMAND, "Completed successfully.")
        self.output.writeln(f"Navigate to [link={url}]{url}[/link]")
        return SUCCESS

    def rollback(self) -> None:
        if self.output.current_step.is_at_least(StepLevel.COMMAND):
            # Unwind whatever steps were open when things went wrong
            self.output.end_step(StepLevel.COMMAND, "Error occurred, rolling back...", success=False)
        if self.env is None:
            self.output.writeln("Rollback successful")
            return

        if (self.env.docker_dir / "docker-compose.yml").exists():
            self.output.writeln("Tearing down docker")
            self.docker_service.down(remove_orphans=True, images=True, volumes=True)

        if self._created_root:
            self.output.writeln("Deleting project dir")
            shutil.rmtree(self.env.project_root, ignore_errors=True)
        elif self._created_meta:
            self.output.writeln("Deleting devkit-specific directories")
            shutil.rmtree(self.env.docker_dir, ignore_errors=True)
            shutil.rmtree(self.env.meta_dir, ignore_errors=True)
        self.output.writeln("Rollback successful")

    def find_port(self) -> int | None:
        if self.params.get("no_port"):
            return None
        port = self.params.get("port")
        if port is not None:
            return int(port)
        self.output.writeln("Finding port")
        port = find_port()
        logger.debug(f"OS assigned free port {port}")
        self.output.writeln(f"Using port [info]{port}[/info]")
        return port

    def prepare_project_root(self) -> bool:
        self.output.start_step(StepLevel.PRIMARY, "Preparing project directory")
        meta_dir = self.env.meta_dir
        try:
            if not self.env.project_root.is_dir():
                if self.attach:
                    raise CommandValidationError("Project root must exist when --attach is used")
                self.env.project_root.mkdir(parents=True)
                self._created_root = True
            if not meta_dir.is_dir():
                meta_dir.mkdir()
                self._created_meta = True
            for directory in (meta_dir, meta_dir / "logs", meta_dir / "logs" / "apache2", meta_dir / "artifacts"):
                directory.mkdir(parents=True, exist_ok=True)
            if self.attach:
                self.env.attached_env_file.write_text(f"{self.env.name}\n")
        except OSError as e:
            self.output.end_step(StepLevel.PRIMARY, f"Couldn't create environment directory: {e}", success=False)
            return False

        self.output.end_step(StepLevel.PRIMARY)
        return True

    def spin_up_docker(self) -> bool:
        self.output.start_step(StepLevel.PRIMARY, "Spinning up docker")
        try:
            self.output.writeln("Preparing docker directory")
            render_template_dir("docker", self.env.docker_dir, self.template_variables(), self.output)
        except OSError as e:
            self.output.end_step(StepLevel.PRIMARY, f"Couldn't set up docker files: {e}", success=False)
            return False

        self.output.start_step(StepLevel.SECONDARY, "Starting docker containers")
        success = self.docker_service.up(build=True)
        self.output.end_step(StepLevel.SECONDARY)
        if not success:
            self.output.end_step(StepLevel.PRIMARY, "Couldn't start docker containers", success=False)
            return False

        self.output.end_step(StepLevel.PRIMARY)
        return True

    def set_php_version(self) -> None:
        version = self.params["php_version"]
        self.output.start_step(StepLevel.PRIMARY, "Setting appropriate PHP version")
        if self.php_service.swap_to_version(version):
            self.output.end_step(StepLevel.PRIMARY, f"Using PHP version {version}")
        else:
            self.output.warning(f"Couldn't swap to PHP {version}. Using default")
            self.output.end_step(StepLevel.PRIMARY, success=False)

    def share_github_token(self) -> None:
        token = get_config_value("github_token")
        if not token:
            return
        self.output.writeln("Adding github token to composer")
        self.docker_service.exec(
            f"composer config -g github-oauth.github.com {token}",
            output_mode=OutputMode.DEBUG,
            redact=(str(token),),
        )

    def composer_install_if_necessary(self) -> bool:
        root = self.env.project_root
        if (root / "vendor").is_dir() or not (root / "composer.json").exists():
            self.output.writeln("Composer dependencies already installed, or no composer.json file found.")
            return True

        self.output.start_step(StepLevel.PRIMARY, "Installing composer dependencies")
        command = self.composer_command("install")
        if not self.docker_service.exec(" ".join(command), output_mode=OutputMode.DEBUG):
            self.output.end_step(
                StepLevel.PRIMARY, "Couldn't install dependencies. Run composer install manually.", success=False
            )
            return False

        self.output.end_step(StepLevel.PRIMARY)
        return True

    def build_composer_project(self) -> bool:
        self.output.start_step(StepLevel.PRIMARY, "Building composer project")

        self.output.writeln("Making temporary directory")
        tmp_dir = f"/tmp/composer-create-project-{int(time.time())}"
        self.docker_service.exec(f"mkdir {tmp_dir}", output_mode=OutputMode.DEBUG)

        command = self.composer_command("create-project")
        if not self.docker_service.exec(" ".join(command), working_dir=tmp_dir, output_mode=OutputMode.DEBUG):
            self.output.end_step(StepLevel.PRIMARY, "Couldn't create composer project.", success=False)
            return False

        self.output.writeln("Copying composer project from temporary directory")
        self.docker_service.exec(f"cp -rT {tmp_dir} /var/www", output_mode=OutputMode.DEBUG)

        self.output.writeln("Removing temporary directory")
        self.docker_service.exec(f"rm -rf {tmp_dir}", output_mode=OutputMode.DEBUG)

        self.output.end_step(StepLevel.PRIMARY)
        return True

    def add_extra_modules(self) -> None:
        modules = list(self.params.get("extra_module") or ())
        if not modules:
            return

        self.output.start_step(StepLevel.PRIMARY, "Installing additional modules")
        success = True
        for module in modules:
            success = self.require_module(module) and success

        if not success:
            self.output.warning(
                "Failed to install at least one optional module. "
                "Please check your dependency constraints and install the module manually."
            )
        self.output.end_step(StepLevel.PRIMARY, success=success)

    def require_module(self, module: str) -> bool:
        self.output.start_step(StepLevel.SECONDARY, f"Adding optional module [info]{escape(module)}[/info]")
        command = ["composer", "require", module, *self.composer_args("require")]
        if not self.docker_service.exec(" ".join(command), output_mode=OutputMode.DEBUG):
            self.output.end_step(StepLevel.SECONDARY, f"Couldn't require '{module}'.", success=False)
            return False
        self.output.end_step(StepLevel.SECONDARY)
        return True

    def copy_webroot_files(self) -> bool:
        self.output.start_step(StepLevel.PRIMARY, "Copying extra files into project root")
        try:
            self.output.writeln("Preparing extra webroot files")
            # Don't clobber files an attached project already has
            render_template_dir(
                "webroot",
                self.env.project_root,
                self.template_variables(),
                self.output,
                overwrite=not self.attach,
            )
        except OSError as e:
            self.output.end_step(StepLevel.PRIMARY, f"Couldn't set up webroot files: {e}", success=False)
            return False

        self.output.end_step(StepLevel.PRIMARY)
        return True

    def build_database(self) -> None:
        self.output.start_step(StepLevel.PRIMARY, "Building database")

        success = True
        if "--no-install" not in self.composer_options:
            success = bool(self.docker_service.exec("vendor/bin/sake dev/build", output_mode=OutputMode.DEBUG))
            if not success:
                url = f"{self.env.base_url}/dev/build"
                self.output.warning_block(
                    [
                        "Unable to build the db.",
                        f"Build the db by going to [link={url}]{escape(url)}[/link]",
                        "Or run: "
                        + escape(f"dev-kit exec vendor/bin/sake dev/build -p {self.env.project_root}"),
                    ],
                    escape_markup=False,
                )

        self.output.end_step(StepLevel.PRIMARY, success=success)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def composer_args(self, command_type: str) -> list[str]:
        """Arguments for a composer command that installs dependencies."""
        if self._composer_args is None:
            self._composer_args = ["--no-interaction", "--no-progress", *self.composer_options]
        args = list(self._composer_args)

        # composer install doesn't accept --no-audit
        if command_type != "install":
            args.append("--no-audit")

        return list(dict.fromkeys(args))

    def composer_command(self, command_type: str) -> list[str]:
        """A ``composer install`` or ``composer create-project`` command."""
        command = ["composer", command_type, *self.composer_args(command_type)]
        if command_type == "create-project":
            constraint = self.params.get("constraint") or "^5.0"
            command.extend([f"{self.recipe}:{constraint}", "./"])
        return command

    def template_variables(self) -> dict[str, Any]:
        return {
            "project_name": self.env.name,
            "compose_project": compose_project_name(self.env.name),
            "database": self.params.get("db") or "mysql",
            "db_version": self.params.get("db_version") or "latest",
            "attached": self.attach,
            "web_port": self.env.port,
            "meta_dir_name": ENV_META_DIR,
            "uid": os_compat.get_user_id(),
            "gid": os_compat.get_group_id(),
            "composer_cache_dir": os_compat.get_composer_cache_dir(),
            "os": os_compat.get_os(),
            "webserver_image": get_config_value("webserver_image"),
        }


class DestroyCommand(BaseCommand):
    """Completely tear down an environment made with ``env:create``."""

    name = "env:destroy"
    needs_environment = True
    uses_docker = True

    def prepare(self) -> None:
        # Guard against tearing down the wrong environment by accident
        if self.params.get("env_path", "./") in (None, "./"):
            answer = self.output.ask(
                f"You passed no arguments and are tearing down [bold]{escape(self.env.name)}[/bold]"
                " - do you wish to continue?",
                default="y",
            )
            if not isinstance(answer, str) or not _CONFIRM.match(answer):
                raise CommandValidationError("Opting not to tear down this environment.")

    def rollback(self) -> None:
        # Nothing to undo
        pass

    def do_execute(self) -> int:
        root = self.env.project_root
        detach = bool(self.params.get("detach"))
        self.output.start_step(StepLevel.COMMAND, f"Destroying environment at [path]{escape(str(root))}[/path]")

        # Don't stay inside the directory we're about to delete
        cwd = Path.cwd()
        if cwd == root or root in cwd.parents:
            os.chdir(root.parent)

        if not self.pull_down_docker():
            self.output.end_step(StepLevel.COMMAND, success=False)
            return FAILURE

        try:
            if detach:
                self.output.writeln("Deleting devkit-specific directories")
                if self.env.docker_dir.exists():
                    shutil.rmtree(self.env.docker_dir)
                if self.env.meta_dir.exists():
                    shutil.rmtree(self.env.meta_dir)
            else:
                self.output.writeln("Removing environment directory")
                shutil.rmtree(root)
        except OSError as e:
            self.output.end_step(StepLevel.COMMAND, f"Couldn't delete directory: {e}", success=False)
            return FAILURE

        self.output.end_step(
            StepLevel.COMMAND, f"Environment successfully {'detached' if detach else 'destroyed'}."
        )
        return SUCCESS

    def pull_down_docker(self) -> bool:
        self.output.start_step(StepLevel.PRIMARY, "Taking down docker")
        if not self.docker_service.down(remove_orphans=True, images=True, volumes=True):
            self.output.end_step(StepLevel.PRIMARY, "Problem occurred while stopping docker containers.", success=False)
            return False
        self.output.end_step(StepLevel.PRIMARY, "Took down docker successfully")
        return True


class DetailsCommand(BaseCommand):
    """Show settings and container status for an environment."""

    name = "env:details"
    needs_environment = True
    uses_docker = True

    def rollback(self) -> None:
        # Nothing to undo
        pass

    def do_execute(self) -> int:
        containers = self.docker_service.get_containers_status()
        can_check_php = is_running(containers.get(CONTAINER_WEBSERVER, "missing"))
        base_url = self.env.base_url
        db_driver, db_version = self.get_db_data(containers.get(CONTAINER_DATABASE, "missing"))

        xdebug = cli_version = apache_version = None
        if can_check_php:
            xdebug = "On" if self.php_service.debug_is_enabled() else "Off"
            cli_version = self.php_service.get_cli_php_version()
            apache_version = self.php_service.get_apache_php_version()

        headers = [
            "URL",
            "CMS URL",
            "DB driver",
            "DB version",
            "XDebug",
            "CLI PHP Version",
            "Apache PHP Version",
            "Available PHP Versions",
            *(f"{name} container" for name in containers),
        ]
        row = [
            f"{base_url}/",
            f"{base_url}/admin",
            db_driver,
            db_version,
            xdebug,
            cli_version,
            apache_version,
            ", ".join(get_available_versions()),
            *containers.values(),
        ]
        self.output.table(headers, [row], verbosity=Verbosity.NORMAL)
        return SUCCESS

    def get_db_data(self, container_status: str) -> tuple[str, str]:
        """Database driver and version, from the compose file and the running container."""
        image = (
            self.env.get_docker_compose_data().get("services", {}).get(CONTAINER_DATABASE, {}).get("image")
            or "unknown:unknown"
        )
        driver, _, version = image.partition(":")
        version = version or "unknown"

        if driver != "unknown" and is_running(container_status):
            result = self.docker_service.exec(
                f"{driver} --version",
                container=CONTAINER_DATABASE,
                output_mode=OutputMode.RETURN,
            )
            if result.succeeded:
                version = re.sub(rf"^{re.escape(driver)}\s*", "", result.text.strip())
        return driver, version
