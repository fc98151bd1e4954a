"""Dev kit environments on the host filesystem.

An environment is a project directory holding a ``.ss-dev-kit`` meta
directory. The meta directory holds the generated docker files, logs and
(for environments attached to an existing project) a marker file naming
the environment.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values

from devkit.base.errors import EnvironmentNotFoundError
from devkit.utils.config import get_config_value
from devkit.utils.logger import get_logger

logger = get_logger("environment")

ENV_META_DIR = ".ss-dev-kit"
ATTACHED_ENV_FILE = ".attached-env"

# Discovery never climbs above these directories
_STOP_AT_DIRS = {Path("/"), Path("/home")}


def find_base_dir_for_env(candidate: str | Path) -> Path | None:
    """Walk up from ``candidate`` to the first directory holding the meta dir."""
    candidate = Path(candidate)
    if not candidate.is_dir():
        raise EnvironmentNotFoundError(str(candidate), f"'{candidate}' is not a directory.")

    while candidate not in _STOP_AT_DIRS:
        if (candidate / ENV_META_DIR).is_dir():
            return candidate
        if candidate.parent == candidate:
            break
        candidate = candidate.parent
    return None


def dir_is_in_env(path: str | Path) -> bool:
    return find_base_dir_for_env(Path(path).resolve()) is not None


class Environment:
    """A dev kit environment.

    Args:
        path: The project root, or any directory inside the environment
        is_new: The environment is being created, so take ``path`` as the root as-is
        allow_missing: Don't raise if ``path`` is not inside an environment

    Raises:
        EnvironmentNotFoundError: If not a new environment and ``path`` is not
            inside a valid environment.
    """

    def __init__(self, path: str | Path, is_new: bool = False, allow_missing: bool = False):
        path = Path(path).expanduser()
        path = Path(os.path.normpath(path if path.is_absolute() else Path.cwd() / path))

        if is_new:
            self.project_root: Path | None = path
        else:
            self.project_root = find_base_dir_for_env(path)
            if self.project_root is None and not allow_missing:
                raise EnvironmentNotFoundError(str(path))

        self._port: int | None = None
        self._port_resolved = False
        self._www_data_uid: int | None = None
        self.name = self._read_attached_name() or (self.project_root.name if self.project_root else "")
        logger.debug(f"Resolved environment {self.name!r} at {self.project_root}")

    @property
    def meta_dir(self) -> Path:
        """Absolute path to the dev kit directory inside the project."""
        return self.project_root / ENV_META_DIR

    @property
    def docker_dir(self) -> Path:
        return self.meta_dir / "docker"

    @property
    def attached_env_file(self) -> Path:
        return self.meta_dir / ATTACHED_ENV_FILE

    @property
    def port(self) -> int | None:
        """The host port mapped to port 80 of the webserver, if any."""
        if not self._port_resolved:
            self._port = self._port_from_compose()
            self._port_resolved = True
        return self._port

    @port.setter
    def port(self, value: int | None) -> None:
        self._port = value
        self._port_resolved = True

    @property
    def host_name(self) -> str:
        return f"{self.name}.{get_config_value('default_host_suffix', 'localhost')}"

    @property
    def base_url(self) -> str:
        if self.port:
            return f"http://localhost:{self.port}"
        return f"http://{self.host_name}"

    def get_docker_compose_data(self) -> dict[str, Any]:
        """Parse the generated docker-compose.yml, or return {} if there isn't one."""
        compose_file = self.docker_dir / "docker-compose.yml"
        if not compose_file.is_file():
            return {}
        with open(compose_file) as f:
            return yaml.safe_load(f) or {}

    @property
    def www_data_uid(self) -> int:
        """The host UID that owns files written in the webserver container.

        Read once from the generated docker ``.env`` file.
        """
        if self._www_data_uid is None:
            values = dotenv_values(self.docker_dir / ".env")
            uid = values.get("WWW_DATA_UID")
            if not uid:
                raise EnvironmentNotFoundError(
                    str(self.project_root),
                    f"WWW_DATA_UID is not set in {self.docker_dir / '.env'}",
                )
            self._www_data_uid = int(uid)
        return self._www_data_uid

    def _port_from_compose(self) -> int | None:
        ports = self.get_docker_compose_data().get("services", {}).get("webserver", {}).get("ports", [])
        for port_map in ports:
            parts = str(port_map).split(":")
            if len(parts) >= 2 and parts[-1] == "80":
                return int(parts[-2])
        return None

    def _read_attached_name(self) -> str | None:
        if self.project_root is None or not self.attached_env_file.is_file():
            return None
        name = self.attached_env_file.read_text().strip()
        return name or None

    def __repr__(self) -> str:
        return f"Environment(name={self.name!r}, project_root={str(self.project_root)!r})"
