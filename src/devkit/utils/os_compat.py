"""Host operating system helpers used when rendering environment templates."""

import os
import platform
from pathlib import Path

from devkit.utils.logger import get_logger

logger = get_logger("os")

# UID/GID handed to containers on hosts without POSIX ids; docker for windows
# maps files to this user without permission problems
FALLBACK_ID = 1000

_UNIX_SYSTEMS = ("Linux", "Darwin", "SunOS", "FreeBSD", "OpenBSD", "NetBSD")


def get_os() -> str:
    """The host OS family, e.g. ``Linux``, ``Darwin`` or ``Windows``."""
    return platform.system()


def is_windows() -> bool:
    return get_os() == "Windows"


def is_macos() -> bool:
    return get_os() == "Darwin"


def is_linux() -> bool:
    return get_os() == "Linux"


def is_unix() -> bool:
    return get_os() in _UNIX_SYSTEMS


def get_user_id() -> int:
    """UID of the user running the dev kit."""
    if is_unix() and hasattr(os, "getuid"):
        return os.getuid()
    return FALLBACK_ID


def get_group_id() -> int:
    """GID of the user running the dev kit."""
    if is_unix() and hasattr(os, "getgid"):
        return os.getgid()
    return FALLBACK_ID


def get_composer_cache_dir() -> str | None:
    """Find the composer cache on the host, so containers can share it.

    Checks ``COMPOSER_CACHE_DIR`` first, then the usual locations for the
    platform. This isn't exhaustive; None means no cache was found.
    """
    candidates: list[Path] = []

    cache_dir = os.environ.get("COMPOSER_CACHE_DIR")
    if cache_dir:
        candidates.append(Path(cache_dir))

    if is_windows():
        app_data = os.environ.get("APPDATA")
        if app_data:
            candidates.extend([Path(app_data) / "Local" / "Composer", Path(app_data) / "Composer" / "cache"])
    else:
        cache_home = os.environ.get("XDG_CACHE_HOME")
        if cache_home:
            candidates.append(Path(cache_home) / "composer")
        composer_home = os.environ.get("COMPOSER_HOME")
        if composer_home:
            candidates.append(Path(composer_home) / "cache")
        candidates.extend([Path("~/.composer/cache"), Path("~/.cache/composer")])

    for candidate in candidates:
        path = candidate.expanduser()
        if path.exists():
            return str(path.resolve())

    logger.debug("No composer cache directory found on the host")
    return None
