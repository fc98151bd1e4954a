"""
Component Logger

Provides colored diagnostic logging for dev kit components:
- One API for every module (runtime detection, config, docker, commands)
- Rich terminal output on stderr, kept apart from a command's step output
- Root level driven by the session verbosity

Usage:
    logger = get_logger("docker")
    logger.info("Parsing compose status")
    logger.debug("Detailed trace")
    logger.success("Operation completed")
    logger.warning("Something to note")
    logger.error("Something went wrong")

    # Custom loggers with explicit parameters
    logger = get_logger(name="custom_component", color="blue")
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

from devkit.utils.config import get_config_value

# Component colors, keyed by component name
COMPONENT_COLORS = {
    "runtime": "magenta",
    "docker": "cyan",
    "command": "green",
    "environment": "blue",
    "php": "yellow",
    "env": "bright_blue",
    "cli": "white",
}


class ComponentLogger:
    """
    Rich-formatted logger for dev kit components with color coding.

    Message Types:
    - key_info: Important operational information
    - info: Normal operational messages
    - debug: Detailed tracing information
    - warning: Warning messages
    - error: Error messages
    - success: Success messages
    """

    def __init__(self, base_logger: logging.Logger, component_name: str, color: str = "white"):
        """
        Initialize component logger.

        Args:
            base_logger: Underlying Python logger
            component_name: Name of the component (e.g., 'docker', 'runtime')
            color: Rich color name for this component
        """
        self.base_logger = base_logger
        self.component_name = component_name
        self.color = color

    def _format_message(self, message: str, style: str, emoji: str = "") -> str:
        """Format message with Rich markup and emoji prefix."""
        prefix = f"{emoji}{self.component_name.title()}: "
        if style:
            return f"[{style}]{prefix}{message}[/{style}]"
        return f"{prefix}{message}"

    def key_info(self, message: str) -> None:
        style = f"bold {self.color}"
        self.base_logger.info(self._format_message(message, style))

    def info(self, message: str) -> None:
        self.base_logger.info(self._format_message(message, self.color))

    def debug(self, message: str) -> None:
        self.base_logger.debug(self._format_message(message, f"dim {self.color}", "🔍 "))

    def warning(self, message: str) -> None:
        self.base_logger.warning(self._format_message(message, "bold yellow", "⚠️  "))

    def error(self, message: str, exc_info: bool = False) -> None:
        formatted = self._format_message(message, "bold red", "❌ ")
        self.base_logger.error(formatted, exc_info=exc_info)

    def success(self, message: str) -> None:
        self.base_logger.info(self._format_message(message, "bold green", "✅ "))

    def exception(self, message: str, *args, **kwargs) -> None:
        formatted = self._format_message(message, "bold red", "❌ ")
        self.base_logger.exception(formatted, *args, **kwargs)

    @property
    def level(self) -> int:
        return self.base_logger.level

    @property
    def name(self) -> str:
        return self.base_logger.name

    def isEnabledFor(self, level: int) -> bool:
        return self.base_logger.isEnabledFor(level)


def _setup_rich_logging(level: int = logging.WARNING) -> None:
    """Configure Rich logging for the root logger (called once)."""
    root_logger = logging.getLogger()

    # Prevent duplicate handler registration
    for handler in root_logger.handlers:
        if isinstance(handler, RichHandler):
            return

    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    root_logger.setLevel(level)

    try:
        rich_tracebacks = get_config_value("logging.rich_tracebacks", True)
        show_traceback_locals = get_config_value("logging.show_traceback_locals", False)
    except Exception:
        # Secure defaults when the configuration file is unreadable
        rich_tracebacks = True
        show_traceback_locals = False

    # Diagnostics go to stderr so they never interleave with step output
    console = Console(stderr=True)

    handler = RichHandler(
        console=console,
        rich_tracebacks=rich_tracebacks,
        markup=True,
        show_path=False,
        show_time=True,
        show_level=True,
        tracebacks_show_locals=show_traceback_locals,
    )

    root_logger.addHandler(handler)


def configure_logging(verbosity: int) -> None:
    """Set the root log level from the session verbosity.

    WARNING by default, INFO at very-verbose and DEBUG at debug verbosity.
    """
    from devkit.io.step_level import Verbosity

    if verbosity >= Verbosity.DEBUG:
        level = logging.DEBUG
    elif verbosity >= Verbosity.VERY_VERBOSE:
        level = logging.INFO
    else:
        level = logging.WARNING

    _setup_rich_logging(level)
    logging.getLogger().setLevel(level)


def get_logger(
    component_name: str = None,
    *,
    name: str = None,
    color: str = None,
) -> ComponentLogger:
    """
    Get a component logger.

    Args:
        component_name: Component name (e.g., 'docker', 'runtime')
        name: Direct logger name (keyword-only), for custom loggers
        color: Direct color specification (keyword-only)

    Returns:
        ComponentLogger instance

    Examples:
        logger = get_logger("docker")
        logger.info("Reading container status")

        logger = get_logger(name="test_logger", color="blue")
    """
    if name is not None:
        return ComponentLogger(logging.getLogger(name), name, color or "white")

    if component_name is None:
        raise ValueError(
            "Component name is required. Usage: get_logger('component_name') or "
            "get_logger(name='custom_name', color='blue')"
        )

    base_logger = logging.getLogger(f"devkit.{component_name}")
    return ComponentLogger(base_logger, component_name, color or COMPONENT_COLORS.get(component_name, "white"))
