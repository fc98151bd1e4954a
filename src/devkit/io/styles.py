"""Centralized color and style management for the dev kit CLI.

This module provides a unified color scheme and styling utilities for all
terminal output, ensuring consistent visual appearance across commands.

Design Philosophy:
- Semantic color names (success, error, warning) rather than direct colors
- Theme-based approach allowing easy theme switching
- Step-level styles (``step.command`` etc.) live in the same theme so that
  step output can be styled by name
"""

import sys
from dataclasses import dataclass

from rich.console import Console
from rich.theme import Theme

from devkit.utils.logger import get_logger

logger = get_logger("styles")


# ============================================================================
# THEME CONFIGURATION
# ============================================================================


@dataclass
class ColorTheme:
    """Defines a complete color theme for the CLI.

    Separates colors into three categories:
    1. Fixed standard colors (error, warning, success) - UI conventions
    2. Step colors - one per step level, from outermost to innermost
    3. Configurable accent colors (info, path)
    """

    # === FIXED STANDARD COLORS (UI Conventions) ===
    error: str = "#ff0000"
    warning: str = "#ffaa00"
    success: str = "green"

    # === STEP COLORS ===
    step_command: str = "green"
    step_primary: str = "cyan"
    step_secondary: str = "blue"
    step_tertiary: str = "grey50"

    # === CONFIGURABLE ACCENT COLORS ===
    info: str = "green"
    path: str = "#A2AE9D"

    # === NEUTRAL COLORS ===
    border_default: str = "#555555"


# ============================================================================
# PREDEFINED THEMES
# ============================================================================

DEFAULT_THEME = ColorTheme()

# Muted theme for terminals with light backgrounds
LIGHT_THEME = ColorTheme(
    step_command="dark_green",
    step_primary="dark_cyan",
    step_secondary="navy_blue",
    step_tertiary="grey37",
    info="dark_green",
)

THEME_REGISTRY = {
    "default": DEFAULT_THEME,
    "light": LIGHT_THEME,
}


# ============================================================================
# ACTIVE THEME MANAGEMENT
# ============================================================================

_active_theme = DEFAULT_THEME


def set_theme(theme: ColorTheme):
    """Set a new active theme for consoles built after this call.

    Args:
        theme: The ColorTheme to activate
    """
    global _active_theme, devkit_theme
    _active_theme = theme
    devkit_theme = _build_rich_theme(theme)


def load_theme_from_config() -> ColorTheme:
    """Load the theme named by ``cli.theme`` in the tool configuration.

    Returns:
        The loaded ColorTheme instance, or the default theme if the name is unknown
    """
    from devkit.utils.config import get_config_value

    theme_name = get_config_value("cli.theme", "default")
    theme = THEME_REGISTRY.get(theme_name)
    if theme is None:
        logger.warning(f"Unknown theme '{theme_name}', using default")
        theme = DEFAULT_THEME
    return theme


def initialize_theme_from_config():
    """Initialize and apply theme from configuration.

    This should be called at CLI startup to apply the configured theme.
    """
    try:
        set_theme(load_theme_from_config())
        logger.debug("Applied theme from configuration")
    except Exception as e:
        logger.debug(f"Failed to load theme from config: {e}, using default")
        set_theme(DEFAULT_THEME)


def _build_rich_theme(theme: ColorTheme) -> Theme:
    """Build a Rich Theme from a ColorTheme.

    Args:
        theme: The ColorTheme to convert

    Returns:
        Rich Theme object
    """
    return Theme(
        {
            # Status styles
            "success": f"bold {theme.success}",
            "error": f"bold {theme.error}",
            "warning": f"bold {theme.warning}",
            "info": theme.info,
            # Block styles (banners)
            "block.success": "black on green",
            "block.error": "white on red",
            "block.warning": "black on yellow",
            # Step styles, looked up by StepLevel.display_style()
            "step.command": theme.step_command,
            "step.primary": theme.step_primary,
            "step.secondary": theme.step_secondary,
            "step.tertiary": theme.step_tertiary,
            # Component-specific styles
            "path": theme.path,
            "border": theme.border_default,
        }
    )


def build_console(**kwargs) -> Console:
    """Create a console using the active theme.

    Keyword arguments are passed through to :class:`rich.console.Console`,
    which lets tests bind a console to an in-memory file.
    """
    if sys.platform == "win32":
        kwargs.setdefault("legacy_windows", False)
    return Console(theme=devkit_theme, **kwargs)


devkit_theme = _build_rich_theme(_active_theme)


class Styles:
    """Style names for banners, as defined in the Rich theme."""

    BLOCK_SUCCESS = "block.success"
    BLOCK_ERROR = "block.error"
    BLOCK_WARNING = "block.warning"


__all__ = [
    "ColorTheme",
    "DEFAULT_THEME",
    "LIGHT_THEME",
    "THEME_REGISTRY",
    "set_theme",
    "load_theme_from_config",
    "initialize_theme_from_config",
    "build_console",
    "devkit_theme",
    "Styles",
]
