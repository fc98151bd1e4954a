"""Dev kit commands.

Each command is a :class:`~devkit.commands.base.BaseCommand` subclass. The
click wrappers in :mod:`devkit.cli` only parse options and hand them over.
"""

from .base import FAILURE, SUCCESS, BaseCommand, CommandState

__all__ = ["BaseCommand", "CommandState", "FAILURE", "SUCCESS"]
