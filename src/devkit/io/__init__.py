"""Step-aware terminal output."""

from .output import CommandOutput, ProgressIndicator
from .step_level import StepLevel, Verbosity

__all__ = [
    "CommandOutput",
    "ProgressIndicator",
    "StepLevel",
    "Verbosity",
]
