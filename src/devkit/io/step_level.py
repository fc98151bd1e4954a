"""Step levels and session verbosity.

Command execution is broken up into nested steps. Each step level has a
verbosity threshold: output produced inside a step only reaches the terminal
when the session verbosity meets that threshold. Everything else is folded
into a progress indicator.

    None < Command < Primary < Secondary < Tertiary

Examples:
    >>> StepLevel.PRIMARY.previous()
    <StepLevel.COMMAND: 1>
    >>> StepLevel.PRIMARY.output_in_verbosity(Verbosity.NORMAL)
    False
"""

from enum import IntEnum

from devkit.base.errors import ContractViolationError


class Verbosity(IntEnum):
    """Session verbosity, as selected with ``-q``/``-v``/``-vv``/``-vvv``."""

    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    VERY_VERBOSE = 3
    DEBUG = 4

    @classmethod
    def from_flags(cls, verbose: int = 0, quiet: bool = False) -> "Verbosity":
        """Map CLI flags to a verbosity level."""
        if quiet:
            return cls.QUIET
        return cls(min(cls.NORMAL + verbose, cls.DEBUG))


class StepLevel(IntEnum):
    """Nesting depth of a step in command execution."""

    # For internal use only - the state between commands
    NONE = 0

    # The command execution as a whole. do_execute() starts and ends with this level.
    COMMAND = 1

    # Each step of command execution. Hidden in normal verbosity.
    PRIMARY = 2

    # Larger sub-steps inside primary steps. Only shown in very verbose mode.
    SECONDARY = 3

    # Big chunks of mostly unnecessary output (composer, sake). Debug mode only.
    TERTIARY = 4

    def previous(self) -> "StepLevel":
        """Get the level this one nests inside."""
        if self is StepLevel.NONE:
            raise ContractViolationError('Step level "none" has no previous level.')
        return StepLevel(self.value - 1)

    def next(self) -> "StepLevel":
        """Get the level that nests inside this one."""
        if self is StepLevel.TERTIARY:
            raise ContractViolationError('Step level "tertiary" has no next level.')
        return StepLevel(self.value + 1)

    def has_next(self) -> bool:
        return self is not StepLevel.TERTIARY

    def verbosity_threshold(self) -> Verbosity:
        """Get the verbosity at which this step's messages reach the terminal."""
        return _STEP_TABLE[self][0]

    def display_style(self) -> str:
        """Get the rich style name used for direct output at this level."""
        style = _STEP_TABLE[self][1]
        if style is None:
            raise ContractViolationError('Step level "none" should never have output.')
        return style

    def output_in_verbosity(self, verbosity: int) -> bool:
        """Returns True if this step's messages output at the given verbosity."""
        return verbosity >= self.verbosity_threshold()

    def is_at_least(self, other: "StepLevel") -> bool:
        return self.value >= other.value

    @property
    def label(self) -> str:
        return self.name.lower()


# level -> (verbosity threshold, style)
_STEP_TABLE: dict[StepLevel, tuple[Verbosity, str | None]] = {
    StepLevel.NONE: (Verbosity.NORMAL, None),
    StepLevel.COMMAND: (Verbosity.NORMAL, "step.command"),
    StepLevel.PRIMARY: (Verbosity.VERBOSE, "step.primary"),
    StepLevel.SECONDARY: (Verbosity.VERY_VERBOSE, "step.secondary"),
    StepLevel.TERTIARY: (Verbosity.DEBUG, "step.tertiary"),
}
