"""Step-aware command output.

:class:`CommandOutput` wraps a rich console in a layer that knows which step
of a command is running. Output produced inside a step is only written when
the session verbosity meets that step's threshold; anything suppressed is
folded into a single transient progress indicator instead, so quiet sessions
still show that work is happening.

One ``CommandOutput`` is created per CLI invocation and shared by every
command and service involved in it.
"""

from collections.abc import Callable, Iterable
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.padding import Padding
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.text import Text

from devkit.base.errors import StepProtocolError
from devkit.io.step_level import StepLevel, Verbosity
from devkit.io.styles import Styles, build_console


class ProgressIndicator:
    """A transient progress line standing in for suppressed output.

    Shows the elapsed time, a 10-wide indeterminate bar and the last message.
    ``steps`` counts every advance and never goes down.
    """

    def __init__(self, console: Console, visible: bool = True):
        self.console = console
        self.visible = visible
        self.steps = 0
        self.message = ""
        self._progress: Progress | None = None
        self._task_id = None
        self._running = False

    @property
    def is_displayed(self) -> bool:
        return self._running

    def display(self) -> None:
        """Draw the indicator, creating it on first use."""
        if self._progress is None:
            self._progress = Progress(
                TimeElapsedColumn(),
                BarColumn(bar_width=10),
                TextColumn("{task.description}"),
                console=self.console,
                transient=True,
            )
            self._task_id = self._progress.add_task(escape(self.message), total=None)
        if self.visible and not self._running:
            self._progress.start()
            self._running = True

    def advance(self, message: str | None = None) -> None:
        self.display()
        if message is not None:
            self.message = message
        self.steps += 1
        self._progress.update(self._task_id, advance=1, description=escape(self.message))

    def clear(self) -> None:
        """Remove the indicator from the terminal. Advancing again redraws it."""
        if self._running:
            self._progress.stop()
            self._running = False

    def finish(self) -> None:
        self.clear()
        self._progress = None
        self._task_id = None


class CommandOutput:
    """Console output that is aware of command steps and session verbosity.

    Args:
        verbosity: Session verbosity selected on the command line
        interactive: Whether the user can be prompted for input
        console: Console to write to. Defaults to a themed stdout console.
    """

    def __init__(
        self,
        verbosity: int = Verbosity.NORMAL,
        interactive: bool = True,
        console: Console | None = None,
    ):
        self.console = console or build_console()
        self.interactive = interactive
        self._verbosity = Verbosity(verbosity)
        self._step_level = StepLevel.NONE
        self._progress: ProgressIndicator | None = None

    # ------------------------------------------------------------------
    # Verbosity
    # ------------------------------------------------------------------

    @property
    def verbosity(self) -> Verbosity:
        return self._verbosity

    @verbosity.setter
    def verbosity(self, value: int) -> None:
        self._verbosity = Verbosity(value)

    @property
    def is_quiet(self) -> bool:
        return self._verbosity == Verbosity.QUIET

    @property
    def is_verbose(self) -> bool:
        return self._verbosity >= Verbosity.VERBOSE

    @property
    def is_very_verbose(self) -> bool:
        return self._verbosity >= Verbosity.VERY_VERBOSE

    @property
    def is_debug(self) -> bool:
        return self._verbosity >= Verbosity.DEBUG

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @property
    def current_step(self) -> StepLevel:
        return self._step_level

    @property
    def progress(self) -> ProgressIndicator | None:
        """The live progress indicator, if one has been created."""
        return self._progress

    def step_will_output(self, level: StepLevel | None = None) -> bool:
        """Returns True if the step level outputs at the current verbosity.

        If no level is passed in, the current step level is used.
        """
        if level is None:
            level = self._step_level
        return level.output_in_verbosity(self._verbosity)

    def start_step(self, level: StepLevel, message: str) -> None:
        """Start a step, outputting a message.

        Different step levels output at different verbosities, see
        :meth:`StepLevel.verbosity_threshold`.

        Raises:
            StepProtocolError: If ``level`` is None or does not directly nest
                inside the current step.
        """
        if level is StepLevel.NONE:
            raise StepProtocolError('Cannot start "none" step.')
        needed = level.previous()
        if self._step_level is not needed:
            raise StepProtocolError(f"Must be on a {needed.label} step to start a {level.label} step.")

        self._try_end_progress_bar(self._step_level)

        if self.step_will_output(level):
            self._step_message(level, message)
        else:
            self.advance_progress_bar(message)

        self._step_level = level

    def end_step(self, level: StepLevel, message: str = "", success: bool = True) -> None:
        """End a step, outputting a message.

        Ending the command step successfully prints a success banner. A failed
        step with a message always prints an error banner.

        Raises:
            StepProtocolError: If ``level`` is None or has not been started.
        """
        if level is StepLevel.NONE:
            raise StepProtocolError('Cannot end "none" step.')
        if level > self._step_level:
            raise StepProtocolError(f"Cannot end {level.label} step we haven't started yet.")

        new_level = level.previous()
        self._try_end_progress_bar(new_level)

        if success:
            if level is StepLevel.COMMAND:
                self.success(message)
            elif self.step_will_output(new_level):
                self._step_message(level, message)
            else:
                self.advance_progress_bar(message)
        elif message:
            self.error(message)

        self._step_level = new_level

    def reset(self) -> None:
        """Drop any progress indicator and leave all steps."""
        if self._progress is not None:
            self._progress.finish()
            self._progress = None
        self._step_level = StepLevel.NONE

    def _step_message(self, level: StepLevel, message: str) -> None:
        if not message:
            return
        self.console.print(self._style_as(level, message))

    @staticmethod
    def _style_as(level: StepLevel, message: str) -> str:
        style = level.display_style()
        return f"[{style}]{message}[/{style}]"

    # ------------------------------------------------------------------
    # Gated output
    # ------------------------------------------------------------------

    def _verbosity_for_output(self, verbosity: int | None) -> int:
        if verbosity is not None:
            return verbosity
        return self._step_level.verbosity_threshold()

    def _auto_style(self, message: str, verbosity: int | None) -> str:
        if verbosity is None and self._step_level is not StepLevel.NONE and self._step_level.has_next():
            return self._style_as(self._step_level.next(), message)
        return message

    def write(self, messages: str | Iterable[str], verbosity: int | None = None, newline: bool = False) -> None:
        """Write messages, if the verbosity allows.

        Args:
            messages: Rich markup, or several lines of it
            verbosity: Output at this verbosity, bypassing the step level
            newline: Whether to end each message with a newline
        """
        if self._verbosity >= self._verbosity_for_output(verbosity):
            self.clear_progress_bar()
            if not isinstance(messages, str):
                messages = "\n".join(messages)
            self.console.print(self._auto_style(messages, verbosity), end="\n" if newline else "")
        else:
            self.advance_progress_bar()

    def writeln(self, messages: str | Iterable[str], verbosity: int | None = None) -> None:
        self.write(messages, verbosity, newline=True)

    def block(
        self,
        messages: str | list[str],
        label: str | None = None,
        style: str | None = None,
        escape_markup: bool = True,
        verbosity: int | None = None,
    ) -> None:
        """Write messages as a padded block of text, if the verbosity allows."""
        if self._verbosity >= self._verbosity_for_output(verbosity):
            self.clear_progress_bar()
            if verbosity is None and self._step_level is not StepLevel.NONE and self._step_level.has_next():
                style = style or self._step_level.next().display_style()
            self._print_block(messages, label, style, escape_markup)
        else:
            self.advance_progress_bar()

    def warning_block(self, messages: str | list[str], escape_markup: bool = True) -> None:
        """A shortcut for :meth:`block` formatted as a warning."""
        self.block(messages, "WARNING", Styles.BLOCK_WARNING, escape_markup, verbosity=Verbosity.NORMAL)

    def table(self, headers: list[str], rows: list[list[Any]], verbosity: int | None = None) -> None:
        """Write a horizontal table: one header per row, one column per record."""
        if self._verbosity >= self._verbosity_for_output(verbosity):
            self.clear_progress_bar()
            table = Table(show_header=False, border_style="border")
            table.add_column(style="bold")
            for _ in rows:
                table.add_column()
            for index, header in enumerate(headers):
                table.add_row(header, *(_cell(row[index]) if index < len(row) else "" for row in rows))
            self.console.print(table)
        else:
            self.advance_progress_bar()

    # ------------------------------------------------------------------
    # Ungated output
    # ------------------------------------------------------------------

    def error(self, messages: str | list[str]) -> None:
        """Output an error banner, regardless of step level and verbosity."""
        self.clear_progress_bar()
        self._print_block(messages, "ERROR", Styles.BLOCK_ERROR)

    def warning(self, messages: str | list[str]) -> None:
        """Output a warning banner, regardless of step level and verbosity."""
        self.clear_progress_bar()
        self._print_block(messages, "WARNING", Styles.BLOCK_WARNING)

    def success(self, messages: str | list[str]) -> None:
        """Output a success banner, regardless of step level."""
        if self.is_quiet:
            return
        self.clear_progress_bar()
        self._print_block(messages, "OK", Styles.BLOCK_SUCCESS)

    def ask(
        self,
        question: str,
        default: str | None = None,
        validator: Callable[[str], Any] | None = None,
    ) -> Any:
        """Prompt for and return user input.

        The question may hold rich markup, which is rendered to plain text
        for the prompt. The validator may transform the answer. Raising
        ``ValueError`` from it shows the message and asks again.
        Non-interactive sessions get the default without prompting.
        """
        self.clear_progress_bar()
        if not self.interactive:
            return default

        def value_proc(value: str) -> Any:
            if validator is None:
                return value
            try:
                return validator(value)
            except ValueError as e:
                raise click.UsageError(str(e)) from e

        return click.prompt(Text.from_markup(question).plain, default=default, value_proc=value_proc)

    def _print_block(
        self,
        messages: str | list[str],
        label: str | None,
        style: str | None,
        escape_markup: bool = True,
    ) -> None:
        if isinstance(messages, str):
            messages = [messages]
        lines = [escape(m) if escape_markup else m for m in messages] or [""]
        if label:
            prefix = f"[{label}] "
            indent = " " * len(prefix)
            lines = [escape(prefix) + lines[0]] + [indent + line for line in lines[1:]]
        text = Text.from_markup("\n".join(lines))
        self.console.print()
        self.console.print(Padding(text, (1, 1), style=style or "", expand=True))
        self.console.print()

    # ------------------------------------------------------------------
    # Progress indicator
    # ------------------------------------------------------------------

    def advance_progress_bar(self, message: str | None = None) -> None:
        """Advance the progress indicator, starting a new one if necessary."""
        if self._progress is None:
            # Quiet sessions still count progress, they just never draw it
            self._progress = ProgressIndicator(self.console, visible=not self.is_quiet)
        self._progress.advance(message)

    def clear_progress_bar(self) -> None:
        """Clear the progress indicator (if any) from the terminal."""
        if self._progress is not None:
            self._progress.clear()

    def _try_end_progress_bar(self, level: StepLevel) -> None:
        # Only drop the indicator when moving onto a step with visible output
        if self._progress is not None and self.step_will_output(level):
            self._progress.finish()
            self._progress = None


def _cell(value: Any) -> Text | str:
    if isinstance(value, Text):
        return value
    return "" if value is None else escape(str(value))
