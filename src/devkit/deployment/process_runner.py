"""Running host processes with step-aware output.

Every side effect on the containers goes through :class:`ProcessRunner`.
An :class:`OutputMode` chosen per invocation decides whether the process
output is streamed live through :class:`~devkit.io.output.CommandOutput`,
folded into the progress indicator, or captured and handed back.

Process failures are results, not exceptions: callers get a
:class:`Success` or :class:`Captured` and decide how to report them.
"""

import os
import queue
import shlex
import subprocess
import sys
import threading
from dataclasses import dataclass
from enum import Enum

from rich.markup import escape

from devkit.base.errors import ContractViolationError
from devkit.io.output import CommandOutput
from devkit.io.step_level import Verbosity
from devkit.utils.logger import get_logger

logger = get_logger("docker")

# Seconds between progress heartbeats while output is suppressed
HEARTBEAT_INTERVAL = 1.0


class OutputMode(Enum):
    """What happens to the output of a process."""

    # Captured and returned. Only echoed (as debug lines) in debug mode.
    RETURN = "return"

    # Streamed only when the session verbosity is debug
    DEBUG = "debug"

    # Streamed if the current step level outputs at the session verbosity
    NORMAL = "normal"

    # Always streamed, except in quiet mode
    ALWAYS = "always"


@dataclass(frozen=True)
class ProcessInvocation:
    """A single process to run."""

    argv: tuple[str, ...]
    cwd: str | None = None
    interactive: bool = False
    output_mode: OutputMode = OutputMode.NORMAL
    merge_stderr: bool = False
    # Secrets to mask when the command line is shown
    redact: tuple[str, ...] = ()

    def __post_init__(self):
        if not self.argv:
            raise ContractViolationError("Cannot run a process without a command.")
        object.__setattr__(self, "argv", tuple(str(arg) for arg in self.argv))

    @property
    def command_line(self) -> str:
        line = shlex.join(self.argv)
        for secret in self.redact:
            if secret:
                line = line.replace(secret, "****")
        return line


@dataclass(frozen=True)
class Success:
    """Outcome of a process whose output was not captured."""

    ok: bool

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True)
class Captured:
    """Output of a process run in :attr:`OutputMode.RETURN` mode.

    Always truthy, so that "no output" and "failed" are never confused.
    Check :attr:`succeeded` for the exit status.
    """

    text: str
    stderr: str = ""
    exit_code: int = 0

    def __bool__(self) -> bool:
        return True

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


ProcessResult = Success | Captured

# Sentinel put on the queue by a reader thread when its stream closes
_EOF = object()


def tty_supported() -> bool:
    """Returns True if a child process can be attached to our terminal."""
    if os.name == "nt":
        return False
    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        return False
    return os.path.exists("/dev/tty") and os.access("/dev/tty", os.R_OK | os.W_OK)


class ProcessRunner:
    """Runs processes, routing their output through a :class:`CommandOutput`."""

    def __init__(self, output: CommandOutput):
        self.output = output

    def should_stream(self, mode: OutputMode) -> bool:
        """Returns True if output in this mode goes live to the terminal."""
        if mode is OutputMode.RETURN:
            # Streamed output can't be captured, so never stream data we must return
            return False
        if mode is OutputMode.ALWAYS:
            return self.output.verbosity > Verbosity.QUIET
        if mode is OutputMode.DEBUG:
            return self.output.is_debug
        return self.output.step_will_output()

    def will_use_tty(self, invocation: ProcessInvocation) -> bool:
        return invocation.interactive and self.should_stream(invocation.output_mode) and tty_supported()

    def run(self, invocation: ProcessInvocation) -> ProcessResult:
        """Run a process to completion. There is no timeout."""
        output = self.output
        output.writeln(
            f'Running command in docker container: "{escape(invocation.command_line)}"',
            verbosity=Verbosity.DEBUG,
        )

        if self.will_use_tty(invocation):
            exit_code = self._run_with_tty(invocation)
            stdout = stderr = ""
        else:
            exit_code, stdout, stderr = self._run_piped(invocation)

        if exit_code != 0:
            output.writeln(f"Docker exit code: {exit_code}", verbosity=Verbosity.DEBUG)

        if invocation.output_mode is OutputMode.RETURN:
            return Captured(text=stdout, stderr=stderr, exit_code=exit_code)
        return Success(exit_code == 0)

    def _run_with_tty(self, invocation: ProcessInvocation) -> int:
        # The child owns the terminal, so nothing of ours may be drawn over it
        self.output.clear_progress_bar()
        try:
            return subprocess.run(list(invocation.argv), cwd=invocation.cwd).returncode
        except OSError as e:
            logger.debug(f"Could not start {invocation.argv[0]}: {e}")
            return 127

    def _run_piped(self, invocation: ProcessInvocation) -> tuple[int, str, str]:
        output = self.output
        mode = invocation.output_mode
        streaming = self.should_stream(mode)

        try:
            process = subprocess.Popen(
                list(invocation.argv),
                cwd=invocation.cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            logger.debug(f"Could not start {invocation.argv[0]}: {e}")
            return 127, "", str(e)

        chunks: queue.Queue = queue.Queue()
        readers = [
            threading.Thread(target=_drain, args=(process.stdout, "stdout", chunks), daemon=True),
            threading.Thread(target=_drain, args=(process.stderr, "stderr", chunks), daemon=True),
        ]
        for reader in readers:
            reader.start()

        captured_out: list[str] = []
        captured_err: list[str] = []
        open_streams = len(readers)

        while open_streams:
            try:
                item = chunks.get(timeout=HEARTBEAT_INTERVAL)
            except queue.Empty:
                if not streaming and not output.is_debug:
                    output.advance_progress_bar()
                continue

            if item is _EOF:
                open_streams -= 1
                continue

            stream_name, data = item
            if stream_name == "stdout" or invocation.merge_stderr:
                captured_out.append(data)
            else:
                captured_err.append(data)

            if streaming:
                output.write(escape(data), verbosity=_stream_verbosity(mode))
            elif mode is OutputMode.RETURN and output.is_debug:
                output.write(f"Docker output: {escape(data)}", verbosity=Verbosity.DEBUG)
            else:
                output.advance_progress_bar()

        for reader in readers:
            reader.join()
        exit_code = process.wait()
        return exit_code, "".join(captured_out), "".join(captured_err)


def _drain(stream, name: str, chunks: queue.Queue) -> None:
    try:
        for line in iter(stream.readline, ""):
            chunks.put((name, line))
    finally:
        stream.close()
        chunks.put(_EOF)


def _stream_verbosity(mode: OutputMode) -> int | None:
    if mode is OutputMode.ALWAYS:
        return Verbosity.NORMAL
    if mode is OutputMode.DEBUG:
        return Verbosity.DEBUG
    # Follow the current step level
    return None
