"""
Pytest configuration and shared test utilities.

This module provides shared fixtures for all dev kit tests:

- ``make_output``: a :class:`CommandOutput` bound to an in-memory console
- ``transcript``: everything a recording output has written so far
- ``fake_env``: a minimal environment on disk under ``tmp_path``
- ``RecordingRunner``: a process runner that records invocations instead of
  spawning them
"""

import io

import pytest

from devkit.deployment import runtime_helper
from devkit.deployment.environment import ENV_META_DIR, Environment
from devkit.deployment.process_runner import Captured, OutputMode, ProcessRunner, Success
from devkit.io.output import CommandOutput
from devkit.io.step_level import Verbosity
from devkit.io.styles import build_console
from devkit.utils.config import reset_config

COMPOSE_FILE = """\
services:
  webserver:
    container_name: {name}_webserver
    ports:
      - "8080:80"
  database:
    image: mysql:8.0
    container_name: {name}_database
"""


# ===================================================================
# Isolation
# ===================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep the user's config, env vars and detected container tool out of tests."""
    monkeypatch.setenv("DEVKIT_CONFIG", str(tmp_path / "no-such-config.yml"))
    for var in ("DT_PHP_VERSIONS", "DT_DEFAULT_HOST_SUFFIX", "CONTAINER_RUNTIME", "SS_DK_GITHUB_TOKEN"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    runtime_helper.reset_container_tool_cache()
    yield
    reset_config()
    runtime_helper.reset_container_tool_cache()


# ===================================================================
# Output
# ===================================================================


def recording_console():
    """A themed console writing plain text to memory."""
    return build_console(file=io.StringIO(), width=200, color_system=None, force_terminal=False)


@pytest.fixture
def make_output():
    """Factory for outputs that record to memory.

    Examples::

        output = make_output(Verbosity.VERBOSE)
        output.writeln("hello")
        assert "hello" in transcript(output)
    """

    def _make(verbosity=Verbosity.NORMAL, interactive=False) -> CommandOutput:
        return CommandOutput(verbosity=verbosity, interactive=interactive, console=recording_console())

    return _make


def transcript(output: CommandOutput) -> str:
    """Everything written to a recording output's console."""
    return output.console.file.getvalue()


# ===================================================================
# Environments
# ===================================================================


def create_env_dir(root, name="mysite", uid=1000, compose=True):
    """Lay out a created environment on disk and return its project root."""
    project = root / name
    docker_dir = project / ENV_META_DIR / "docker"
    docker_dir.mkdir(parents=True)
    (docker_dir / ".env").write_text(f"WWW_DATA_UID={uid}\n")
    if compose:
        (docker_dir / "docker-compose.yml").write_text(COMPOSE_FILE.format(name=name))
    return project


@pytest.fixture
def fake_env(tmp_path) -> Environment:
    """An existing environment named ``mysite`` with a webserver on port 8080."""
    return Environment(create_env_dir(tmp_path))


# ===================================================================
# Processes
# ===================================================================


class RecordingRunner(ProcessRunner):
    """Records every invocation and answers from a script instead of spawning.

    ``results`` is consumed in order; once it runs out every invocation
    succeeds (with empty text in RETURN mode).
    """

    def __init__(self, output, results=None):
        super().__init__(output)
        self.invocations = []
        self.results = list(results or [])

    def run(self, invocation):
        self.invocations.append(invocation)
        if self.results:
            result = self.results.pop(0)
        else:
            result = True
        if invocation.output_mode is OutputMode.RETURN:
            if isinstance(result, Captured):
                return result
            return Captured(text="", exit_code=0 if result else 1)
        if isinstance(result, Success):
            return result
        return Success(bool(result))

    @property
    def argvs(self):
        return [list(invocation.argv) for invocation in self.invocations]

    @property
    def commands(self):
        """The shell command of each ``exec`` invocation (its last argument)."""
        return [invocation.argv[-1] for invocation in self.invocations if invocation.argv[1] == "exec"]


@pytest.fixture
def runner_factory():
    return RecordingRunner
