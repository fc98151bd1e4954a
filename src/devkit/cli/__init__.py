"""Command-line interface for the dev kit.

Commands:
    - env:create, env:destroy, env:details: Manage whole environments
    - docker:up, docker:down, docker:start, docker:stop, docker:restart,
      docker:exec: Drive an environment's containers
    - database:dump, database:restore: Move data in and out of the database
    - infrastructure:phpconfig: Change PHP settings

Architecture:
    Uses Click for command-line parsing with a group-based structure.
    Commands are lazy-loaded for fast startup time, and each is a thin
    wrapper around a class in :mod:`devkit.commands`.
"""

from .main import cli, main

__all__ = ["cli", "main"]
