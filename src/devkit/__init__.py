"""Silverstripe Dev Kit.

Command-line tooling for creating, inspecting and tearing down dockerised
local development environments for Silverstripe CMS projects.

This package contains:
- Step-aware console output and progress reporting
- Container process execution (docker/podman compose)
- Environment discovery and PHP service helpers
- The command lifecycle and the concrete commands
- Configuration and logging
"""

# Version information
__version__ = "0.3.0"

__all__ = ["__version__"]
