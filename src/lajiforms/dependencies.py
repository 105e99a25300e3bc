"""Runtime dependency checks for CLI commands."""

from __future__ import annotations

import importlib.util

from lajiforms.exceptions import DependencyError

# Distribution name -> import name, per CLI command.
COMMAND_DEPENDENCIES: dict[str, dict[str, str]] = {
    "compile": {"httpx": "httpx", "jsonpatch": "jsonpatch"},
    "get": {"httpx": "httpx", "jsonpatch": "jsonpatch"},
}


def _is_module_available(module_name: str) -> bool:
    """Check whether a module can be imported."""
    return importlib.util.find_spec(module_name) is not None


def ensure_cli_dependencies(command: str) -> None:
    """Validate the runtime dependencies of one CLI command.

    Catalog, taxonomy and store lookups go through httpx; base forms and
    extensions are patched with jsonpatch.

    Args:
        command (str): CLI sub-command name.

    Raises:
        DependencyError: If one or more required modules are missing.
    """
    required = COMMAND_DEPENDENCIES.get(command, {})
    missing = [package for package, module in required.items() if not _is_module_available(module)]
    if missing:
        raise DependencyError(missing_package=missing, message=command)
