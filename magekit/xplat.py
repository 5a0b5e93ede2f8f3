"""Cross-platform helpers for PATH handling and shell detection."""

from __future__ import annotations

import logging
import os
import sys

_logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "") in _TRUE_VALUES


def in_path(value: str) -> bool:
    """Return True when *value* is one of the entries of PATH."""
    value = value.rstrip(os.sep)
    entries = os.environ.get("PATH", "").split(os.pathsep)
    return any(entry.rstrip(os.sep) == value for entry in entries)


def ensure_in_path(value: str) -> None:
    """Prepend *value* to PATH unless it is already there."""
    if not in_path(value):
        prepend_path(value)


def prepend_path(value: str) -> None:
    """Put *value* at the front of PATH, exporting it on Azure CI too."""
    current = os.environ.get("PATH", "")
    os.environ["PATH"] = f"{value}{os.pathsep}{current}"
    _logger.info("Added %s to $PATH", value)

    if _env_flag("TF_BUILD"):
        print(f"##vso[task.prependpath]{value}")


def file_ext() -> str:
    """Return the default executable file extension for this OS."""
    return ".exe" if sys.platform == "win32" else ""


def get_msystem() -> str:
    """Return the current MSys2 subsystem in lower case, or an empty string."""
    return os.environ.get("MSYSTEM", "").lower()


def detect_shell() -> str:
    """Guess the surrounding shell from environment variables.

    Returns the MSys2 subsystem, the base name of $SHELL, "powershell",
    "cmd" or "posix".
    """
    msystem = get_msystem()
    if msystem:
        return msystem

    shell = os.environ.get("SHELL", "")
    if shell:
        trimmed = shell.rstrip("/\\") or shell
        return os.path.basename(trimmed).lower()

    ps_modules = os.environ.get("PSModulePath", "").lower()
    if ps_modules:
        home = os.path.expanduser("~")
        if home != "~" and home.lower() in ps_modules:
            return "powershell"

    if sys.platform == "win32":
        return "cmd"

    return "posix"