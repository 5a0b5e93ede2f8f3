"""Locating and preparing GOPATH and GOPATH/bin."""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from collections.abc import Iterator

from magekit import xplat


def _default_gopath() -> str:
    return os.path.join(os.path.expanduser("~"), "go")


def gopath() -> str:
    """Return the current GOPATH, falling back to ~/go."""
    return os.environ.get("GOPATH") or _default_gopath()


def get_gopath_bin() -> str:
    """Return GOPATH/bin."""
    return os.path.join(gopath(), "bin")


def ensure_gopath_bin() -> None:
    """Create GOPATH/bin if needed and make sure it is in PATH."""
    bin_dir = get_gopath_bin()
    try:
        os.makedirs(bin_dir, mode=0o755, exist_ok=True)
    except OSError as exc:
        raise OSError(f"could not create GOPATH/bin at {bin_dir}: {exc}") from exc
    xplat.ensure_in_path(get_gopath_bin())


@contextlib.contextmanager
def use_temp_gopath() -> Iterator[str]:
    """Point GOPATH at a temporary directory for the duration of the block.

    The default GOPATH/bin is removed from PATH meanwhile. On exit the
    directory is deleted, PATH is restored and GOPATH is set to the default.
    """
    old_path = os.environ.get("PATH", "")
    tmp = tempfile.mkdtemp(prefix="magekit")

    def cleanup() -> None:
        shutil.rmtree(tmp, ignore_errors=True)
        os.environ["GOPATH"] = _default_gopath()
        os.environ["PATH"] = old_path

    default_bin = os.path.join(_default_gopath(), "bin")
    os.environ["PATH"] = old_path.replace(default_bin, "")
    os.environ["GOPATH"] = tmp

    try:
        ensure_gopath_bin()
    except OSError:
        cleanup()
        raise

    try:
        yield tmp
    finally:
        cleanup()