"""Copying and moving files and directories, with glob support."""

from __future__ import annotations

import enum
import glob
import logging
import os
import shutil
import stat
from collections.abc import Iterator

_logger = logging.getLogger(__name__)

StrPath = "str | os.PathLike[str]"


class CopyOption(enum.IntFlag):
    """Flags that change how copy() behaves."""

    DEFAULT = 0
    NO_OVERWRITE = 1
    RECURSIVE = 2


class MoveOption(enum.IntFlag):
    """Flags that change how move() behaves."""

    DEFAULT = 0
    NO_OVERWRITE = 1
    RECURSIVE = 2


def _resolve_sources(src: str) -> list[str]:
    items = sorted(glob.glob(src))
    if not items:
        raise FileNotFoundError(f"no such file or directory '{src}'")
    return items


def _check_parent(dest: str) -> None:
    # When copying to /tmp/foo, /tmp must already exist.
    os.stat(os.path.dirname(dest) or ".")


def _into_directory(src: str, dest: str) -> str:
    if os.path.isdir(dest):
        return os.path.join(dest, os.path.basename(os.path.normpath(src)))
    return dest


def _walk(root: str) -> Iterator[str]:
    yield root
    if stat.S_ISDIR(os.lstat(root).st_mode):
        for name in sorted(os.listdir(root)):
            yield from _walk(os.path.join(root, name))


def copy(src: str | os.PathLike[str], dest: str | os.PathLike[str], *args: CopyOption) -> None:
    """Copy the files or directories matching *src* to *dest*.

    *src* may be a glob pattern. When *dest* is an existing directory, each
    item is copied into it. Directories are only copied with their contents
    when CopyOption.RECURSIVE is given. File owner and group are not copied.
    """
    src = os.fspath(src)
    dest = os.fspath(dest)
    items = _resolve_sources(src)

    options = CopyOption.DEFAULT
    for opt in args:
        options |= CopyOption(opt)

    _check_parent(dest)
    for item in items:
        _copy_item(item, dest, options)


def _copy_item(src: str, dest: str, options: CopyOption) -> None:
    dest = _into_directory(src, dest)
    recursive = CopyOption.RECURSIVE in options
    overwrite = CopyOption.NO_OVERWRITE not in options

    paths = _walk(src) if recursive else iter([src])
    for path in paths:
        rel = os.path.relpath(path, src)
        dest_path = os.path.normpath(os.path.join(dest, rel))
        info = os.lstat(path)
        if stat.S_ISDIR(info.st_mode):
            os.makedirs(dest_path, mode=stat.S_IMODE(info.st_mode), exist_ok=True)
        else:
            _copy_file(path, dest_path, overwrite)


def _copy_file(src: str, dest: str, overwrite: bool) -> None:
    mode = stat.S_IMODE(os.stat(src).st_mode)
    flags = os.O_CREAT | os.O_WRONLY | os.O_TRUNC | getattr(os, "O_BINARY", 0)
    if not overwrite:
        flags |= os.O_EXCL

    with open(src, "rb") as source:
        try:
            fd = os.open(dest, flags, mode)
        except FileExistsError:
            if not overwrite:
                return
            raise
        with os.fdopen(fd, "wb") as target:
            try:
                shutil.copyfileobj(source, target)
            except OSError as exc:
                raise OSError(f"error copying {src} to {dest}: {exc}") from exc


def move(src: str | os.PathLike[str], dest: str | os.PathLike[str], *args: MoveOption) -> None:
    """Move the files or directories matching *src* to *dest*.

    *src* may be a glob pattern. When *dest* is an existing directory, each
    item is moved into it. Existing destinations are replaced unless
    MoveOption.NO_OVERWRITE is given, in which case they are left alone.
    """
    src = os.fspath(src)
    dest = os.fspath(dest)
    items = _resolve_sources(src)

    options = MoveOption.DEFAULT
    for opt in args:
        options |= MoveOption(opt)

    _check_parent(dest)
    for item in items:
        _move_one(item, _into_directory(item, dest), options)


def _remove_all(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path, ignore_errors=True)
    else:
        try:
            os.remove(path)
        except OSError:
            pass


def _move_one(src: str, dest: str, options: MoveOption) -> None:
    try:
        dest_info: os.stat_result | None = os.stat(dest)
    except FileNotFoundError:
        dest_info = None

    if dest_info is not None:
        if MoveOption.NO_OVERWRITE in options:
            _logger.info("%s not overwritten", dest)
            return
        # Like mv, refuse to replace a directory with a file.
        if stat.S_ISDIR(dest_info.st_mode) and not stat.S_ISDIR(os.stat(src).st_mode):
            raise NotADirectoryError(f"rename {src} to {dest}: not a directory")
        _remove_all(dest)

    _logger.info("%s -> %s", src, dest)
    os.rename(src, dest)