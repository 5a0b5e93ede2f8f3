"""Downloading tools that are shipped inside archives."""

from __future__ import annotations

import dataclasses
import logging
import os
import posixpath
import shutil
import tarfile
import zipfile
from dataclasses import dataclass, field

from magekit import downloads, xplat

_logger = logging.getLogger(__name__)

_TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tbz2", ".tar.xz", ".txz")


@dataclass
class DownloadArchiveOptions(downloads.DownloadOptions):
    """Download settings for a binary that lives inside an archive.

    archive_extensions maps an OS name (linux, darwin, windows, ...) to the
    archive extension used for it. target_file_template is the path of the
    binary inside the archive and supports the same fields as url_template.
    """

    archive_extensions: dict[str, str] = field(default_factory=dict)
    target_file_template: str = ""


def download_to_gopath_bin(opts: DownloadArchiveOptions) -> None:
    """Download an archive and install the binary inside it into GOPATH/bin."""
    goos = downloads._goos()
    ext = opts.archive_extensions.get(goos, "")
    if not ext:
        raise ValueError(
            f"no archive file extension was specified for the current GOOS ({goos})"
        )
    opts = dataclasses.replace(opts, ext=ext)
    if opts.hook is None:
        opts = dataclasses.replace(opts, hook=extract_binary_from_archive_hook(opts))
    downloads.download_to_gopath_bin(opts)


def _normalize(name: str) -> str:
    return posixpath.normpath(name.replace("\\", "/")).lstrip("/")


def _safe_dest(out_dir: str, member: str) -> str:
    if ".." in member.split("/"):
        raise OSError(f"refusing to extract {member} outside of {out_dir}")
    return os.path.join(out_dir, *member.split("/"))


def _extract(archive_file: str, target: str, out_dir: str) -> None:
    wanted = _normalize(target)
    lowered = archive_file.lower()
    if lowered.endswith(".zip"):
        with zipfile.ZipFile(archive_file) as zf:
            for info in zf.infolist():
                if not info.is_dir() and _normalize(info.filename) == wanted:
                    dest = _safe_dest(out_dir, wanted)
                    os.makedirs(os.path.dirname(dest), exist_ok=True)
                    with zf.open(info) as src, open(dest, "wb") as dst:
                        shutil.copyfileobj(src, dst)
                    return
        return
    if lowered.endswith(_TAR_SUFFIXES):
        with tarfile.open(archive_file, "r:*") as tf:
            for member in tf.getmembers():
                if member.isfile() and _normalize(member.name) == wanted:
                    dest = _safe_dest(out_dir, wanted)
                    os.makedirs(os.path.dirname(dest), exist_ok=True)
                    src = tf.extractfile(member)
                    if src is None:
                        return
                    with src, open(dest, "wb") as dst:
                        shutil.copyfileobj(src, dst)
                    return
        return
    raise ValueError(f"unsupported archive format: {archive_file}")


def extract_binary_from_archive_hook(opts: DownloadArchiveOptions) -> downloads.PostDownloadHook:
    """Return a hook that pulls the target binary out of the downloaded archive."""

    def hook(archive_file: str) -> str:
        out_dir = os.path.dirname(archive_file)
        render_opts = dataclasses.replace(opts, ext=xplat.file_ext())
        try:
            target = downloads.render_template(opts.target_file_template, render_opts)
        except ValueError as exc:
            raise ValueError(
                f"error rendering target_file_template {opts.target_file_template!r}: {exc}"
            ) from exc

        _logger.info("extracting %s from %s...", target, archive_file)
        try:
            _extract(archive_file, target, out_dir)
        except (tarfile.TarError, zipfile.BadZipFile, OSError) as exc:
            raise OSError(f"unable to unpack {archive_file}: {exc}") from exc

        bin_file = os.path.join(out_dir, *_normalize(target).split("/"))
        if not os.path.exists(bin_file):
            raise FileNotFoundError(f"could not find {target} in the archive")
        return bin_file

    return hook