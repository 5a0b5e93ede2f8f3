"""Downloading tool binaries from templated URLs."""

from __future__ import annotations

import logging
import os
import platform
import re
import shutil
import sys
import tempfile
import urllib.error
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass, field

from magekit import fileops, gopath, xplat

_logger = logging.getLogger(__name__)

PostDownloadHook = Callable[[str], str]

_ACTION = re.compile(r"\{\{(.*?)\}\}", re.S)
_FIELD = re.compile(r"\s*\.([A-Za-z_][A-Za-z0-9_]*)\s*")

_GOOS_PREFIXES = (
    ("win", "windows"),
    ("cygwin", "windows"),
    ("linux", "linux"),
    ("darwin", "darwin"),
    ("freebsd", "freebsd"),
    ("openbsd", "openbsd"),
    ("netbsd", "netbsd"),
    ("dragonfly", "dragonfly"),
    ("aix", "aix"),
    ("sunos", "solaris"),
)

_GOARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i486": "386",
    "i586": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
    "arm": "arm",
    "ppc64le": "ppc64le",
    "ppc64": "ppc64",
    "s390x": "s390x",
    "riscv64": "riscv64",
}


def _goos() -> str:
    for prefix, name in _GOOS_PREFIXES:
        if sys.platform.startswith(prefix):
            return name
    return sys.platform


def _goarch() -> str:
    machine = platform.machine().lower()
    return _GOARCH.get(machine, machine)


@dataclass
class DownloadOptions:
    """Settings for downloading a file.

    url_template may use {{.GOOS}}, {{.GOARCH}}, {{.EXT}} and {{.VERSION}}.
    os_replacement and arch_replacement map the current OS or architecture
    to the keyword used in the download URL. hook is called with the path of
    the downloaded file and returns the path of the binary to install.
    """

    url_template: str
    name: str
    version: str = ""
    ext: str = ""
    os_replacement: dict[str, str] = field(default_factory=dict)
    arch_replacement: dict[str, str] = field(default_factory=dict)
    hook: PostDownloadHook | None = None


def render_template(template: str, opts: DownloadOptions) -> str:
    """Expand {{.GOOS}}, {{.GOARCH}}, {{.EXT}} and {{.VERSION}} in *template*."""
    pieces: list[tuple[str, str]] = []
    pos = 0
    for match in _ACTION.finditer(template):
        field_match = _FIELD.fullmatch(match.group(1))
        if field_match is None:
            raise ValueError(
                f"error parsing {opts.url_template} as a template: "
                f"unsupported action {match.group(0)!r}"
            )
        pieces.append((template[pos:match.start()], field_match.group(1)))
        pos = match.end()
    rest = template[pos:]
    if "{{" in rest:
        raise ValueError(f"error parsing {opts.url_template} as a template: unclosed action")

    goos = _goos()
    goarch = _goarch()
    data = {
        "GOOS": opts.os_replacement.get(goos, goos),
        "GOARCH": opts.arch_replacement.get(goarch, goarch),
        "EXT": opts.ext,
        "VERSION": opts.version,
    }

    rendered: list[str] = []
    for text, name in pieces:
        if name not in data:
            raise ValueError(
                f"error rendering {opts.url_template} as a template with data: "
                f"{data!r}: can't evaluate field {name}"
            )
        rendered.append(text)
        rendered.append(data[name])
    rendered.append(rest)
    return "".join(rendered)


def download_to_gopath_bin(opts: DownloadOptions) -> None:
    """Download a binary into GOPATH/bin, creating it and adding it to PATH."""
    gopath.ensure_gopath_bin()
    download(gopath.get_gopath_bin(), opts)


def download(dest_dir: str | os.PathLike[str], opts: DownloadOptions) -> None:
    """Download the file at the rendered URL into *dest_dir* as opts.name."""
    src = render_template(opts.url_template, opts)
    _logger.info("Downloading %s...", src)

    try:
        tmp_dir = tempfile.mkdtemp(prefix="magekit")
    except OSError as exc:
        raise OSError(f"could not create temporary directory: {exc}") from exc

    try:
        tmp_file = os.path.join(tmp_dir, os.path.basename(src.rstrip("/")) or opts.name)
        _fetch(src, tmp_file)

        tmp_bin = opts.hook(tmp_file) if opts.hook is not None else tmp_file

        try:
            os.chmod(tmp_bin, 0o755)
        except OSError as exc:
            raise OSError(f"could not make {tmp_bin} executable: {exc}") from exc

        dest_path = os.path.join(os.fspath(dest_dir), opts.name + xplat.file_ext())
        try:
            fileops.copy(tmp_bin, dest_path)
        except OSError as exc:
            raise OSError(f"error copying {tmp_bin} to {dest_path}: {exc}") from exc
    finally:
        shutil.rmtree(tmp_dir, ignore_errors=True)


def _fetch(src: str, tmp_file: str) -> None:
    try:
        response = urllib.request.urlopen(src)
    except urllib.error.HTTPError as exc:
        exc.close()
        raise ConnectionError(
            f"error downloading {src} ({exc.code}): {exc.code} {exc.reason}"
        ) from exc
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise ConnectionError(f"could not resolve {src}: {exc}") from exc

    with response:
        try:
            fd = os.open(
                tmp_file,
                os.O_CREAT | os.O_RDWR | os.O_TRUNC | getattr(os, "O_BINARY", 0),
                0o755,
            )
        except OSError as exc:
            raise OSError(f"could not open {tmp_file}: {exc}") from exc
        with os.fdopen(fd, "wb") as handle:
            try:
                shutil.copyfileobj(response, handle)
            except OSError as exc:
                raise ConnectionError(f"error downloading {src}: {exc}") from exc