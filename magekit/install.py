"""Installing Go command-line tools and checking their versions."""

from __future__ import annotations

import os
import posixpath
import re
import shutil
import tempfile
from dataclasses import dataclass

from magekit import downloads, gopath, xplat
from magekit.command import command
from magekit.mgx import FatalError
from magekit.versions import Constraint, Version

_SEMVER_RE = re.compile(
    r"v?([0-9]+)(\.[0-9]+)?(\.[0-9]+)?"
    r"(-([0-9A-Za-z\-]+(\.[0-9A-Za-z\-]+)*))?"
    r"(\+([0-9A-Za-z\-]+(\.[0-9A-Za-z\-]+)*))?"
)
_MAJOR_SUFFIX_RE = re.compile(r"v[\d]+")
_MAGE_REPO = "https://github.com/magefile/mage.git"


@dataclass
class EnsurePackageOptions:
    """Options for ensure_package_with.

    allowed_version is a semver range; when empty it defaults to
    ^default_version, or to no constraint when default_version is not a
    version. destination defaults to GOPATH/bin.
    """

    name: str
    default_version: str = ""
    allowed_version: str = ""
    destination: str = ""
    version_command: str = ""


@dataclass
class InstallPackageOptions:
    """Options for install_package_with; version defaults to latest."""

    name: str
    destination: str = ""
    version: str = ""


def _default_version_constraint(default_version: str) -> str:
    trimmed = default_version[1:] if default_version.startswith("v") else default_version
    try:
        return f"^{Version.parse(trimmed)}"
    except ValueError:
        return ""


def _command_name(package: str) -> str:
    name = posixpath.basename(package)
    if name and _MAJOR_SUFFIX_RE.search(name):
        return _command_name(posixpath.dirname(package))
    return name


def ensure_mage(default_version: str) -> None:
    """Install mage unless a compatible version is already on PATH."""
    constraint = _default_version_constraint(default_version)
    if not is_command_available("mage", "-version", constraint):
        install_mage(default_version)


def ensure_package(package: str, default_version: str, *args: str) -> None:
    """Install *package* unless it is on PATH.

    Optional extra arguments: the version command, then the allowed range.
    """
    version_cmd = args[0] if args else ""
    allowed = args[1] if len(args) > 1 else ""
    ensure_package_with(
        EnsurePackageOptions(
            name=package,
            default_version=default_version,
            allowed_version=allowed,
            version_command=version_cmd,
        )
    )


def ensure_package_with(opts: EnsurePackageOptions) -> None:
    """Install the package unless an acceptable version is on PATH."""
    cmd = _command_name(opts.name)
    allowed = opts.allowed_version or _default_version_constraint(opts.default_version)
    if not is_command_available(cmd, opts.version_command, allowed):
        install_package_with(
            InstallPackageOptions(
                name=opts.name,
                destination=opts.destination,
                version=opts.default_version,
            )
        )


def install_package(package: str, version: str) -> None:
    """Install *package* at *version*, or the latest when it is empty."""
    install_package_with(InstallPackageOptions(name=package, version=version))


def install_package_with(opts: InstallPackageOptions) -> None:
    """Install a package with go install, unconditionally."""
    cmd = _command_name(opts.name)
    version = opts.version or "latest"
    if version != "latest" and not version.startswith("v"):
        version = "v" + version

    install = (
        command("go", "install", f"{opts.name}@{version}")
        .env("GO111MODULE=on")
        .in_dir(tempfile.gettempdir())
    )
    if not opts.destination:
        gopath.ensure_gopath_bin()
        print(f"Installing {cmd}@{version} into GOPATH/bin")
    else:
        dest = os.path.abspath(opts.destination)
        install.env("GOBIN=" + dest)
        print(f"Installing {cmd}@{version} into {dest}")
    install.run_e()


def install_mage(version: str) -> None:
    """Clone mage and build it with its bootstrap script."""
    tag = "-b" + version if version else ""
    try:
        tmp = tempfile.mkdtemp(prefix="magefile")
    except OSError as exc:
        raise OSError(f"could not create a temp directory to install mage: {exc}") from exc
    try:
        try:
            command("git", "clone", tag, _MAGE_REPO).collapse_args().in_dir(tmp).run_e()
        except FatalError as exc:
            raise RuntimeError(f"could not clone {_MAGE_REPO}: {exc}") from exc
        try:
            command("go", "run", "bootstrap.go").in_dir(os.path.join(tmp, "mage")).run_e()
        except FatalError as exc:
            raise RuntimeError(f"could not build mage with version info: {exc}") from exc
    finally:
        shutil.rmtree(tmp, ignore_errors=True)


def is_command_available(cmd: str, version_cmd: str, version_constraint: str) -> bool:
    """Return True when *cmd* is on PATH and its version is acceptable."""
    found = shutil.which(cmd)
    if found is None:
        return False
    return check_command_version(found, version_cmd, version_constraint)


def check_command_version(cmd: str, version_cmd: str, version_constraint: str) -> bool:
    """Return True when the version *cmd* reports satisfies the constraint.

    An unparsable version or constraint counts as acceptable.
    """
    scraped = get_command_version(cmd, version_cmd)
    try:
        version = Version.parse(scraped)
    except ValueError:
        return True
    try:
        constraint = Constraint.parse(version_constraint)
    except ValueError:
        return True
    return constraint.check(version)


def get_command_version(cmd: str, version_cmd: str) -> str:
    """Run the version command and return the first semver in its output."""
    pretty = f"{cmd} {version_cmd}" if version_cmd else cmd
    try:
        out = command(cmd, version_cmd).collapse_args().output_e()
    except FatalError as exc:
        raise RuntimeError(
            f"could not determine the installed version of {cmd} with '{pretty}': {exc}"
        ) from exc
    match = _SEMVER_RE.search(out)
    if match is None:
        raise ValueError(f"the output of {pretty} did not include a 3-part semver value: {out}")
    return match.group(0)


def download_to_gopath_bin(src_template: str, name: str, version: str) -> None:
    """Download an executable to GOPATH/bin from a templated URL."""
    downloads.download_to_gopath_bin(
        downloads.DownloadOptions(
            url_template=src_template,
            name=name,
            version=version,
            ext=xplat.file_ext(),
        )
    )