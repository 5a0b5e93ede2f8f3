"""Interaction with the CI system the build is running on."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod

AZURE_CI_ENV_VAR = "TF_BUILD"
GITHUB_CI_ENV_VAR = "GITHUB_ACTIONS"
GITHUB_VARIABLES_ENV_VAR = "GITHUB_ENV"
GITHUB_PATH_ENV_VAR = "GITHUB_PATH"

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "") in _TRUE_VALUES


class BuildProvider(ABC):
    """Common interface to a CI build provider."""

    @abstractmethod
    def set_env(self, name: str, value: str) -> None:
        """Export an environment variable to later steps of the pipeline."""

    @abstractmethod
    def prepend_path(self, value: str) -> None:
        """Add *value* to the front of PATH for later steps of the pipeline."""

    @abstractmethod
    def is_detected(self) -> bool:
        """Return True when the build runs on this provider."""

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class AzureBuildProvider(BuildProvider):
    """Azure DevOps Pipelines."""

    def set_env(self, name: str, value: str) -> None:
        print(f"##vso[task.setvariable variable={name}]{value}")

    def prepend_path(self, value: str) -> None:
        print(f"##vso[task.prependpath]{value}")

    def is_detected(self) -> bool:
        return _env_flag(AZURE_CI_ENV_VAR)


class GitHubBuildProvider(BuildProvider):
    """GitHub Actions."""

    def set_env(self, name: str, value: str) -> None:
        self._append_line(GITHUB_VARIABLES_ENV_VAR, f"{name}={value}")

    def prepend_path(self, value: str) -> None:
        self._append_line(GITHUB_PATH_ENV_VAR, value)

    def is_detected(self) -> bool:
        return _env_flag(GITHUB_CI_ENV_VAR)

    @staticmethod
    def _append_line(env_var: str, line: str) -> None:
        path = os.environ.get(env_var, "")
        try:
            fd = os.open(path, os.O_CREAT | os.O_APPEND | os.O_WRONLY, 0o660)
        except OSError as exc:
            raise OSError(f"could not open the file referenced by {env_var}: {exc}") from exc
        try:
            with os.fdopen(fd, "a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except OSError as exc:
            raise OSError(f"could not write to the file referenced by {env_var}: {exc}") from exc


class NoopBuildProvider(BuildProvider):
    """A build provider that does nothing."""

    def set_env(self, name: str, value: str) -> None:
        return None

    def prepend_path(self, value: str) -> None:
        return None

    def is_detected(self) -> bool:
        return False


def detect_build_provider(*args: BuildProvider) -> tuple[BuildProvider, bool]:
    """Find the build provider in use.

    Extra providers given as arguments are checked before the built-in
    Azure and GitHub providers. Returns a NoopBuildProvider and False when
    nothing is detected.
    """
    for provider in (*args, AzureBuildProvider(), GitHubBuildProvider()):
        if provider.is_detected():
            return provider, True
    return NoopBuildProvider(), False