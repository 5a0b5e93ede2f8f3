"""Helpers for stopping a build target when something goes wrong."""

from __future__ import annotations


class FatalError(Exception):
    """An error that should end the build with the given exit code."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        return self.args[0]


def must(err: BaseException | str | None) -> None:
    """Raise a FatalError with exit code 1 when *err* is set.

    Handy in build targets that should stop at the first failure. Helper
    functions should raise their own errors instead, so callers can react.
    """
    if err is None:
        return
    if isinstance(err, BaseException):
        raise FatalError(1, str(err)) from err
    raise FatalError(1, str(err))