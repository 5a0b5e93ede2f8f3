"""Recording what the current process writes to stdout or stderr."""

from __future__ import annotations

import io
import sys
from types import TracebackType
from typing import TextIO


class Capture:
    """Replaces sys.stdout or sys.stderr with a buffer until released."""

    def __init__(self, stream_name: str) -> None:
        if stream_name == "stdout":
            original: TextIO = sys.stdout
        elif stream_name == "stderr":
            original = sys.stderr
        else:
            raise ValueError(f"cannot capture {stream_name!r}")
        self._stream_name = stream_name
        self._original = original
        self._buffer = io.StringIO()
        self._released = False
        self._install(self._buffer)

    def _install(self, stream: TextIO) -> None:
        if self._stream_name == "stdout":
            sys.stdout = stream
        else:
            sys.stderr = stream

    def release(self) -> None:
        """Put the original stream back. Calling it again does nothing."""
        if self._released:
            return
        self._install(self._original)
        self._released = True

    def output(self) -> str:
        """Release the stream and return everything written meanwhile."""
        self.release()
        return self._buffer.getvalue()

    def __enter__(self) -> Capture:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


def record_stdout() -> Capture:
    """Start recording what is written to sys.stdout."""
    return Capture("stdout")


def record_stderr() -> Capture:
    """Start recording what is written to sys.stderr."""
    return Capture("stderr")