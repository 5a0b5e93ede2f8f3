"""Prepared external commands with configurable output handling."""

from __future__ import annotations

import codecs
import enum
import io
import os
import shutil
import subprocess
import sys
import threading
from typing import IO, Any

from magekit.mgx import FatalError, must

VERBOSE_ENV = "MAGEFILE_VERBOSE"

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})


def is_verbose() -> bool:
    """Return True when verbose output was requested through the environment."""
    return os.environ.get(VERBOSE_ENV, "") in _TRUE_VALUES


class CommandError(FatalError):
    """A command could not be started or exited with a non-zero code."""

    def __init__(self, code: int, message: str, *, ran: bool) -> None:
        super().__init__(code, message)
        self.ran = ran
        self.output = ""


class _Std(enum.Enum):
    """The process streams, looked up at the moment a command runs."""

    STDOUT = "stdout"
    STDERR = "stderr"


def _resolve(target: Any) -> Any:
    if target is _Std.STDOUT:
        return sys.stdout
    if target is _Std.STDERR:
        return sys.stderr
    return target


class _Tee:
    """Writes text to several writers at once."""

    def __init__(self, *writers: Any) -> None:
        self._writers = writers

    def write(self, text: str) -> int:
        for writer in self._writers:
            resolved = _resolve(writer)
            if resolved is not None:
                resolved.write(text)
        return len(text)

    def flush(self) -> None:
        for writer in self._writers:
            resolved = _resolve(writer)
            if resolved is not None and hasattr(resolved, "flush"):
                resolved.flush()


def _pump(pipe: IO[bytes], writer: Any) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    try:
        for chunk in iter(lambda: pipe.read1(65536), b""):  # type: ignore[attr-defined]
            text = decoder.decode(chunk)
            if text:
                writer.write(text)
        tail = decoder.decode(b"", final=True)
        if tail:
            writer.write(tail)
        if hasattr(writer, "flush"):
            writer.flush()
    finally:
        pipe.close()


def _read_input(stdin: Any) -> bytes | None:
    if stdin is None:
        return None
    if isinstance(stdin, bytes):
        return stdin
    if isinstance(stdin, str):
        return stdin.encode()
    data = stdin.read()
    return data.encode() if isinstance(data, str) else bytes(data)


def _trim(text: str) -> str:
    return text[:-1] if text.endswith("\n") else text


class PreparedCommand:
    """An external command, configured fluently and run on demand.

    Stdout goes to sys.stdout and stderr to sys.stderr unless redirected.
    The environment starts as a copy of the current process environment.
    """

    def __init__(self, argv: list[str]) -> None:
        self.argv = list(argv)
        self.environ = [f"{key}={value}" for key, value in os.environ.items()]
        self.directory: str | os.PathLike[str] = ""
        self.stop_on_error = False
        self._stdin: Any = None
        self._stdout: Any = _Std.STDOUT
        self._stderr: Any = _Std.STDERR

    def __str__(self) -> str:
        return " ".join(self.argv)

    def __repr__(self) -> str:
        return f"PreparedCommand({self.argv!r})"

    def must(self, *args: bool) -> PreparedCommand:
        """Stop the build when the command fails; accepts at most one flag."""
        if not args:
            self.stop_on_error = True
        elif len(args) == 1:
            self.stop_on_error = bool(args[0])
        else:
            must(
                "More than one value for must(stop_on_error) was passed "
                f"to the command {self}"
            )
        return self

    def args(self, *args: str) -> PreparedCommand:
        """Append arguments to the command."""
        self.argv.extend(args)
        return self

    def collapse_args(self) -> PreparedCommand:
        """Drop empty arguments, useful for flags that are sometimes unset."""
        self.argv = [arg for arg in self.argv if arg != ""]
        return self

    def env(self, *args: str) -> PreparedCommand:
        """Add environment variables given as NAME=VALUE strings."""
        self.environ.extend(args)
        return self

    def in_dir(self, directory: str | os.PathLike[str]) -> PreparedCommand:
        """Set the working directory of the command."""
        self.directory = directory
        return self

    def stdin(self, stdin: Any) -> PreparedCommand:
        """Feed the command a str, bytes or readable object."""
        self._stdin = stdin
        return self

    def stdout(self, stdout: Any) -> PreparedCommand:
        """Send the command's stdout to a text writer, or discard it with None."""
        self._stdout = stdout
        return self

    def stderr(self, stderr: Any) -> PreparedCommand:
        """Send the command's stderr to a text writer, or discard it with None."""
        self._stderr = stderr
        return self

    def silent(self) -> PreparedCommand:
        """Discard both stdout and stderr."""
        self._stdout = None
        self._stderr = None
        return self

    def _environment(self) -> dict[str, str]:
        env: dict[str, str] = {}
        for entry in self.environ:
            key, _, value = entry.partition("=")
            env[key] = value
        return env

    def _spawn(self) -> int:
        if not self.argv:
            raise OSError("no command given")
        stdout = _resolve(self._stdout)
        stderr = _resolve(self._stderr)
        merge = stdout is not None and stdout is stderr
        stdin_data = _read_input(self._stdin)

        if merge:
            stderr_mode = subprocess.STDOUT
        elif stderr is None:
            stderr_mode = subprocess.DEVNULL
        else:
            stderr_mode = subprocess.PIPE

        proc = subprocess.Popen(
            self.argv,
            cwd=self.directory or None,
            env=self._environment(),
            stdin=subprocess.DEVNULL if stdin_data is None else subprocess.PIPE,
            stdout=subprocess.DEVNULL if stdout is None else subprocess.PIPE,
            stderr=stderr_mode,
        )
        pumps = []
        if proc.stdout is not None:
            pumps.append(threading.Thread(target=_pump, args=(proc.stdout, stdout), daemon=True))
        if proc.stderr is not None:
            pumps.append(threading.Thread(target=_pump, args=(proc.stderr, stderr), daemon=True))
        for pump in pumps:
            pump.start()

        if proc.stdin is not None and stdin_data is not None:
            try:
                proc.stdin.write(stdin_data)
            except BrokenPipeError:
                pass
            try:
                proc.stdin.close()
            except BrokenPipeError:
                pass

        code = proc.wait()
        for pump in pumps:
            pump.join()
        return code

    def exec(self) -> tuple[bool, int]:
        """Run the command with the configured outputs.

        Returns (ran, exit code) on success and raises CommandError on
        failure, or FatalError when the command was marked with must().
        """
        if is_verbose():
            path = (shutil.which(self.argv[0]) if self.argv else None) or (
                self.argv[0] if self.argv else ""
            )
            print(f"exec: {path} {self}", file=sys.stderr)

        try:
            code = self._spawn()
        except OSError as exc:
            err = CommandError(1, f'failed to run "{self}: {exc}"', ran=False)
        else:
            if code == 0:
                return True, 0
            err = CommandError(code, f'running "{self}" failed with exit code {code}', ran=True)

        if self.stop_on_error:
            must(err)
        raise err

    def run(self) -> None:
        """Run, showing stdout only in verbose mode; stderr goes to sys.stderr."""
        self._stdout = _Std.STDOUT if is_verbose() else None
        self.exec()

    def run_v(self) -> None:
        """Run, always showing stdout."""
        self._stdout = _Std.STDOUT
        self.exec()

    def run_e(self) -> None:
        """Run, showing the combined output on sys.stderr only when it fails."""
        combined = io.StringIO()
        self._stdout = combined
        self._stderr = combined
        try:
            self.exec()
        except FatalError:
            sys.stderr.write(combined.getvalue())
            raise

    def run_s(self) -> None:
        """Run without writing anything to stdout or stderr."""
        self.silent().exec()

    def _collect(self, captured: io.StringIO, combined: io.StringIO | None = None) -> str:
        try:
            self.exec()
        except FatalError as exc:
            if combined is not None:
                sys.stderr.write(combined.getvalue())
            exc.output = _trim(captured.getvalue())  # type: ignore[attr-defined]
            raise
        return _trim(captured.getvalue())

    def output(self) -> str:
        """Run and return stdout, also showing it in verbose mode."""
        captured = io.StringIO()
        self._stdout = _Tee(captured, _Std.STDOUT) if is_verbose() else captured
        return self._collect(captured)

    def output_v(self) -> str:
        """Run and return stdout, always showing it."""
        captured = io.StringIO()
        self._stdout = _Tee(captured, _Std.STDOUT)
        return self._collect(captured)

    def output_e(self) -> str:
        """Run and return stdout, showing the combined output only on failure."""
        captured = io.StringIO()
        combined = io.StringIO()
        self._stdout = _Tee(captured, combined)
        self._stderr = combined
        return self._collect(captured, combined)

    def output_s(self) -> str:
        """Run and return stdout without writing anything."""
        captured = io.StringIO()
        self._stdout = captured
        self._stderr = None
        return self._collect(captured)


def command(cmd: str, *args: str) -> PreparedCommand:
    """Create a command whose stdout and stderr go to the process streams."""
    return PreparedCommand([cmd, *args])