"""Building commands that share configuration, and module-level shortcuts."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from magekit.command import PreparedCommand, command


@dataclass
class CommandBuilder:
    """Creates commands with a common error policy, environment and directory."""

    stop_on_error: bool = False
    env: list[str] = field(default_factory=list)
    directory: str | os.PathLike[str] = ""

    def command(self, cmd: str, *args: str) -> PreparedCommand:
        """Create a command using this builder's configuration."""
        return (
            command(cmd, *args)
            .must(self.stop_on_error)
            .env(*self.env)
            .in_dir(self.directory)
        )

    def run(self, cmd: str, *args: str) -> None:
        """Run, showing stdout only in verbose mode."""
        self.command(cmd, *args).run()

    def run_s(self, cmd: str, *args: str) -> None:
        """Run without writing anything to stdout or stderr."""
        self.command(cmd, *args).run_s()

    def run_e(self, cmd: str, *args: str) -> None:
        """Run, showing the combined output only when it fails."""
        self.command(cmd, *args).run_e()

    def run_v(self, cmd: str, *args: str) -> None:
        """Run, always showing stdout."""
        self.command(cmd, *args).run_v()

    def output(self, cmd: str, *args: str) -> str:
        """Run and return stdout, also showing it in verbose mode."""
        return self.command(cmd, *args).output()

    def output_s(self, cmd: str, *args: str) -> str:
        """Run and return stdout without writing anything."""
        return self.command(cmd, *args).output_s()

    def output_e(self, cmd: str, *args: str) -> str:
        """Run and return stdout, showing the combined output only on failure."""
        return self.command(cmd, *args).output_e()

    def output_v(self, cmd: str, *args: str) -> str:
        """Run and return stdout, always showing it."""
        return self.command(cmd, *args).output_v()


_default = CommandBuilder()


def run(cmd: str, *args: str) -> None:
    """Run, showing stdout only in verbose mode."""
    _default.run(cmd, *args)


def run_s(cmd: str, *args: str) -> None:
    """Run without writing anything to stdout or stderr."""
    _default.run_s(cmd, *args)


def run_e(cmd: str, *args: str) -> None:
    """Run, showing the combined output only when it fails."""
    _default.run_e(cmd, *args)


def run_v(cmd: str, *args: str) -> None:
    """Run, always showing stdout."""
    _default.run_v(cmd, *args)


def output(cmd: str, *args: str) -> str:
    """Run and return stdout, also showing it in verbose mode."""
    return _default.output(cmd, *args)


def output_s(cmd: str, *args: str) -> str:
    """Run and return stdout without writing anything."""
    return _default.output_s(cmd, *args)


def output_e(cmd: str, *args: str) -> str:
    """Run and return stdout, showing the combined output only on failure."""
    return _default.output_e(cmd, *args)


def output_v(cmd: str, *args: str) -> str:
    """Run and return stdout, always showing it."""
    return _default.output_v(cmd, *args)