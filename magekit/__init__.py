"""Helpers for build scripts: commands, file operations, tool installs, downloads and CI integration."""

__version__ = "0.1.0"