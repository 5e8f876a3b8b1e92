"""Keel CLI package.

This package initialises the Cyclopts application and exposes the
:func:`keel.cli.main` entry point for process launchers. The workspace model
itself lives in :mod:`keel.workspace`.
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
