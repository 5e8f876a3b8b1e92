"""Command implementations for the :mod:`keel` CLI."""

from __future__ import annotations

from . import lookup, packages

__all__ = ["lookup", "packages"]
