"""Utility helpers for the :mod:`keel` package."""

from __future__ import annotations

from .path import normalise_workspace_root, path_to_url, url_to_path

__all__ = ["normalise_workspace_root", "path_to_url", "url_to_path"]
