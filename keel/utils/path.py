"""Filesystem helpers used across :mod:`keel`."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlsplit
from urllib.request import url2pathname

from plumbum import local

FILE_SCHEME = "file"


def normalise_workspace_root(value: Path | str | None) -> Path:
    """Return an absolute workspace path with ``~`` expanded."""
    if value is None:
        return Path.cwd().resolve()
    candidate = local.path(str(value))
    expanded = Path(str(candidate)).expanduser()
    return expanded.resolve(strict=False)


def path_to_url(value: Path | str) -> str:
    """Return the ``file://`` URL for ``value`` after resolving it."""
    return Path(value).expanduser().resolve(strict=False).as_uri()


def url_to_path(url: str) -> Path | None:
    """Return the local path named by ``url`` or ``None`` for other schemes."""
    parts = urlsplit(url)
    if parts.scheme != FILE_SCHEME:
        return None
    if parts.netloc not in {"", "localhost"}:
        return None
    return Path(url2pathname(parts.path))
