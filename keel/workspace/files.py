"""File handles consumed by the workspace model.

The model never touches file contents. It only needs to turn a stable
``file://`` URL into a live handle, ask whether a handle is still valid, and
obtain the canonical (symlink-free) form of a handle. Hosts embedding
:mod:`keel` can supply their own :class:`FileSystem`; the default resolves
URLs against the local disk.
"""

from __future__ import annotations

import contextlib
import contextvars
import typing as typ
from pathlib import Path

from keel.utils import url_to_path


@typ.runtime_checkable
class FileHandle(typ.Protocol):
    """A resolvable reference to a file supplied by the host."""

    @property
    def url(self) -> str:
        """Return the stable identifier of the file."""
        ...

    @property
    def is_valid(self) -> bool:
        """Return ``True`` while the handle still refers to an existing file."""
        ...

    @property
    def canonical_file(self) -> FileHandle | None:
        """Return the canonical handle for this file, if it can be resolved."""
        ...


class FileSystem(typ.Protocol):
    """Host service mapping URLs to :class:`FileHandle` instances."""

    def find_file_by_url(self, url: str) -> FileHandle | None:
        """Return a handle for ``url`` or ``None`` when it cannot be resolved."""
        ...


class LocalFile:
    """A :class:`FileHandle` backed by a path on the local disk."""

    __slots__ = ("_path",)

    def __init__(self, path: Path | str) -> None:
        """Store the absolute form of ``path``."""
        self._path = Path(path).expanduser().absolute()

    @property
    def path(self) -> Path:
        """Return the absolute path this handle was created with."""
        return self._path

    @property
    def url(self) -> str:
        """Return the ``file://`` URL of the path as spelled."""
        return self._path.as_uri()

    @property
    def is_valid(self) -> bool:
        """Return ``True`` when the file still exists."""
        return self._path.exists()

    @property
    def canonical_file(self) -> LocalFile | None:
        """Return a handle with every symlink resolved, or ``None`` if missing."""
        try:
            resolved = self._path.resolve(strict=True)
        except (OSError, RuntimeError):
            return None
        return LocalFile(resolved)

    def __eq__(self, other: object) -> bool:
        """Compare handles by spelled path."""
        if not isinstance(other, LocalFile):
            return NotImplemented
        return self._path == other._path

    def __hash__(self) -> int:
        """Hash by spelled path."""
        return hash(self._path)

    def __repr__(self) -> str:
        """Return a debugging representation."""
        return f"LocalFile({str(self._path)!r})"


class LocalFileSystem:
    """Resolve ``file://`` URLs to :class:`LocalFile` handles."""

    def find_file_by_url(self, url: str) -> LocalFile | None:
        """Return a handle when ``url`` names an existing local file."""
        path = url_to_path(url)
        if path is None or not path.exists():
            return None
        return LocalFile(path)


_DEFAULT_FILE_SYSTEM: typ.Final[LocalFileSystem] = LocalFileSystem()

_active_file_system: contextvars.ContextVar[FileSystem] = contextvars.ContextVar(
    "keel_active_file_system"
)


@contextlib.contextmanager
def use_file_system(file_system: FileSystem) -> typ.Iterator[None]:
    """Set ``file_system`` as the active file system for the current context."""
    token = _active_file_system.set(file_system)
    try:
        yield
    finally:
        _active_file_system.reset(token)


def current_file_system() -> FileSystem:
    """Return the active file system, defaulting to the local disk."""
    return _active_file_system.get(_DEFAULT_FILE_SYSTEM)
