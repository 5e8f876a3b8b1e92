"""Locate standard-library crates inside a ``rust-src`` checkout.

The standard library is not part of ``cargo metadata``; it is merged into a
:class:`~keel.workspace.models.Workspace` through
:meth:`~keel.workspace.models.Workspace.with_stdlib` so that crate-root and
name lookups treat ``core`` or ``std`` like any other package.
"""

from __future__ import annotations

import logging
import typing as typ
from collections import abc as cabc
from pathlib import Path

from tomlkit import parse
from tomlkit.exceptions import TOMLKitError

from keel.utils import normalise_workspace_root, path_to_url
from keel.workspace.models import StdCrate, WorkspaceModelError

LOGGER = logging.getLogger(__name__)

DEFAULT_STD_CRATES: typ.Final[tuple[str, ...]] = (
    "core",
    "alloc",
    "std",
    "proc_macro",
    "test",
)

DEFAULT_LIB_PATH = "src/lib.rs"


def discover_std_crates(
    src_root: Path | str,
    crates: cabc.Iterable[str] = DEFAULT_STD_CRATES,
) -> tuple[StdCrate, ...]:
    """Return descriptors for every requested crate found under ``src_root``.

    Both the ``library/<name>`` layout and the older ``src/lib<name>`` layout
    are recognised. Crates that cannot be located are skipped.
    """
    root = normalise_workspace_root(src_root)
    found: list[StdCrate] = []
    for name in crates:
        crate = _find_std_crate(root, name)
        if crate is None:
            LOGGER.debug("Standard library crate %r not found under %s", name, root)
            continue
        found.append(crate)
    return tuple(found)


def _find_std_crate(root: Path, name: str) -> StdCrate | None:
    """Return the :class:`StdCrate` for ``name`` if its sources are present."""
    for package_dir in (root / name, root / f"lib{name}"):
        manifest_path = package_dir / "Cargo.toml"
        if not manifest_path.is_file():
            continue
        crate_root = package_dir / _manifest_lib_path(manifest_path)
        if not crate_root.is_file():
            return None
        return StdCrate(
            package_root_url=path_to_url(package_dir),
            name=name,
            crate_root_url=path_to_url(crate_root),
        )
    return None


def _manifest_lib_path(manifest_path: Path) -> str:
    """Return the ``[lib] path`` declared in ``manifest_path`` or the default."""
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        message = f"failed to read manifest {manifest_path}: {exc}"
        raise WorkspaceModelError(message) from exc
    try:
        document = parse(text)
    except TOMLKitError as exc:
        message = f"failed to parse manifest {manifest_path}: {exc}"
        raise WorkspaceModelError(message) from exc
    lib_table = document.get("lib")
    if not isinstance(lib_table, cabc.Mapping):
        return DEFAULT_LIB_PATH
    lib_path = lib_table.get("path")
    if isinstance(lib_path, str) and lib_path:
        return lib_path
    return DEFAULT_LIB_PATH
