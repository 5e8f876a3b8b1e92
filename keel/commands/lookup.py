"""Crate-root and crate-name lookups against a workspace."""

from __future__ import annotations

import typing as typ

from keel.commands._shared import load_configured_workspace, resolve_against_root
from keel.workspace import LocalFile

if typ.TYPE_CHECKING:
    from pathlib import Path

    from keel.config import KeelConfig
    from keel.workspace import Workspace


def crate_root(
    workspace_root: Path,
    configuration: KeelConfig,
    path: Path,
    *,
    workspace: Workspace | None = None,
) -> str | None:
    """Describe the target rooted at ``path``, or ``None`` if there is none.

    A relative ``path`` is taken relative to ``workspace_root``.
    """
    if workspace is None:
        workspace = load_configured_workspace(workspace_root, configuration)
    target = workspace.find_target_for_crate_root_file(
        LocalFile(resolve_against_root(workspace_root, path))
    )
    if target is None:
        return None
    return f"{target.package.name}::{target.name} ({target.kind.value})"


def find_crate(
    workspace_root: Path,
    configuration: KeelConfig,
    name: str,
    *,
    workspace: Workspace | None = None,
) -> str | None:
    """Return the crate root URL of the library called ``name``.

    Hyphens in ``name`` are accepted and normalised the way Cargo does.
    """
    if workspace is None:
        workspace = load_configured_workspace(workspace_root, configuration)
    target = workspace.find_crate_by_name(name.replace("-", "_"))
    return None if target is None else target.crate_root_url
