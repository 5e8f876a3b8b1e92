"""Helpers shared by command implementations."""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

if typ.TYPE_CHECKING:
    from keel.config import KeelConfig
    from keel.workspace import Workspace

LOGGER = logging.getLogger(__name__)


def load_configured_workspace(
    workspace_root: Path, configuration: KeelConfig
) -> Workspace:
    """Load the workspace and merge in the configured standard library."""
    from keel.workspace import discover_std_crates, load_workspace

    workspace = load_workspace(workspace_root)
    stdlib = configuration.stdlib
    if stdlib.src is None:
        return workspace
    std_crates = discover_std_crates(
        resolve_against_root(workspace_root, stdlib.src), stdlib.crates
    )
    LOGGER.debug("Adding %d standard library crates", len(std_crates))
    return workspace.with_stdlib(std_crates)


def resolve_against_root(workspace_root: Path, path: Path | str) -> Path:
    """Return ``path`` with relative values anchored at ``workspace_root``."""
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return candidate
    return Path(workspace_root) / candidate


def describe_packages(workspace: Workspace) -> str:
    """Return a human-friendly package count summary."""
    count = len(workspace.packages)
    label = "package" if count == 1 else "packages"
    return f"{count} {label}"
