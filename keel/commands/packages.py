"""List the packages of a workspace together with their origins."""

from __future__ import annotations

import typing as typ

from keel.commands._shared import describe_packages, load_configured_workspace

if typ.TYPE_CHECKING:
    from pathlib import Path

    from keel.config import KeelConfig
    from keel.workspace import Package, Workspace


def run(
    workspace_root: Path,
    configuration: KeelConfig,
    *,
    workspace: Workspace | None = None,
) -> str:
    """Return one ``name version origin`` line per package."""
    if workspace is None:
        workspace = load_configured_workspace(workspace_root, configuration)
    ordered = sorted(workspace.packages, key=lambda pkg: (pkg.origin, pkg.name))
    lines = [_format_package(package) for package in ordered]
    lines.append(describe_packages(workspace))
    return "\n".join(lines)


def _format_package(package: Package) -> str:
    version = package.version or "-"
    return f"{package.name} {version} {package.origin.name.lower()}"
