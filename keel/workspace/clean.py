"""Flatten raw ``cargo metadata`` output into :class:`CleanCargoMetadata`."""

from __future__ import annotations

import typing as typ
from pathlib import Path

import msgspec

from keel.utils import path_to_url
from keel.workspace.models import (
    CleanCargoMetadata,
    DependencyNode,
    RawPackage,
    RawTarget,
    TargetKind,
    WorkspaceModelError,
)

if typ.TYPE_CHECKING:
    from collections import abc as cabc

_SINGLE_TARGET_KINDS: typ.Final[dict[str, TargetKind]] = {
    "bin": TargetKind.BIN,
    "test": TargetKind.TEST,
    "example": TargetKind.EXAMPLE,
    "bench": TargetKind.BENCH,
    "proc-macro": TargetKind.LIB,
}


class MetadataFormatError(WorkspaceModelError):
    """Raised when ``cargo metadata`` output does not have the expected shape."""


class _CargoTarget(msgspec.Struct, frozen=True, kw_only=True):
    name: str
    kind: tuple[str, ...]
    src_path: str


class _CargoPackage(msgspec.Struct, frozen=True, kw_only=True):
    id: str
    name: str
    version: str
    manifest_path: str
    source: str | None = None
    targets: tuple[_CargoTarget, ...] = ()


class _CargoNodeDep(msgspec.Struct, frozen=True, kw_only=True):
    pkg: str


class _CargoNode(msgspec.Struct, frozen=True, kw_only=True):
    id: str
    deps: tuple[_CargoNodeDep, ...] | None = None
    dependencies: tuple[str, ...] = ()

    @property
    def dependency_ids(self) -> tuple[str, ...]:
        """Prefer the detailed ``deps`` list, falling back to ``dependencies``."""
        if self.deps is None:
            return self.dependencies
        return tuple(dep.pkg for dep in self.deps)


class _CargoResolve(msgspec.Struct, frozen=True, kw_only=True):
    nodes: tuple[_CargoNode, ...] = ()


class _CargoMetadata(msgspec.Struct, frozen=True, kw_only=True):
    packages: tuple[_CargoPackage, ...]
    workspace_members: tuple[str, ...] = ()
    resolve: _CargoResolve | None = None


def clean_cargo_metadata(payload: cabc.Mapping[str, typ.Any]) -> CleanCargoMetadata:
    """Convert a ``cargo metadata`` JSON object into :class:`CleanCargoMetadata`."""
    try:
        metadata = msgspec.convert(payload, type=_CargoMetadata)
    except msgspec.ValidationError as exc:
        message = f"unexpected cargo metadata format: {exc}"
        raise MetadataFormatError(message) from exc
    members = set(metadata.workspace_members)
    packages = tuple(
        _clean_package(package, is_workspace_member=package.id in members)
        for package in metadata.packages
    )
    return CleanCargoMetadata(
        packages=packages,
        dependencies=_clean_dependencies(metadata),
    )


def _clean_package(package: _CargoPackage, *, is_workspace_member: bool) -> RawPackage:
    """Return the flat form of ``package``."""
    return RawPackage(
        url=path_to_url(Path(package.manifest_path).parent),
        name=package.name,
        version=package.version,
        targets=tuple(
            RawTarget(
                url=path_to_url(target.src_path),
                name=target.name,
                kind=_target_kind(target.kind),
            )
            for target in package.targets
        ),
        source=package.source,
        is_workspace_member=is_workspace_member,
    )


def _target_kind(kinds: cabc.Sequence[str]) -> TargetKind:
    """Map cargo's target kind list onto :class:`TargetKind`."""
    if len(kinds) == 1 and kinds[0] in _SINGLE_TARGET_KINDS:
        return _SINGLE_TARGET_KINDS[kinds[0]]
    if any(kind.endswith("lib") for kind in kinds):
        return TargetKind.LIB
    return TargetKind.UNKNOWN


def _clean_dependencies(metadata: _CargoMetadata) -> tuple[DependencyNode, ...]:
    """Return dependency positions for every package, parallel to ``packages``."""
    if metadata.resolve is None:
        return ()
    index_by_id = {package.id: index for index, package in enumerate(metadata.packages)}
    ids_by_package = {node.id: node.dependency_ids for node in metadata.resolve.nodes}
    return tuple(
        DependencyNode(
            dependencies_indexes=tuple(
                index_by_id[dependency_id]
                for dependency_id in ids_by_package.get(package.id, ())
                if dependency_id in index_by_id
            )
        )
        for package in metadata.packages
    )
