"""Workspace model for :mod:`keel`."""

from __future__ import annotations

from .clean import MetadataFormatError, clean_cargo_metadata
from .files import (
    FileHandle,
    FileSystem,
    LocalFile,
    LocalFileSystem,
    current_file_system,
    use_file_system,
)
from .metadata import (
    CargoExecutableNotFoundError,
    CargoMetadataError,
    CargoMetadataInvocationError,
    CargoMetadataParseError,
    load_cargo_metadata,
)
from .models import (
    CleanCargoMetadata,
    DependencyNode,
    Origin,
    OriginUndefinedError,
    Package,
    RawPackage,
    RawTarget,
    StdCrate,
    Target,
    TargetKind,
    Workspace,
    WorkspaceModelError,
    build_workspace,
    load_workspace,
)
from .stdlib import DEFAULT_STD_CRATES, discover_std_crates

__all__ = [
    "DEFAULT_STD_CRATES",
    "CargoExecutableNotFoundError",
    "CargoMetadataError",
    "CargoMetadataInvocationError",
    "CargoMetadataParseError",
    "CleanCargoMetadata",
    "DependencyNode",
    "FileHandle",
    "FileSystem",
    "LocalFile",
    "LocalFileSystem",
    "MetadataFormatError",
    "Origin",
    "OriginUndefinedError",
    "Package",
    "RawPackage",
    "RawTarget",
    "StdCrate",
    "Target",
    "TargetKind",
    "Workspace",
    "WorkspaceModelError",
    "build_workspace",
    "clean_cargo_metadata",
    "current_file_system",
    "discover_std_crates",
    "load_cargo_metadata",
    "load_workspace",
    "use_file_system",
]
