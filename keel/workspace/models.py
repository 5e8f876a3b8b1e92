"""Workspace graph models and builders for :mod:`keel`."""

from __future__ import annotations

import dataclasses as dc
import enum
import logging
import typing as typ
from collections import abc as cabc

import msgspec

from keel.workspace.files import current_file_system

if typ.TYPE_CHECKING:
    from pathlib import Path

    from keel.workspace.files import FileHandle

LOGGER = logging.getLogger(__name__)

TARGET_UNBOUND_MSG = "target {name!r} has not been attached to a package"
TARGET_REBOUND_MSG = "target {name!r} already belongs to package {package!r}"


class WorkspaceModelError(RuntimeError):
    """Raised when the workspace model cannot be constructed."""


class OriginUndefinedError(WorkspaceModelError):
    """Raised when a package leaves origin classification without a value."""

    def __init__(self, package_name: str) -> None:
        """Name the package that was left unclassified."""
        super().__init__(f"origin is undefined for package {package_name!r}")
        self.package_name = package_name


class Origin(enum.IntEnum):
    """Provenance of a package relative to the workspace, most trusted first."""

    WORKSPACE = 0
    DEPENDENCY = 1
    STDLIB = 2
    TRANSITIVE_DEPENDENCY = 3

    @classmethod
    def merge(cls, first: Origin, second: Origin) -> Origin:
        """Return the more trusted of ``first`` and ``second``."""
        return min(first, second)


class TargetKind(enum.Enum):
    """Kinds of compilation target Cargo can describe."""

    LIB = "lib"
    BIN = "bin"
    TEST = "test"
    EXAMPLE = "example"
    BENCH = "bench"
    UNKNOWN = "unknown"


class RawTarget(msgspec.Struct, frozen=True, kw_only=True):
    """A target as described by cleaned ``cargo metadata``."""

    url: str
    name: str
    kind: TargetKind


class RawPackage(msgspec.Struct, frozen=True, kw_only=True):
    """A package as described by cleaned ``cargo metadata``."""

    url: str
    name: str
    version: str
    targets: tuple[RawTarget, ...] = ()
    source: str | None = None
    is_workspace_member: bool = False


class DependencyNode(msgspec.Struct, frozen=True, kw_only=True):
    """Positions of the resolved dependencies of one package."""

    dependencies_indexes: tuple[int, ...] = ()


class CleanCargoMetadata(msgspec.Struct, frozen=True, kw_only=True):
    """Flat package list plus a dependency list parallel to it by position."""

    packages: tuple[RawPackage, ...] = ()
    dependencies: tuple[DependencyNode, ...] = ()


class StdCrate(msgspec.Struct, frozen=True, kw_only=True):
    """A standard-library crate located outside Cargo's resolution."""

    package_root_url: str
    name: str
    crate_root_url: str


class Target:
    """A single compilation unit owned by a :class:`Package`."""

    __slots__ = (
        "_crate_root_cache",
        "_crate_root_url",
        "_kind",
        "_name",
        "_norm_name",
        "_package",
    )

    def __init__(self, crate_root_url: str, name: str, kind: TargetKind) -> None:
        """Describe a target rooted at ``crate_root_url``."""
        self._crate_root_url = crate_root_url
        self._name = name
        self._kind = kind
        # Cargo target names may contain ``-``; Rust identifiers may not.
        self._norm_name = name.replace("-", "_")
        self._package: Package | None = None
        self._crate_root_cache: FileHandle | None = None

    @property
    def crate_root_url(self) -> str:
        """Return the absolute URL of the crate root file."""
        return self._crate_root_url

    @property
    def name(self) -> str:
        """Return the target name as declared in the manifest."""
        return self._name

    @property
    def kind(self) -> TargetKind:
        """Return the target kind."""
        return self._kind

    @property
    def norm_name(self) -> str:
        """Return the target name usable as a Rust identifier."""
        return self._norm_name

    @property
    def is_lib(self) -> bool:
        """Return ``True`` for library targets."""
        return self._kind is TargetKind.LIB

    @property
    def is_bin(self) -> bool:
        """Return ``True`` for binary targets."""
        return self._kind is TargetKind.BIN

    @property
    def is_example(self) -> bool:
        """Return ``True`` for example targets."""
        return self._kind is TargetKind.EXAMPLE

    @property
    def package(self) -> Package:
        """Return the package that owns this target."""
        if self._package is None:
            raise WorkspaceModelError(TARGET_UNBOUND_MSG.format(name=self._name))
        return self._package

    @property
    def crate_root(self) -> FileHandle | None:
        """Return a live handle for the crate root, refreshing stale handles."""
        cached = self._crate_root_cache
        if cached is not None and cached.is_valid:
            return cached
        handle = current_file_system().find_file_by_url(self._crate_root_url)
        self._crate_root_cache = handle
        return handle

    def _bind_package(self, package: Package) -> None:
        """Record ``package`` as the owner of this target."""
        if self._package is not None and self._package is not package:
            message = TARGET_REBOUND_MSG.format(
                name=self._name, package=self._package.name
            )
            raise WorkspaceModelError(message)
        self._package = package

    def __repr__(self) -> str:
        """Return a debugging representation without the owning package."""
        return (
            f"Target(crate_root_url={self._crate_root_url!r}, "
            f"name={self._name!r}, kind={self._kind.name})"
        )


class Package(msgspec.Struct, frozen=True, kw_only=True):
    """A named, versioned unit of distribution and the targets it owns."""

    content_root_url: str
    name: str
    version: str
    targets: tuple[Target, ...]
    source: str | None
    origin: Origin

    def __post_init__(self) -> None:
        """Take ownership of every target."""
        for target in self.targets:
            target._bind_package(self)  # noqa: SLF001 - construction-time wiring

    @property
    def lib_target(self) -> Target | None:
        """Return the library target, if the package has one."""
        return next((target for target in self.targets if target.is_lib), None)

    @property
    def content_root(self) -> FileHandle | None:
        """Return a handle for the package root directory."""
        return current_file_system().find_file_by_url(self.content_root_url)


@dc.dataclass(frozen=True, slots=True, eq=False)
class Workspace:
    """Immutable snapshot of every package known to one project."""

    packages: tuple[Package, ...]
    _targets_by_crate_root: dict[str, Target] = dc.field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        """Index every target by its crate root URL."""
        index = {
            target.crate_root_url: target
            for package in self.packages
            for target in package.targets
        }
        object.__setattr__(self, "_targets_by_crate_root", index)

    def find_crate_by_name(self, norm_name: str) -> Target | None:
        """Return the library target whose normalised name is ``norm_name``."""
        for package in self.packages:
            lib_target = package.lib_target
            if lib_target is not None and lib_target.norm_name == norm_name:
                return lib_target
        return None

    def find_target_for_crate_root_file(self, file: FileHandle) -> Target | None:
        """Return the target whose crate root is ``file``, if any."""
        canonical = file.canonical_file
        if canonical is None:
            return None
        return self._targets_by_crate_root.get(canonical.url)

    def is_crate_root(self, file: FileHandle) -> bool:
        """Return ``True`` when ``file`` is the crate root of some target."""
        return self.find_target_for_crate_root_file(file) is not None

    def find_package(self, name: str) -> Package | None:
        """Return the first package called ``name``."""
        return next((pkg for pkg in self.packages if pkg.name == name), None)

    @property
    def has_standard_library(self) -> bool:
        """Return ``True`` when standard-library packages have been merged in."""
        return any(pkg.origin is Origin.STDLIB for pkg in self.packages)

    def with_stdlib(self, std_crates: cabc.Iterable[StdCrate]) -> Workspace:
        """Return a new workspace extended with synthetic stdlib packages."""
        stdlib = tuple(_build_std_package(crate) for crate in std_crates)
        return Workspace(packages=self.packages + stdlib)


def load_workspace(workspace_root: Path | str | None = None) -> Workspace:
    """Return a :class:`Workspace` constructed from ``cargo metadata``."""
    from keel.workspace.clean import clean_cargo_metadata
    from keel.workspace.metadata import load_cargo_metadata

    payload = load_cargo_metadata(workspace_root)
    return build_workspace(clean_cargo_metadata(payload))


def build_workspace(metadata: CleanCargoMetadata) -> Workspace:
    """Convert cleaned ``cargo metadata`` into a :class:`Workspace`.

    Dependency graphs are not guaranteed to be acyclic: a dev-dependency of a
    member may depend on that member again. Origins are therefore classified
    by name with a monotone merge instead of a traversal.
    """
    origins = _classify_origins(metadata)
    packages = tuple(_build_package(raw, origins) for raw in metadata.packages)
    LOGGER.debug(
        "Built workspace with %d packages (%d members)",
        len(packages),
        sum(1 for pkg in packages if pkg.origin is Origin.WORKSPACE),
    )
    return Workspace(packages=packages)


def _classify_origins(metadata: CleanCargoMetadata) -> dict[str, Origin]:
    """Return the origin of every package name in ``metadata``.

    Members are ``WORKSPACE`` and their direct dependencies are at least
    ``DEPENDENCY``; everything else is ``TRANSITIVE_DEPENDENCY``.
    """
    origins: dict[str, Origin] = {}
    for index, raw_package in enumerate(metadata.packages):
        if not raw_package.is_workspace_member:
            origins.setdefault(raw_package.name, Origin.TRANSITIVE_DEPENDENCY)
            continue
        _merge_origin(origins, raw_package.name, Origin.WORKSPACE)
        node = _at_index(metadata.dependencies, index)
        if node is None:
            continue
        for dependency_index in node.dependencies_indexes:
            dependency = _at_index(metadata.packages, dependency_index)
            if dependency is None:
                LOGGER.warning(
                    "Ignoring dependency index %d of package %r: "
                    "only %d packages are known",
                    dependency_index,
                    raw_package.name,
                    len(metadata.packages),
                )
                continue
            _merge_origin(origins, dependency.name, Origin.DEPENDENCY)
    return origins


def _merge_origin(origins: dict[str, Origin], name: str, origin: Origin) -> None:
    """Store ``origin`` for ``name`` unless a more trusted value is recorded."""
    existing = origins.get(name)
    origins[name] = origin if existing is None else Origin.merge(existing, origin)


_T = typ.TypeVar("_T")


def _at_index(items: cabc.Sequence[_T], index: int) -> _T | None:
    """Return ``items[index]`` for in-range, non-negative ``index`` only."""
    if 0 <= index < len(items):
        return items[index]
    return None


def _build_package(
    raw_package: RawPackage,
    origins: cabc.Mapping[str, Origin],
) -> Package:
    """Construct a :class:`Package` and its targets from ``raw_package``."""
    origin = origins.get(raw_package.name)
    if origin is None:
        raise OriginUndefinedError(raw_package.name)
    return Package(
        content_root_url=raw_package.url,
        name=raw_package.name,
        version=raw_package.version,
        targets=tuple(
            Target(raw_target.url, raw_target.name, raw_target.kind)
            for raw_target in raw_package.targets
        ),
        source=raw_package.source,
        origin=origin,
    )


def _build_std_package(crate: StdCrate) -> Package:
    """Construct the synthetic package for a standard-library crate."""
    return Package(
        content_root_url=crate.package_root_url,
        name=crate.name,
        version="",
        targets=(Target(crate.crate_root_url, crate.name, TargetKind.LIB),),
        source=None,
        origin=Origin.STDLIB,
    )
