"""Tests for :func:`keel.workspace.clean_cargo_metadata`."""

from __future__ import annotations

import typing as typ

import pytest

from keel.workspace import (
    MetadataFormatError,
    Origin,
    TargetKind,
    WorkspaceModelError,
    build_workspace,
    clean_cargo_metadata,
)
from tests.helpers.workspace_helpers import cargo_package

if typ.TYPE_CHECKING:
    from pathlib import Path


def _resolve_node(package_id: str, *deps: str) -> dict[str, typ.Any]:
    return {
        "id": package_id,
        "dependencies": list(deps),
        "deps": [{"name": dep.removesuffix("-id"), "pkg": dep} for dep in deps],
    }


def test_clean_flattens_packages_and_targets(tmp_path: Path) -> None:
    """Package and target paths become ``file://`` URLs."""
    payload = {
        "packages": [
            cargo_package(
                "alpha",
                tmp_path,
                targets=[
                    ("alpha", ["lib"], "src/lib.rs"),
                    ("alpha-cli", ["bin"], "src/main.rs"),
                ],
            )
        ],
        "workspace_members": ["alpha-id"],
    }

    metadata = clean_cargo_metadata(payload)
    (package,) = metadata.packages

    assert package.name == "alpha"
    assert package.version == "0.1.0"
    assert package.is_workspace_member
    assert package.source is None
    assert package.url == (tmp_path / "alpha").resolve().as_uri()
    assert [target.kind for target in package.targets] == [
        TargetKind.LIB,
        TargetKind.BIN,
    ]
    assert package.targets[0].url == (
        (tmp_path / "alpha" / "src" / "lib.rs").resolve().as_uri()
    )
    assert package.targets[1].name == "alpha-cli"
    assert metadata.dependencies == ()


@pytest.mark.parametrize(
    ("kinds", "expected"),
    [
        pytest.param(["lib"], TargetKind.LIB, id="lib"),
        pytest.param(["rlib"], TargetKind.LIB, id="rlib"),
        pytest.param(["cdylib", "rlib"], TargetKind.LIB, id="multiple_libs"),
        pytest.param(["proc-macro"], TargetKind.LIB, id="proc_macro"),
        pytest.param(["bin"], TargetKind.BIN, id="bin"),
        pytest.param(["test"], TargetKind.TEST, id="test"),
        pytest.param(["example"], TargetKind.EXAMPLE, id="example"),
        pytest.param(["bench"], TargetKind.BENCH, id="bench"),
        pytest.param(["custom-build"], TargetKind.UNKNOWN, id="build_script"),
    ],
)
def test_target_kind_mapping(
    tmp_path: Path, kinds: list[str], expected: TargetKind
) -> None:
    """Cargo kind lists map onto :class:`TargetKind`."""
    payload = {
        "packages": [
            cargo_package("alpha", tmp_path, targets=[("alpha", kinds, "src/x.rs")])
        ],
    }

    metadata = clean_cargo_metadata(payload)

    assert metadata.packages[0].targets[0].kind is expected


def test_resolve_nodes_become_parallel_indexes(tmp_path: Path) -> None:
    """Resolved dependencies are expressed as package positions."""
    payload = {
        "packages": [
            cargo_package("serde", tmp_path, source="registry+https://example"),
            cargo_package("app", tmp_path),
            cargo_package("itoa", tmp_path, source="registry+https://example"),
        ],
        "workspace_members": ["app-id"],
        "resolve": {
            "nodes": [
                _resolve_node("app-id", "serde-id", "unknown-id"),
                _resolve_node("serde-id", "itoa-id"),
            ]
        },
    }

    metadata = clean_cargo_metadata(payload)

    assert [node.dependencies_indexes for node in metadata.dependencies] == [
        (2,),
        (0,),
        (),
    ]
    assert [package.is_workspace_member for package in metadata.packages] == [
        False,
        True,
        False,
    ]
    assert metadata.packages[0].source == "registry+https://example"


def test_legacy_dependency_id_lists(tmp_path: Path) -> None:
    """Nodes without ``deps`` fall back to the plain ``dependencies`` list."""
    payload = {
        "packages": [cargo_package("app", tmp_path), cargo_package("log", tmp_path)],
        "workspace_members": ["app-id"],
        "resolve": {"nodes": [{"id": "app-id", "dependencies": ["log-id"]}]},
    }

    metadata = clean_cargo_metadata(payload)

    assert metadata.dependencies[0].dependencies_indexes == (1,)


def test_cleaned_metadata_builds_workspace(tmp_path: Path) -> None:
    """Cleaned metadata feeds straight into workspace construction."""
    payload = {
        "packages": [
            cargo_package("app", tmp_path),
            cargo_package("serde", tmp_path),
            cargo_package("itoa", tmp_path),
        ],
        "workspace_members": ["app-id"],
        "resolve": {
            "nodes": [
                _resolve_node("app-id", "serde-id"),
                _resolve_node("serde-id", "itoa-id"),
                _resolve_node("itoa-id"),
            ]
        },
    }

    workspace = build_workspace(clean_cargo_metadata(payload))

    assert {pkg.name: pkg.origin for pkg in workspace.packages} == {
        "app": Origin.WORKSPACE,
        "serde": Origin.DEPENDENCY,
        "itoa": Origin.TRANSITIVE_DEPENDENCY,
    }


@pytest.mark.parametrize(
    "payload",
    [
        pytest.param({}, id="missing_packages"),
        pytest.param({"packages": "alpha"}, id="packages_not_list"),
        pytest.param({"packages": [{"name": "alpha"}]}, id="package_missing_fields"),
        pytest.param(
            {"packages": [], "resolve": {"nodes": [{"deps": []}]}},
            id="node_missing_id",
        ),
    ],
)
def test_malformed_payload_raises(payload: dict[str, typ.Any]) -> None:
    """Unexpected shapes raise :class:`MetadataFormatError`."""
    with pytest.raises(MetadataFormatError) as excinfo:
        clean_cargo_metadata(payload)

    assert isinstance(excinfo.value, WorkspaceModelError)
    assert "unexpected cargo metadata format" in str(excinfo.value)
