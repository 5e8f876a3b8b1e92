"""Shared test helpers for workspace model tests."""

from __future__ import annotations

import os
import typing as typ

from cmd_mox.ipc import Invocation

from keel.workspace import (
    CleanCargoMetadata,
    DependencyNode,
    RawPackage,
    RawTarget,
    TargetKind,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    import pytest
    from cmd_mox import CmdMox


def raw_package(
    name: str,
    *,
    member: bool = False,
    targets: tuple[RawTarget, ...] | None = None,
    source: str | None = None,
) -> RawPackage:
    """Return a cleaned package with a single library target by default."""
    if targets is None:
        targets = (
            RawTarget(
                url=f"file:///ws/{name}/src/lib.rs",
                name=name,
                kind=TargetKind.LIB,
            ),
        )
    return RawPackage(
        url=f"file:///ws/{name}",
        name=name,
        version="0.1.0",
        targets=targets,
        source=source,
        is_workspace_member=member,
    )


def clean_metadata(
    packages: typ.Sequence[RawPackage],
    dependencies: typ.Sequence[typ.Sequence[int]] = (),
) -> CleanCargoMetadata:
    """Return cleaned metadata with dependency positions per package."""
    return CleanCargoMetadata(
        packages=tuple(packages),
        dependencies=tuple(
            DependencyNode(dependencies_indexes=tuple(indexes))
            for indexes in dependencies
        ),
    )


def cargo_package(
    name: str,
    root: Path,
    *,
    targets: typ.Sequence[tuple[str, list[str], str]] | None = None,
    source: str | None = None,
) -> dict[str, typ.Any]:
    """Return a ``cargo metadata`` package entry rooted at ``root / name``."""
    package_dir = root / name
    if targets is None:
        targets = ((name, ["lib"], "src/lib.rs"),)
    return {
        "id": f"{name}-id",
        "name": name,
        "version": "0.1.0",
        "source": source,
        "manifest_path": str(package_dir / "Cargo.toml"),
        "targets": [
            {"name": target_name, "kind": kind, "src_path": str(package_dir / path)}
            for target_name, kind, path in targets
        ],
    }


def install_cargo_stub(
    cmd_mox: CmdMox, monkeypatch: pytest.MonkeyPatch
) -> list[str | None]:
    """Route the bound ``cargo`` command through cmd-mox expectations.

    Only the ``plumbum`` lookup is replaced, so ``_ensure_command`` still binds
    its real argument list and cmd-mox checks it against ``with_args``. The
    returned list collects the working directory of every run.
    """
    from keel.workspace import metadata as metadata_module

    working_dirs: list[str | None] = []

    class _StubCommand:
        """Use cmd-mox expectations without invoking an external process."""

        def __init__(self, args: tuple[str, ...]) -> None:
            self.args = args

        def run(
            self,
            *,
            retcode: int | tuple[int, ...] | None = None,
            cwd: str | os.PathLike[str] | None = None,
        ) -> tuple[int, str | bytes, str | bytes]:
            working_dirs.append(None if cwd is None else str(cwd))
            invocation = Invocation(
                command="cargo",
                args=list(self.args),
                stdin="",
                env=dict(os.environ),
            )
            response = cmd_mox._handle_invocation(invocation)
            return response.exit_code, response.stdout, response.stderr

    class _StubCargo:
        def __getitem__(self, args: str | tuple[str, ...]) -> _StubCommand:
            return _StubCommand((args,) if isinstance(args, str) else tuple(args))

    class _StubLocal:
        def __getitem__(self, name: str) -> _StubCargo:
            assert name == "cargo"
            return _StubCargo()

    monkeypatch.setattr(metadata_module, "local", _StubLocal())
    return working_dirs
