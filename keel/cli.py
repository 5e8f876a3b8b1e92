"""Command-line interface for the :mod:`keel` toolkit."""

from __future__ import annotations

import os
import sys
import typing as typ
from contextlib import contextmanager
from pathlib import Path

from cyclopts import App, Parameter

from . import commands, config
from .utils import normalise_workspace_root
from .workspace import CargoMetadataError, WorkspaceModelError

WORKSPACE_ROOT_ENV_VAR = "KEEL_WORKSPACE_ROOT"
WORKSPACE_ROOT_REQUIRED_MESSAGE = "--workspace-root requires a value"
_WORKSPACE_PARAMETER = Parameter(
    name="workspace-root",
    env_var=WORKSPACE_ROOT_ENV_VAR,
    help="Path to the Rust workspace root.",
)
WorkspaceRootOption = typ.Annotated[Path, _WORKSPACE_PARAMETER]

T = typ.TypeVar("T")

app = App(help="Inspect Rust workspaces with the keel toolkit.")


def _validate_workspace_value(value: str) -> str:
    """Ensure ``value`` is usable as a workspace path."""
    if not value or value.startswith("-"):
        raise SystemExit(WORKSPACE_ROOT_REQUIRED_MESSAGE)
    return value


def _parse_workspace_flag(tokens: typ.Sequence[str], index: int) -> tuple[str, int]:
    """Parse ``--workspace-root <path>`` form starting at ``index``."""
    try:
        candidate = tokens[index + 1]
    except IndexError as err:
        raise SystemExit(WORKSPACE_ROOT_REQUIRED_MESSAGE) from err
    workspace = _validate_workspace_value(candidate)
    return workspace, index + 2


def _parse_workspace_equals(argument: str, index: int) -> tuple[str, int]:
    """Parse ``--workspace-root=<path>`` form for ``argument``."""
    candidate = argument.partition("=")[2]
    workspace = _validate_workspace_value(candidate)
    return workspace, index + 1


def _extract_workspace_override(
    tokens: typ.Sequence[str],
) -> tuple[str | None, list[str]]:
    """Split ``--workspace-root`` from CLI tokens.

    The flag can appear in either ``--workspace-root <path>`` or
    ``--workspace-root=<path>`` form and the last occurrence wins.
    """
    workspace: str | None = None
    remainder: list[str] = []
    index = 0
    while index < len(tokens):
        current_argument = tokens[index]
        if current_argument == "--workspace-root":
            workspace, index = _parse_workspace_flag(tokens, index)
            continue
        if current_argument.startswith("--workspace-root="):
            workspace, index = _parse_workspace_equals(current_argument, index)
            continue
        remainder.append(current_argument)
        index += 1
    return workspace, remainder


@contextmanager
def _workspace_env(value: Path) -> typ.Iterator[None]:
    """Temporarily set :data:`WORKSPACE_ROOT_ENV_VAR` to ``value``."""
    previous = os.environ.get(WORKSPACE_ROOT_ENV_VAR)
    os.environ[WORKSPACE_ROOT_ENV_VAR] = str(value)
    try:
        yield
    finally:
        if previous is None:
            os.environ.pop(WORKSPACE_ROOT_ENV_VAR, None)
        else:
            os.environ[WORKSPACE_ROOT_ENV_VAR] = previous


def _dispatch_and_print(tokens: typ.Sequence[str]) -> int:
    """Execute the Cyclopts app and print command results."""
    try:
        result = app(tokens)
    except SystemExit as err:
        code = err.code
        if code is None:
            return 0
        if isinstance(code, int):
            return code
        print(code, file=sys.stderr)
        return 1
    if isinstance(result, int):
        return result
    if result is not None:
        print(result)
    return 0


def main(argv: typ.Sequence[str] | None = None) -> int:
    """Entry point for ``python -m keel.cli``."""
    try:
        if argv is None:
            argv = sys.argv[1:]
        workspace_override, remaining = _extract_workspace_override(list(argv))
        workspace_root = normalise_workspace_root(workspace_override)
        if not remaining:
            _dispatch_and_print(remaining)
            return 2
        config_loader = config.build_loader(workspace_root)
        try:
            configuration = config.load_from_loader(config_loader)
        except config.ConfigurationError as exc:
            print(f"Configuration error: {exc}", file=sys.stderr)
            return 1
        with (
            _workspace_env(workspace_root),
            config.use_configuration(configuration),
        ):
            return _dispatch_and_print(remaining)
    except (CargoMetadataError, WorkspaceModelError) as exc:
        print(f"Workspace error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.", file=sys.stderr)
        return 130
    except Exception as exc:  # noqa: BLE001 - fallback guard for CLI entry point
        print(f"Unexpected error: {exc}", file=sys.stderr)
        return 1


def _run_with_configuration(
    workspace_root: Path,
    runner: typ.Callable[[Path, config.KeelConfig], T],
) -> T:
    """Execute ``runner`` with a configuration, loading it on demand."""
    try:
        configuration = config.current_configuration()
    except config.ConfigurationNotLoadedError:
        configuration = config.load_configuration(workspace_root)
        with config.use_configuration(configuration):
            return runner(workspace_root, configuration)
    return runner(workspace_root, configuration)


def _report_missing(message: str) -> int:
    """Print ``message`` to ``stderr`` and return the not-found exit code."""
    print(message, file=sys.stderr)
    return 1


@app.command
def packages(
    workspace_root: WorkspaceRootOption | None = None,
) -> str:
    """List every package in the workspace with its origin."""
    resolved = normalise_workspace_root(workspace_root)
    return _run_with_configuration(resolved, commands.packages.run)


@app.command
def crate_root(
    path: Path,
    workspace_root: WorkspaceRootOption | None = None,
) -> str | int:
    """Show the target whose crate root is PATH.

    A relative PATH is resolved against the workspace root.
    """
    resolved = normalise_workspace_root(workspace_root)
    description = _run_with_configuration(
        resolved,
        lambda root, configuration: commands.lookup.crate_root(
            root, configuration, path
        ),
    )
    if description is None:
        return _report_missing(f"{path} is not a crate root")
    return description


@app.command
def find_crate(
    name: str,
    workspace_root: WorkspaceRootOption | None = None,
) -> str | int:
    """Print the crate root URL of the library crate NAME."""
    resolved = normalise_workspace_root(workspace_root)
    url = _run_with_configuration(
        resolved,
        lambda root, configuration: commands.lookup.find_crate(
            root, configuration, name
        ),
    )
    if url is None:
        return _report_missing(f"no library crate named {name!r}")
    return url


if __name__ == "__main__":  # pragma: no cover - convenience entry point
    raise SystemExit(main())
