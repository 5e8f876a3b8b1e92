"""Configuration loading for the :mod:`keel` toolkit."""

from __future__ import annotations

import contextlib
import contextvars
import dataclasses as dc
import typing as typ
from collections import abc as cabc
from pathlib import Path

from cyclopts.config import Toml

from keel.utils import normalise_workspace_root
from keel.workspace.stdlib import DEFAULT_STD_CRATES

CONFIG_FILENAME = "keel.toml"


class ConfigurationError(RuntimeError):
    """Raised when the :mod:`keel` configuration is invalid."""


class ConfigurationNotLoadedError(ConfigurationError):
    """Raised when code accesses the configuration before it is loaded."""


@dc.dataclass(frozen=True, slots=True)
class StdlibConfig:
    """Where to find standard-library sources and which crates to expose."""

    src: str | None = None
    crates: tuple[str, ...] = DEFAULT_STD_CRATES

    @classmethod
    def from_mapping(cls, mapping: cabc.Mapping[str, typ.Any] | None) -> StdlibConfig:
        """Create a :class:`StdlibConfig` from a TOML table mapping."""
        if mapping is None:
            return cls()
        unknown = set(mapping) - {"src", "crates"}
        if unknown:
            joined = ", ".join(sorted(unknown))
            message = f"Unknown stdlib option(s): {joined}."
            raise ConfigurationError(message)
        crates = mapping.get("crates")
        return cls(
            src=_optional_string(mapping.get("src"), "stdlib.src"),
            crates=DEFAULT_STD_CRATES
            if crates is None
            else _string_tuple(crates, "stdlib.crates"),
        )


@dc.dataclass(frozen=True, slots=True)
class KeelConfig:
    """Strongly-typed representation of ``keel.toml``."""

    stdlib: StdlibConfig = dc.field(default_factory=StdlibConfig)

    @classmethod
    def from_mapping(cls, mapping: cabc.Mapping[str, typ.Any]) -> KeelConfig:
        """Create a :class:`KeelConfig` from a parsed configuration mapping."""
        unknown = set(mapping) - {"stdlib"}
        if unknown:
            joined = ", ".join(sorted(unknown))
            message = f"Unknown configuration section(s): {joined}."
            raise ConfigurationError(message)
        return cls(
            stdlib=StdlibConfig.from_mapping(
                _optional_mapping(mapping.get("stdlib"), "stdlib")
            ),
        )


_active_config: contextvars.ContextVar[KeelConfig] = contextvars.ContextVar(
    "keel_active_config"
)


def build_loader(workspace_root: Path) -> Toml:
    """Return a Cyclopts loader for ``keel.toml`` in ``workspace_root``."""
    resolved = normalise_workspace_root(workspace_root)
    return Toml(
        path=resolved / CONFIG_FILENAME,
        must_exist=False,
        search_parents=False,
        allow_unknown=True,
        use_commands_as_keys=True,
    )


def load_from_loader(loader: Toml) -> KeelConfig:
    """Load and validate configuration using ``loader``."""
    if not Path(loader.path).exists():
        return KeelConfig()
    try:
        raw = loader.config
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
    if not isinstance(raw, cabc.Mapping):
        message = "Configuration root must be a TOML table."
        raise ConfigurationError(message)
    return KeelConfig.from_mapping(raw)


def load_configuration(workspace_root: Path) -> KeelConfig:
    """Load configuration for ``workspace_root`` using Cyclopts."""
    loader = build_loader(workspace_root)
    return load_from_loader(loader)


@contextlib.contextmanager
def use_configuration(configuration: KeelConfig) -> typ.Iterator[None]:
    """Set ``configuration`` as the active configuration for the current context."""
    token = _active_config.set(configuration)
    try:
        yield
    finally:
        _active_config.reset(token)


def current_configuration() -> KeelConfig:
    """Return the active configuration or raise if none has been set."""
    try:
        return _active_config.get()
    except LookupError as exc:
        message = "Configuration has not been loaded yet."
        raise ConfigurationNotLoadedError(message) from exc


def _validate_string_sequence(
    sequence: cabc.Sequence[typ.Any], field_name: str
) -> tuple[str, ...]:
    """Validate that ``sequence`` contains only strings and return them."""
    items: list[str] = []
    for index, entry in enumerate(sequence):
        if not isinstance(entry, str):
            message = (
                f"{field_name}[{index}] must be a string, got {type(entry).__name__}."
            )
            raise ConfigurationError(message)
        items.append(entry)
    return tuple(items)


def _string_tuple(value: object, field_name: str) -> tuple[str, ...]:
    """Return a tuple of strings derived from ``value``."""
    if isinstance(value, str):
        return (value,)
    if isinstance(value, cabc.Sequence) and not isinstance(value, str | bytes):
        return _validate_string_sequence(value, field_name)
    message = (
        f"{field_name} must be a string or a sequence of strings; "
        f"received {type(value).__name__}."
    )
    raise ConfigurationError(message)


def _optional_string(value: object, field_name: str) -> str | None:
    """Return ``value`` when it is a string or ``None``."""
    if value is None or isinstance(value, str):
        return value
    message = f"{field_name} must be a string; received {type(value).__name__}."
    raise ConfigurationError(message)


def _optional_mapping(
    value: object, field_name: str
) -> cabc.Mapping[str, typ.Any] | None:
    """Ensure ``value`` is a mapping if provided."""
    if value is None:
        return None
    if isinstance(value, cabc.Mapping):
        return value
    message = f"{field_name} must be a TOML table; received {type(value).__name__}."
    raise ConfigurationError(message)
