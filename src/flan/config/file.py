# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Data model and YAML parser for the flan configuration file."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path

import yaml

# ###############
# Public Interface
# ###############

DEFAULT_CONFIG_NAME = ".flan.yaml"

MAX_CHOICES = 127
MAX_VERBOSITY = 5


class ConfigErrorKind(enum.Enum):
    """Kinds of configuration and decision input errors."""

    OUT_OF_RANGE = "OutOfRange"
    INVALID_CHOICE = "InvalidChoice"
    INVALID_IDENTIFIER = "InvalidIdentifier"
    INVALID_FILE = "InvalidFile"


class ConfigError(Exception):
    """Raised when configuration or decision input is invalid or cannot be loaded.

    Attributes:
        kind: The category of the error.
    """

    def __init__(self, message: str, kind: ConfigErrorKind = ConfigErrorKind.INVALID_FILE) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass
class SizeChoices:
    """A dimension declared with a number of anonymous branches."""

    size: int

    def __len__(self) -> int:
        return self.size

    def __str__(self) -> str:
        return str(self.size)


@dataclass
class NamedChoices:
    """A dimension declared with one name per branch."""

    names: list[str]

    def __len__(self) -> int:
        return len(self.names)

    def __str__(self) -> str:
        return "[" + ", ".join(self.names) + "]"


Choices = SizeChoices | NamedChoices


@dataclass
class Options:
    """Defaults for command-line flags. ``None`` means "not set in the file"."""

    force: bool | None = None
    verbosity: int | None = None
    ignore_unset: bool | None = None
    in_prefix: Path | None = None
    out_prefix: Path | None = None


@dataclass
class ConfigFile:
    """The parsed contents of a configuration file.

    Attributes:
        options: Defaults for command-line flags.
        variables: Variable bindings.
        dimensions: Dimension declarations.
        paths: Source path to destination path.
    """

    options: Options = field(default_factory=Options)
    variables: dict[str, str] = field(default_factory=dict)
    dimensions: dict[str, Choices] = field(default_factory=dict)
    paths: dict[Path, Path] = field(default_factory=dict)


def load_config_file(path: Path | None) -> ConfigFile:
    """Load a configuration file.

    Args:
        path: Explicit file to load. When None, ``.flan.yaml`` in the current
            directory is used if it exists, else an empty configuration.

    Returns:
        The parsed ConfigFile.

    Raises:
        ConfigError: If the file cannot be read or is invalid.
    """
    if path is None:
        default = Path(DEFAULT_CONFIG_NAME)
        if not default.exists():
            return ConfigFile()
        path = default

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except OSError as exc:
        raise ConfigError(f"Cannot read config file: {exc}") from exc

    return parse_config_text(text, source_label=str(path))


def parse_config_text(text: str, source_label: str = "<string>") -> ConfigFile:
    """Parse configuration YAML text into a ConfigFile.

    Raises:
        ConfigError: If the YAML is invalid or a section has the wrong shape.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {source_label}: {exc}") from exc

    if data is None:
        return ConfigFile()
    if not isinstance(data, dict):
        raise ConfigError(f"{source_label}: config must be a YAML mapping")

    return ConfigFile(
        options=_parse_options(_section(data, "options", source_label), source_label),
        variables=_parse_variables(_section(data, "variables", source_label), source_label),
        dimensions=_parse_dimensions(_section(data, "dimensions", source_label), source_label),
        paths=_parse_paths(_section(data, "paths", source_label), source_label),
    )


def is_identifier(name: str) -> bool:
    """Return True if *name* is a valid dimension or choice identifier."""
    return bool(name) and (name[0].isalpha() or name[0] == "_") and all(c.isalnum() or c == "_" for c in name)


def validate_choices(name: str, choices: Choices, source_label: str = "<string>") -> None:
    """Check a single dimension declaration.

    Raises:
        ConfigError: If the name or any branch name is not an identifier, the
            size is out of range, or branch names repeat.
    """
    location = f"{source_label}: dimensions.{name}"
    if not is_identifier(name):
        raise ConfigError(f"{location}: `{name}` is not a valid identifier", ConfigErrorKind.INVALID_IDENTIFIER)
    if isinstance(choices, SizeChoices):
        if not 0 <= choices.size <= MAX_CHOICES:
            raise ConfigError(
                f"{location}: size {choices.size} is out of range (0..{MAX_CHOICES})", ConfigErrorKind.OUT_OF_RANGE
            )
        return
    if len(choices.names) > MAX_CHOICES:
        raise ConfigError(f"{location}: more than {MAX_CHOICES} choices", ConfigErrorKind.OUT_OF_RANGE)
    seen: set[str] = set()
    for choice in choices.names:
        if not is_identifier(choice):
            raise ConfigError(
                f"{location}: `{choice}` is not a valid identifier", ConfigErrorKind.INVALID_IDENTIFIER
            )
        if choice in seen:
            raise ConfigError(f"{location}: duplicate choice `{choice}`", ConfigErrorKind.INVALID_CHOICE)
        seen.add(choice)


# ################
# Implementation
# ################


def _section(data: dict[str, object], key: str, source_label: str) -> dict[str, object]:
    """Extract an optional mapping section, raising ConfigError on the wrong shape."""
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{source_label}: '{key}' must be a YAML mapping")
    return value


def _optional_bool(mapping: dict[str, object], key: str, location: str) -> bool | None:
    value = mapping.get(key)
    if value is None or isinstance(value, bool):
        return value
    raise ConfigError(f"{location}: '{key}' must be a boolean")


def _optional_path(mapping: dict[str, object], key: str, location: str) -> Path | None:
    value = mapping.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{location}: '{key}' must be a string")
    return Path(value)


def _parse_options(raw: dict[str, object], source_label: str) -> Options:
    location = f"{source_label}: options"
    verbosity = raw.get("verbosity")
    if verbosity is not None and (
        isinstance(verbosity, bool) or not isinstance(verbosity, int) or not 0 <= verbosity <= MAX_VERBOSITY
    ):
        raise ConfigError(f"{location}: 'verbosity' must be an integer between 0 and {MAX_VERBOSITY}")
    return Options(
        force=_optional_bool(raw, "force", location),
        verbosity=verbosity,
        ignore_unset=_optional_bool(raw, "ignore-unset", location),
        in_prefix=_optional_path(raw, "in-prefix", location),
        out_prefix=_optional_path(raw, "out-prefix", location),
    )


def _parse_variables(raw: dict[str, object], source_label: str) -> dict[str, str]:
    variables: dict[str, str] = {}
    for name, value in raw.items():
        if isinstance(value, (dict, list)) or value is None:
            raise ConfigError(f"{source_label}: variables.{name} must be a scalar value")
        # YAML booleans would otherwise print as Python's True/False.
        variables[str(name)] = str(value).lower() if isinstance(value, bool) else str(value)
    return variables


def _parse_dimensions(raw: dict[str, object], source_label: str) -> dict[str, Choices]:
    dimensions: dict[str, Choices] = {}
    for name, value in raw.items():
        name = str(name)
        choices: Choices
        if isinstance(value, int) and not isinstance(value, bool):
            choices = SizeChoices(size=value)
        elif isinstance(value, list):
            choices = NamedChoices(names=[str(v) for v in value])
        else:
            raise ConfigError(
                f"{source_label}: dimensions.{name} must be a number of choices or a list of choice names"
            )
        validate_choices(name, choices, source_label)
        dimensions[name] = choices
    return dimensions


def _parse_paths(raw: dict[str, object], source_label: str) -> dict[Path, Path]:
    paths: dict[Path, Path] = {}
    for source, destination in raw.items():
        if not isinstance(destination, str):
            raise ConfigError(f"{source_label}: paths.{source} must be a destination path string")
        paths[Path(str(source))] = Path(destination)
    return paths
