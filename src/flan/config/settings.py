# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Run configuration: the merged view of the config file and the command line."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from flan.config.decisions import Decisions, Index, parse_decisions
from flan.config.file import Choices, ConfigFile, Options, load_config_file
from flan.diagnostics import DEFAULT_REPORT_LEVEL, ErrorFlags

# ###############
# Public Interface
# ###############


class Command(enum.Enum):
    """What a run does once sources are parsed."""

    BUILD = "build"
    CHECK = "check"
    QUERY = "query"


@dataclass
class Config:
    """Everything a run needs to know about variables, dimensions and files.

    Attributes:
        variables: Variable bindings.
        dimensions: Declared dimensions.
        paths: Source path to destination path, before prefixes are applied.
        decisions_name: Bare choice names given on the command line.
        decisions_pair: Explicit ``dimension=index`` decisions.
    """

    variables: dict[str, str] = field(default_factory=dict)
    dimensions: dict[str, Choices] = field(default_factory=dict)
    paths: dict[Path, Path] = field(default_factory=dict)
    decisions_name: set[str] = field(default_factory=set)
    decisions_pair: dict[str, Index] = field(default_factory=dict)

    @classmethod
    def from_file(cls, file: ConfigFile, decisions: Decisions | None = None) -> Config:
        decisions = decisions or Decisions()
        return cls(
            variables=dict(file.variables),
            dimensions=dict(file.dimensions),
            paths=dict(file.paths),
            decisions_name=set(decisions.names),
            decisions_pair=dict(decisions.pairs),
        )


@dataclass
class Flags:
    """Process flags.

    Attributes:
        errors: Diagnostic display and escalation flags.
        in_prefix: Joined to relative source paths.
        out_prefix: Joined to relative destination paths.
        force: Overwrite existing destinations.
        ignore_unset: Treat unbound variables as empty instead of an error.
        command: What the run does.
    """

    errors: ErrorFlags = field(default_factory=ErrorFlags)
    in_prefix: Path | None = None
    out_prefix: Path | None = None
    force: bool = False
    ignore_unset: bool = False
    command: Command = Command.BUILD


def make_flags(
    options: Options | None = None,
    *,
    command: Command = Command.BUILD,
    verbosity: int | None = None,
    force: bool = False,
    ignore_unset: bool = False,
    in_prefix: Path | None = None,
    out_prefix: Path | None = None,
    warn_as_error: bool = False,
    no_extra: bool = False,
) -> Flags:
    """Merge command-line values over config file options.

    Command-line values win; unset ones fall back to *options*, then to the
    defaults. Boolean switches can only be turned on from the command line.
    """
    options = options or Options()
    report_level = verbosity
    if report_level is None:
        report_level = options.verbosity if options.verbosity is not None else DEFAULT_REPORT_LEVEL
    return Flags(
        errors=ErrorFlags(report_level=report_level, warn_as_error=warn_as_error, no_extra=no_extra),
        in_prefix=in_prefix if in_prefix is not None else options.in_prefix,
        out_prefix=out_prefix if out_prefix is not None else options.out_prefix,
        force=force or bool(options.force),
        ignore_unset=ignore_unset or bool(options.ignore_unset),
        command=command,
    )


def load_config(config_path: Path | None, decisions: Iterable[str] = ()) -> tuple[ConfigFile, Config]:
    """Load the config file and fold in command-line decisions.

    Returns:
        The raw file, whose options still need merging into :class:`Flags`,
        and the run :class:`Config`.

    Raises:
        ConfigError: If the file or any decision is invalid.
    """
    file = load_config_file(config_path)
    return file, Config.from_file(file, parse_decisions(decisions))
