# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Parsing of command-line decisions such as ``linux`` or ``os=1``."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from flan.config.file import MAX_CHOICES, ConfigError, ConfigErrorKind, is_identifier

# ###############
# Public Interface
# ###############


@dataclass(frozen=True)
class NumIndex:
    """A branch selected by position."""

    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class NameIndex:
    """A branch selected by its declared name."""

    value: str

    def __str__(self) -> str:
        return self.value


Index = NumIndex | NameIndex


@dataclass(frozen=True)
class NameDecision:
    """A bare choice name, matched against the branch names of declared dimensions."""

    name: str


@dataclass(frozen=True)
class DimDecision:
    """An explicit ``dimension=index`` decision."""

    dimension: str
    index: Index


Decision = NameDecision | DimDecision


@dataclass
class Decisions:
    """All decisions of one run.

    Attributes:
        names: Bare choice names.
        pairs: Explicit index per dimension name.
    """

    names: set[str] = field(default_factory=set)
    pairs: dict[str, Index] = field(default_factory=dict)


def parse_index(text: str) -> Index:
    """Parse the right-hand side of a ``dimension=index`` decision.

    Raises:
        ConfigError: ``OUT_OF_RANGE`` for numbers above the choice limit,
            ``INVALID_CHOICE`` for anything that is neither a number nor an
            identifier.
    """
    text = text.strip()
    if text.isascii() and text.isdigit():
        value = int(text)
        if value > MAX_CHOICES:
            raise ConfigError(_with_help(f"Numeric choice `{text}` is out of range."), ConfigErrorKind.OUT_OF_RANGE)
        return NumIndex(value)
    if is_identifier(text):
        return NameIndex(text)
    raise ConfigError(_with_help(f"`{text}` is not a valid choice."), ConfigErrorKind.INVALID_CHOICE)


def parse_decision(text: str) -> Decision:
    """Parse one decision string.

    ``NAME`` yields a :class:`NameDecision`, ``DIM=INDEX`` a
    :class:`DimDecision`. Whitespace around either side is ignored.

    Raises:
        ConfigError: If a name is not a valid identifier or the index is invalid.
    """
    name, sep, rest = text.partition("=")
    name = name.strip()
    if not is_identifier(name):
        raise ConfigError(_with_help(f"`{name}` is not a valid identifier."), ConfigErrorKind.INVALID_IDENTIFIER)
    if not sep:
        return NameDecision(name)
    return DimDecision(name, parse_index(rest))


def parse_decisions(texts: Iterable[str]) -> Decisions:
    """Parse and fold decision strings. A later pair for a dimension replaces an earlier one."""
    decisions = Decisions()
    for text in texts:
        decision = parse_decision(text)
        if isinstance(decision, NameDecision):
            decisions.names.add(decision.name)
        else:
            decisions.pairs[decision.dimension] = decision.index
    return decisions


# ################
# Implementation
# ################


def _with_help(message: str) -> str:
    return f"{message}\n note: consult --help for a more detailed explanation."
