# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Construction of the checking environment from declarations and decisions.

Every declared dimension is resolved against the full set of decisions at
once, so the outcome does not depend on the order decisions were given in.
Declared dimensions are visited in name order so that diagnostics print in
a stable order as well.

Named dimensions accept either a bare choice name (``linux``) or an explicit
pair (``os=linux`` or ``os=0``). Sized dimensions only accept a numeric pair.
Pairs for undeclared dimensions are kept with an unknown arity, which the
checker fills in from the first use in a document.
"""

from __future__ import annotations

from flan.config.decisions import Decisions, Index, NameIndex, NumIndex
from flan.config.file import Choices, ConfigErrorKind, NamedChoices, SizeChoices
from flan.config.settings import Config
from flan.diagnostics import Diagnostic, DiagnosticBuilder, Handler
from flan.infer.env import Dim, Environment

# ###############
# Public Interface
# ###############


class ResolveError(Exception):
    """Raised when decisions cannot be resolved against the declared dimensions.

    Attributes:
        diagnostics: The error diagnostics reported while resolving.
    """

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        count = len(diagnostics)
        super().__init__(f"{count} error{'s' if count != 1 else ''} while resolving decisions")
        self.diagnostics = diagnostics


def make_env(config: Config, handler: Handler | None = None, ignore_unset: bool = False) -> Environment:
    """Resolve the decisions of *config* into an :class:`Environment`.

    Raises:
        ResolveError: If any decision conflicts, is out of range, or names an
            unknown choice.
    """
    return resolve(
        config.dimensions,
        Decisions(names=config.decisions_name, pairs=config.decisions_pair),
        variables=config.variables,
        handler=handler,
        ignore_unset=ignore_unset,
    )


def resolve(
    declared: dict[str, Choices],
    decisions: Decisions,
    variables: dict[str, str] | None = None,
    handler: Handler | None = None,
    ignore_unset: bool = False,
) -> Environment:
    """Resolve *decisions* against *declared* dimensions.

    Args:
        declared: Declared dimensions by name.
        decisions: Bare names and explicit pairs.
        variables: Variable bindings, copied into the environment.
        handler: Diagnostic sink, kept by the returned environment.
        ignore_unset: Whether unbound variables are tolerated later on.

    Returns:
        The environment. Declared dimensions without any decision are left
        out of it, with a note.

    Raises:
        ResolveError: If any error was reported.
    """
    handler = handler or Handler()
    first = len(handler.diagnostics)
    errors_before = handler.error_count

    dimensions: dict[str, Dim] = {}
    matched: set[str] = set()
    for name in sorted(declared):
        choices = declared[name]
        if isinstance(choices, NamedChoices):
            matched.update(n for n in choices.names if n in decisions.names)
            result = _handle_named(name, choices, decisions, handler)
        else:
            result = _handle_sized(name, choices, decisions.pairs, handler)
        if isinstance(result, Dim):
            dimensions[name] = result
        elif result.is_error():
            result.delay()
        else:
            result.print()

    for unmatched in sorted(decisions.names - matched):
        handler.warn(f"decision `{unmatched}` does not match any choice of a declared dimension.").note(
            "bare decisions select a named choice of a dimension declared in the config file."
        ).print()

    env = Environment(dict(variables or {}), dimensions, handler, ignore_unset, declared=set(declared))
    fill_env(decisions.pairs, env, declared)

    if handler.error_count != errors_before:
        handler.print_all()
        raise ResolveError([d for d in handler.diagnostics[first:] if d.is_error()])
    return env


def fill_env(pairs: dict[str, Index], env: Environment, declared: dict[str, Choices] | None = None) -> None:
    """Add the pairs of undeclared dimensions to *env* with an unknown arity.

    Named indices cannot be folded without a choice list; they are reported
    and ignored.
    """
    declared = declared or {}
    for name in sorted(pairs):
        if name in declared or name in env.dimensions:
            continue
        index = pairs[name]
        if isinstance(index, NumIndex):
            env.dimensions[name] = Dim.new(index.value)
        else:
            env.handler.warn(
                f"decision `{name}={index}` ignored: dimension `{name}` has no declared choices."
            ).suggest(f"declare `{name}` in the config file or select the choice by index.").print()


def maybe_idx(index: Index | None, choices: list[str]) -> tuple[str, int] | None:
    """Return the choice name and position selected by *index*, or None if it selects nothing."""
    if index is None:
        return None
    if isinstance(index, NameIndex):
        if index.value not in choices:
            return None
        return index.value, choices.index(index.value)
    if index.value >= len(choices):
        return None
    return choices[index.value], index.value


# ################
# Implementation
# ################


def _handle_named(
    name: str, choices: NamedChoices, decisions: Decisions, handler: Handler
) -> Dim | DiagnosticBuilder:
    index = decisions.pairs.get(name)
    paired = maybe_idx(index, choices.names)
    if index is not None and paired is None:
        return _bad_index(name, index, choices, handler)

    found: list[tuple[str, int]] = []
    conflict = False
    for position, choice in enumerate(choices.names):
        if choice not in decisions.names:
            continue
        if paired is not None and paired[0] == choice:
            handler.warn(f"decisions `{choice}` and `{name}={index}` are redundant.").print()
        elif paired is not None:
            conflict = True
        found.append((choice, position))

    if conflict or len(found) > 1:
        contenders = ([f"{name}={index}"] if conflict else []) + [choice for choice, _ in found]
        return handler.error("the following choices are conflicting: " + ", ".join(contenders))
    if paired is not None:
        return Dim(arity=len(choices), decision=paired[1])
    if found:
        return Dim(arity=len(choices), decision=found[0][1])
    return handler.note(f"no decision found for declared dimension `{name}`.")


def _handle_sized(
    name: str, choices: SizeChoices, pairs: dict[str, Index], handler: Handler
) -> Dim | DiagnosticBuilder:
    index = pairs.get(name)
    if index is None:
        return handler.note(f"no decision found for dimension `{name}`.")
    if isinstance(index, NameIndex):
        return handler.error(
            f"dimension `{name}` declared with size `{choices.size}`, "
            f"but a decision name `{index}` was given instead of an index."
        ).with_kind(ConfigErrorKind.INVALID_CHOICE)
    if index.value >= choices.size:
        return handler.error(
            f"index greater than declared dimension size for decision `{name}`=`{index}`"
        ).with_kind(ConfigErrorKind.OUT_OF_RANGE).note(f"dimension `{name}` is declared with {choices.size} choices.")
    return Dim(arity=choices.size, decision=index.value)


def _bad_index(name: str, index: Index, choices: NamedChoices, handler: Handler) -> DiagnosticBuilder:
    if isinstance(index, NumIndex):
        return handler.error(
            f"index greater than declared dimension size for decision `{name}`=`{index}`"
        ).with_kind(ConfigErrorKind.OUT_OF_RANGE).note(f"dimension `{name}` is declared with {len(choices)} choices.")
    return handler.error(f"`{index}` is not a choice of dimension `{name}`.").with_kind(
        ConfigErrorKind.INVALID_CHOICE
    ).note(f"declared choices are {choices}.")
