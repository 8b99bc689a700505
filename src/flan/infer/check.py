# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Checking of parsed documents against the environment.

:func:`check` verifies that every variable is bound and every dimension has
a decision, and fixes the arity of dimensions whose arity was not declared.
Since one environment is shared by every document of a run, a dimension used
with two different numbers of branches in two files is reported as well.

:func:`collect` needs no environment; it only gathers the dimensions that
occur in a document and their number of branches.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable

from flan.config.file import Choices, SizeChoices
from flan.diagnostics import Handler
from flan.infer.env import Environment
from flan.sourcemap.span import Span
from flan.syntax.terms import DimensionTerm, Terms, VarTerm

# ###############
# Public Interface
# ###############


class InferErrorKind(enum.Enum):
    """Kinds of errors found while checking documents."""

    DIMENSION_MISMATCH = "DimensionMismatch"
    UNKNOWN_DIMENSION = "UnknownDimension"
    UNKNOWN_VARIABLE = "UnknownVariable"
    UNKNOWN_DECISION = "UnknownDecision"
    OUT_OF_RANGE = "OutOfRange"


def check(terms: Terms, env: Environment) -> bool:
    """Check *terms* against *env*, inferring dimension arities in place.

    Errors are delayed on ``env.handler``; call ``print_all`` once every
    document has been checked.

    Returns:
        True if any error was found.
    """
    errors = False
    handler = env.handler
    for term in terms:
        if isinstance(term, VarTerm):
            if term.name not in env.variables and not env.ignore_unset:
                handler.error(f"Undeclared variable `{term.name}`.").with_span(term.span).with_kind(
                    InferErrorKind.UNKNOWN_VARIABLE
                ).suggest("bind it under `variables` in the config file, or pass --ignore-unset.").delay()
                errors = True
        elif isinstance(term, DimensionTerm):
            dim = env.get_dimension(term.name)
            if dim is None:
                _unknown_dimension(term, env)
                errors = True
                continue
            if not dim.try_set_dim(term.arity):
                error_size_conflict(handler, term.name, term.span, dim.arity, term.arity)
                errors = True
            elif dim.decision >= term.arity:
                handler.error(
                    f"Decision `{term.name}={dim.decision}` is out of range for a dimension with "
                    f"{term.arity} choice{'s' if term.arity != 1 else ''}."
                ).with_span(term.span).with_kind(InferErrorKind.OUT_OF_RANGE).delay()
                errors = True
            for child in term.children:
                errors = check(child, env) or errors
    return errors


def collect(terms: Terms, handler: Handler, dims: dict[str, int] | None = None) -> dict[str, int]:
    """Gather every dimension used in *terms* with its number of branches.

    The first occurrence of a name fixes its arity; later occurrences with a
    different arity are reported as errors.

    Args:
        terms: The document.
        handler: Receives mismatch errors.
        dims: Accumulator shared across documents. A new one is used if omitted.

    Returns:
        The accumulator.
    """
    if dims is None:
        dims = {}
    for term in terms:
        if not isinstance(term, DimensionTerm):
            continue
        size = dims.get(term.name)
        if size is None:
            dims[term.name] = term.arity
        elif size != term.arity:
            error_size_conflict(handler, term.name, term.span, size, term.arity)
        for child in term.children:
            collect(child, handler, dims)
    return dims


def collect_dims(
    documents: Iterable[Terms], handler: Handler, declared: dict[str, Choices] | None = None
) -> list[tuple[str, Choices]]:
    """Return every dimension used in *documents* or declared, sorted by name.

    Declared dimensions keep their declaration; the others are reported with
    their observed number of branches.
    """
    observed: dict[str, int] = {}
    for terms in documents:
        collect(terms, handler, observed)
    dimensions: dict[str, Choices] = dict(declared or {})
    for name, size in observed.items():
        dimensions.setdefault(name, SizeChoices(size))
    return sorted(dimensions.items())


def error_size_conflict(handler: Handler, name: str, span: Span, expected: int, found: int) -> None:
    handler.error(f"Conflicting number of choices for dimension `{name}`.").with_span(span).with_kind(
        InferErrorKind.DIMENSION_MISMATCH
    ).note(f"expected {expected} choices, found {found}.").delay()


# ################
# Implementation
# ################


def _unknown_dimension(term: DimensionTerm, env: Environment) -> None:
    if term.name in env.declared:
        env.handler.error(f"No decision for dimension `{term.name}`.").with_span(term.span).with_kind(
            InferErrorKind.UNKNOWN_DECISION
        ).suggest(f"pass a decision such as `{term.name}=0` on the command line.").delay()
        return
    env.handler.error(f"Unknown dimension `{term.name}`.").with_span(term.span).with_kind(
        InferErrorKind.UNKNOWN_DIMENSION
    ).note(
        "Decision inference is not supported yet. This dimension requires a decision given explicitly."
    ).note("Postponed dimension declaration (in source files) is not supported yet.").delay()
