# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Streaming output of a checked document.

Text is never held in the term tree, so the writer walks the tree alongside
a seekable reader over the original source. Before each term the reader's
position equals the writer's cursor. A term moves the cursor to the end of
its span, whatever it wrote: the spans of later terms are in source
coordinates, not output coordinates. Branches that were not selected are
skipped with a single seek and never read.
"""

from __future__ import annotations

import io
from typing import BinaryIO

from flan.infer.env import Environment
from flan.sourcemap.span import Position
from flan.syntax.terms import DimensionTerm, Term, Terms, TextTerm, VarTerm

# ###############
# Public Interface
# ###############

CHUNK_SIZE = 64 * 1024


class WriteInvariantError(Exception):
    """Raised when the writer reaches a state that checking should have ruled out.

    This indicates a bug, not a user error: a variable or dimension missing
    from the environment after checking succeeded, an out of range decision,
    a term tree whose spans go backwards, or a source shorter than its spans.
    """


def write_terms(terms: Terms, reader: BinaryIO, sink: BinaryIO, start: Position, env: Environment) -> Position:
    """Write *terms* to *sink*, reading text from *reader*.

    Args:
        terms: A checked document or branch body.
        reader: Seekable reader over the document, positioned at *start*.
        sink: Output byte stream.
        start: Global position corresponding to the reader's current position.
        env: The checked environment.

    Returns:
        The global position after the last term.

    Raises:
        WriteInvariantError: If the tree and environment disagree.
        OSError: If reading or writing fails.
    """
    pos = start
    for term in terms:
        pos = write_term(term, reader, sink, pos, env)
    return pos


def write_term(term: Term, reader: BinaryIO, sink: BinaryIO, pos: Position, env: Environment) -> Position:
    """Write a single term and return the position after its span."""
    pos = _skip_to(reader, pos, term.span.lo)
    if isinstance(term, TextTerm):
        _pipe(reader, sink, term.span.length())
        return term.span.hi
    if isinstance(term, VarTerm):
        value = env.get_var(term.name)
        if value is not None:
            sink.write(value.encode("utf-8"))
        elif not env.ignore_unset:
            raise WriteInvariantError(f"variable `{term.name}` is unbound at {term.span}")
        return _skip_to(reader, pos, term.span.hi)
    return _write_dimension(term, reader, sink, pos, env)


# ################
# Implementation
# ################


def _write_dimension(term: DimensionTerm, reader: BinaryIO, sink: BinaryIO, pos: Position, env: Environment) -> Position:
    dim = env.get_dimension(term.name)
    if dim is None:
        raise WriteInvariantError(f"dimension `{term.name}` has no decision at {term.span}")
    if not 0 <= dim.decision < term.arity:
        raise WriteInvariantError(
            f"decision {dim.decision} is out of range for dimension `{term.name}` with {term.arity} choices"
        )
    pos = write_terms(term.children[dim.decision], reader, sink, pos, env)
    return _skip_to(reader, pos, term.span.hi)


def _skip_to(reader: BinaryIO, pos: Position, target: Position) -> Position:
    """Seek the reader forward from *pos* to *target*."""
    delta = target - pos
    if delta < 0:
        raise WriteInvariantError(f"cursor at {pos} is past the next term at {target}")
    if delta:
        reader.seek(delta, io.SEEK_CUR)
    return target


def _pipe(reader: BinaryIO, sink: BinaryIO, size: int) -> None:
    """Copy exactly *size* bytes from *reader* to *sink*."""
    remaining = size
    while remaining > 0:
        chunk = reader.read(min(remaining, CHUNK_SIZE))
        if not chunk:
            raise WriteInvariantError(f"source ended {remaining} bytes early")
        sink.write(chunk)
        remaining -= len(chunk)
