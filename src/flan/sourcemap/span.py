# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Positions and half-open spans inside the global source map address space."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

# ###############
# Public Interface
# ###############

# A byte offset into the source map. Files are laid out back to back, so a
# position identifies both a file and an offset inside it.
Position = int

_POS_MIN = 0
_POS_MAX = 2**64 - 1


@dataclass(frozen=True)
class Span:
    """A half-open byte range ``[lo, hi)`` over the source map.

    Spans form a commutative monoid under :meth:`merge` (also ``+``) with
    :attr:`EMPTY` as identity. :attr:`NIL` marks a diagnostic that carries no
    location at all.

    Attributes:
        lo: First byte of the span.
        hi: First byte after the span.
    """

    lo: Position
    hi: Position

    EMPTY: ClassVar[Span]
    NIL: ClassVar[Span]

    def __len__(self) -> int:
        return self.length()

    def length(self) -> int:
        """Number of bytes covered. Neither sentinel covers any."""
        if self.is_nil():
            return 0
        return max(self.hi - self.lo, 0)

    def __add__(self, other: Span) -> Span:
        return self.merge(other)

    def merge(self, other: Span) -> Span:
        """Return the smallest span containing both spans."""
        return Span(min(self.lo, other.lo), max(self.hi, other.hi))

    def subspan(self, begin: int, end: int) -> Span:
        """Carve ``[lo + begin, lo + end)`` out of this span.

        Raises:
            ValueError: If the sub-range is reversed or reaches past ``hi``.
        """
        if end < begin or begin < 0:
            raise ValueError(f"invalid subspan [{begin}, {end}) of {self}")
        if self.lo + end > self.hi:
            raise ValueError(f"subspan [{begin}, {end}) out of bounds of {self}")
        return Span(self.lo + begin, self.lo + end)

    def contains(self, pos: Position) -> bool:
        """Return True if *pos* lies inside the span."""
        return self.lo <= pos < self.hi

    def correct(self, offset: Position) -> Span:
        """Rebase the span to coordinates local to a file starting at *offset*."""
        if offset > self.lo or offset > self.hi:
            raise ValueError(f"cannot rebase {self} to offset {offset}")
        return Span(self.lo - offset, self.hi - offset)

    def shift(self, offset: int) -> Span:
        """Move the span by *offset* bytes."""
        return Span(self.lo + offset, self.hi + offset)

    def is_nil(self) -> bool:
        return self == Span.NIL

    def __str__(self) -> str:
        return f"{self.lo}:{self.hi}"


Span.EMPTY = Span(_POS_MAX, _POS_MIN)
Span.NIL = Span(_POS_MIN, _POS_MAX)
