# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Term tree produced by the parser.

Text is never copied into the tree: a :class:`TextTerm` only records the
span it covers and the writer re-reads those bytes from the source.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel
from pydantic import Field as _Field

from flan.sourcemap.span import Span

# ###############
# Public Interface
# ###############


class TextTerm(BaseModel):
    """A literal byte range copied verbatim to the output."""

    kind: Literal["text"] = "text"
    span: Span


class VarTerm(BaseModel):
    """A ``#$name#`` variable reference."""

    kind: Literal["var"] = "var"
    name: str
    span: Span


class DimensionTerm(BaseModel):
    """A named N-way choice.

    ``children[i]`` is the body of branch ``i``; the order is the order the
    branches appear in the source and defines the decision index space.
    """

    kind: Literal["dimension"] = "dimension"
    name: str
    children: list[list[Term]] = _Field(default_factory=list)
    span: Span

    @property
    def arity(self) -> int:
        return len(self.children)


# One node of a parsed document.
Term = Annotated[TextTerm | VarTerm | DimensionTerm, _Field(discriminator="kind")]

# A whole document or the body of one branch.
Terms = list[Term]

# Resolve the forward reference in DimensionTerm.children.
DimensionTerm.model_rebuild()
