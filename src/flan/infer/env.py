# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Checking environment shared by every document of one run."""

from __future__ import annotations

from dataclasses import dataclass

from flan.diagnostics import Handler

# ###############
# Public Interface
# ###############


@dataclass
class Dim:
    """A resolved dimension.

    Attributes:
        arity: Number of branches. Negative until first observed in a document.
        decision: Selected branch, 0-indexed.
    """

    arity: int = -1
    decision: int = 0

    @classmethod
    def new(cls, decision: int) -> Dim:
        """A dimension whose arity is not known yet."""
        return cls(arity=-1, decision=decision)

    def try_set_dim(self, n: int) -> bool:
        """Fix the arity to *n*.

        Fails if *n* is negative or if the arity was already fixed to a
        different value. Setting the same value again succeeds.
        """
        if n < 0:
            return False
        if self.arity >= 0 and self.arity != n:
            return False
        self.arity = n
        return True

    def has_been_inferred(self) -> bool:
        return self.arity >= 0


class Environment:
    """Variables and dimensions for one checking pass.

    ``variables`` never changes after construction. ``dimensions`` is
    mutated while documents are checked, as arities get fixed, and must be
    treated as read-only once writing starts.
    """

    def __init__(
        self,
        variables: dict[str, str] | None = None,
        dimensions: dict[str, Dim] | None = None,
        handler: Handler | None = None,
        ignore_unset: bool = False,
        declared: set[str] | None = None,
    ) -> None:
        self.variables = variables if variables is not None else {}
        self.dimensions = dimensions if dimensions is not None else {}
        self.handler = handler or Handler()
        self.ignore_unset = ignore_unset
        # Declared dimensions, including those left without a decision.
        self.declared = declared if declared is not None else set(self.dimensions)

    def get_var(self, name: str) -> str | None:
        return self.variables.get(name)

    def get_dimension(self, name: str) -> Dim | None:
        return self.dimensions.get(name)

    def try_set_dimension(self, name: str, n: int) -> bool | None:
        """Run :meth:`Dim.try_set_dim` on dimension *name*; None if it is unknown."""
        dim = self.dimensions.get(name)
        if dim is None:
            return None
        return dim.try_set_dim(n)
