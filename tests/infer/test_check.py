# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for document checking and dimension collection."""

import io

from flan.config.file import NamedChoices, SizeChoices
from flan.diagnostics import ErrorFlags, Handler
from flan.infer.check import InferErrorKind, check, collect, collect_dims
from flan.infer.env import Dim, Environment
from flan.syntax.parser import parse
from flan.syntax.terms import Terms

# ###############
# Test Helpers
# ###############


def _handler() -> Handler:
    return Handler(ErrorFlags(report_level=0), stream=io.StringIO())


def _env(
    variables: dict[str, str] | None = None,
    dimensions: dict[str, Dim] | None = None,
    ignore_unset: bool = False,
    declared: set[str] | None = None,
) -> Environment:
    return Environment(variables or {}, dimensions or {}, _handler(), ignore_unset, declared)


def _terms(source: str) -> Terms:
    return parse(source, _handler())


# ###############
# Variables
# ###############


class TestVariables:
    def test_bound_variable(self) -> None:
        env = _env({"name": "flan"})
        assert not check(_terms("hi #$name#"), env)

    def test_unbound_variable(self) -> None:
        env = _env()
        assert check(_terms("hi #$name#"), env)
        assert env.handler.kinds() == [InferErrorKind.UNKNOWN_VARIABLE]

    def test_ignore_unset(self) -> None:
        env = _env(ignore_unset=True)
        assert not check(_terms("hi #$name#"), env)
        assert env.handler.diagnostics == []

    def test_every_unbound_variable_is_reported(self) -> None:
        env = _env()
        assert check(_terms("#$a# #$b# #$a#"), env)
        assert env.handler.error_count == 3


# ###############
# Dimensions
# ###############


class TestDimensions:
    def test_arity_is_inferred(self) -> None:
        env = _env(dimensions={"d": Dim.new(1)})
        assert not check(_terms("#d{a##b}#"), env)
        assert env.dimensions["d"].arity == 2

    def test_declared_arity_must_match(self) -> None:
        env = _env(dimensions={"d": Dim(arity=3, decision=0)})
        assert check(_terms("#d{a##b}#"), env)
        assert env.handler.kinds() == [InferErrorKind.DIMENSION_MISMATCH]

    def test_mismatch_across_documents(self) -> None:
        env = _env(dimensions={"d": Dim.new(0)})
        assert not check(_terms("#d{a##b}#"), env)
        assert check(_terms("#d{a##b##c}#"), env)
        assert env.dimensions["d"].arity == 2
        assert env.handler.kinds() == [InferErrorKind.DIMENSION_MISMATCH]

    def test_same_name_twice_in_one_document(self) -> None:
        env = _env(dimensions={"d": Dim.new(0)})
        assert not check(_terms("#d{a##b}# and #d{c##e}#"), env)

    def test_unknown_dimension_has_two_notes(self) -> None:
        env = _env()
        assert check(_terms("#mystery{a##b}#"), env)
        [diagnostic] = env.handler.diagnostics
        assert diagnostic.kind == InferErrorKind.UNKNOWN_DIMENSION
        assert len(diagnostic.extra) == 2
        assert "Decision inference is not supported yet" in diagnostic.extra[0]
        assert "Postponed dimension declaration" in diagnostic.extra[1]

    def test_declared_dimension_without_decision(self) -> None:
        env = _env(declared={"os"})
        assert check(_terms("#os{a##b}#"), env)
        assert env.handler.kinds() == [InferErrorKind.UNKNOWN_DECISION]

    def test_decision_out_of_range(self) -> None:
        env = _env(dimensions={"d": Dim.new(5)})
        assert check(_terms("#d{a##b}#"), env)
        assert env.handler.kinds() == [InferErrorKind.OUT_OF_RANGE]

    def test_branches_are_checked_recursively(self) -> None:
        env = _env(dimensions={"d": Dim.new(1), "e": Dim.new(0)})
        assert check(_terms("#d{#$x####e{#$y#}#}#"), env)
        assert env.handler.kinds() == [InferErrorKind.UNKNOWN_VARIABLE, InferErrorKind.UNKNOWN_VARIABLE]
        assert env.dimensions["e"].arity == 1

    def test_errors_are_delayed(self) -> None:
        stream = io.StringIO()
        env = Environment(handler=Handler(stream=stream))
        assert check(_terms("#$missing#"), env)
        assert stream.getvalue() == ""
        env.handler.print_all()
        assert "Undeclared variable `missing`." in stream.getvalue()


# ###############
# Collection
# ###############


class TestCollect:
    def test_observed_arities(self) -> None:
        handler = _handler()
        dims = collect(_terms("#a{x##y}# #b{z}# #a{#c{1##2##3}####b{q}#}#"), handler)
        assert dims == {"a": 2, "b": 1, "c": 3}
        assert not handler.has_errors()

    def test_mismatch_is_reported(self) -> None:
        handler = _handler()
        dims = collect(_terms("#a{x##y}# #a{x##y##z}#"), handler)
        assert dims == {"a": 2}
        assert handler.kinds() == [InferErrorKind.DIMENSION_MISMATCH]

    def test_accumulator_is_shared(self) -> None:
        handler = _handler()
        dims: dict[str, int] = {}
        collect(_terms("#a{x}#"), handler, dims)
        collect(_terms("#b{x##y}#"), handler, dims)
        assert dims == {"a": 1, "b": 2}

    def test_collect_dims_sorted_with_declarations(self) -> None:
        handler = _handler()
        documents = [_terms("#os{a##b##c}# #zed{x}#"), _terms("#level{1##2}#")]
        declared = {"os": NamedChoices(["linux", "mac", "windows"]), "unused": SizeChoices(4)}
        assert collect_dims(documents, handler, declared) == [
            ("level", SizeChoices(2)),
            ("os", NamedChoices(["linux", "mac", "windows"])),
            ("unused", SizeChoices(4)),
            ("zed", SizeChoices(1)),
        ]
