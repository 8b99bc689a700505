# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Recursive-descent parser for flan templates.

Grammar::

    Terms := Term*
    Term  := Text
           | '#$' VARID '#'
           | '#' DIMID '{' Terms ('##' Terms)* '}#'

A dimension nested inside a dimension of the same name is collapsed while
parsing: only the branch matching the enclosing occurrence's current branch
is kept, since the outer decision already fixes the inner one.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flan.diagnostics import Handler
from flan.sourcemap.span import Position, Span
from flan.syntax.errors import ParseError, SyntaxErrorKind
from flan.syntax.lexer import Lexer, Token, TokenKind
from flan.syntax.terms import DimensionTerm, Term, Terms, TextTerm, VarTerm

# ###############
# Public Interface
# ###############


def parse(source: str, handler: Handler | None = None, offset: Position = 0) -> Terms:
    """Parse template source text into a term tree.

    Args:
        source: The full text of one document.
        handler: Diagnostic sink. A silent default handler is used if omitted.
        offset: Global position at which *source* starts in the source map.

    Returns:
        The top-level terms of the document.

    Raises:
        ParseError: If lexing fails fatally or the document is malformed.
    """
    handler = handler or Handler()
    parser = string_to_parser(handler, source, offset)
    if parser is None:
        raise ParseError("Lexing failed", SyntaxErrorKind.NON_TERMINATED_TOKEN, Span.NIL)
    return parser.parse()


def source_to_stream(handler: Handler, source: str, offset: Position = 0) -> list[Token] | None:
    """Lex *source* completely.

    Returns:
        The token list ending with EOF, or None if the lexer failed.
    """
    lexer = Lexer(handler, source, offset)
    stream: list[Token] = []
    for token in lexer.tokens():
        stream.append(token)
        if lexer.failed():
            return None
    return stream


def string_to_parser(handler: Handler, source: str, offset: Position = 0) -> Parser | None:
    """Lex *source* and return a parser over it, or None if lexing failed."""
    stream = source_to_stream(handler, source, offset)
    if stream is None:
        return None
    return Parser(handler, source, stream, offset)


class Parser:
    """Parser over a fully materialized token stream."""

    def __init__(self, handler: Handler, source: str, tokens: list[Token], offset: Position = 0) -> None:
        if not tokens or not tokens[-1].is_eof():
            raise ValueError("token stream must end with EOF")
        self.handler = handler
        self._data = source.encode("utf-8")
        self._offset = offset
        self._tokens = tokens
        self._index = 0
        self._scopes: list[_Scope] = []

    def parse(self) -> Terms:
        """Parse the whole stream.

        Raises:
            ParseError: On a stray separator or closer, an unclosed dimension,
                or a nested same-named dimension with a different arity.
        """
        return self._parse_terms(depth=0)

    # ################
    # Implementation
    # ################

    # ------------------------------------------------------------------
    # Token access helpers
    # ------------------------------------------------------------------

    def _current(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        """Consume and return the current token, stopping at EOF."""
        token = self._tokens[self._index]
        if self._index < len(self._tokens) - 1:
            self._index += 1
        return token

    def _slice(self, span: Span, begin: int, end_trim: int) -> str:
        """Return the source text of *span* without *begin* leading and *end_trim* trailing bytes."""
        local = span.correct(self._offset)
        return self._data[local.lo + begin : local.hi - end_trim].decode("utf-8")

    # ------------------------------------------------------------------
    # Term sequences
    # ------------------------------------------------------------------

    def _parse_terms(self, depth: int) -> Terms:
        """Parse terms until EOF, or until a separator or closer inside a dimension."""
        terms: Terms = []
        while True:
            token = self._current()
            if token.kind == TokenKind.TEXT:
                terms.append(TextTerm(span=token.span))
                self._advance()
            elif token.kind == TokenKind.VAR:
                terms.append(VarTerm(name=self._slice(token.span, 2, 1), span=token.span))
                self._advance()
            elif token.kind == TokenKind.DIM_OPEN:
                terms.extend(self._parse_dim())
            elif token.kind in (TokenKind.DIM_SEP, TokenKind.DIM_CLOSE):
                if depth == 0:
                    self._unexpected(token)
                return terms
            else:
                return terms

    def _unexpected(self, token: Token) -> None:
        what = "separator `##`" if token.kind == TokenKind.DIM_SEP else "closing delimiter `}#`"
        message = f"Unexpected {what} outside of any dimension."
        self.handler.error(message).with_kind(SyntaxErrorKind.UNEXPECTED_TOKEN).with_span(token.span).suggest(
            "escape it with a backslash, e.g. `\\}#`, to keep it as text"
        ).print()
        raise ParseError(message, SyntaxErrorKind.UNEXPECTED_TOKEN, token.span)

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------

    def _parse_dim(self) -> list[Term]:
        """Parse one dimension starting at the current DimOpen token.

        Returns a single DimensionTerm, or the already selected branch when an
        enclosing dimension of the same name dominates this one.
        """
        opening = self._advance()
        name = self._slice(opening.span, 1, 1)
        scope = _Scope(name)
        self._scopes.append(scope)

        branches: list[Terms] = []
        while True:
            branches.append(self._parse_terms(depth=len(self._scopes)))
            token = self._current()
            if token.kind == TokenKind.DIM_SEP:
                scope.branch += 1
                self._advance()
            elif token.kind == TokenKind.DIM_CLOSE:
                closing = self._advance()
                break
            else:
                message = f"Unclosed dimension `{name}`."
                self.handler.error(message).with_kind(SyntaxErrorKind.UNCLOSED_DELIMITER).with_span(
                    opening.span
                ).note("Dimensions have the following syntax: #name{ first ## second }#").print()
                raise ParseError(message, SyntaxErrorKind.UNCLOSED_DELIMITER, opening.span)

        self._scopes.pop()
        span = opening.span + closing.span
        self._check_dominated(scope, len(branches))

        dominant = self._find_scope(name)
        if dominant is None:
            return [DimensionTerm(name=name, children=branches, span=span)]
        dominant.collapsed.append((len(branches), span))
        if dominant.branch < len(branches):
            return branches[dominant.branch]
        return []

    def _find_scope(self, name: str) -> _Scope | None:
        """Return the innermost open scope named *name*."""
        for scope in reversed(self._scopes):
            if scope.name == name:
                return scope
        return None

    def _check_dominated(self, scope: _Scope, arity: int) -> None:
        """Every collapsed occurrence must have as many branches as its dominator."""
        for nested_arity, nested_span in scope.collapsed:
            if nested_arity != arity:
                message = (
                    f"Conflicting number of choices for dimension `{scope.name}`: "
                    f"{nested_arity} nested inside a dimension with {arity}."
                )
                self.handler.error(message).with_kind(SyntaxErrorKind.DIMENSION_MISMATCH).with_span(
                    nested_span
                ).print()
                raise ParseError(message, SyntaxErrorKind.DIMENSION_MISMATCH, nested_span)


@dataclass
class _Scope:
    """An open dimension on the parser's scope stack."""

    name: str
    branch: int = 0
    collapsed: list[tuple[int, Span]] = field(default_factory=list)
