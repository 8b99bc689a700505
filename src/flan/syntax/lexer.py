# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Lexical scanner for flan templates.

There are four meaningful token shapes; everything else is text:

* ``#IDENT{`` opens a dimension, where ``IDENT`` starts with a letter or
  ``_`` and continues with alphanumerics or ``_``.
* ``##`` separates the branches of a dimension. Outside of any open
  dimension it is plain text.
* ``}#`` closes a dimension.
* ``#$IDENT#`` references a variable, where ``IDENT`` is made of
  alphanumerics or any of ``!%&'*+-./:<=>?@_``.

``\\#``, ``\\}`` and ``\\\\`` escape the following character: the backslash is
dropped and the character is kept as text.

Token spans are byte ranges in the global source map, offset by the start
position the lexer is created with.
"""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass

from flan.diagnostics import Handler
from flan.sourcemap.span import Position, Span
from flan.syntax.errors import SyntaxErrorKind

# ###############
# Public Interface
# ###############


class TokenKind(enum.Enum):
    """All token kinds produced by the lexer."""

    TEXT = "Text"
    VAR = "Var"
    DIM_OPEN = "DimOpen"
    DIM_SEP = "DimSep"
    DIM_CLOSE = "DimClose"
    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    """A token kind tagged with its byte span.

    Tokens carry no text; the parser slices names out of the source.
    """

    kind: TokenKind
    span: Span

    def is_eof(self) -> bool:
        return self.kind == TokenKind.EOF


VAR_SYMBOLS = "!%&'*+-./:<=>?@_"


def is_dim_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def is_dim_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def is_var_symbol(ch: str) -> bool:
    return ch != "" and (ch.isalnum() or ch in VAR_SYMBOLS)


class Lexer:
    """Lazy scanner over one source string.

    Call :meth:`next_token` until it returns an EOF token. Once
    :meth:`failed` is True the rest of the stream is unreliable and should be
    discarded.
    """

    def __init__(self, handler: Handler, source: str, start: Position = 0) -> None:
        self.handler = handler
        self._source = source
        self._pos = 0
        self._byte: Position = start
        self._nest = 0
        self._failed = False

    @property
    def nesting(self) -> int:
        """Number of currently unmatched dimension openings."""
        return self._nest

    def failed(self) -> bool:
        """Return True once an unrecoverable lexical error has been reported."""
        return self._failed

    def tokens(self) -> Iterator[Token]:
        """Yield tokens up to and including EOF."""
        while True:
            token = self.next_token()
            yield token
            if token.is_eof():
                return

    def next_token(self) -> Token:
        """Scan and return the next token."""
        start = self._byte
        while self._pos < len(self._source):
            ch = self._current()
            nxt = self._peek()

            if ch == "\\" and nxt in ("#", "}", "\\"):
                if self._byte != start:
                    return Token(TokenKind.TEXT, Span(start, self._byte))
                self._advance()  # the backslash is dropped
                start = self._byte
                self._advance()
                continue

            if ch == "#":
                kind = self._classify_hash(nxt)
                if kind is not None:
                    if self._byte != start:
                        return Token(TokenKind.TEXT, Span(start, self._byte))
                    return self._scan(kind)
            elif ch == "}" and nxt == "#":
                if self._byte != start:
                    return Token(TokenKind.TEXT, Span(start, self._byte))
                return self._scan_dim_close()

            self._advance()

        if self._byte != start:
            return Token(TokenKind.TEXT, Span(start, self._byte))
        return Token(TokenKind.EOF, Span(self._byte, self._byte))

    # ################
    # Implementation
    # ################

    # ------------------------------------------------------------------
    # Low-level character access helpers
    # ------------------------------------------------------------------

    def _current(self) -> str:
        """Return the character at the current position, or '' at end of input."""
        if self._pos < len(self._source):
            return self._source[self._pos]
        return ""

    def _peek(self, n: int = 1) -> str:
        """Return the character *n* positions ahead, or '' past the end."""
        if self._pos + n < len(self._source):
            return self._source[self._pos + n]
        return ""

    def _advance(self) -> str:
        """Consume the current character and move the byte cursor past it."""
        ch = self._source[self._pos]
        self._pos += 1
        self._byte += 1 if ch < "\x80" else len(ch.encode("utf-8"))
        return ch

    # ------------------------------------------------------------------
    # Token scanning dispatcher
    # ------------------------------------------------------------------

    def _classify_hash(self, nxt: str) -> TokenKind | None:
        """Decide which token, if any, starts at the current ``#``."""
        if nxt == "$":
            return TokenKind.VAR
        if nxt == "#" and self._nest > 0:
            return TokenKind.DIM_SEP
        if is_dim_start(nxt) and self._looks_like_dim_open():
            return TokenKind.DIM_OPEN
        return None

    def _looks_like_dim_open(self) -> bool:
        """Look ahead for ``IDENT{`` after the current ``#`` without consuming."""
        index = self._pos + 1
        while index < len(self._source) and is_dim_char(self._source[index]):
            index += 1
        return index < len(self._source) and self._source[index] == "{"

    def _scan(self, kind: TokenKind) -> Token:
        if kind == TokenKind.VAR:
            return self._scan_var()
        if kind == TokenKind.DIM_SEP:
            return self._scan_dim_sep()
        return self._scan_dim_open()

    def _scan_dim_open(self) -> Token:
        start = self._byte
        while self._advance() != "{":
            pass
        self._nest += 1
        return Token(TokenKind.DIM_OPEN, Span(start, self._byte))

    def _scan_dim_sep(self) -> Token:
        start = self._byte
        self._advance()  # #
        self._advance()  # #
        return Token(TokenKind.DIM_SEP, Span(start, self._byte))

    def _scan_dim_close(self) -> Token:
        start = self._byte
        self._advance()  # }
        self._advance()  # #
        # The parser reports unbalanced closers.
        self._nest = max(self._nest - 1, 0)
        return Token(TokenKind.DIM_CLOSE, Span(start, self._byte))

    def _scan_var(self) -> Token:
        """Scan ``#$IDENT#``.

        Illegal characters are reported once and scanning goes on, so a
        variable that still terminates yields a usable token. Whitespace or
        end of input before the closing ``#`` is fatal for the stream.
        """
        start = self._byte
        self._advance()  # #
        self._advance()  # $
        reported = False
        while self._pos < len(self._source):
            ch = self._current()
            if is_var_symbol(ch):
                self._advance()
            elif ch == "#":
                self._advance()
                return Token(TokenKind.VAR, Span(start, self._byte))
            elif ch.isspace():
                self._fail(
                    "Non-terminated variable. Expected `#`, found whitespace instead.",
                    Span(start, self._byte),
                )
                return Token(TokenKind.VAR, Span(start, self._byte))
            else:
                if not reported:
                    span = Span(start, self._byte + len(ch.encode("utf-8")))
                    self.handler.error(f"Unexpected `{ch}` in variable name.").with_kind(
                        SyntaxErrorKind.ILLEGAL_CHARACTER
                    ).with_span(span).note(_identifier_note()).print()
                    reported = True
                self._advance()

        self._fail("Non-terminated variable, expected `#`.", Span(start, self._byte))
        return Token(TokenKind.VAR, Span(start, self._byte))

    def _fail(self, message: str, span: Span) -> None:
        self._failed = True
        self.handler.error(message).with_kind(SyntaxErrorKind.NON_TERMINATED_TOKEN).with_span(span).note(
            "Variables have the following syntax: #$variable#"
        ).print()


def _identifier_note() -> str:
    symbols = ", ".join(f"`{c}`" for c in VAR_SYMBOLS)
    return f"Legal characters for variable identifiers are alphanumeric chars or one of {symbols}."
