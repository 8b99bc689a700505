# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Lexical and syntactic error kinds."""

import enum

from flan.sourcemap.span import Span

# ###############
# Public Interface
# ###############


class SyntaxErrorKind(enum.Enum):
    """Kinds of errors reported while lexing and parsing."""

    # Lexical
    ILLEGAL_CHARACTER = "IllegalCharacter"
    NON_TERMINATED_TOKEN = "NonTerminatedToken"

    # Syntactic
    UNEXPECTED_TOKEN = "UnexpectedToken"
    UNCLOSED_DELIMITER = "UnclosedDelimiter"
    DIMENSION_MISMATCH = "DimensionMismatch"


class ParseError(Exception):
    """Raised when a document cannot be turned into a term tree.

    The diagnostic has already been reported to the handler by the time this
    is raised; the exception only stops parsing of the current document.

    Attributes:
        kind: What went wrong.
        span: Where it went wrong.
    """

    def __init__(self, message: str, kind: SyntaxErrorKind, span: Span) -> None:
        super().__init__(f"{span}: {message}")
        self.kind = kind
        self.span = span
