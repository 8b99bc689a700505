# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Lexer, term tree and parser for flan templates."""

from flan.syntax.errors import ParseError, SyntaxErrorKind
from flan.syntax.lexer import Lexer, Token, TokenKind
from flan.syntax.parser import Parser, parse, source_to_stream, string_to_parser
from flan.syntax.terms import DimensionTerm, Term, Terms, TextTerm, VarTerm

__all__ = [
    "DimensionTerm",
    "Lexer",
    "ParseError",
    "Parser",
    "SyntaxErrorKind",
    "Term",
    "Terms",
    "TextTerm",
    "Token",
    "TokenKind",
    "VarTerm",
    "parse",
    "source_to_stream",
    "string_to_parser",
]
