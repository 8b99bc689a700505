# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Diagnostic reporting shared by the lexer, parser, resolver and checker.

Components never print directly; they build a :class:`Diagnostic` through a
:class:`Handler` and either print it right away or delay it until
:meth:`Handler.print_all`. The handler decides what is shown based on
:class:`ErrorFlags` and keeps count of errors so callers can tell whether a
pass succeeded.
"""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TextIO

from yachalk import chalk

from flan.sourcemap.span import Span

if TYPE_CHECKING:
    from flan.sourcemap.source_map import SourceMap

# ###############
# Public Interface
# ###############

DEFAULT_REPORT_LEVEL = 3


class Level(enum.IntEnum):
    """Severity of a diagnostic. Lower values are more severe."""

    FATAL = 1
    ERROR = 2
    WARNING = 3
    NOTE = 4


@dataclass
class Diagnostic:
    """A single reported event.

    Attributes:
        level: Severity.
        message: Main message.
        span: Location in the source map, ``Span.NIL`` when unknown.
        kind: Machine-readable error kind (an enum member), if any.
        extra: Additional notes and suggestions, already prefixed.
    """

    level: Level
    message: str
    span: Span = Span.NIL
    kind: enum.Enum | None = None
    extra: list[str] = field(default_factory=list)

    def is_error(self) -> bool:
        return self.level <= Level.ERROR


@dataclass(frozen=True)
class ErrorFlags:
    """Flags controlling how diagnostics are displayed and escalated.

    Attributes:
        report_level: 0 prints nothing, 1 fatal errors only, 2 also errors,
            3 also warnings, 4 and above also notes.
        warn_as_error: Promote every warning to an error.
        no_extra: Do not print extra notes and suggestions.
    """

    report_level: int = DEFAULT_REPORT_LEVEL
    warn_as_error: bool = False
    no_extra: bool = False


class Handler:
    """Diagnostic sink.

    One handler serves one pass (parsing, resolution or checking). It is not
    thread-safe; concurrent passes should each own a handler and the caller
    should add up :attr:`error_count`.
    """

    def __init__(
        self,
        flags: ErrorFlags | None = None,
        source_map: SourceMap | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self.flags = flags or ErrorFlags()
        self.source_map = source_map
        self._stream = stream
        self.error_count = 0
        self.warning_count = 0
        self.diagnostics: list[Diagnostic] = []
        self._delayed: list[Diagnostic] = []

    # -- builders ---------------------------------------------------------

    def fatal(self, message: str) -> DiagnosticBuilder:
        return DiagnosticBuilder(self, Level.FATAL, message)

    def error(self, message: str) -> DiagnosticBuilder:
        return DiagnosticBuilder(self, Level.ERROR, message)

    def warn(self, message: str) -> DiagnosticBuilder:
        return DiagnosticBuilder(self, Level.WARNING, message)

    def note(self, message: str) -> DiagnosticBuilder:
        return DiagnosticBuilder(self, Level.NOTE, message)

    # -- emission ---------------------------------------------------------

    def emit(self, diagnostic: Diagnostic) -> None:
        """Record *diagnostic* and print it immediately."""
        self._record(diagnostic)
        self._print(diagnostic)

    def delay(self, diagnostic: Diagnostic) -> None:
        """Record *diagnostic* but hold back printing until :meth:`print_all`."""
        self._record(diagnostic)
        self._delayed.append(diagnostic)

    def print_all(self) -> None:
        """Print and clear every delayed diagnostic."""
        delayed, self._delayed = self._delayed, []
        for diagnostic in delayed:
            self._print(diagnostic)

    def has_errors(self) -> bool:
        return self.error_count > 0

    def kinds(self) -> list[Any]:
        """Return the kinds of every recorded diagnostic, in emission order."""
        return [d.kind for d in self.diagnostics if d.kind is not None]

    def render(self, diagnostic: Diagnostic) -> str:
        """Format *diagnostic* for a terminal."""
        lines = [f"{_label(diagnostic.level)} {diagnostic.message}"]
        location = self._locate(diagnostic.span)
        if location:
            lines.append(f" --> {location}")
        if not self.flags.no_extra:
            lines.extend(f"   {extra}" for extra in diagnostic.extra)
        return "\n".join(lines)

    # ################
    # Implementation
    # ################

    def _record(self, diagnostic: Diagnostic) -> None:
        if diagnostic.level == Level.WARNING and self.flags.warn_as_error:
            diagnostic.level = Level.ERROR
            diagnostic.extra.append("note: warnings are treated as errors")
        if diagnostic.is_error():
            self.error_count += 1
        elif diagnostic.level == Level.WARNING:
            self.warning_count += 1
        self.diagnostics.append(diagnostic)

    def _print(self, diagnostic: Diagnostic) -> None:
        if self.flags.report_level < diagnostic.level:
            return
        print(self.render(diagnostic), file=self._stream or sys.stderr)

    def _locate(self, span: Span) -> str | None:
        if span.is_nil() or span == Span.EMPTY:
            return None
        if self.source_map is None:
            return f"{span}"
        source = self.source_map.lookup_source(span.lo)
        if source is None:
            return f"{span}"
        line_col = source.lookup_line(span.lo)
        if line_col is None:
            return f"{source.path}"
        line, column = line_col
        return f"{source.path}:{line}:{column}"


class DiagnosticBuilder:
    """Fluent builder returned by the :class:`Handler` level methods."""

    def __init__(self, handler: Handler, level: Level, message: str) -> None:
        self._handler = handler
        self._diagnostic = Diagnostic(level=level, message=message)

    def with_span(self, span: Span) -> DiagnosticBuilder:
        self._diagnostic.span = span
        return self

    def with_kind(self, kind: enum.Enum) -> DiagnosticBuilder:
        self._diagnostic.kind = kind
        return self

    def note(self, message: str) -> DiagnosticBuilder:
        self._diagnostic.extra.append(f"note: {message}")
        return self

    def suggest(self, message: str) -> DiagnosticBuilder:
        self._diagnostic.extra.append(f"suggestion: {message}")
        return self

    def is_error(self) -> bool:
        return self._diagnostic.is_error()

    def build(self) -> Diagnostic:
        """Return the diagnostic without recording it."""
        return self._diagnostic

    def print(self) -> Diagnostic:
        """Record and print the diagnostic."""
        diagnostic = self.build()
        self._handler.emit(diagnostic)
        return diagnostic

    def delay(self) -> Diagnostic:
        """Record the diagnostic and print it on the next ``print_all``."""
        diagnostic = self.build()
        self._handler.delay(diagnostic)
        return diagnostic


def _label(level: Level) -> str:
    if level == Level.FATAL:
        return chalk.red("fatal error:")
    if level == Level.ERROR:
        return chalk.red("error:")
    if level == Level.WARNING:
        return chalk.yellow("warning:")
    return chalk.blue("note:")
