# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Source map: one address space shared by every file loaded in a run.

Each loaded file is given a start offset by :meth:`SourceMap.allocate`, and
files are laid out back to back with a one-byte gap between them. Tokens and
terms carry spans in this global space, which lets a diagnostic be traced
back to the file and line it came from.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from pathlib import Path

from flan.sourcemap.span import Position, Span

# ###############
# Public Interface
# ###############


class SourceLoadError(Exception):
    """Raised when a source file cannot be loaded into the source map."""


@dataclass
class SourceFile:
    """A file (or in-memory buffer) registered in the source map.

    Attributes:
        name: File name without its directory.
        path: Where the source is read from.
        destination: Where the processed output goes.
        text: Decoded source text, or None for binary files.
        start: Global position of the first byte.
        end: Global position one past the last byte.
        lines: Global positions of every line start.
    """

    name: str
    path: Path
    destination: Path
    text: str | None
    start: Position = 0
    end: Position = 0
    lines: list[Position] = field(default_factory=list)

    def is_binary(self) -> bool:
        return self.text is None

    def contains(self, span: Span) -> bool:
        return self.start <= span.lo and span.hi <= self.end

    def lookup_line(self, pos: Position) -> tuple[int, int] | None:
        """Return the 1-based ``(line, column)`` of *pos*, or None if outside the file.

        Columns count bytes, not characters.
        """
        if not self.lines or pos < self.start or pos > self.end:
            return None
        index = bisect.bisect_right(self.lines, pos) - 1
        return index + 1, pos - self.lines[index] + 1

    def line_text(self, line: int) -> str | None:
        """Return the text of the 1-based *line* without its newline."""
        if self.text is None or not 1 <= line <= len(self.lines):
            return None
        return self.text.split("\n")[line - 1]


class SourceMap:
    """Allocator and registry for source files.

    Replaces a process-wide offset counter: each run owns one map and hands
    its start offsets to the lexer explicitly.
    """

    def __init__(self) -> None:
        self._next_start: Position = 0
        self._sources: list[SourceFile] = []

    @property
    def sources(self) -> list[SourceFile]:
        return list(self._sources)

    def allocate(self, size: int) -> Position:
        """Reserve *size* bytes and return the start offset of the reservation."""
        start = self._next_start
        self._next_start += size + 1
        return start

    def load_file(self, path: Path, destination: Path) -> SourceFile:
        """Read *path* and register it.

        Files that do not decode as UTF-8 are registered as binary and keep
        no text.

        Raises:
            SourceLoadError: If *path* is not a regular file or cannot be read.
        """
        if not path.is_file():
            raise SourceLoadError(f"'{path}' is not a file")
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise SourceLoadError(f"Cannot read '{path}': {exc}") from exc

        try:
            text: str | None = data.decode("utf-8")
        except UnicodeDecodeError:
            text = None

        size = len(data) if text is not None else 1
        return self._register(
            SourceFile(name=path.name, path=path, destination=destination, text=text),
            data if text is not None else b"",
            size,
        )

    def add_source(self, text: str, name: str = "<string>") -> SourceFile:
        """Register an in-memory text source."""
        data = text.encode("utf-8")
        source = SourceFile(name=name, path=Path(name), destination=Path(name), text=text)
        return self._register(source, data, len(data))

    def lookup_source(self, pos: Position) -> SourceFile | None:
        """Return the source file whose range contains *pos*."""
        starts = [s.start for s in self._sources]
        index = bisect.bisect_right(starts, pos) - 1
        if index < 0:
            return None
        source = self._sources[index]
        return source if pos <= source.end else None

    # ################
    # Implementation
    # ################

    def _register(self, source: SourceFile, data: bytes, size: int) -> SourceFile:
        source.start = self.allocate(size)
        source.end = source.start + size
        source.lines = _line_starts(data, source.start) if source.text is not None else []
        self._sources.append(source)
        return source


def _line_starts(data: bytes, offset: Position) -> list[Position]:
    """Return the global positions of every line start in *data*."""
    lines = [offset]
    index = data.find(b"\n")
    while index != -1:
        lines.append(offset + index + 1)
        index = data.find(b"\n", index + 1)
    return lines
