# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Byte positions, spans and the source map shared by all loaded files."""

from flan.sourcemap.source_map import SourceFile, SourceLoadError, SourceMap
from flan.sourcemap.span import Position, Span

__all__ = [
    "Position",
    "Span",
    "SourceFile",
    "SourceLoadError",
    "SourceMap",
]
