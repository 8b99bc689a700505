# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Run orchestration: load, parse, resolve, check and write.

Nothing is written unless every document of the run parsed and checked
without errors. If writing fails halfway, every destination written by the
run so far is removed again.
"""

from __future__ import annotations

import shutil
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import TextIO

from flan.config.file import Choices
from flan.config.settings import Command, Config, Flags
from flan.diagnostics import Handler
from flan.infer.check import check, collect_dims
from flan.infer.env import Environment
from flan.infer.resolve import ResolveError, make_env
from flan.output.writer import WriteInvariantError, write_terms
from flan.sourcemap.source_map import SourceFile, SourceLoadError, SourceMap
from flan.syntax.errors import ParseError
from flan.syntax.parser import parse
from flan.syntax.terms import Terms

# ###############
# Public Interface
# ###############


class DriverError(Exception):
    """Raised when a destination cannot be written."""


Tree = tuple[SourceFile, Terms]


def source_pairs(config: Config, flags: Flags) -> list[tuple[Path, Path]]:
    """Return ``(source, destination)`` for every configured path, prefixes applied.

    Absolute paths are kept as they are.
    """
    pairs = []
    for source, destination in sorted(config.paths.items()):
        if flags.in_prefix is not None:
            source = flags.in_prefix / source
        if flags.out_prefix is not None:
            destination = flags.out_prefix / destination
        pairs.append((source, destination))
    return pairs


def load_sources(
    pairs: Iterable[tuple[Path, Path]], source_map: SourceMap, handler: Handler
) -> list[SourceFile]:
    """Load every source into *source_map*.

    A source that cannot be loaded is reported on *handler* and skipped.
    """
    sources = []
    for source, destination in pairs:
        if source.is_dir():
            handler.error(f"couldn't load `{source}`: directories are not supported yet.").suggest(
                "list each file of the directory under `paths`."
            ).print()
            continue
        try:
            sources.append(source_map.load_file(source, destination))
        except SourceLoadError as exc:
            handler.error(f"couldn't load `{source}`: {exc}").print()
    return sources


def parse_sources(sources: Iterable[SourceFile], handler: Handler) -> tuple[list[Tree], list[SourceFile]]:
    """Parse every text source.

    A document that fails to parse is reported and dropped; the others are
    still parsed.

    Returns:
        The parsed documents, and the binary sources set aside for copying.
    """
    trees: list[Tree] = []
    binaries: list[SourceFile] = []
    for source in sources:
        if source.text is None:
            binaries.append(source)
            continue
        try:
            trees.append((source, parse(source.text, handler, source.start)))
        except ParseError:
            handler.print_all()
    return trees, binaries


def check_trees(trees: Iterable[Tree], env: Environment) -> bool:
    """Check every document against the shared *env* and print the delayed errors.

    Returns:
        True if any document has errors.
    """
    errors = False
    for _, terms in trees:
        errors = check(terms, env) or errors
    env.handler.print_all()
    return errors


def query_dimensions(
    trees: Iterable[Tree], handler: Handler, declared: dict[str, Choices] | None = None
) -> list[tuple[str, Choices]]:
    """Return every dimension used or declared in the run, sorted by name."""
    dimensions = collect_dims((terms for _, terms in trees), handler, declared)
    handler.print_all()
    return dimensions


def write_file(source: SourceFile, terms: Terms, env: Environment, force: bool = False) -> None:
    """Write the processed *source* to its destination.

    Raises:
        DriverError: If the destination is the source itself, or exists and
            *force* is off.
        WriteInvariantError: If the document was not checked against *env*.
        OSError: On any file system failure.
    """
    _check_destination(source, force)
    destination = source.destination
    destination.parent.mkdir(parents=True, exist_ok=True)
    with source.path.open("rb") as reader, destination.open("wb") as sink:
        write_terms(terms, reader, sink, source.start, env)


def copy_binary(source: SourceFile, force: bool = False) -> bool:
    """Copy a binary source byte for byte.

    Returns:
        False if the destination exists and *force* is off, so nothing was copied.

    Raises:
        DriverError: If the destination is the source itself.
    """
    destination = source.destination
    if is_own_source(source):
        raise DriverError(f"destination '{destination}' is its own source '{source.path}'.")
    if destination.exists() and not force:
        return False
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source.path, destination)
    return True


def write_files(trees: Iterable[Tree], binaries: Iterable[SourceFile], env: Environment, force: bool = False) -> int:
    """Write every document and copy every binary source.

    On failure, every destination written so far is removed before the
    error propagates. A destination is only recorded once it is known not to
    be a pre-existing file that must be kept, so cleanup never removes input.

    Returns:
        The number of files written.
    """
    written: list[Path] = []
    try:
        for source, terms in trees:
            _check_destination(source, force)
            written.append(source.destination)
            write_file(source, terms, env, force=True)
        for source in binaries:
            if copy_binary(source, force):
                written.append(source.destination)
    except (DriverError, WriteInvariantError, OSError):
        cleanup(written)
        raise
    return len(written)


def is_own_source(source: SourceFile) -> bool:
    """Return True if the destination of *source* is the source file itself."""
    destination = source.destination
    return destination.exists() and destination.samefile(source.path)


def cleanup(paths: Iterable[Path]) -> None:
    """Remove every file in *paths* that exists."""
    for path in paths:
        path.unlink(missing_ok=True)


def run(config: Config, flags: Flags, stdout: TextIO | None = None) -> int:
    """Execute one run and return its exit code.

    Diagnostics go to stderr through the handlers; query results and
    summaries go to *stdout*.
    """
    out = stdout or sys.stdout
    quiet = flags.errors.report_level == 0
    source_map = SourceMap()

    parse_handler = Handler(flags.errors, source_map)
    sources = load_sources(source_pairs(config, flags), source_map, parse_handler)
    trees, binaries = parse_sources(sources, parse_handler)

    if flags.command == Command.QUERY:
        query_handler = Handler(flags.errors, source_map)
        for name, choices in query_dimensions(trees, query_handler, config.dimensions):
            print(f"{name}: {choices}", file=out)
        return 1 if parse_handler.has_errors() or query_handler.has_errors() else 0

    env_handler = Handler(flags.errors, source_map)
    try:
        env = make_env(config, env_handler, flags.ignore_unset)
    except ResolveError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if check_trees(trees, env) or parse_handler.has_errors() or env_handler.has_errors():
        return 1

    if flags.command == Command.CHECK:
        if not quiet:
            for source in [s for s, _ in trees] + binaries:
                print(f"{source.path} -> {source.destination}", file=out)
            print("No issues found.", file=out)
        return 0

    try:
        count = write_files(trees, binaries, env, flags.force)
    except (DriverError, WriteInvariantError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if not quiet:
        print(f"Wrote {count} file(s).", file=out)
    return 0


# ################
# Implementation
# ################


def _check_destination(source: SourceFile, force: bool) -> None:
    destination = source.destination
    if is_own_source(source):
        raise DriverError(
            f"destination '{destination}' is its own source '{source.path}'. [choose a different destination]"
        )
    if destination.exists() and not force:
        raise DriverError(f"file '{destination}' already exists. [use --force to overwrite]")
