# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for run orchestration."""

import io
from pathlib import Path

import pytest

from flan.config.decisions import NumIndex
from flan.config.file import NamedChoices, SizeChoices
from flan.config.settings import Command, Config, Flags
from flan.diagnostics import ErrorFlags, Handler
from flan.driver import (
    DriverError,
    cleanup,
    load_sources,
    parse_sources,
    run,
    source_pairs,
    write_files,
)
from flan.infer.env import Environment
from flan.sourcemap.source_map import SourceMap

# ###############
# Test Helpers
# ###############

_TEMPLATE = "Hello #$name#, running on #os{Linux##macOS}#.\n"


def _flags(command: Command = Command.BUILD, report_level: int = 0, **kwargs: object) -> Flags:
    return Flags(errors=ErrorFlags(report_level=report_level), command=command, **kwargs)


def _project(tmp_path: Path, files: dict[str, str]) -> Config:
    """Write *files* under ``tmp_path/src`` and map each to ``tmp_path/out``."""
    paths = {}
    for name, text in files.items():
        source = tmp_path / "src" / name
        source.parent.mkdir(parents=True, exist_ok=True)
        source.write_text(text, encoding="utf-8")
        paths[source] = tmp_path / "out" / name
    return Config(
        variables={"name": "flan"},
        dimensions={"os": NamedChoices(["linux", "mac"])},
        paths=paths,
        decisions_name={"mac"},
    )


def _run(config: Config, flags: Flags) -> tuple[int, str]:
    out = io.StringIO()
    code = run(config, flags, stdout=out)
    return code, out.getvalue()


# ###############
# Build
# ###############


class TestBuild:
    def test_writes_output(self, tmp_path: Path) -> None:
        config = _project(tmp_path, {"motd.txt": _TEMPLATE})
        code, out = _run(config, _flags(report_level=3))
        assert code == 0
        assert (tmp_path / "out" / "motd.txt").read_text(encoding="utf-8") == "Hello flan, running on macOS.\n"
        assert out == "Wrote 1 file(s).\n"

    def test_creates_destination_directories(self, tmp_path: Path) -> None:
        config = _project(tmp_path, {"deep/nested/a.txt": "x"})
        assert _run(config, _flags())[0] == 0
        assert (tmp_path / "out" / "deep" / "nested" / "a.txt").read_text(encoding="utf-8") == "x"

    def test_refuses_existing_destination(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = _project(tmp_path, {"motd.txt": _TEMPLATE})
        destination = tmp_path / "out" / "motd.txt"
        destination.parent.mkdir()
        destination.write_text("keep me", encoding="utf-8")
        code, _ = _run(config, _flags())
        assert code == 1
        assert destination.read_text(encoding="utf-8") == "keep me"
        assert "already exists" in capsys.readouterr().err

    def test_force_overwrites(self, tmp_path: Path) -> None:
        config = _project(tmp_path, {"motd.txt": _TEMPLATE})
        destination = tmp_path / "out" / "motd.txt"
        destination.parent.mkdir()
        destination.write_text("old", encoding="utf-8")
        assert _run(config, _flags(force=True))[0] == 0
        assert destination.read_text(encoding="utf-8") == "Hello flan, running on macOS.\n"

    def test_in_place_build_keeps_the_template(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        template = tmp_path / "motd.txt"
        template.write_text(_TEMPLATE, encoding="utf-8")
        config = Config(
            variables={"name": "flan"},
            dimensions={"os": NamedChoices(["linux", "mac"])},
            paths={template: template},
            decisions_name={"mac"},
        )
        assert _run(config, _flags(force=True))[0] == 1
        assert template.read_text(encoding="utf-8") == _TEMPLATE
        assert "is its own source" in capsys.readouterr().err

    def test_in_place_binary_is_kept(self, tmp_path: Path) -> None:
        blob = tmp_path / "logo.bin"
        blob.write_bytes(b"\xff\xfe\x00")
        config = Config(paths={blob: blob})
        assert _run(config, _flags(force=True))[0] == 1
        assert blob.read_bytes() == b"\xff\xfe\x00"

    def test_unbound_variable_writes_nothing(self, tmp_path: Path) -> None:
        config = _project(tmp_path, {"a.txt": "fine", "b.txt": "#$missing#"})
        assert _run(config, _flags())[0] == 1
        assert not (tmp_path / "out").exists()

    def test_ignore_unset(self, tmp_path: Path) -> None:
        config = _project(tmp_path, {"b.txt": "[#$missing#]"})
        assert _run(config, _flags(ignore_unset=True))[0] == 0
        assert (tmp_path / "out" / "b.txt").read_text(encoding="utf-8") == "[]"

    def test_parse_failure_fails_the_run(self, tmp_path: Path) -> None:
        config = _project(tmp_path, {"good.txt": "ok", "bad.txt": "#os{a##b"})
        assert _run(config, _flags())[0] == 1
        assert not (tmp_path / "out").exists()

    def test_resolve_error(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = _project(tmp_path, {"motd.txt": _TEMPLATE})
        config.decisions_pair = {"os": NumIndex(7)}
        assert _run(config, _flags())[0] == 1
        assert "Error:" in capsys.readouterr().err

    def test_binary_is_copied(self, tmp_path: Path) -> None:
        config = _project(tmp_path, {})
        source = tmp_path / "logo.bin"
        data = b"\xff\xfe#$name#\x00"
        source.write_bytes(data)
        config.paths[source] = tmp_path / "out" / "logo.bin"
        assert _run(config, _flags())[0] == 0
        assert (tmp_path / "out" / "logo.bin").read_bytes() == data

    def test_prefixes(self, tmp_path: Path) -> None:
        (tmp_path / "in").mkdir()
        (tmp_path / "in" / "t.txt").write_text("#$name#", encoding="utf-8")
        config = Config(variables={"name": "flan"}, paths={Path("t.txt"): Path("t.out")})
        flags = _flags(in_prefix=tmp_path / "in", out_prefix=tmp_path / "dist")
        assert _run(config, flags)[0] == 0
        assert (tmp_path / "dist" / "t.out").read_text(encoding="utf-8") == "flan"


# ###############
# Check and Query
# ###############


class TestCheck:
    def test_writes_nothing(self, tmp_path: Path) -> None:
        config = _project(tmp_path, {"motd.txt": _TEMPLATE})
        code, out = _run(config, _flags(Command.CHECK, report_level=3))
        assert code == 0
        assert not (tmp_path / "out").exists()
        assert "motd.txt ->" in out
        assert out.endswith("No issues found.\n")

    def test_silenced_check_prints_nothing(self, tmp_path: Path) -> None:
        config = _project(tmp_path, {"motd.txt": _TEMPLATE})
        assert _run(config, _flags(Command.CHECK)) == (0, "")

    def test_arity_mismatch_across_files(self, tmp_path: Path) -> None:
        config = _project(tmp_path, {"a.txt": "#level{1##2}#", "b.txt": "#level{1##2##3}#"})
        config.decisions_pair = {"level": NumIndex(0)}
        assert _run(config, _flags(Command.CHECK))[0] == 1


class TestQuery:
    def test_lists_dimensions(self, tmp_path: Path) -> None:
        config = _project(tmp_path, {"a.txt": "#level{a##b##c}# #os{x##y}#"})
        code, out = _run(config, _flags(Command.QUERY))
        assert code == 0
        assert out == "level: 3\nos: [linux, mac]\n"

    def test_needs_no_decisions(self, tmp_path: Path) -> None:
        config = _project(tmp_path, {"a.txt": "#undecided{a##b}# #$unbound#"})
        config.decisions_name = set()
        code, out = _run(config, _flags(Command.QUERY))
        assert code == 0
        assert out == "os: [linux, mac]\nundecided: 2\n"


# ###############
# Building Blocks
# ###############


class TestSourcePairs:
    def test_sorted_and_prefixed(self) -> None:
        config = Config(paths={Path("b"): Path("B"), Path("a"): Path("A")})
        flags = _flags(in_prefix=Path("src"), out_prefix=Path("dist"))
        assert source_pairs(config, flags) == [
            (Path("src/a"), Path("dist/A")),
            (Path("src/b"), Path("dist/B")),
        ]

    def test_without_prefixes(self) -> None:
        config = Config(paths={Path("a"): Path("A")})
        assert source_pairs(config, _flags()) == [(Path("a"), Path("A"))]


class TestLoadAndParse:
    def test_directory_is_an_error(self, tmp_path: Path) -> None:
        handler = Handler(ErrorFlags(report_level=0), stream=io.StringIO())
        assert load_sources([(tmp_path, tmp_path / "out")], SourceMap(), handler) == []
        assert handler.error_count == 1

    def test_missing_file_is_an_error(self, tmp_path: Path) -> None:
        handler = Handler(ErrorFlags(report_level=0), stream=io.StringIO())
        assert load_sources([(tmp_path / "nope", tmp_path / "out")], SourceMap(), handler) == []
        assert handler.error_count == 1

    def test_failed_document_is_dropped(self) -> None:
        handler = Handler(ErrorFlags(report_level=0), stream=io.StringIO())
        source_map = SourceMap()
        good = source_map.add_source("#d{a##b}#", "good")
        bad = source_map.add_source("stray }#", "bad")
        trees, binaries = parse_sources([bad, good], handler)
        assert [source.name for source, _ in trees] == ["good"]
        assert binaries == []
        assert handler.has_errors()


class TestWriteFiles:
    def _trees(self, tmp_path: Path, count: int) -> list:
        source_map = SourceMap()
        handler = Handler(ErrorFlags(report_level=0), stream=io.StringIO())
        pairs = []
        for i in range(count):
            source = tmp_path / f"in{i}.txt"
            source.write_text(f"file {i} #$v#", encoding="utf-8")
            pairs.append((source, tmp_path / "out" / f"{i}.txt"))
        trees, _ = parse_sources(load_sources(pairs, source_map, handler), handler)
        return trees

    def test_writes_every_file(self, tmp_path: Path) -> None:
        trees = self._trees(tmp_path, 2)
        env = Environment({"v": "x"})
        assert write_files(trees, [], env) == 2
        assert (tmp_path / "out" / "1.txt").read_text(encoding="utf-8") == "file 1 x"

    def test_failure_removes_written_files(self, tmp_path: Path) -> None:
        trees = self._trees(tmp_path, 3)
        blocker = tmp_path / "out" / "2.txt"
        blocker.parent.mkdir()
        blocker.write_text("pre-existing", encoding="utf-8")
        with pytest.raises(DriverError):
            write_files(trees, [], Environment({"v": "x"}))
        assert not (tmp_path / "out" / "0.txt").exists()
        assert not (tmp_path / "out" / "1.txt").exists()
        assert blocker.read_text(encoding="utf-8") == "pre-existing"

    def test_own_source_aborts_before_other_files_are_kept(self, tmp_path: Path) -> None:
        trees = self._trees(tmp_path, 2)
        own_source, _ = trees[1]
        own_source.destination = own_source.path
        with pytest.raises(DriverError, match="its own source"):
            write_files(trees, [], Environment({"v": "x"}), force=True)
        assert own_source.path.read_text(encoding="utf-8") == "file 1 #$v#"
        assert not (tmp_path / "out" / "0.txt").exists()

    def test_unchecked_tree_is_cleaned_up(self, tmp_path: Path) -> None:
        trees = self._trees(tmp_path, 1)
        with pytest.raises(Exception, match="unbound"):
            write_files(trees, [], Environment())
        assert not (tmp_path / "out" / "0.txt").exists()

    def test_existing_binary_is_skipped(self, tmp_path: Path) -> None:
        source_map = SourceMap()
        source = tmp_path / "raw.bin"
        source.write_bytes(b"\x80\x81")
        binary = source_map.load_file(source, tmp_path / "raw.out")
        (tmp_path / "raw.out").write_bytes(b"old")
        assert write_files([], [binary], Environment()) == 0
        assert (tmp_path / "raw.out").read_bytes() == b"old"

    def test_cleanup_ignores_missing(self, tmp_path: Path) -> None:
        present = tmp_path / "present"
        present.write_text("x", encoding="utf-8")
        cleanup([present, tmp_path / "absent"])
        assert not present.exists()


def test_dimension_decisions_flow_to_output(tmp_path: Path) -> None:
    config = _project(tmp_path, {"a.txt": "#level{low##mid##high}#"})
    config.dimensions["level"] = SizeChoices(3)
    config.decisions_pair = {"level": NumIndex(2)}
    assert _run(config, _flags())[0] == 0
    assert (tmp_path / "out" / "a.txt").read_text(encoding="utf-8") == "high"
