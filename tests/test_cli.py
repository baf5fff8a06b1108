"""CLI parser and exit code tests."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from patterndoc.cli import EXIT_DIAGNOSTICS, EXIT_FATAL, EXIT_OK, _build_parser, ignore_globs, main
from tests._fixtures.corpus_builder import CorpusBuilder


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "validate", "docs"])
    assert args.verbose is True
    assert args.command == "validate"


def test_cli_accepts_flags_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["build", "docs", "site", "--strict", "--verbose", "--ignore", "drafts/", "--jobs", "3"])
    assert args.command == "build"
    assert args.source_root == "docs"
    assert args.output_root == "site"
    assert args.strict is True
    assert args.verbose is True
    assert ignore_globs(args) == ["drafts/"]
    assert args.jobs == 3


def test_cli_list_accepts_filters() -> None:
    parser = _build_parser()
    args = parser.parse_args(["list", "docs", "--category", "behavioral", "--language", "go"])
    assert args.category == "behavioral"
    assert args.language == "go"
    assert args.quiet is False


def test_validate_clean_corpus_exits_zero(corpus_builder: CorpusBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    corpus_builder.write({"behavioral/observer.md": "# Observer\n\n## Intent\n\nNotify.\n"})

    code = main(["validate", str(corpus_builder.path())])

    assert code == EXIT_OK
    assert "Summary: 0 errors, 0 warnings, 0 info across 1 article" in capsys.readouterr().out


def test_duplicate_ids_exit_with_diagnostics(corpus_builder: CorpusBuilder) -> None:
    corpus_builder.write(
        {
            "Behavioral/Observer.md": "# Observer\n\n## Intent\n\nUpper.\n",
            "behavioral/observer.md": "# Observer\n\n## Intent\n\nLower.\n",
        }
    )

    assert main(["build", str(corpus_builder.path()), str(corpus_builder.output)]) == EXIT_DIAGNOSTICS
    assert (corpus_builder.output / "articles/behavioral/observer.md").is_file()


def test_strict_turns_warnings_into_failures(corpus_builder: CorpusBuilder) -> None:
    corpus_builder.write({"behavioral/a.md": "# A\n\n## Related Patterns\n\n- Nonexistent Pattern\n"})

    assert main(["validate", str(corpus_builder.path())]) == EXIT_OK
    assert main(["validate", str(corpus_builder.path()), "--strict"]) == EXIT_DIAGNOSTICS


def test_strict_from_config_file(corpus_builder: CorpusBuilder) -> None:
    corpus_builder.write(
        {
            ".patterndoc.yml": "validation:\n  strict: true\n",
            "behavioral/a.md": "# A\n",
        }
    )

    assert main(["validate", str(corpus_builder.path())]) == EXIT_DIAGNOSTICS


def test_json_summary_and_quiet(corpus_builder: CorpusBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    corpus_builder.write({"behavioral/a.md": "# A\n\n## Intent\n\n```cobol\nx\n```\n"})

    assert main(["validate", str(corpus_builder.path()), "--json"]) == EXIT_OK
    payload = json.loads(capsys.readouterr().out)
    assert payload["articles"] == 1
    assert payload["counts"] == {"error": 0, "warning": 0, "info": 1}
    assert payload["exit_code"] == EXIT_OK
    assert [item["severity"] for item in payload["diagnostics"]] == ["info"]

    assert main(["validate", str(corpus_builder.path()), "--json", "--quiet"]) == EXIT_OK
    quiet = json.loads(capsys.readouterr().out)
    assert quiet["diagnostics"] == []
    assert quiet["counts"]["info"] == 1


def test_missing_source_root_is_fatal(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["validate", str(tmp_path / "missing")])

    assert code == EXIT_FATAL
    assert "Source root not found" in capsys.readouterr().err


def test_missing_config_file_is_fatal(corpus_builder: CorpusBuilder, tmp_path: Path) -> None:
    corpus_builder.write({"behavioral/a.md": "# A\n"})

    assert main(["validate", str(corpus_builder.path()), "--config", str(tmp_path / "nope.yml")]) == EXIT_FATAL


def test_malformed_config_is_fatal(corpus_builder: CorpusBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    corpus_builder.write({".patterndoc.yml": "ignore: [unclosed\n", "behavioral/a.md": "# A\n"})

    assert main(["validate", str(corpus_builder.path())]) == EXIT_FATAL
    assert "config error" in capsys.readouterr().err


def test_list_prints_ids(corpus_builder: CorpusBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    corpus_builder.write(
        {
            "behavioral/observer.md": "# Observer\n\n```go\nx\n```\n",
            "structural/adapter.md": "# Adapter\n",
        }
    )

    assert main(["list", str(corpus_builder.path()), "--language", "go"]) == EXIT_OK
    assert capsys.readouterr().out == "behavioral/observer\n"

    assert main(["list", str(corpus_builder.path()), "--json"]) == EXIT_OK
    assert json.loads(capsys.readouterr().out) == {"articles": ["behavioral/observer", "structural/adapter"]}


def test_log_file_receives_stage_progress(corpus_builder: CorpusBuilder, tmp_path: Path) -> None:
    corpus_builder.write({"behavioral/a.md": "# A\n\n## Intent\n\nBody.\n"})
    log_file = tmp_path / "patterndoc.log"

    code = main(["build", str(corpus_builder.path()), str(corpus_builder.output), "--json", "--log-file", str(log_file)])

    assert code == EXIT_OK
    assert "Build complete" in log_file.read_text(encoding="utf-8")


def test_ignore_globs_before_and_after_command_are_combined(
    corpus_builder: CorpusBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    corpus_builder.write(
        {
            "behavioral/a.md": "# A\n",
            "behavioral/b.md": "# B\n",
            "behavioral/c.md": "# C\n",
        }
    )

    args = _build_parser().parse_args(["--ignore", "a.md", "list", "docs", "--ignore", "b.md"])
    assert ignore_globs(args) == ["a.md", "b.md"]

    code = main(["--ignore", "a.md", "list", str(corpus_builder.path()), "--ignore", "b.md"])

    assert code == EXIT_OK
    assert capsys.readouterr().out == "behavioral/c\n"


def test_unreadable_source_root_is_fatal(
    corpus_builder: CorpusBuilder, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    corpus_builder.write({"behavioral/a.md": "# A\n"})
    root = str(corpus_builder.path().resolve())
    real_scandir = os.scandir

    def scandir(path: object = ".") -> object:
        if os.fspath(path) == root:  # type: ignore[arg-type]
            raise PermissionError(13, "Permission denied", root)
        return real_scandir(path)  # type: ignore[arg-type]

    monkeypatch.setattr(os, "scandir", scandir)

    assert main(["validate", root]) == EXIT_FATAL
    assert "Permission denied" in capsys.readouterr().err
