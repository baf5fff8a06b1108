"""Tests for source tree scanning."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from patterndoc.models import OTHER, WARNING
from patterndoc.scanner import SourceScanner, article_id, build_ignore_rule, infer_category
from tests._fixtures.corpus_builder import CorpusBuilder


def test_scan_yields_markdown_in_lexicographic_order(corpus_builder: CorpusBuilder) -> None:
    corpus_builder.write(
        {
            "structural/adapter.md": "# Adapter\n",
            "behavioral/observer.md": "# Observer\n",
            "behavioral/command.md": "# Command\n",
            "notes.txt": "not an article\n",
        }
    )

    sources = list(SourceScanner().scan(corpus_builder.path()))

    assert [source.relative_path for source in sources] == [
        "behavioral/command.md",
        "behavioral/observer.md",
        "structural/adapter.md",
    ]
    assert sources[0].category == "behavioral"
    assert sources[0].content == b"# Command\n"
    assert Path(sources[0].path).is_absolute()


def test_scan_skips_hidden_and_tooling_directories(corpus_builder: CorpusBuilder) -> None:
    corpus_builder.write(
        {
            ".git/notes.md": "# Git\n",
            "node_modules/pkg/readme.md": "# Pkg\n",
            ".drafts/wip.md": "# Draft\n",
            "testing/mocks.md": "# Mocks\n",
        }
    )

    paths = SourceScanner().scan(corpus_builder.path()).paths

    assert paths == ["testing/mocks.md"]


def test_scan_allows_named_hidden_directories(corpus_builder: CorpusBuilder) -> None:
    corpus_builder.write({".drafts/wip.md": "# Draft\n"})

    paths = SourceScanner(allow_hidden=[".drafts"]).scan(corpus_builder.path()).paths

    assert paths == [".drafts/wip.md"]


def test_scan_respects_gitignore_and_ignore_globs(corpus_builder: CorpusBuilder) -> None:
    corpus_builder.write(
        {
            ".gitignore": "drafts/\n*.tmp.md\n!keep.tmp.md\n",
            "drafts/idea.md": "# Idea\n",
            "behavioral/state.tmp.md": "# Temp\n",
            "behavioral/keep.tmp.md": "# Keep\n",
            "behavioral/state.md": "# State\n",
            "archive/old.md": "# Old\n",
        }
    )

    paths = SourceScanner(ignore=["/archive"]).scan(corpus_builder.path()).paths

    assert paths == ["behavioral/keep.tmp.md", "behavioral/state.md"]


def test_scan_excludes_output_directory_nested_in_root(corpus_builder: CorpusBuilder) -> None:
    corpus_builder.write(
        {
            "behavioral/observer.md": "# Observer\n",
            "site/articles/behavioral/observer.md": "# Observer\n",
        }
    )
    output = corpus_builder.path() / "site"

    paths = SourceScanner(exclude=[output]).scan(corpus_builder.path()).paths

    assert paths == ["behavioral/observer.md"]


def test_scan_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        SourceScanner().scan(tmp_path / "missing")


def test_scan_file_root_raises(tmp_path: Path) -> None:
    target = tmp_path / "article.md"
    target.write_text("# Article\n", encoding="utf-8")
    with pytest.raises(NotADirectoryError):
        SourceScanner().scan(target)


def test_unreadable_file_becomes_warning(corpus_builder: CorpusBuilder) -> None:
    corpus_builder.write({"behavioral/observer.md": "# Observer\n"})
    result = SourceScanner().scan(corpus_builder.path())
    (corpus_builder.path() / "behavioral/observer.md").unlink()

    sources = list(result)

    assert sources == []
    assert len(result.diagnostics) == 1
    diagnostic = result.diagnostics[0]
    assert diagnostic.severity == WARNING
    assert diagnostic.article_id == "behavioral/observer"
    assert diagnostic.message.startswith("Unreadable file skipped")


def test_unreadable_directory_becomes_warning(corpus_builder: CorpusBuilder, monkeypatch: pytest.MonkeyPatch) -> None:
    corpus_builder.write({"behavioral/a.md": "# A\n", "structural/b.md": "# B\n"})
    blocked = str((corpus_builder.path() / "structural").resolve())
    real_scandir = os.scandir

    def scandir(path: object = ".") -> object:
        if os.fspath(path) == blocked:  # type: ignore[arg-type]
            raise PermissionError(13, "Permission denied", blocked)
        return real_scandir(path)  # type: ignore[arg-type]

    monkeypatch.setattr(os, "scandir", scandir)

    result = SourceScanner().scan(corpus_builder.path())

    assert result.paths == ["behavioral/a.md"]
    assert [(d.severity, d.article_id, d.location) for d in result.diagnostics] == [
        (WARNING, "structural", "structural/")
    ]
    assert result.diagnostics[0].message == "Unreadable directory skipped: Permission denied"


def test_unreadable_root_raises(corpus_builder: CorpusBuilder, monkeypatch: pytest.MonkeyPatch) -> None:
    corpus_builder.write({"behavioral/a.md": "# A\n"})
    root = str(corpus_builder.path().resolve())
    real_scandir = os.scandir

    def scandir(path: object = ".") -> object:
        if os.fspath(path) == root:  # type: ignore[arg-type]
            raise PermissionError(13, "Permission denied", root)
        return real_scandir(path)  # type: ignore[arg-type]

    monkeypatch.setattr(os, "scandir", scandir)

    with pytest.raises(PermissionError):
        SourceScanner().scan(corpus_builder.path())


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("behavioral/observer.md", "behavioral"),
        ("Behavioural/observer.md", "behavioral"),
        ("patterns/structural/adapter.md", "structural"),
        ("creational/builder.md", "creational"),
        ("concurrency/actor.md", "concurrency"),
        ("tests/fixtures.md", "testing"),
        ("perf/pooling.md", "performance"),
        ("functional/monad.md", "functional"),
        ("misc/glossary.md", OTHER),
        ("readme.md", OTHER),
    ],
)
def test_infer_category(path: str, expected: str) -> None:
    assert infer_category(path) == expected


def test_article_id_is_lowercased_and_extension_stripped() -> None:
    assert article_id("Behavioral/Observer.md") == "behavioral/observer"
    assert article_id("./structural//adapter.md") == "structural/adapter"
    assert article_id("intro.md") == "intro"


def test_build_ignore_rule_handles_negation_and_anchors() -> None:
    rule = build_ignore_rule("!/docs/")

    assert rule is not None
    assert rule.negate is True
    assert rule.anchored is True
    assert rule.directory_only is True
    assert rule.pattern == "docs"
    assert build_ignore_rule("   ") is None
