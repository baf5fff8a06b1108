"""Tests for per-article page rendering."""

from __future__ import annotations

from pathlib import Path

import pytest

from patterndoc.output import RenderError
from patterndoc.renderer import ArticleRenderer, page_path, relative_href
from tests._fixtures.corpus_builder import CorpusBuilder


def _corpus(corpus_builder: CorpusBuilder) -> None:
    corpus_builder.write(
        {
            "behavioral/observer.md": """
                Intro before the title.

                # Observer Pattern

                Notify dependents when state changes.

                ## Structure

                Pairs well with the [Mediator](mediator.md#intent) and [GoF](https://example.com/gof).
                `[code link](mediator.md)` stays literal.

                ```go
                // [fenced](mediator.md)
                type Observer interface{ Notify() }
                ```

                ## Structure

                Second structure section.

                ## Related Patterns

                - Mediator
                - Missing Pattern
            """,
            "behavioral/mediator.md": """
                # Mediator

                ## Intent

                Centralise communication.
            """,
        }
    )


def test_page_paths_are_relative() -> None:
    assert page_path("behavioral/observer") == "articles/behavioral/observer.md"
    assert relative_href("articles/behavioral/observer.md", "index.md") == "../../index.md"
    assert (
        relative_href("articles/behavioral/observer.md", "articles/structural/adapter.md")
        == "../structural/adapter.md"
    )


def test_render_produces_full_page(corpus_builder: CorpusBuilder) -> None:
    _corpus(corpus_builder)
    result = corpus_builder.load()
    article = result.catalog.articles["behavioral/observer"]

    page = ArticleRenderer().render(article, result.catalog, result.report)

    lines = page.split("\n")
    assert lines[0] == "[Catalog](../../index.md) / [Behavioral](../../index.md#behavioral) / Observer Pattern"
    assert lines[2] == "# Observer Pattern"
    assert "![diagnostics: 1 warning](https://img.shields.io/badge/diagnostics-1%20warning-yellow.svg)" in page
    assert "- [Structure](#structure)" in page
    assert "- [Structure](#structure-1)" in page
    assert "Intro before the title." in page
    assert page.index("Intro before the title.") < page.index("Notify dependents")
    assert "[Mediator](mediator.md#intent)" in page
    assert "[GoF](https://example.com/gof)" in page
    assert "`[code link](mediator.md)`" in page
    assert "// [fenced](mediator.md)" in page
    assert "- [Mediator](mediator.md)\n" in page
    assert page.rstrip("\n").endswith("_Diagnostics: 0 errors, 1 warning, 0 info_")
    assert page.endswith("\n") and not page.endswith("\n\n")


def test_render_rewrites_cross_directory_links(corpus_builder: CorpusBuilder) -> None:
    corpus_builder.write(
        {
            "structural/adapter.md": "# Adapter\n\n## Intent\n\nSee [Observer](/behavioral/Observer.md).\n",
            "behavioral/observer.md": "# Observer\n\n## Intent\n\nWatch.\n",
        }
    )
    result = corpus_builder.load()

    page = ArticleRenderer().render(result.catalog.articles["structural/adapter"], result.catalog, result.report)

    assert "[Observer](../behavioral/observer.md)" in page
    assert "## Related Patterns" not in page


def test_render_is_deterministic(corpus_builder: CorpusBuilder) -> None:
    _corpus(corpus_builder)
    result = corpus_builder.load()
    renderer = ArticleRenderer()
    article = result.catalog.articles["behavioral/observer"]

    assert renderer.render(article, result.catalog, result.report) == renderer.render(
        article, result.catalog, result.report
    )


def test_write_stores_page_under_articles(corpus_builder: CorpusBuilder, tmp_path: Path) -> None:
    _corpus(corpus_builder)
    result = corpus_builder.load()
    output = tmp_path / "site"

    target = ArticleRenderer().write(result.catalog.articles["behavioral/mediator"], result.catalog, output, result.report)

    assert target == output / "articles/behavioral/mediator.md"
    assert target.read_text(encoding="utf-8").startswith("[Catalog](../../index.md)")


def test_write_failure_raises_render_error(corpus_builder: CorpusBuilder, tmp_path: Path) -> None:
    _corpus(corpus_builder)
    result = corpus_builder.load()
    blocker = tmp_path / "site"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(RenderError) as excinfo:
        ArticleRenderer().write(result.catalog.articles["behavioral/mediator"], result.catalog, blocker, result.report)

    assert excinfo.value.article_id == "behavioral/mediator"


def test_custom_templates_override_defaults(corpus_builder: CorpusBuilder, tmp_path: Path) -> None:
    _corpus(corpus_builder)
    result = corpus_builder.load()
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "article.md.j2").write_text("# {{ title }}\n\nCustom layout.\n", encoding="utf-8")

    page = ArticleRenderer(templates_dir=templates).render(
        result.catalog.articles["behavioral/mediator"], result.catalog, result.report
    )

    assert page.startswith("# Mediator\n")
    assert "Custom layout." in page
