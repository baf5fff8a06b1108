"""Tests for catalog assembly and reference resolution."""

from __future__ import annotations

import textwrap
from typing import Mapping

import pytest

from patterndoc.catalog import CatalogBuilder, normalize_pattern_name, resolve_link_target
from patterndoc.models import EDGE_LINK, EDGE_RELATED, ERROR, REF_ARTICLE, REF_RELATED, WARNING, Edge, SourceFile
from patterndoc.parser import ArticleParser
from patterndoc.references import ReferenceExtractor
from patterndoc.scanner import infer_category


def _builder(files: Mapping[str, str]) -> CatalogBuilder:
    parser = ArticleParser()
    extractor = ReferenceExtractor()
    builder = CatalogBuilder("/corpus")
    for relative_path, text in files.items():
        source = SourceFile(
            path=f"/corpus/{relative_path}",
            relative_path=relative_path,
            category=infer_category(relative_path),
            content=textwrap.dedent(text).lstrip("\n").encode("utf-8"),
            mtime=0.0,
        )
        article = parser.parse(source).article
        assert article is not None
        builder.add(extractor.attach(article))
    return builder


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Observer Pattern", "observer"),
        ("  observer   PATTERN ", "observer"),
        ("Chain  of\tResponsibility", "chain of responsibility"),
        ("Patterned Cache", "patterned cache"),
        ("Pattern", ""),
    ],
)
def test_normalize_pattern_name(name: str, expected: str) -> None:
    assert normalize_pattern_name(name) == expected


def test_resolve_link_target_is_relative_to_source() -> None:
    assert resolve_link_target("behavioral/observer.md", "state.md") == "behavioral/state"
    assert resolve_link_target("behavioral/observer.md", "../structural/Adapter.md#intent") == "structural/adapter"
    assert resolve_link_target("behavioral/observer.md", "/testing/mocks.md") == "testing/mocks"
    assert resolve_link_target("behavioral/observer.md", "chain%20of%20responsibility.md") == "behavioral/chain of responsibility"
    assert resolve_link_target("behavioral/observer.md", "../../outside.md") is None
    assert resolve_link_target("behavioral/observer.md", "?query") is None


def test_mutual_related_patterns_produce_two_edges() -> None:
    builder = _builder(
        {
            "behavioral/state.md": """
                # State

                ## Related Patterns

                - Strategy
            """,
            "behavioral/strategy.md": """
                # Strategy Pattern

                ## Related Patterns

                - State Pattern
            """,
        }
    )

    catalog = builder.finalize()

    assert list(catalog.graph) == [
        Edge("behavioral/state", "behavioral/strategy", EDGE_RELATED),
        Edge("behavioral/strategy", "behavioral/state", EDGE_RELATED),
    ]
    assert catalog.diagnostics == []
    assert catalog.graph.incoming("behavioral/state", EDGE_RELATED) == ["behavioral/strategy"]
    related = catalog.articles["behavioral/state"].refs_of(REF_RELATED)
    assert [ref.resolved for ref in related] == ["behavioral/strategy"]


def test_unresolved_related_name_warns() -> None:
    catalog = _builder(
        {
            "behavioral/a.md": """
                # A

                ## Related Patterns

                - Nonexistent Pattern
            """,
        }
    ).finalize()

    assert len(catalog.diagnostics) == 1
    diagnostic = catalog.diagnostics[0]
    assert diagnostic.severity == WARNING
    assert diagnostic.article_id == "behavioral/a"
    assert diagnostic.message == "Unresolved related pattern: Nonexistent Pattern"
    assert diagnostic.location == "line 5"


def test_article_links_resolve_or_warn() -> None:
    catalog = _builder(
        {
            "behavioral/observer.md": """
                # Observer

                Compare with [Mediator](mediator.md) and [Adapter](../structural/adapter.md#intent).
                Also [missing](gone.md).
            """,
            "behavioral/mediator.md": "# Mediator\n",
            "structural/adapter.md": "# Adapter\n",
        }
    ).finalize()

    refs = catalog.articles["behavioral/observer"].refs_of(REF_ARTICLE)
    assert [ref.resolved for ref in refs] == ["behavioral/mediator", "structural/adapter", None]
    assert catalog.graph.outgoing("behavioral/observer", EDGE_LINK) == [
        "behavioral/mediator",
        "structural/adapter",
    ]
    assert [(d.severity, d.message) for d in catalog.diagnostics] == [
        (WARNING, "Unresolved article link: gone.md"),
    ]


def test_file_stem_resolves_when_no_title_claims_name() -> None:
    catalog = _builder(
        {
            "structural/flyweight.md": """
                # Sharing Objects Cheaply

                Body.
            """,
            "performance/caching.md": """
                # Caching

                ## See Also

                - Flyweight
            """,
        }
    ).finalize()

    assert catalog.graph.outgoing("performance/caching", EDGE_RELATED) == ["structural/flyweight"]
    assert catalog.names["sharing objects cheaply"] == "structural/flyweight"


def test_duplicate_ids_keep_later_path() -> None:
    catalog = _builder(
        {
            "behavioral/observer.md": "# Observer (lowercase)\n",
            "Behavioral/Observer.md": "# Observer (capitalised)\n",
        }
    ).finalize()

    assert list(catalog.articles) == ["behavioral/observer"]
    assert catalog.articles["behavioral/observer"].source_path == "behavioral/observer.md"
    errors = [d for d in catalog.diagnostics if d.severity == ERROR]
    assert len(errors) == 1
    assert errors[0].article_id == "behavioral/observer"
    assert "replaces Behavioral/Observer.md" in errors[0].message


def test_finalize_is_idempotent_and_closes_builder() -> None:
    builder = _builder({"testing/mocks.md": "# Mocks\n"})

    first = builder.finalize()
    second = builder.finalize()

    assert first is second
    with pytest.raises(RuntimeError):
        builder.add(first.articles["testing/mocks"])


def test_categories_follow_fixed_order() -> None:
    catalog = _builder(
        {
            "testing/mocks.md": "# Mocks\n",
            "creational/builder.md": "# Builder\n",
            "behavioral/command.md": "# Command\n",
            "misc/glossary.md": "# Glossary\n",
        }
    ).finalize()

    assert list(catalog.categories) == ["behavioral", "creational", "testing", "other"]
    assert catalog.categories["other"] == ("misc/glossary",)
