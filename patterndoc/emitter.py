"""Index emission: catalog, pattern graph, language facet and keyword indexes."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .diagnostics import DiagnosticReport, count_label, counts_phrase
from .keywords import KeywordIndex
from .logging import get_logger
from .models import CATEGORIES, EDGE_LINK, EDGE_RELATED, OPTIONAL_CATEGORIES, Catalog, Diagnostic
from .output import write_json, write_text
from .postproc.lint import MarkdownLinter
from .renderer import INDEX_PAGE, create_environment, page_path

INDEX_DIR = "index"
CATALOG_INDEX = f"{INDEX_DIR}/catalog.json"
GRAPH_INDEX = f"{INDEX_DIR}/graph.json"
LANGUAGE_INDEX = f"{INDEX_DIR}/languages.json"
KEYWORD_INDEX = f"{INDEX_DIR}/keywords.json"
DIAGNOSTICS_REPORT = "diagnostics.json"

logger = get_logger("emitter")


def category_order(catalog: Catalog) -> List[str]:
    """Fixed category order; optional categories appear only when populated."""
    return [
        category
        for category in CATEGORIES
        if category not in OPTIONAL_CATEGORIES or catalog.categories.get(category)
    ]


def catalog_index(catalog: Catalog) -> Dict[str, object]:
    groups = []
    for category in category_order(catalog):
        members = [catalog.articles[aid] for aid in catalog.categories.get(category, ())]
        members.sort(key=lambda article: (article.title.lower(), article.id))
        groups.append(
            {
                "category": category,
                "articles": [
                    {"id": article.id, "title": article.title, "path": page_path(article.id)}
                    for article in members
                ],
            }
        )
    return {"categories": groups}


def graph_index(catalog: Catalog) -> Dict[str, Dict[str, List[str]]]:
    graph = catalog.graph
    return {
        aid: {
            "related_out": graph.outgoing(aid, EDGE_RELATED),
            "related_in": graph.incoming(aid, EDGE_RELATED),
            "links_out": graph.outgoing(aid, EDGE_LINK),
            "links_in": graph.incoming(aid, EDGE_LINK),
        }
        for aid in sorted(catalog.articles)
    }


def language_index(catalog: Catalog) -> Dict[str, List[str]]:
    facets: Dict[str, set[str]] = {}
    for article in catalog:
        for language in article.languages:
            facets.setdefault(language, set()).add(article.id)
    return {language: sorted(ids) for language, ids in sorted(facets.items())}


def keyword_index(catalog: Catalog) -> Dict[str, List[str]]:
    index = KeywordIndex()
    index.extend(catalog)
    return index.to_dict()


class IndexEmitter:
    """Writes the JSON indexes, the diagnostics report and the landing page."""

    template_name = "index.md.j2"

    def __init__(self, templates_dir: Path | None = None, *, linter: MarkdownLinter | None = None) -> None:
        self._env = create_environment(templates_dir)
        self.linter = linter or MarkdownLinter()

    def emit(
        self,
        catalog: Catalog,
        output_root: Path,
        diagnostics: Iterable[Diagnostic] | DiagnosticReport = (),
    ) -> List[Path]:
        report = diagnostics if isinstance(diagnostics, DiagnosticReport) else DiagnosticReport(diagnostics)
        root = Path(output_root)
        written = [
            write_json(root / CATALOG_INDEX, catalog_index(catalog)),
            write_json(root / GRAPH_INDEX, graph_index(catalog)),
            write_json(root / LANGUAGE_INDEX, language_index(catalog)),
            write_json(root / KEYWORD_INDEX, keyword_index(catalog)),
            write_json(root / DIAGNOSTICS_REPORT, report.to_dict()),
            write_text(root / INDEX_PAGE, self.render_index(catalog, report)),
        ]
        logger.info("Wrote %d index files to %s", len(written), root)
        return written

    def render_index(self, catalog: Catalog, report: Optional[DiagnosticReport] = None) -> str:
        report = report or DiagnosticReport()
        groups = []
        for group in catalog_index(catalog)["categories"]:  # type: ignore[index]
            entries = []
            for entry in group["articles"]:
                languages = [
                    language
                    for language in catalog.articles[entry["id"]].languages
                    if language not in {"text", "unknown"}
                ]
                entries.append(
                    {
                        "title": entry["title"],
                        "href": entry["path"],
                        "suffix": f" ({', '.join(languages)})" if languages else "",
                    }
                )
            groups.append({"label": group["category"].capitalize(), "articles": entries})

        template = self._env.get_template(self.template_name)
        markdown = template.render(
            summary=(
                f"{count_label(len(catalog), 'article')} across "
                f"{count_label(len(catalog.categories), 'category', plural='categories')}."
            ),
            categories=groups,
            diagnostics_summary=counts_phrase(report.counts()),
        )
        return self.linter.lint(markdown)


__all__ = [
    "CATALOG_INDEX",
    "DIAGNOSTICS_REPORT",
    "GRAPH_INDEX",
    "IndexEmitter",
    "KEYWORD_INDEX",
    "LANGUAGE_INDEX",
    "catalog_index",
    "category_order",
    "graph_index",
    "keyword_index",
    "language_index",
]
