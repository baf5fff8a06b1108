"""Per-article Markdown page rendering."""

from __future__ import annotations

import posixpath
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from jinja2 import Environment, FileSystemLoader

from .catalog import resolve_link_target
from .diagnostics import DiagnosticReport, counts_phrase
from .logging import get_logger
from .models import EDGE_RELATED, REF_ARTICLE, Article, Catalog, Diagnostic
from .output import OutputError, RenderError, write_text
from .postproc.badges import DiagnosticsBadge
from .postproc.lint import MarkdownLinter
from .postproc.toc import TableOfContentsBuilder
from .references import classify_target
from .syntax import INLINE_CODE_PATTERN, LINK_PATTERN, code_line_mask, slugify, unwrap_target

ARTICLES_DIR = "articles"
INDEX_PAGE = "index.md"

logger = get_logger("renderer")


def page_path(article_id: str) -> str:
    """Relative POSIX path of an article's rendered page under the output root."""
    return f"{ARTICLES_DIR}/{article_id}.md"


def relative_href(from_page: str, to_path: str) -> str:
    return posixpath.relpath(to_path, posixpath.dirname(from_page) or ".")


def create_environment(templates_dir: Path | None = None) -> Environment:
    """Jinja2 environment over user templates first, then the packaged defaults."""
    directories: List[str] = []
    if templates_dir:
        directories.append(str(templates_dir))
    default_dir = str(Path(__file__).with_name("templates"))
    if default_dir not in directories:
        directories.append(default_dir)
    loader = FileSystemLoader(directories)
    return Environment(
        loader=loader,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


class ArticleRenderer:
    """Renders articles through ``article.md.j2`` and post-processes the result."""

    template_name = "article.md.j2"

    def __init__(
        self,
        templates_dir: Path | None = None,
        *,
        linter: MarkdownLinter | None = None,
        toc_builder: TableOfContentsBuilder | None = None,
        badge: DiagnosticsBadge | None = None,
    ) -> None:
        self._env = create_environment(templates_dir)
        self.linter = linter or MarkdownLinter()
        self.toc_builder = toc_builder or TableOfContentsBuilder()
        self.badge = badge or DiagnosticsBadge()

    def render(
        self,
        article: Article,
        catalog: Catalog,
        diagnostics: Iterable[Diagnostic] | DiagnosticReport = (),
    ) -> str:
        report = diagnostics if isinstance(diagnostics, DiagnosticReport) else DiagnosticReport(diagnostics)
        counts = report.counts(article.id)
        current_page = page_path(article.id)
        index_href = relative_href(current_page, INDEX_PAGE)

        title_section = article.title_section
        sections = [
            {
                "marker": "#" * section.level,
                "heading": section.heading,
                "body": self._rewrite_links(section.body, article, catalog, current_page),
            }
            for section in article.body_sections
        ]
        related = [
            {
                "title": catalog.articles[target].title,
                "href": relative_href(current_page, page_path(target)),
            }
            for target in catalog.graph.outgoing(article.id, EDGE_RELATED)
            if target != article.id and target in catalog.articles
        ]

        template = self._env.get_template(self.template_name)
        markdown = template.render(
            title=article.title,
            category_label=article.category.capitalize(),
            category_anchor=slugify(article.category.capitalize()),
            index_href=index_href,
            toc_placeholder=self.toc_builder.PLACEHOLDER,
            preamble=self._rewrite_links(article.preamble, article, catalog, current_page),
            title_body=self._rewrite_links(
                title_section.body if title_section else "", article, catalog, current_page
            ),
            sections=sections,
            related=related,
            counts=counts,
            diagnostics_summary=counts_phrase(counts),
        )
        markdown = self.toc_builder.build(markdown)
        markdown = self.badge.apply(markdown, counts)
        return self.linter.lint(markdown)

    def write(
        self,
        article: Article,
        catalog: Catalog,
        output_root: Path,
        diagnostics: Iterable[Diagnostic] | DiagnosticReport = (),
    ) -> Path:
        """Render ``article`` to ``articles/<id>.md``; I/O failures raise :class:`RenderError`."""
        content = self.render(article, catalog, diagnostics)
        target = Path(output_root) / page_path(article.id)
        try:
            write_text(target, content)
        except OutputError as exc:
            raise RenderError(f"Failed to render {article.id}: {exc}", article.id) from exc
        logger.debug("Rendered %s -> %s", article.id, target)
        return target

    def _rewrite_links(self, body: str, article: Article, catalog: Catalog, current_page: str) -> str:
        if not body:
            return body
        lines = body.split("\n")
        mask = code_line_mask(lines)

        def replace(match: re.Match[str]) -> str:
            if match.group(1):
                return match.group(0)
            target = unwrap_target(match.group(3))
            if not target or classify_target(target) != REF_ARTICLE:
                return match.group(0)
            resolved = resolve_link_target(article.source_path, target)
            if resolved is None or resolved not in catalog.articles:
                return match.group(0)
            fragment = target.split("#", 1)[1] if "#" in target else ""
            href = relative_href(current_page, page_path(resolved))
            if fragment:
                href = f"{href}#{fragment}"
            return f"[{match.group(2)}]({href})"

        rewritten: List[str] = []
        for line, in_code in zip(lines, mask):
            if in_code:
                rewritten.append(line)
                continue
            rewritten.append(_outside_inline_code(line, lambda segment: LINK_PATTERN.sub(replace, segment)))
        return "\n".join(rewritten)


def _outside_inline_code(line: str, transform) -> str:
    parts: List[str] = []
    position = 0
    for match in INLINE_CODE_PATTERN.finditer(line):
        parts.append(transform(line[position : match.start()]))
        parts.append(match.group(0))
        position = match.end()
    parts.append(transform(line[position:]))
    return "".join(parts)


def render_catalog(
    catalog: Catalog,
    output_root: Path,
    diagnostics: Iterable[Diagnostic] | DiagnosticReport = (),
    renderer: Optional[ArticleRenderer] = None,
) -> Dict[str, Path]:
    """Write every article page sequentially in ID order."""
    renderer = renderer or ArticleRenderer()
    report = diagnostics if isinstance(diagnostics, DiagnosticReport) else DiagnosticReport(diagnostics)
    written: Dict[str, Path] = {}
    for article_id in sorted(catalog.articles):
        written[article_id] = renderer.write(catalog.articles[article_id], catalog, output_root, report)
    return written


__all__ = [
    "ARTICLES_DIR",
    "INDEX_PAGE",
    "ArticleRenderer",
    "create_environment",
    "page_path",
    "relative_href",
    "render_catalog",
]
