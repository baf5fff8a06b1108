"""Built-in catalog rules."""

from __future__ import annotations

from collections import deque
from typing import Dict, List, Optional, Sequence, Set
from urllib.parse import urlsplit

from ..models import (
    EDGE_RELATED,
    INFO,
    LANGUAGES,
    REF_ARTICLE,
    WARNING,
    Article,
    Diagnostic,
)
from ..syntax import strip_emphasis
from .base import ValidationContext, Validator


def _diagnostic(severity: str, article: Article, location: str, message: str) -> Diagnostic:
    return Diagnostic(severity=severity, article_id=article.id, location=location, message=message)


def _line(line: int, article: Article) -> str:
    return f"line {line}" if line else article.source_path


class TitleRule(Validator):
    """Every article carries a non-empty display title."""

    name = "title"

    def validate(self, context: ValidationContext) -> List[Diagnostic]:
        return [
            _diagnostic(WARNING, article, article.source_path, "Article has an empty title")
            for article in context.catalog
            if not article.title.strip()
        ]


class SectionRule(Validator):
    """Articles need body sections, plus any configured required headings."""

    name = "sections"

    def validate(self, context: ValidationContext) -> List[Diagnostic]:
        diagnostics: List[Diagnostic] = []
        for article in context.catalog:
            parsed = [section for section in article.sections if not section.synthetic]
            if not parsed:
                # Headingless files are already reported as malformed by the parser.
                continue
            if not article.body_sections:
                diagnostics.append(
                    _diagnostic(WARNING, article, article.source_path, "Missing required section: article has no sections besides its title")
                )
            headings = {_heading_key(section.heading) for section in article.sections}
            for required in context.required_sections:
                if _heading_key(required) not in headings:
                    diagnostics.append(
                        _diagnostic(WARNING, article, article.source_path, f"Missing required section: {required}")
                    )
        return diagnostics


class LinkClosureRule(Validator):
    """Every unresolved article link must be represented in the diagnostics."""

    name = "link_closure"

    def validate(self, context: ValidationContext) -> List[Diagnostic]:
        reported = {(item.article_id, item.message) for item in context.catalog.diagnostics}
        diagnostics: List[Diagnostic] = []
        for article in context.catalog:
            for ref in article.refs_of(REF_ARTICLE):
                if ref.resolved is not None:
                    continue
                message = f"Unresolved article link: {ref.target}"
                if (article.id, message) in reported:
                    continue
                diagnostics.append(_diagnostic(WARNING, article, _line(ref.line, article), message))
        return diagnostics


class RelatedCycleRule(Validator):
    """Reports cycles in the related-pattern graph; cycles are allowed but surfaced."""

    name = "related_cycles"

    def validate(self, context: ValidationContext) -> List[Diagnostic]:
        catalog = context.catalog
        adjacency = {
            source: sorted(set(targets))
            for source, targets in catalog.graph.adjacency(EDGE_RELATED).items()
        }
        diagnostics: List[Diagnostic] = []
        for component in strongly_connected_components(sorted(catalog.articles), adjacency):
            start = component[0]
            if len(component) == 1 and start not in adjacency.get(start, []):
                continue
            article = catalog.articles[start]
            cycle = shortest_cycle(start, adjacency, set(component), context.cycle_bound)
            if cycle is None:
                message = (
                    f"Related patterns form a cycle across {len(component)} articles longer than "
                    f"{context.cycle_bound}: {', '.join(component)}"
                )
            elif len(cycle) == 2:
                message = "Article lists itself as a related pattern"
            else:
                message = f"Related patterns form a cycle: {' -> '.join(cycle)}"
            diagnostics.append(_diagnostic(INFO, article, article.source_path, message))
        return diagnostics


class LanguageRule(Validator):
    """Code blocks should carry a tag from the recognized language set."""

    name = "languages"

    def validate(self, context: ValidationContext) -> List[Diagnostic]:
        diagnostics: List[Diagnostic] = []
        for article in context.catalog:
            for block in article.code_blocks:
                if block.language != "unknown" and block.language in LANGUAGES:
                    continue
                diagnostics.append(
                    _diagnostic(
                        INFO,
                        article,
                        _line(block.line, article),
                        f"Unknown code language '{block.raw_language}'",
                    )
                )
        return diagnostics


class CitationRule(Validator):
    """Citation URLs must look like scheme://host/..."""

    name = "citations"

    def validate(self, context: ValidationContext) -> List[Diagnostic]:
        diagnostics: List[Diagnostic] = []
        for article in context.catalog:
            for citation in article.citations:
                if is_well_formed_url(citation.url):
                    continue
                diagnostics.append(
                    _diagnostic(
                        INFO,
                        article,
                        _line(citation.line, article),
                        f"Malformed citation URL: {citation.url}",
                    )
                )
        return diagnostics


def is_well_formed_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if not parts.scheme or not parts.netloc or "://" not in url:
        return False
    host = parts.hostname or ""
    return bool(host) and " " not in url


def strongly_connected_components(
    nodes: Sequence[str], adjacency: Dict[str, List[str]]
) -> List[List[str]]:
    """Tarjan's algorithm, iterative; components and members come back sorted."""
    index_of: Dict[str, int] = {}
    lowlink: Dict[str, int] = {}
    on_stack: Set[str] = set()
    stack: List[str] = []
    components: List[List[str]] = []
    counter = 0

    for root in nodes:
        if root in index_of:
            continue
        work = [(root, 0)]
        while work:
            node, child_index = work.pop()
            if child_index == 0:
                index_of[node] = lowlink[node] = counter
                counter += 1
                stack.append(node)
                on_stack.add(node)
            children = adjacency.get(node, [])
            recurse = False
            while child_index < len(children):
                child = children[child_index]
                child_index += 1
                if child not in index_of:
                    work.append((node, child_index))
                    work.append((child, 0))
                    recurse = True
                    break
                if child in on_stack:
                    lowlink[node] = min(lowlink[node], index_of[child])
            if recurse:
                continue
            if lowlink[node] == index_of[node]:
                component: List[str] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                components.append(sorted(component))
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])
    return sorted(components)


def shortest_cycle(
    start: str, adjacency: Dict[str, List[str]], members: Set[str], bound: int
) -> Optional[List[str]]:
    """Breadth-first search for the shortest cycle through ``start`` of at most ``bound`` edges."""
    parents: Dict[str, Optional[str]] = {start: None}
    queue = deque([(start, 0)])
    while queue:
        node, depth = queue.popleft()
        if depth >= bound:
            continue
        for child in adjacency.get(node, []):
            if child not in members:
                continue
            if child == start:
                path = [node]
                while parents[path[-1]] is not None:
                    path.append(parents[path[-1]])  # type: ignore[arg-type]
                return list(reversed(path)) + [start]
            if child not in parents:
                parents[child] = node
                queue.append((child, depth + 1))
    return None


def _heading_key(heading: str) -> str:
    return " ".join(strip_emphasis(heading).lower().rstrip(":").split())


def default_rules() -> List[Validator]:
    return [
        TitleRule(),
        SectionRule(),
        LinkClosureRule(),
        RelatedCycleRule(),
        LanguageRule(),
        CitationRule(),
    ]


__all__ = [
    "CitationRule",
    "LanguageRule",
    "LinkClosureRule",
    "RelatedCycleRule",
    "SectionRule",
    "TitleRule",
    "default_rules",
    "is_well_formed_url",
    "shortest_cycle",
    "strongly_connected_components",
]
