"""Catalog assembly and cross-reference resolution."""

from __future__ import annotations

import dataclasses
import posixpath
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote

from .logging import get_logger
from .models import (
    CATEGORIES,
    EDGE_LINK,
    EDGE_RELATED,
    ERROR,
    REF_ARTICLE,
    REF_RELATED,
    WARNING,
    Article,
    Catalog,
    Diagnostic,
    OutgoingRef,
    PatternGraph,
)
from .scanner import article_id

_PATTERN_SUFFIX = re.compile(r"\s*\bpattern$")

logger = get_logger("catalog")


def normalize_pattern_name(name: str) -> str:
    """Lowercase, trim, collapse whitespace and drop a trailing "Pattern" suffix."""
    collapsed = " ".join(name.lower().split())
    return _PATTERN_SUFFIX.sub("", collapsed).strip()


def resolve_link_target(source_path: str, target: str) -> Optional[str]:
    """Map a relative link onto an article ID, or ``None`` when it leaves the root."""
    path = target.split("#", 1)[0].split("?", 1)[0]
    path = unquote(path).replace("\\", "/").strip()
    if not path:
        return None
    if path.startswith("/"):
        joined = path.lstrip("/")
    else:
        joined = posixpath.join(posixpath.dirname(source_path), path)
    normalized = posixpath.normpath(joined)
    if normalized in {".", ""} or normalized == ".." or normalized.startswith("../"):
        return None
    return article_id(normalized)


class CatalogBuilder:
    """Accumulates articles and resolves them into a :class:`Catalog`."""

    def __init__(self, root: str | Path = ".") -> None:
        self.root = str(root)
        self._articles: List[Article] = []
        self._catalog: Optional[Catalog] = None

    def add(self, article: Article) -> None:
        if self._catalog is not None:
            raise RuntimeError("Catalog already finalized; create a new builder to add articles")
        self._articles.append(article)

    def extend(self, articles) -> None:
        for article in articles:
            self.add(article)

    def finalize(self) -> Catalog:
        """Resolve references and return the catalog; repeated calls return the same object."""
        if self._catalog is None:
            self._catalog = self._build()
        return self._catalog

    def _build(self) -> Catalog:
        diagnostics: List[Diagnostic] = []
        ordered = sorted(self._articles, key=lambda article: article.source_path)

        by_id: Dict[str, Article] = {}
        for article in ordered:
            previous = by_id.get(article.id)
            if previous is not None:
                diagnostics.append(
                    Diagnostic(
                        severity=ERROR,
                        article_id=article.id,
                        location=article.source_path,
                        message=(
                            f"Duplicate article id '{article.id}': {article.source_path} "
                            f"replaces {previous.source_path}"
                        ),
                    )
                )
                # Re-insert so iteration order follows the winning path.
                del by_id[article.id]
            by_id[article.id] = article

        names = self._build_name_index(by_id)
        graph = PatternGraph()
        articles: Dict[str, Article] = {}
        for aid, article in by_id.items():
            refs = [self._resolve(article, ref, by_id, names, diagnostics) for ref in article.refs]
            resolved = dataclasses.replace(article, refs=refs)
            articles[aid] = resolved
            for ref in refs:
                if ref.resolved is None:
                    continue
                kind = EDGE_RELATED if ref.kind == REF_RELATED else EDGE_LINK
                graph.add(aid, ref.resolved, kind)

        categories: Dict[str, Tuple[str, ...]] = {}
        for category in CATEGORIES:
            members = tuple(aid for aid, article in articles.items() if article.category == category)
            if members:
                categories[category] = members

        logger.debug(
            "Catalog finalized: %d articles, %d edges, %d diagnostics",
            len(articles),
            len(graph),
            len(diagnostics),
        )
        return Catalog(
            root=self.root,
            articles=articles,
            categories=categories,
            names=names,
            graph=graph,
            diagnostics=diagnostics,
        )

    @staticmethod
    def _build_name_index(articles: Dict[str, Article]) -> Dict[str, str]:
        names: Dict[str, str] = {}
        for aid, article in articles.items():
            key = normalize_pattern_name(article.title)
            if key and key not in names:
                names[key] = aid
        for aid, article in articles.items():
            stem = posixpath.basename(aid).replace("-", " ").replace("_", " ")
            key = normalize_pattern_name(stem)
            if key and key not in names:
                names[key] = aid
        return names

    @staticmethod
    def _resolve(
        article: Article,
        ref: OutgoingRef,
        articles: Dict[str, Article],
        names: Dict[str, str],
        diagnostics: List[Diagnostic],
    ) -> OutgoingRef:
        if ref.kind == REF_ARTICLE:
            target_id = resolve_link_target(article.source_path, ref.target)
            if target_id is not None and target_id in articles:
                return dataclasses.replace(ref, resolved=target_id)
            diagnostics.append(
                Diagnostic(
                    severity=WARNING,
                    article_id=article.id,
                    location=f"line {ref.line}" if ref.line else article.source_path,
                    message=f"Unresolved article link: {ref.target}",
                )
            )
            return dataclasses.replace(ref, resolved=None)
        if ref.kind == REF_RELATED:
            target_id = names.get(normalize_pattern_name(ref.target))
            if target_id is not None:
                return dataclasses.replace(ref, resolved=target_id)
            diagnostics.append(
                Diagnostic(
                    severity=WARNING,
                    article_id=article.id,
                    location=f"line {ref.line}" if ref.line else article.source_path,
                    message=f"Unresolved related pattern: {ref.target}",
                )
            )
            return dataclasses.replace(ref, resolved=None)
        return ref


__all__ = ["CatalogBuilder", "normalize_pattern_name", "resolve_link_target"]
