"""Diagnostic collection, ordering and summary formatting."""

from __future__ import annotations

from collections import Counter
from itertools import groupby
from typing import Dict, Iterable, Iterator, List, Optional

from .models import ERROR, INFO, SEVERITIES, WARNING, Diagnostic


def sort_diagnostics(diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
    """Return unique diagnostics ordered by severity, article ID, location and message."""
    return sorted(set(diagnostics), key=Diagnostic.sort_key)


class DiagnosticReport:
    """Merged, de-duplicated diagnostics for a single pipeline run."""

    def __init__(self, diagnostics: Iterable[Diagnostic] = ()) -> None:
        self._items: List[Diagnostic] = sort_diagnostics(diagnostics)

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        self._items = sort_diagnostics([*self._items, *diagnostics])

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> List[Diagnostic]:
        return list(self._items)

    def counts(self, article_id: Optional[str] = None) -> Dict[str, int]:
        counter = Counter(
            item.severity
            for item in self._items
            if article_id is None or item.article_id == article_id
        )
        return {severity: counter.get(severity, 0) for severity in SEVERITIES}

    def for_article(self, article_id: str) -> List[Diagnostic]:
        return [item for item in self._items if item.article_id == article_id]

    def has_errors(self, *, strict: bool = False) -> bool:
        failing = {ERROR, WARNING} if strict else {ERROR}
        return any(item.severity in failing for item in self._items)

    def visible(self, *, quiet: bool = False) -> List[Diagnostic]:
        if not quiet:
            return list(self._items)
        return [item for item in self._items if item.severity != INFO]

    def to_dict(self) -> Dict[str, object]:
        return {
            "counts": self.counts(),
            "diagnostics": [item.to_dict() for item in self._items],
        }


def format_summary(
    report: DiagnosticReport,
    *,
    article_count: int,
    quiet: bool = False,
) -> str:
    """Render diagnostics grouped by severity, then by article ID."""
    lines: List[str] = []
    visible = report.visible(quiet=quiet)
    for severity in SEVERITIES:
        group = [item for item in visible if item.severity == severity]
        if not group:
            continue
        lines.append(f"{_plural(severity)} ({len(group)}):")
        for article_id, entries in groupby(group, key=lambda item: item.article_id):
            lines.append(f"  {article_id or '<source>'}:")
            for entry in entries:
                location = f"{entry.location}: " if entry.location else ""
                lines.append(f"    - {location}{entry.message}")
    lines.append(f"Summary: {counts_phrase(report.counts())} across {count_label(article_count, 'article')}")
    return "\n".join(lines)


def _plural(severity: str) -> str:
    return {ERROR: "Errors", WARNING: "Warnings", INFO: "Info"}[severity]


def count_label(count: int, noun: str, *, plural: str | None = None) -> str:
    if count == 1:
        return f"1 {noun}"
    return f"{count} {plural or noun + 's'}"


def counts_phrase(counts: Dict[str, int]) -> str:
    """Return e.g. "1 error, 2 warnings, 0 info"."""
    return ", ".join(
        [
            count_label(counts.get(ERROR, 0), "error"),
            count_label(counts.get(WARNING, 0), "warning"),
            count_label(counts.get(INFO, 0), "info", plural="info"),
        ]
    )


__all__ = ["DiagnosticReport", "count_label", "counts_phrase", "format_summary", "sort_diagnostics"]
