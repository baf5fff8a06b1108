"""Outgoing reference, citation and language extraction from parsed articles."""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import DEFAULT_REFERENCE_HEADINGS, DEFAULT_RELATED_HEADINGS
from .models import (
    REF_ANCHOR,
    REF_ARTICLE,
    REF_EXTERNAL,
    REF_RELATED,
    Article,
    OutgoingRef,
    Section,
    SourceCitation,
)
from .syntax import (
    AUTOLINK_PATTERN,
    BARE_URL_PATTERN,
    LINK_PATTERN,
    SCHEME_PATTERN,
    is_table_separator,
    iter_prose_lines,
    split_cells,
    strip_emphasis,
    unwrap_target,
)

_LIST_ITEM = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(.*)$")
_NAME_SEPARATORS = re.compile(r"\s+[-–—]\s+|:\s|\s\(|\s*[.;]\s*$")


@dataclass
class References:
    """Everything an article points at, in document order."""

    refs: List[OutgoingRef]
    citations: List[SourceCitation]
    languages: List[str]


def classify_target(target: str) -> str:
    """Classify a link target as external, anchor or article."""
    if SCHEME_PATTERN.match(target) and not re.match(r"^[a-zA-Z]:[\\/]", target):
        return REF_EXTERNAL
    if target.startswith("#"):
        return REF_ANCHOR
    return REF_ARTICLE


def _heading_key(heading: str) -> str:
    cleaned = strip_emphasis(heading).lower().rstrip(":").strip()
    return " ".join(cleaned.split())


class ReferenceExtractor:
    """Derives outgoing refs, source citations and the language inventory."""

    def __init__(
        self,
        *,
        related_headings: Sequence[str] = DEFAULT_RELATED_HEADINGS,
        reference_headings: Sequence[str] = DEFAULT_REFERENCE_HEADINGS,
    ) -> None:
        self.related_headings = {_heading_key(heading) for heading in related_headings}
        self.reference_headings = {_heading_key(heading) for heading in reference_headings}

    def extract(self, article: Article) -> References:
        refs: List[OutgoingRef] = []
        citations: Dict[Tuple[str, str], SourceCitation] = {}

        for base_line, body, section in self._blocks(article):
            for line_offset, line in iter_prose_lines(body):
                line_no = base_line + line_offset
                for label, target in self._links(line):
                    kind = classify_target(target)
                    refs.append(OutgoingRef(kind=kind, target=target, label=label, line=line_no))
                    if kind == REF_EXTERNAL:
                        citations.setdefault((label, target), SourceCitation(label=label, url=target, line=line_no))
                if section is not None and self._is_reference_section(section):
                    for url in self._bare_urls(line):
                        citations.setdefault((url, url), SourceCitation(label=url, url=url, line=line_no))
            if section is not None and self._is_related_section(section):
                refs.extend(self._related_refs(section))

        return References(
            refs=refs,
            citations=list(citations.values()),
            languages=article.languages,
        )

    def attach(self, article: Article) -> Article:
        """Return a copy of ``article`` carrying its extracted references."""
        found = self.extract(article)
        return dataclasses.replace(article, refs=found.refs, citations=found.citations)

    def _is_related_section(self, section: Section) -> bool:
        key = _heading_key(section.heading)
        return key in self.related_headings or key.startswith("related pattern")

    def _is_reference_section(self, section: Section) -> bool:
        return _heading_key(section.heading) in self.reference_headings

    @staticmethod
    def _blocks(article: Article) -> Iterable[Tuple[int, str, Optional[Section]]]:
        if article.preamble:
            yield article.preamble_line, article.preamble, None
        for section in article.sections:
            yield section.body_line, section.body, section

    @staticmethod
    def _links(line: str) -> List[Tuple[str, str]]:
        found: List[Tuple[int, str, str]] = []
        for match in LINK_PATTERN.finditer(line):
            if match.group(1):
                continue
            target = unwrap_target(match.group(3))
            if not target:
                continue
            found.append((match.start(), strip_emphasis(match.group(2)), target))
        for match in AUTOLINK_PATTERN.finditer(line):
            found.append((match.start(), match.group(1), match.group(1)))
        return [(label, target) for _, label, target in sorted(found)]

    @staticmethod
    def _bare_urls(line: str) -> List[str]:
        masked = LINK_PATTERN.sub(lambda match: " " * len(match.group(0)), line)
        masked = AUTOLINK_PATTERN.sub(lambda match: " " * len(match.group(0)), masked)
        return [match.group(1).rstrip(".,;:") for match in BARE_URL_PATTERN.finditer(masked)]

    def _related_refs(self, section: Section) -> List[OutgoingRef]:
        refs: List[OutgoingRef] = []
        lines = section.body.split("\n")
        for offset, line in iter_prose_lines(section.body, keep_inline_code=True):
            line_no = section.body_line + offset
            stripped = line.strip()
            if not stripped or stripped.startswith(">") or is_table_separator(stripped):
                continue
            following = lines[offset + 1] if offset + 1 < len(lines) else ""
            if is_table_separator(following):
                continue
            for name in self._names_in_line(stripped):
                refs.append(OutgoingRef(kind=REF_RELATED, target=name, label=name, line=line_no))
        return refs

    def _names_in_line(self, line: str) -> List[str]:
        if line.startswith("|"):
            cells = split_cells(line)
            first = cells[0] if cells else ""
            if not first:
                return []
            return [name for name in [self._clean_name(first)] if name]

        item = _LIST_ITEM.match(line)
        if item:
            return [name for name in [self._clean_name(item.group(1))] if name]

        # A plain line is either a comma-separated list of names or prose;
        # sentence punctuation marks prose even when it contains commas.
        if line.endswith((".", ":", "!", "?")):
            return []
        parts = [part for part in re.split(r"\s*,\s*|\s+and\s+", line) if part]
        names = [self._clean_name(part) for part in parts]
        if names and all(name and len(name.split()) <= 4 for name in names):
            return names
        return []

    @staticmethod
    def _clean_name(text: str) -> Optional[str]:
        link = LINK_PATTERN.search(text)
        if link and not link.group(1) and link.start() == len(text) - len(text.lstrip()):
            return strip_emphasis(link.group(2)) or None
        name = LINK_PATTERN.sub(lambda match: match.group(2), text)
        name = strip_emphasis(name)
        split = _NAME_SEPARATORS.split(name, maxsplit=1)
        name = split[0].strip().rstrip(".,;:")
        return name or None


__all__ = ["ReferenceExtractor", "References", "classify_target"]
