"""Markdown article parsing."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .logging import get_logger
from .models import (
    ERROR,
    INFO,
    WARNING,
    Article,
    CodeBlock,
    Diagnostic,
    Section,
    SourceFile,
    TableBlock,
)
from .scanner import article_id
from .syntax import (
    fence_token,
    find_fences,
    is_table_separator,
    match_heading,
    normalize_language,
    split_cells,
)

logger = get_logger("parser")


@dataclass
class ParseResult:
    """Outcome of parsing one source file."""

    article: Optional[Article]
    diagnostics: List[Diagnostic] = field(default_factory=list)


class ArticleParser:
    """Turns a source file into an :class:`Article`, degrading instead of failing."""

    def parse(self, source: SourceFile) -> ParseResult:
        aid = article_id(source.relative_path)
        diagnostics: List[Diagnostic] = []

        def report(severity: str, line: int, message: str) -> None:
            location = f"line {line}" if line else source.relative_path
            diagnostics.append(Diagnostic(severity=severity, article_id=aid, location=location, message=message))

        if b"\x00" in source.content:
            report(WARNING, 0, "Binary content is not a Markdown article; skipped")
            return ParseResult(article=None, diagnostics=diagnostics)

        try:
            text = source.content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            text = source.content.decode("utf-8-sig", errors="replace")
            report(WARNING, 0, f"Invalid UTF-8 replaced while decoding: {exc.reason}")
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        lines = text.split("\n")

        structural_mask = [False] * len(lines)
        code_blocks: List[CodeBlock] = []
        for fence in find_fences(lines):
            if fence.end is None:
                report(INFO, fence.start + 1, "Unclosed code fence; remainder kept as plain text")
                for index in range(fence.start, len(lines)):
                    structural_mask[index] = True
                continue
            token = fence_token(fence.info)
            code_blocks.append(
                CodeBlock(
                    language=normalize_language(token),
                    raw_language=token,
                    content="\n".join(lines[fence.start + 1 : fence.end]),
                    line=fence.start + 1,
                )
            )
            for index in range(fence.start, fence.end + 1):
                structural_mask[index] = True

        sections, preamble, preamble_line = self._split_sections(lines, structural_mask)
        tables = self._extract_tables(lines, structural_mask, report)

        stem = posixpath.splitext(posixpath.basename(source.relative_path))[0]
        if not sections:
            report(ERROR, 0, "Malformed article: no headings found")

        title_section = next((section for section in sections if section.level == 1), None)
        if title_section is None:
            report(WARNING, 0, f"No top-level heading; title falls back to '{stem}'")
            title_section = Section(level=1, heading=stem, body="", line=0, synthetic=True)
            sections.insert(0, title_section)
        elif not title_section.heading:
            report(WARNING, title_section.line, f"Empty top-level heading; title falls back to '{stem}'")
            title_section.heading = stem

        article = Article(
            id=aid,
            title=title_section.heading,
            category=source.category,
            source_path=source.relative_path,
            sections=sections,
            code_blocks=code_blocks,
            tables=tables,
            preamble=preamble,
            preamble_line=preamble_line,
        )
        logger.debug(
            "Parsed %s: %d sections, %d code blocks, %d tables",
            aid,
            len(sections),
            len(code_blocks),
            len(tables),
        )
        return ParseResult(article=article, diagnostics=diagnostics)

    @staticmethod
    def _split_sections(lines: Sequence[str], mask: Sequence[bool]) -> tuple[List[Section], str, int]:
        sections: List[Section] = []
        preamble: List[str] = []
        current: Optional[Section] = None
        body: List[str] = []

        def close() -> None:
            if current is not None:
                current.body, current.body_line = _trim_body(body, current.line + 1)

        for index, line in enumerate(lines):
            heading = None if mask[index] else match_heading(line)
            if heading is None:
                (body if current is not None else preamble).append(line)
                continue
            close()
            level, text = heading
            current = Section(level=level, heading=text, body="", line=index + 1)
            sections.append(current)
            body = []
        close()
        text, first_line = _trim_body(preamble, 1)
        return sections, text, first_line

    @staticmethod
    def _extract_tables(lines: Sequence[str], mask: Sequence[bool], report) -> List[TableBlock]:
        tables: List[TableBlock] = []
        index = 0
        while index < len(lines) - 1:
            header, separator = lines[index], lines[index + 1]
            if mask[index] or mask[index + 1] or "|" not in header or not is_table_separator(separator):
                index += 1
                continue
            header_cells = split_cells(header)
            separator_cells = split_cells(separator)
            if len(header_cells) != len(separator_cells):
                report(
                    INFO,
                    index + 1,
                    f"Malformed table: header has {len(header_cells)} columns, separator has {len(separator_cells)}",
                )
                index += 2
                continue
            rows = [header_cells]
            cursor = index + 2
            while cursor < len(lines) and not mask[cursor] and "|" in lines[cursor] and lines[cursor].strip():
                rows.append(split_cells(lines[cursor]))
                cursor += 1
            tables.append(TableBlock(rows=rows, line=index + 1))
            index = cursor
        return tables


def _trim_body(lines: Sequence[str], first_line: int) -> tuple[str, int]:
    """Drop blank edges and return the text with the line number of its first line."""
    start = 0
    while start < len(lines) and lines[start] == "":
        start += 1
    return "\n".join(lines[start:]).rstrip("\n"), first_line + start


__all__ = ["ArticleParser", "ParseResult"]
