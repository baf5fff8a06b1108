"""Automatic table-of-contents generation."""

from __future__ import annotations

from typing import List

from ..syntax import SlugRegistry, code_line_mask, match_heading, strip_emphasis


class TableOfContentsBuilder:
    """Builds a ToC block of level-two and level-three headings."""

    PLACEHOLDER = "<!-- patterndoc:toc -->"
    BEGIN = "<!-- patterndoc:begin:toc -->"
    END = "<!-- patterndoc:end:toc -->"

    def build(self, markdown: str) -> str:
        toc_block = self._build_block(markdown)
        if self.BEGIN in markdown and self.END in markdown:
            pre, rest = markdown.split(self.BEGIN, 1)
            _, post = rest.split(self.END, 1)
            return f"{pre}{toc_block}{post}"
        if self.PLACEHOLDER in markdown:
            return markdown.replace(self.PLACEHOLDER, toc_block, 1)
        if not toc_block:
            return markdown
        return toc_block + "\n\n" + markdown

    def _build_block(self, markdown: str) -> str:
        lines = markdown.split("\n")
        mask = code_line_mask(lines)
        # Every heading claims a slug, so duplicates get the same suffix GitHub assigns.
        registry = SlugRegistry()
        entries: List[str] = []
        for line, in_code in zip(lines, mask):
            if in_code:
                continue
            heading = match_heading(line)
            if heading is None:
                continue
            level, title = heading
            anchor = registry.slug(title)
            if level in (2, 3) and title:
                indent = "  " * (level - 2)
                entries.append(f"{indent}- [{strip_emphasis(title)}](#{anchor})")

        if not entries:
            return ""
        return "\n".join([self.BEGIN, "**Contents**", "", *entries, self.END])


__all__ = ["TableOfContentsBuilder"]
