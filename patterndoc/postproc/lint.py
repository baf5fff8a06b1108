"""Linting utilities for generated markdown."""

from __future__ import annotations

from typing import List

from ..syntax import code_line_mask, match_heading


class MarkdownLinter:
    """Normalizes line endings, trailing spaces and blank-line runs outside code fences."""

    def lint(self, markdown: str) -> str:
        normalized = markdown.replace("\r\n", "\n").replace("\r", "\n")
        lines = normalized.split("\n")
        mask = code_line_mask(lines)
        cleaned: List[str] = []
        previous_blank = False

        for line, in_code in zip(lines, mask):
            if in_code:
                cleaned.append(line)
                previous_blank = False
                continue

            stripped = line.rstrip()
            if not stripped:
                if previous_blank or not cleaned:
                    continue
                previous_blank = True
                cleaned.append("")
                continue

            if match_heading(stripped) is not None and cleaned and cleaned[-1] != "":
                cleaned.append("")
            cleaned.append(stripped)
            previous_blank = False

        while cleaned and cleaned[-1] == "":
            cleaned.pop()

        return "\n".join(cleaned) + "\n"


__all__ = ["MarkdownLinter"]
