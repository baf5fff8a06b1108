"""Diagnostics badge for rendered article pages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping
from urllib.parse import quote

from ..models import ERROR, INFO, WARNING


@dataclass
class DiagnosticsBadge:
    """Renders a shields.io badge summarising an article's diagnostics."""

    label: str = "diagnostics"
    base_url: str = "https://img.shields.io/badge"

    BEGIN = "<!-- patterndoc:begin:badges -->"
    END = "<!-- patterndoc:end:badges -->"

    def badge(self, counts: Mapping[str, int]) -> str:
        message, color = self._status(counts)
        url = f"{self.base_url}/{self._escape(self.label)}-{self._escape(message)}-{color}.svg"
        return f"![{self.label}: {message}]({url})"

    def block(self, counts: Mapping[str, int]) -> str:
        return f"{self.BEGIN}\n{self.badge(counts)}\n{self.END}"

    def apply(self, markdown: str, counts: Mapping[str, int]) -> str:
        """Insert or refresh the badge block after the main title."""
        block = self.block(counts)
        if self.BEGIN in markdown and self.END in markdown:
            before, remainder = markdown.split(self.BEGIN, 1)
            _, after = remainder.split(self.END, 1)
            return f"{before}{block}{after}"

        lines = markdown.split("\n")
        for index, line in enumerate(lines):
            if line.startswith("# "):
                lines[index + 1 : index + 1] = ["", *block.split("\n"), ""]
                return "\n".join(lines)
        return block + "\n\n" + markdown

    @staticmethod
    def _status(counts: Mapping[str, int]) -> tuple[str, str]:
        errors = counts.get(ERROR, 0)
        warnings = counts.get(WARNING, 0)
        infos = counts.get(INFO, 0)
        if errors:
            return (f"{errors} error" + ("s" if errors != 1 else ""), "red")
        if warnings:
            return (f"{warnings} warning" + ("s" if warnings != 1 else ""), "yellow")
        if infos:
            return (f"{infos} info", "blue")
        return ("clean", "brightgreen")

    @staticmethod
    def _escape(text: str) -> str:
        # shields.io treats single dashes and underscores as separators.
        escaped = text.replace("-", "--").replace("_", "__")
        return quote(escaped, safe="")


__all__ = ["DiagnosticsBadge"]
