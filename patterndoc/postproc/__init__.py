"""Post-processing helpers applied to rendered Markdown."""

from .badges import DiagnosticsBadge
from .lint import MarkdownLinter
from .toc import TableOfContentsBuilder

__all__ = ["DiagnosticsBadge", "MarkdownLinter", "TableOfContentsBuilder"]
