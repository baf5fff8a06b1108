"""Helper utilities for constructing temporary article trees in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from patterndoc.orchestrator import Orchestrator, PipelineResult


class CorpusBuilder:
    """Utility for writing Markdown articles into a throwaway source tree."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "corpus"
        self.root.mkdir()
        self.output = tmp_path / "site"

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the source tree."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def write_bytes(self, relative: str, content: bytes) -> None:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    def load(self, **kwargs: object) -> PipelineResult:
        """Run scan, parse, catalog and validation over the tree."""
        return Orchestrator(**kwargs).load_catalog(self.root)  # type: ignore[arg-type]

    def path(self) -> Path:
        """Return the source root path."""
        return self.root


__all__ = ["CorpusBuilder"]
