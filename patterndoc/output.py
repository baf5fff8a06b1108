"""Deterministic file output shared by the emitter and renderer."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


class OutputError(OSError):
    """Raised when the output tree cannot be written."""


class RenderError(OutputError):
    """Raised when a rendered article page cannot be written."""

    def __init__(self, message: str, article_id: str) -> None:
        super().__init__(message)
        self.article_id = article_id


def dumps_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def write_text(path: Path, content: str) -> Path:
    """Write UTF-8 text with LF line endings, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="\n") as handle:
            handle.write(content)
    except OSError as exc:
        raise OutputError(f"Failed to write {path}: {exc.strerror or exc}") from exc
    return path


def write_json(path: Path, payload: Any) -> Path:
    return write_text(path, dumps_json(payload))


__all__ = ["OutputError", "RenderError", "dumps_json", "write_json", "write_text"]
