"""Source tree scanning for documentation articles."""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

from .logging import get_logger
from .models import (
    BEHAVIORAL,
    CATEGORIES,
    CONCURRENCY,
    CREATIONAL,
    FUNCTIONAL,
    OTHER,
    PERFORMANCE,
    STRUCTURAL,
    TESTING,
    WARNING,
    Diagnostic,
    SourceFile,
)

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}

_CATEGORY_ALIASES = {
    "behavioural": BEHAVIORAL,
    "behavior": BEHAVIORAL,
    "behaviour": BEHAVIORAL,
    "structure": STRUCTURAL,
    "creation": CREATIONAL,
    "functional-programming": FUNCTIONAL,
    "fp": FUNCTIONAL,
    "concurrent": CONCURRENCY,
    "perf": PERFORMANCE,
    "test": TESTING,
    "tests": TESTING,
}

DEFAULT_EXTENSIONS = (".md",)

logger = get_logger("scanner")


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore, config or CLI globs."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        target = rel_path
        if self.anchored or self.has_slash:
            if fnmatchcase(target, self.pattern):
                return True
            if self.directory_only and target.startswith(f"{self.pattern}/"):
                return True
            return False

        for part in target.split("/"):
            if fnmatchcase(part, self.pattern):
                return True
        return False


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None
    if pattern.startswith("!"):
        negate = True
        pattern = pattern[1:]

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    has_slash = "/" in pattern
    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash=has_slash,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []

    rules: List[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8", errors="replace").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        rule = build_ignore_rule(line)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def infer_category(relative_path: str) -> str:
    """Return the category named by the first matching directory component."""
    parts = relative_path.replace("\\", "/").split("/")[:-1]
    for part in parts:
        key = part.strip().lower()
        if key in CATEGORIES:
            return key
        if key in _CATEGORY_ALIASES:
            return _CATEGORY_ALIASES[key]
    return OTHER


def article_id(relative_path: str) -> str:
    """Derive the stable article ID: slash-normalized, lowercased, extension stripped."""
    normalized = posixpath.normpath(relative_path.replace("\\", "/")).lstrip("/")
    stem, _ = posixpath.splitext(normalized)
    return stem.lower()


class ScanResult:
    """Lazy, deterministic sequence of source files plus scan diagnostics."""

    def __init__(self, root: Path, paths: Iterable[str]) -> None:
        self.root = root
        self._paths = list(paths)
        self.diagnostics: List[Diagnostic] = []

    def __iter__(self) -> Iterator[SourceFile]:
        for rel_path in self._paths:
            path = self.root / rel_path
            try:
                content = path.read_bytes()
                mtime = path.stat().st_mtime
            except OSError as exc:
                logger.warning("Skipping unreadable file %s: %s", rel_path, exc)
                self.diagnostics.append(
                    Diagnostic(
                        severity=WARNING,
                        article_id=article_id(rel_path),
                        location=rel_path,
                        message=f"Unreadable file skipped: {exc.strerror or exc}",
                    )
                )
                continue
            yield SourceFile(
                path=str(path),
                relative_path=rel_path,
                category=infer_category(rel_path),
                content=content,
                mtime=mtime,
            )

    def __len__(self) -> int:
        return len(self._paths)

    @property
    def paths(self) -> List[str]:
        return list(self._paths)


class SourceScanner:
    """Walks a documentation root and enumerates candidate articles."""

    def __init__(
        self,
        *,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        ignore: Sequence[str] = (),
        allow_hidden: Sequence[str] = (),
        exclude: Sequence[Path] = (),
    ) -> None:
        self.extensions = tuple(ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions)
        self.ignore = list(ignore)
        self.allow_hidden = set(allow_hidden)
        self.exclude = [Path(path).expanduser().resolve() for path in exclude]

    def scan(self, root: str | Path) -> ScanResult:
        """Validate the root eagerly and return a lazy result over matching files."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Source root not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Source root is not a directory: {root}")

        rules = _parse_gitignore(root_path / ".gitignore")
        for pattern in self.ignore:
            rule = build_ignore_rule(pattern)
            if rule is not None:
                rules.append(rule)

        unreadable: List[Diagnostic] = []
        paths = sorted(self._iter_files(root_path, rules, unreadable))
        logger.debug("Scanner found %d candidate files under %s", len(paths), root_path)
        result = ScanResult(root_path, paths)
        result.diagnostics.extend(unreadable)
        return result

    def _iter_files(
        self, root: Path, rules: Sequence[IgnoreRule], unreadable: List[Diagnostic]
    ) -> Iterator[str]:
        excluded = self._excluded_dirs(root)

        def on_error(exc: OSError) -> None:
            failed = Path(exc.filename) if exc.filename else root
            if failed == root:
                raise exc
            rel_dir = failed.relative_to(root).as_posix()
            logger.warning("Skipping unreadable directory %s: %s", rel_dir, exc)
            unreadable.append(
                Diagnostic(
                    severity=WARNING,
                    article_id=rel_dir.lower(),
                    location=f"{rel_dir}/",
                    message=f"Unreadable directory skipped: {exc.strerror or exc}",
                )
            )

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            filtered_dirs = []
            for name in dirnames:
                if name in _EXCLUDED_DIRS or self._hidden(name):
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if rel_path in excluded or _should_ignore(rel_path, True, rules):
                    continue
                filtered_dirs.append(name)
            dirnames[:] = sorted(filtered_dirs)

            for filename in filenames:
                if filename in _EXCLUDED_FILES or self._hidden(filename):
                    continue
                if not filename.lower().endswith(self.extensions):
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, rules):
                    continue
                yield rel_path

    def _hidden(self, name: str) -> bool:
        return name.startswith(".") and name not in self.allow_hidden

    def _excluded_dirs(self, root: Path) -> set[str]:
        excluded: set[str] = set()
        for path in self.exclude:
            try:
                relative = path.relative_to(root)
            except ValueError:
                continue
            if relative.parts:
                excluded.add(relative.as_posix())
        return excluded


__all__ = [
    "DEFAULT_EXTENSIONS",
    "IgnoreRule",
    "ScanResult",
    "SourceScanner",
    "article_id",
    "build_ignore_rule",
    "infer_category",
]
