"""Low-level Markdown syntax helpers shared by the parser, extractor and renderer."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

HEADING_PATTERN = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?[ \t]*$")
FENCE_PATTERN = re.compile(r"^ {0,3}(`{3,})(.*)$")
INLINE_CODE_PATTERN = re.compile(r"(`+)(?:(?!\1).)+?\1")
LINK_PATTERN = re.compile(r"(!?)\[((?:[^\[\]]|\[[^\]]*\])*)\]\(\s*(<[^>]*>|[^\s()]*(?:\([^\s()]*\)[^\s()]*)*)(?:\s+[\"'(][^)]*)?\s*\)")
AUTOLINK_PATTERN = re.compile(r"<([a-zA-Z][a-zA-Z0-9+.-]*://[^>\s]+)>")
BARE_URL_PATTERN = re.compile(r"(?<![(<\[])\b([a-zA-Z][a-zA-Z0-9+.-]*://[^\s<>)\]]+)")
SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_SEPARATOR_CELL = re.compile(r"^:?-+:?$")
_CELL_SPLIT = re.compile(r"(?<!\\)\|")

_LANGUAGE_ALIASES: Dict[str, str] = {
    "go": "go",
    "golang": "go",
    "cpp": "cpp",
    "c++": "cpp",
    "cxx": "cpp",
    "cc": "cpp",
    "hpp": "cpp",
    "rust": "rust",
    "rs": "rust",
    "ts": "ts",
    "typescript": "ts",
    "tsx": "ts",
    "js": "js",
    "javascript": "js",
    "jsx": "js",
    "mjs": "js",
    "node": "js",
    "python": "python",
    "py": "python",
    "python3": "python",
    "py3": "python",
    "java": "java",
    "text": "text",
    "txt": "text",
    "plain": "text",
    "plaintext": "text",
    "": "text",
}


def normalize_language(token: str) -> str:
    """Map a fence info token onto the closed language set (`unknown` on a miss)."""
    cleaned = token.strip().strip("{}").lstrip(".").lower()
    if cleaned.startswith("language-"):
        cleaned = cleaned[len("language-") :]
    return _LANGUAGE_ALIASES.get(cleaned, "unknown")


def fence_token(info: str) -> str:
    """Return the language token from a fence info string."""
    info = info.strip().strip("{}")
    if not info:
        return ""
    return info.split()[0].split(",")[0].lstrip(".")


def match_heading(line: str) -> Optional[Tuple[int, str]]:
    """Return ``(level, text)`` for an ATX heading line."""
    match = HEADING_PATTERN.match(line)
    if not match:
        return None
    text = (match.group(2) or "").strip()
    # Closing hashes are decoration: "## Title ##".
    text = re.sub(r"(?:^|[ \t]+)#+$", "", text).strip()
    return len(match.group(1)), text


@dataclass
class Fence:
    """A fenced region located by :func:`find_fences`."""

    start: int
    end: Optional[int]
    marker: str
    info: str

    @property
    def closed(self) -> bool:
        return self.end is not None


def find_fences(lines: Sequence[str]) -> List[Fence]:
    """Locate fenced code regions; an unclosed fence has ``end`` set to ``None``."""
    fences: List[Fence] = []
    index = 0
    while index < len(lines):
        match = FENCE_PATTERN.match(lines[index])
        if match and "`" not in match.group(2):
            marker = match.group(1)
            end = None
            for probe in range(index + 1, len(lines)):
                closing = lines[probe].strip()
                if closing.startswith(marker) and not closing.strip("`"):
                    end = probe
                    break
            fences.append(Fence(start=index, end=end, marker=marker, info=match.group(2)))
            if end is None:
                break
            index = end + 1
            continue
        index += 1
    return fences


def code_line_mask(lines: Sequence[str]) -> List[bool]:
    """Flag lines inside closed fences; unclosed fences stay plain text."""
    mask = [False] * len(lines)
    for fence in find_fences(lines):
        if fence.end is None:
            continue
        for index in range(fence.start, fence.end + 1):
            mask[index] = True
    return mask


def iter_prose_lines(text: str, *, keep_inline_code: bool = False) -> Iterator[Tuple[int, str]]:
    """Yield ``(offset, line)`` for lines outside fenced code.

    Inline code spans are blanked out unless ``keep_inline_code`` is set.
    """
    lines = text.split("\n")
    mask = code_line_mask(lines)
    for offset, (line, in_code) in enumerate(zip(lines, mask)):
        if in_code:
            continue
        yield offset, line if keep_inline_code else strip_inline_code(line)


def strip_inline_code(line: str) -> str:
    return INLINE_CODE_PATTERN.sub(lambda match: " " * len(match.group(0)), line)


def strip_emphasis(text: str) -> str:
    cleaned = re.sub(r"\*\*|\*|~~|`", "", text)
    cleaned = re.sub(r"(?<!\w)_+|_+(?!\w)", "", cleaned)
    return cleaned.strip()


def split_cells(line: str) -> List[str]:
    """Split a pipe-delimited table row into stripped cells."""
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|") and not stripped.endswith("\\|"):
        stripped = stripped[:-1]
    return [cell.strip().replace("\\|", "|") for cell in _CELL_SPLIT.split(stripped)]


def is_table_separator(line: str) -> bool:
    if "|" not in line or "-" not in line:
        return False
    cells = split_cells(line)
    return bool(cells) and all(_SEPARATOR_CELL.match(cell) for cell in cells)


def unwrap_target(target: str) -> str:
    target = target.strip()
    if target.startswith("<") and target.endswith(">"):
        target = target[1:-1].strip()
    return target


def slugify(title: str) -> str:
    """GitHub-style heading anchor."""
    slug = strip_emphasis(title).lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s", "-", slug)
    return slug


class SlugRegistry:
    """Produces unique anchors, suffixing repeats with ``-1``, ``-2`` ..."""

    def __init__(self) -> None:
        self._seen: Dict[str, int] = {}

    def slug(self, title: str) -> str:
        base = slugify(title)
        count = self._seen.get(base)
        if count is None:
            self._seen[base] = 0
            return base
        count += 1
        self._seen[base] = count
        return f"{base}-{count}"


__all__ = [
    "AUTOLINK_PATTERN",
    "BARE_URL_PATTERN",
    "Fence",
    "LINK_PATTERN",
    "SCHEME_PATTERN",
    "SlugRegistry",
    "code_line_mask",
    "fence_token",
    "find_fences",
    "is_table_separator",
    "iter_prose_lines",
    "match_heading",
    "normalize_language",
    "slugify",
    "split_cells",
    "strip_emphasis",
    "strip_inline_code",
    "unwrap_target",
]
