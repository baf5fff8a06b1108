"""Inverted keyword index over article prose."""

from __future__ import annotations

import re
from collections import defaultdict
from typing import Dict, Iterable, List, MutableMapping, Set

from .models import Article
from .syntax import LINK_PATTERN, iter_prose_lines

_TOKEN_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9_'-]*")
_CAMEL_PATTERN = re.compile(r"(?<!^)(?=[A-Z])")
_STOPWORDS = {
    "about",
    "after",
    "against",
    "all",
    "also",
    "and",
    "any",
    "are",
    "because",
    "been",
    "being",
    "between",
    "both",
    "but",
    "can",
    "could",
    "does",
    "each",
    "example",
    "for",
    "from",
    "has",
    "have",
    "how",
    "into",
    "its",
    "more",
    "must",
    "not",
    "one",
    "only",
    "other",
    "over",
    "pattern",
    "patterns",
    "same",
    "should",
    "some",
    "such",
    "than",
    "that",
    "the",
    "their",
    "them",
    "then",
    "there",
    "these",
    "they",
    "this",
    "those",
    "through",
    "under",
    "use",
    "used",
    "using",
    "very",
    "was",
    "were",
    "what",
    "when",
    "where",
    "which",
    "while",
    "who",
    "will",
    "with",
    "within",
    "without",
    "you",
    "your",
}
MIN_TOKEN_LENGTH = 3


def tokenize(text: str) -> Set[str]:
    """Return lowercased keyword tokens, splitting camelCase and hyphenated words."""
    tokens: Set[str] = set()
    for match in _TOKEN_PATTERN.finditer(text):
        raw = match.group(0).strip("'-_")
        if not raw:
            continue
        candidates = [raw]
        if any(char.isupper() for char in raw[1:]):
            candidates.extend(part for part in _CAMEL_PATTERN.split(raw) if part)
        for splitter in ("-", "_"):
            if splitter in raw:
                candidates.extend(raw.split(splitter))
        for candidate in candidates:
            lowered = candidate.lower().strip("'-_")
            if lowered.endswith("'s"):
                lowered = lowered[:-2]
            if len(lowered) < MIN_TOKEN_LENGTH or lowered in _STOPWORDS:
                continue
            tokens.add(lowered)
    return tokens


class KeywordIndex:
    """Maps prose tokens to the articles that mention them."""

    def __init__(self) -> None:
        self._postings: MutableMapping[str, Set[str]] = defaultdict(set)

    def add(self, article: Article) -> None:
        for token in self._article_tokens(article):
            self._postings[token].add(article.id)

    def extend(self, articles: Iterable[Article]) -> None:
        for article in articles:
            self.add(article)

    def lookup(self, token: str) -> List[str]:
        return sorted(self._postings.get(token.lower(), ()))

    def to_dict(self) -> Dict[str, List[str]]:
        return {token: sorted(ids) for token, ids in sorted(self._postings.items())}

    def __len__(self) -> int:
        return len(self._postings)

    @staticmethod
    def _article_tokens(article: Article) -> Set[str]:
        tokens = tokenize(article.title)
        texts = [article.preamble]
        for section in article.sections:
            tokens |= tokenize(section.heading)
            texts.append(section.body)
        for text in texts:
            for _, line in iter_prose_lines(text):
                # Link targets are paths and URLs, not prose.
                line = LINK_PATTERN.sub(lambda match: match.group(2), line)
                tokens |= tokenize(line)
        return tokens


__all__ = ["KeywordIndex", "MIN_TOKEN_LENGTH", "tokenize"]
