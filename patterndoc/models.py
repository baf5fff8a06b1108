"""Core data models shared across patterndoc components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

BEHAVIORAL = "behavioral"
STRUCTURAL = "structural"
CREATIONAL = "creational"
FUNCTIONAL = "functional"
CONCURRENCY = "concurrency"
PERFORMANCE = "performance"
TESTING = "testing"
OTHER = "other"

# Index order; creational and concurrency are only listed when populated.
CATEGORIES: Tuple[str, ...] = (
    BEHAVIORAL,
    STRUCTURAL,
    CREATIONAL,
    FUNCTIONAL,
    CONCURRENCY,
    PERFORMANCE,
    TESTING,
    OTHER,
)
OPTIONAL_CATEGORIES = frozenset({CREATIONAL, CONCURRENCY})

LANGUAGES: Tuple[str, ...] = ("go", "cpp", "rust", "ts", "js", "python", "java", "text", "unknown")

ERROR = "error"
WARNING = "warning"
INFO = "info"
SEVERITIES: Tuple[str, ...] = (ERROR, WARNING, INFO)

REF_ARTICLE = "article"
REF_ANCHOR = "anchor"
REF_EXTERNAL = "external"
REF_RELATED = "related"

EDGE_LINK = "link"
EDGE_RELATED = "related"


@dataclass(frozen=True)
class SourceFile:
    """A documentation file discovered by the scanner."""

    path: str
    relative_path: str
    category: str
    content: bytes
    mtime: float


@dataclass
class Section:
    """A heading and the Markdown body collected until the next heading."""

    level: int
    heading: str
    body: str
    line: int = 0
    synthetic: bool = False
    body_line: int = 0


@dataclass
class CodeBlock:
    language: str
    raw_language: str
    content: str
    line: int = 0


@dataclass
class TableBlock:
    rows: List[List[str]]
    line: int = 0


@dataclass
class OutgoingRef:
    """A link or related-pattern citation leaving an article."""

    kind: str
    target: str
    label: str = ""
    resolved: Optional[str] = None
    line: int = 0


@dataclass
class SourceCitation:
    label: str
    url: str
    line: int = 0


@dataclass
class Article:
    """Structured representation of one Markdown source file."""

    id: str
    title: str
    category: str
    source_path: str
    sections: List[Section] = field(default_factory=list)
    code_blocks: List[CodeBlock] = field(default_factory=list)
    tables: List[TableBlock] = field(default_factory=list)
    refs: List[OutgoingRef] = field(default_factory=list)
    citations: List[SourceCitation] = field(default_factory=list)
    preamble: str = ""
    preamble_line: int = 1

    @property
    def title_section(self) -> Optional[Section]:
        for section in self.sections:
            if section.level == 1:
                return section
        return None

    @property
    def body_sections(self) -> List[Section]:
        title = self.title_section
        return [section for section in self.sections if section is not title]

    @property
    def languages(self) -> List[str]:
        return sorted({block.language for block in self.code_blocks})

    def refs_of(self, kind: str) -> List[OutgoingRef]:
        return [ref for ref in self.refs if ref.kind == kind]


@dataclass(frozen=True)
class Diagnostic:
    """Structured report of a parsing or validation finding."""

    severity: str
    article_id: str
    location: str
    message: str

    def sort_key(self) -> tuple[int, str, str, str]:
        return (SEVERITIES.index(self.severity), self.article_id, self.location, self.message)

    def to_dict(self) -> Dict[str, str]:
        return {
            "severity": self.severity,
            "article_id": self.article_id,
            "location": self.location,
            "message": self.message,
        }


@dataclass(frozen=True, order=True)
class Edge:
    source: str
    target: str
    kind: str


class PatternGraph:
    """Directed article-to-article edges keyed by article ID."""

    def __init__(self) -> None:
        self._edges: Dict[Edge, None] = {}

    def add(self, source: str, target: str, kind: str) -> None:
        self._edges.setdefault(Edge(source=source, target=target, kind=kind), None)

    def __iter__(self) -> Iterator[Edge]:
        return iter(sorted(self._edges))

    def __len__(self) -> int:
        return len(self._edges)

    def __contains__(self, edge: object) -> bool:
        return edge in self._edges

    def edges(self, kind: Optional[str] = None) -> List[Edge]:
        return [edge for edge in self if kind is None or edge.kind == kind]

    def outgoing(self, article_id: str, kind: Optional[str] = None) -> List[str]:
        return sorted({edge.target for edge in self.edges(kind) if edge.source == article_id})

    def incoming(self, article_id: str, kind: Optional[str] = None) -> List[str]:
        return sorted({edge.source for edge in self.edges(kind) if edge.target == article_id})

    def adjacency(self, kind: Optional[str] = None) -> Dict[str, List[str]]:
        adjacency: Dict[str, List[str]] = {}
        for edge in self.edges(kind):
            adjacency.setdefault(edge.source, []).append(edge.target)
        return adjacency


@dataclass
class Catalog:
    """Resolved articles keyed by ID plus the derived indexes."""

    root: str
    articles: Dict[str, Article]
    categories: Dict[str, Tuple[str, ...]]
    names: Dict[str, str]
    graph: PatternGraph
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def get(self, article_id: str) -> Optional[Article]:
        return self.articles.get(article_id)

    def __iter__(self) -> Iterator[Article]:
        return iter(self.articles.values())

    def __len__(self) -> int:
        return len(self.articles)
