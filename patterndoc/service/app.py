"""FastAPI application entrypoint for patterndoc service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

try:  # pragma: no cover - optional dependency
    from fastapi import Depends, FastAPI, HTTPException
    from fastapi.responses import JSONResponse, PlainTextResponse
    from pydantic import BaseModel

    _FASTAPI_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - service mode optional
    FastAPI = None  # type: ignore[assignment]
    Depends = None  # type: ignore[assignment]
    HTTPException = None  # type: ignore[assignment]
    JSONResponse = None  # type: ignore[assignment]
    PlainTextResponse = None  # type: ignore[assignment]
    BaseModel = object  # type: ignore[assignment]
    _FASTAPI_AVAILABLE = False

from ..config import ConfigError
from ..models import EDGE_LINK, EDGE_RELATED, Diagnostic
from ..orchestrator import Orchestrator, PipelineResult
from ..renderer import ArticleRenderer, page_path


class HealthResponse(BaseModel):
    status: str


class ArticleSummary(BaseModel):
    id: str
    title: str
    category: str
    path: str
    languages: List[str]


class ArticleListResponse(BaseModel):
    articles: List[ArticleSummary]


class SectionModel(BaseModel):
    level: int
    heading: str


class DiagnosticModel(BaseModel):
    severity: str
    article_id: str
    location: str
    message: str


class ArticleDetail(ArticleSummary):
    source_path: str
    sections: List[SectionModel]
    related_out: List[str]
    related_in: List[str]
    links_out: List[str]
    links_in: List[str]
    citations: List[str]
    diagnostics: List[DiagnosticModel]


class DiagnosticsResponse(BaseModel):
    counts: Dict[str, int]
    diagnostics: List[DiagnosticModel]


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def _diagnostic_model(item: Diagnostic) -> DiagnosticModel:
    return DiagnosticModel(**item.to_dict())


def create_app(
    source_root: str | Path,
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing a read-only view of the catalog."""

    if not _FASTAPI_AVAILABLE:  # pragma: no cover - validated via unit tests
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install patterndoc[service]`."
        )

    root = Path(source_root).expanduser()
    app = FastAPI(title="patterndoc", version="1.0.0")

    async def get_orchestrator() -> Orchestrator:
        # Lazy-instantiate per request so every response reflects the current tree.
        return orchestrator_factory()

    async def load(orchestrator: Orchestrator) -> PipelineResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, orchestrator.load_catalog, root)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/articles", response_model=ArticleListResponse)
    async def list_articles(
        category: Optional[str] = None,
        language: Optional[str] = None,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> ArticleListResponse:
        result = await load(orchestrator)
        summaries = [
            ArticleSummary(
                id=article.id,
                title=article.title,
                category=article.category,
                path=page_path(article.id),
                languages=article.languages,
            )
            for article in sorted(result.catalog, key=lambda item: item.id)
            if (category is None or article.category == category.lower())
            and (language is None or language.lower() in article.languages)
        ]
        return ArticleListResponse(articles=summaries)

    @app.get("/diagnostics", response_model=DiagnosticsResponse)
    async def diagnostics(
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> DiagnosticsResponse:
        result = await load(orchestrator)
        return DiagnosticsResponse(
            counts=result.report.counts(),
            diagnostics=[_diagnostic_model(item) for item in result.report],
        )

    @app.get("/pages/{article_id:path}", response_class=PlainTextResponse)
    async def rendered_page(
        article_id: str,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> PlainTextResponse:
        result = await load(orchestrator)
        article = result.catalog.get(article_id)
        if article is None:
            raise HTTPException(status_code=404, detail=f"Unknown article: {article_id}")
        markdown = ArticleRenderer().render(article, result.catalog, result.report)
        return PlainTextResponse(markdown, media_type="text/markdown; charset=utf-8")

    @app.get("/articles/{article_id:path}", response_model=ArticleDetail)
    async def article_detail(
        article_id: str,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> ArticleDetail:
        result = await load(orchestrator)
        article = result.catalog.get(article_id)
        if article is None:
            raise HTTPException(status_code=404, detail=f"Unknown article: {article_id}")
        graph = result.catalog.graph
        return ArticleDetail(
            id=article.id,
            title=article.title,
            category=article.category,
            path=page_path(article.id),
            languages=article.languages,
            source_path=article.source_path,
            sections=[SectionModel(level=section.level, heading=section.heading) for section in article.sections],
            related_out=graph.outgoing(article.id, EDGE_RELATED),
            related_in=graph.incoming(article.id, EDGE_RELATED),
            links_out=graph.outgoing(article.id, EDGE_LINK),
            links_in=graph.incoming(article.id, EDGE_LINK),
            citations=[citation.url for citation in article.citations],
            diagnostics=[_diagnostic_model(item) for item in result.report.for_article(article.id)],
        )

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(
        _: Any, exc: FileNotFoundError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(
        _: Any, exc: ConfigError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    source_root: str | Path,
    host: str = "127.0.0.1",
    port: int = 8000,
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> None:  # pragma: no cover - integration path
    if not _FASTAPI_AVAILABLE:
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install patterndoc[service]`."
        )

    try:
        import uvicorn
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install patterndoc[service]`."
        ) from exc

    root = Path(source_root).expanduser()
    if not root.exists():
        raise FileNotFoundError(f"Source root not found: {source_root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Source root is not a directory: {source_root}")

    app = create_app(root, orchestrator_factory)
    uvicorn.run(app, host=host, port=port)
