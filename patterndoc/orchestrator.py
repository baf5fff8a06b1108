"""Pipeline orchestration for the build, validate and list flows."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .catalog import CatalogBuilder
from .config import PatterndocConfig, load_config
from .diagnostics import DiagnosticReport
from .emitter import IndexEmitter
from .logging import get_logger
from .models import Catalog, SourceFile
from .output import OutputError
from .parser import ArticleParser, ParseResult
from .references import ReferenceExtractor
from .renderer import ArticleRenderer
from .scanner import SourceScanner
from .validators import CatalogValidator


class PipelineCancelled(RuntimeError):
    """Raised when a run is cancelled between stages."""


@dataclass
class PipelineResult:
    """Finalized catalog plus every diagnostic gathered on the way."""

    catalog: Catalog
    report: DiagnosticReport
    config: PatterndocConfig

    @property
    def article_count(self) -> int:
        return len(self.catalog)


@dataclass
class BuildOutcome:
    """Result of a build run."""

    output_root: Path
    result: PipelineResult
    written: List[Path] = field(default_factory=list)

    @property
    def catalog(self) -> Catalog:
        return self.result.catalog

    @property
    def report(self) -> DiagnosticReport:
        return self.result.report


class Orchestrator:
    """Coordinates scanning, parsing, cataloguing, validation and output."""

    def __init__(
        self,
        scanner: SourceScanner | None = None,
        parser: ArticleParser | None = None,
        extractor: ReferenceExtractor | None = None,
        validator: CatalogValidator | None = None,
        renderer: ArticleRenderer | None = None,
        emitter: IndexEmitter | None = None,
        *,
        config: PatterndocConfig | None = None,
        config_path: Path | None = None,
        ignore: Sequence[str] = (),
        jobs: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.scanner = scanner
        self.parser = parser or ArticleParser()
        self.extractor = extractor
        self.validator = validator
        self.renderer = renderer
        self.emitter = emitter
        self.config = config
        self.config_path = config_path
        self.ignore = list(ignore)
        self.jobs = jobs
        self.cancel_event = cancel_event
        self.logger = get_logger("orchestrator")

    def load_catalog(self, source_root: str | Path, *, exclude: Sequence[Path] = ()) -> PipelineResult:
        """Scan, parse, resolve and validate ``source_root``."""
        root = Path(source_root).expanduser()
        config = self._load_config(root)
        scanner = self._resolve_scanner(config, exclude)

        self._check_cancelled("scan")
        scan = scanner.scan(root)
        self.logger.info("Scanning %s (%d candidate files)", scan.root, len(scan))

        self._check_cancelled("parse")
        results = self._parse_all(scan, self._resolve_extractor(config), self._resolve_jobs(config))

        diagnostics = list(scan.diagnostics)
        builder = CatalogBuilder(scan.root)
        for result in results:
            diagnostics.extend(result.diagnostics)
            if result.article is not None:
                builder.add(result.article)

        self._check_cancelled("catalog")
        catalog = builder.finalize()
        diagnostics.extend(catalog.diagnostics)

        self._check_cancelled("validate")
        validator = self.validator or CatalogValidator(
            cycle_bound=config.validation.cycle_bound,
            required_sections=config.validation.required_sections,
        )
        diagnostics.extend(validator.validate(catalog))
        report = DiagnosticReport(diagnostics)

        counts = report.counts()
        self.logger.info(
            "Catalog ready: %d articles, %d errors, %d warnings, %d info",
            len(catalog),
            counts["error"],
            counts["warning"],
            counts["info"],
        )
        return PipelineResult(catalog=catalog, report=report, config=config)

    def run_validate(self, source_root: str | Path) -> PipelineResult:
        return self.load_catalog(source_root)

    def run_build(self, source_root: str | Path, output_root: str | Path) -> BuildOutcome:
        """Run the full pipeline and write pages plus indexes under ``output_root``."""
        output_path = Path(output_root).expanduser().resolve()
        source_path = Path(source_root).expanduser().resolve()
        # Only a strictly nested output dir can be skipped by the scanner.
        if source_path.is_relative_to(output_path):
            raise OutputError(f"Output root {output_path} must not contain the source root {source_path}")
        result = self.load_catalog(source_root, exclude=[output_path])

        self._check_cancelled("output")
        self._prepare_output(output_path)

        renderer = self.renderer or ArticleRenderer()
        emitter = self.emitter or IndexEmitter()
        written: List[Path] = []
        for article_id in sorted(result.catalog.articles):
            self._check_cancelled("render")
            article = result.catalog.articles[article_id]
            written.append(renderer.write(article, result.catalog, output_path, result.report))
        self._check_cancelled("emit")
        written.extend(emitter.emit(result.catalog, output_path, result.report))

        self.logger.info("Build complete: %d files written to %s", len(written), output_path)
        return BuildOutcome(output_root=output_path, result=result, written=written)

    def run_list(
        self,
        source_root: str | Path,
        *,
        category: Optional[str] = None,
        language: Optional[str] = None,
    ) -> List[str]:
        """Return sorted article IDs matching the optional category and language filters."""
        catalog = self.load_catalog(source_root).catalog
        wanted_category = category.lower() if category else None
        wanted_language = language.lower() if language else None
        matches = [
            article.id
            for article in catalog
            if (wanted_category is None or article.category == wanted_category)
            and (wanted_language is None or wanted_language in article.languages)
        ]
        return sorted(matches)

    def _load_config(self, root: Path) -> PatterndocConfig:
        if self.config is not None:
            config = self.config
        elif self.config_path is not None:
            if not Path(self.config_path).expanduser().exists():
                raise FileNotFoundError(f"Config file not found: {self.config_path}")
            config = load_config(Path(self.config_path))
        elif root.is_dir():
            config = load_config(root)
        else:
            config = PatterndocConfig(root=root)
        return config

    def _resolve_scanner(self, config: PatterndocConfig, exclude: Sequence[Path]) -> SourceScanner:
        if self.scanner is not None:
            return self.scanner
        return SourceScanner(
            extensions=config.extensions,
            ignore=[*config.ignore, *self.ignore],
            allow_hidden=config.allow_hidden,
            exclude=exclude,
        )

    def _resolve_extractor(self, config: PatterndocConfig) -> ReferenceExtractor:
        if self.extractor is not None:
            return self.extractor
        return ReferenceExtractor(
            related_headings=config.related_headings,
            reference_headings=config.reference_headings,
        )

    def _resolve_jobs(self, config: PatterndocConfig) -> int:
        jobs = self.jobs if self.jobs is not None else config.jobs
        return max(int(jobs), 1)

    def _parse_all(self, sources, extractor: ReferenceExtractor, jobs: int) -> List[ParseResult]:
        # Workers share no mutable state; map() keeps input order.

        def parse_one(source: SourceFile) -> ParseResult:
            result = self.parser.parse(source)
            if result.article is not None:
                result.article = extractor.attach(result.article)
            return result

        if jobs <= 1:
            return [parse_one(source) for source in sources]
        self.logger.debug("Parsing with %d worker threads", jobs)
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            return list(executor.map(parse_one, sources))

    def _prepare_output(self, output_path: Path) -> None:
        if output_path.exists() and not output_path.is_dir():
            raise OutputError(f"Output target is not a directory: {output_path}")
        try:
            output_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputError(f"Cannot create output directory {output_path}: {exc.strerror or exc}") from exc

    def _check_cancelled(self, stage: str) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            self.logger.warning("Run cancelled before %s stage", stage)
            raise PipelineCancelled(f"Run cancelled before {stage} stage")


__all__ = ["BuildOutcome", "Orchestrator", "PipelineCancelled", "PipelineResult"]
