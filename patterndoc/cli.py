"""CLI entrypoints for patterndoc commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict

from .config import ConfigError
from .diagnostics import DiagnosticReport, format_summary
from .logging import configure_logging, get_logger
from .orchestrator import Orchestrator, PipelineCancelled, PipelineResult
from .output import OutputError, RenderError

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_DIAGNOSTICS = 2

logger = get_logger("cli")


def _add_common_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    """Register shared flags; subcommands suppress defaults so flags work on either side."""

    def default(value: object) -> object:
        return argparse.SUPPRESS if suppress_default else value

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=default(False),
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        default=default(False),
        help="Hide info diagnostics from the summary.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=default(False),
        help="Treat warnings as errors when computing the exit code.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        default=default(False),
        help="Print a machine-readable summary instead of text.",
    )
    parser.add_argument(
        "--ignore",
        action="append",
        # Globs given after the command extend, not replace, those given before it.
        dest="command_ignore" if suppress_default else "ignore",
        metavar="GLOB",
        default=default([]),
        help="Ignore files matching GLOB (gitignore syntax, repeatable).",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        default=default(None),
        help="Path to a .patterndoc.yml file (defaults to <source-root>/.patterndoc.yml).",
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        default=default(None),
        help="Also write debug logs to PATH.",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        metavar="N",
        default=default(None),
        help="Parse articles with N worker threads.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patterndoc",
        description="Index, validate and render a tree of design-pattern articles.",
    )
    _add_common_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Build the catalog and write rendered pages plus indexes.",
    )
    _add_common_options(build_parser, suppress_default=True)
    build_parser.add_argument("source_root", help="Root of the Markdown article tree.")
    build_parser.add_argument("output_root", help="Directory receiving rendered output.")

    validate_parser = subparsers.add_parser(
        "validate",
        help="Scan, parse and validate articles without writing output.",
    )
    _add_common_options(validate_parser, suppress_default=True)
    validate_parser.add_argument("source_root", help="Root of the Markdown article tree.")

    list_parser = subparsers.add_parser(
        "list",
        help="List article IDs, optionally filtered by category or language.",
    )
    _add_common_options(list_parser, suppress_default=True)
    list_parser.add_argument("source_root", help="Root of the Markdown article tree.")
    list_parser.add_argument("--category", metavar="TAG", help="Only list articles in this category.")
    list_parser.add_argument("--language", metavar="TAG", help="Only list articles with code in this language.")

    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve the catalog over HTTP (requires the service extra).",
    )
    _add_common_options(serve_parser, suppress_default=True)
    serve_parser.add_argument("source_root", help="Root of the Markdown article tree.")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind.")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for patterndoc commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        quiet=bool(args.quiet or args.json),
        log_file=Path(args.log_file) if args.log_file else None,
    )

    orchestrator = Orchestrator(
        config_path=Path(args.config) if args.config else None,
        ignore=ignore_globs(args),
        jobs=args.jobs,
    )

    try:
        if args.command == "build":
            outcome = orchestrator.run_build(args.source_root, args.output_root)
            return _report(args, outcome.result)
        if args.command == "validate":
            return _report(args, orchestrator.run_validate(args.source_root))
        if args.command == "list":
            ids = orchestrator.run_list(
                args.source_root, category=args.category, language=args.language
            )
            if args.json:
                print(json.dumps({"articles": ids}, indent=2, sort_keys=True))
            else:
                for article_id in ids:
                    print(article_id)
            return EXIT_OK
        if args.command == "serve":
            from .service import run_service

            run_service(
                args.source_root,
                host=args.host,
                port=args.port,
                orchestrator_factory=lambda: Orchestrator(
                    config_path=Path(args.config) if args.config else None,
                    ignore=ignore_globs(args),
                    jobs=args.jobs,
                ),
            )
            return EXIT_OK
    except (FileNotFoundError, NotADirectoryError) as exc:
        return _fatal(f"{exc}")
    except RenderError as exc:
        return _fatal(f"render failed for {exc.article_id}: {exc}")
    except OutputError as exc:
        return _fatal(f"output error: {exc}")
    except OSError as exc:
        return _fatal(f"cannot read source: {exc}")
    except ConfigError as exc:
        return _fatal(f"config error: {exc}")
    except PipelineCancelled as exc:
        return _fatal(f"{exc}")
    except RuntimeError as exc:
        return _fatal(f"{args.command} failed: {exc}\nRun with --verbose for more details.")

    parser.error(f"Unknown command {args.command!r}")  # pragma: no cover - argparse enforces choices
    return EXIT_FATAL  # pragma: no cover


def _report(args: argparse.Namespace, result: PipelineResult) -> int:
    strict = bool(args.strict) or result.config.validation.strict
    quiet = bool(args.quiet) or result.config.output.quiet
    exit_code = exit_code_for(result.report, strict=strict)
    if args.json:
        print(json.dumps(_json_summary(result, exit_code, quiet=quiet), indent=2, sort_keys=True, ensure_ascii=False))
    else:
        print(format_summary(result.report, article_count=result.article_count, quiet=quiet))
    return exit_code


def ignore_globs(args: argparse.Namespace) -> list[str]:
    return [*(getattr(args, "ignore", None) or []), *(getattr(args, "command_ignore", None) or [])]


def exit_code_for(report: DiagnosticReport, *, strict: bool = False) -> int:
    return EXIT_DIAGNOSTICS if report.has_errors(strict=strict) else EXIT_OK


def _json_summary(result: PipelineResult, exit_code: int, *, quiet: bool) -> Dict[str, Any]:
    return {
        "articles": result.article_count,
        "counts": result.report.counts(),
        "diagnostics": [item.to_dict() for item in result.report.visible(quiet=quiet)],
        "exit_code": exit_code,
    }


def _fatal(message: str) -> int:
    logger.debug("Fatal error", exc_info=True)
    print(f"patterndoc: error: {message}", file=sys.stderr)
    return EXIT_FATAL


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
