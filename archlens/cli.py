"""CLI entrypoints for archlens commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .cancellation import CancellationToken
from .config import CONFIG_FILENAME, load_config
from .dispatcher import CodebaseAnalyzer
from .errors import AnalysisCancelled, ConfigError, RootNotFound
from .logging import configure_logging
from .models import AggregateAnalysis
from .stores import AnalysisStore

_FORMATS = ("summary", "detail", "json")


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_format_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=_FORMATS,
        default="summary",
        help="Output the summary view, the detailed view, or the full JSON document.",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Write the output to a file instead of stdout.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="archlens",
        description="Summarize the structure of a polyglot codebase for prompt context.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write log records to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze a source tree and print its context.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    analyze_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the codebase root (defaults to current directory).",
    )
    analyze_parser.add_argument(
        "--name",
        help="Display name for the codebase (defaults to the directory name).",
    )
    analyze_parser.add_argument(
        "--config",
        type=Path,
        help=f"Configuration file (defaults to {CONFIG_FILENAME} in the codebase root).",
    )
    analyze_parser.add_argument(
        "--store",
        type=Path,
        help="Directory where the analysis JSON is saved for later use.",
    )
    _add_format_option(analyze_parser)

    show_parser = subparsers.add_parser(
        "show",
        help="Print a previously stored analysis.",
    )
    _add_verbose_option(show_parser, suppress_default=True)
    show_parser.add_argument("name", help="Codebase name used when the analysis was stored.")
    show_parser.add_argument(
        "--store",
        type=Path,
        required=True,
        help="Directory holding stored analyses.",
    )
    _add_format_option(show_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for archlens commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "analyze":
        root = Path(args.path)
        try:
            config = load_config(args.config or root / CONFIG_FILENAME)
            analyzer = CodebaseAnalyzer(config=config)
            name = args.name or root.resolve().name
            analysis = analyzer.analyze(root, name, CancellationToken())
        except (RootNotFound, ConfigError) as exc:
            parser.exit(1, f"{exc}\n")
        except ValueError as exc:
            parser.exit(1, f"archlens analyze failed: {exc}\n")
        except (AnalysisCancelled, KeyboardInterrupt):
            parser.exit(130, "Analysis cancelled\n")
        if args.store is not None:
            saved = AnalysisStore(args.store).save(analysis)
            print(f"Analysis saved to {_relativize(saved)}", file=sys.stderr)
        _emit(analysis, args.format, args.output)
    elif args.command == "show":
        analysis = AnalysisStore(args.store).load(args.name)
        if analysis is None:
            parser.exit(1, f"No stored analysis named {args.name!r} in {args.store}\n")
        _emit(analysis, args.format, args.output)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _render_output(analysis: AggregateAnalysis, output_format: str) -> str:
    if output_format == "json":
        return json.dumps(analysis.to_dict(), indent=2, sort_keys=True) + "\n"
    if output_format == "detail":
        return analysis.full_context_text
    return analysis.summary_text


def _emit(analysis: AggregateAnalysis, output_format: str, output: Path | None) -> None:
    text = _render_output(analysis, output_format)
    if output is None:
        sys.stdout.write(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    print(f"Wrote {output_format} output to {_relativize(output)}", file=sys.stderr)


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
