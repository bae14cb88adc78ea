"""CLI entrypoints for reforge commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .errors import NoArchiveError
from .logging import configure_logging
from .orchestrator import Orchestrator
from .progress import RunState, SessionState


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


def _add_log_file_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "--log-file",
        type=Path,
        default=argparse.SUPPRESS if suppress_default else None,
        help="Also write a timestamped debug log to this file.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reforge",
        description="Analyze a GitHub repository and stream a modernized re-implementation.",
    )
    _add_verbose_option(parser)
    _add_log_file_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run",
        help="Analyze a repository and write the re-implemented project as a zip archive.",
    )
    _add_verbose_option(run_parser, suppress_default=True)
    _add_log_file_option(run_parser, suppress_default=True)
    run_parser.add_argument("url", help="GitHub repository URL, e.g. https://github.com/owner/repo.")
    run_parser.add_argument(
        "--token",
        default=None,
        help="GitHub personal access token (defaults to GITHUB_TOKEN or .reforge.yml).",
    )
    run_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Directory that receives the archive (defaults to the current directory).",
    )
    run_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to .reforge.yml or the directory containing it.",
    )
    run_parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Also write the markdown analysis report to this file.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    _add_log_file_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for reforge commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "run":
        _run(parser, args)
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    orchestrator = Orchestrator(config)
    state = orchestrator.run(args.url, token=args.token)
    if state.run_state is not RunState.REIMPLEMENTED:
        parser.exit(1, f"reforge run failed: {state.error_message}\n")

    if args.report is not None:
        args.report.parent.mkdir(parents=True, exist_ok=True)
        args.report.write_text(state.analysis or "", encoding="utf-8")
        print(f"Analysis written to {_relativize(args.report)}")

    try:
        archive = orchestrator.export_archive(args.output)
    except NoArchiveError as exc:
        parser.exit(1, f"{exc}\n")
    print(_summarize(state))
    print(f"Archive written to {_relativize(archive)}")


def _summarize(state: SessionState) -> str:
    selected = len(state.selected_files or ())
    produced = len(state.reimplemented_files or ())
    return f"Re-implemented {produced} files from {selected} selected"


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
