from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from prospectminer.app import (
    build_context,
    gather_stats,
    run_collect,
    run_discover,
    run_enrich,
    run_filter,
    run_output,
    run_pipeline,
    run_refresh,
    run_score,
)
from prospectminer.config import configure_logging
from prospectminer.domain.settings import OutputFormat

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from prospectminer.app import PipelineStats
    from prospectminer.domain.pipeline import StageResult

log = logging.getLogger(__name__)

COMMANDS = (
    "discover",
    "collect",
    "filter",
    "enrich",
    "score",
    "output",
    "refresh",
    "pipeline",
    "stats",
)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid integer: {value}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {value}")
    return number


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a YAML or JSON settings file (defaults to ./prospectminer.yaml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )


def _add_limit(parser: argparse.ArgumentParser, help_text: str) -> None:
    parser.add_argument("--limit", type=_positive_int, help=help_text)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mine, score and export business leads")
    subparsers = parser.add_subparsers(dest="command", required=True)

    discover = subparsers.add_parser("discover", help="Pull listings from configured sources")
    discover.add_argument("--source", type=str, help="Only run the source with this name")
    _add_limit(discover, "Maximum number of listings to stage (defaults to config)")

    collect = subparsers.add_parser("collect", help="Turn staged listings into leads")
    collect.add_argument(
        "--run-id",
        type=str,
        help="Only collect listings staged by this discover run",
    )
    _add_limit(collect, "Maximum number of listings to collect (defaults to config)")

    filter_cmd = subparsers.add_parser("filter", help="Apply exclusion rules to collected leads")
    _add_limit(filter_cmd, "Maximum number of leads to filter (defaults to config)")

    enrich = subparsers.add_parser("enrich", help="Fetch websites of filtered leads")
    _add_limit(enrich, "Maximum number of leads to enrich (defaults to config)")

    score = subparsers.add_parser("score", help="Score enriched leads")
    _add_limit(score, "Maximum number of leads to score (defaults to config)")

    output = subparsers.add_parser("output", help="Export scored leads")
    output.add_argument(
        "--format",
        type=OutputFormat,
        choices=list(OutputFormat),
        help="Output format (defaults to config)",
    )
    output.add_argument(
        "--min-score",
        type=float,
        help="Only export leads with at least this score (defaults to config)",
    )
    _add_limit(output, "Maximum number of leads to export (defaults to config)")

    subparsers.add_parser("refresh", help="Return cooled-down leads to the pipeline")

    pipeline = subparsers.add_parser("pipeline", help="Run discover through output")
    pipeline.add_argument("--skip-discover", action="store_true", help="Skip discovery")
    pipeline.add_argument("--skip-enrich", action="store_true", help="Skip website enrichment")
    _add_limit(pipeline, "Per-stage lead limit (defaults to config)")

    subparsers.add_parser("stats", help="Show lead and run statistics")

    for name in COMMANDS:
        _add_common(subparsers.choices[name])

    return parser.parse_args(list(argv))


def _report(result: StageResult) -> bool:
    log.info(
        "%s: processed=%s, passed=%s, failed=%s (run %s)",
        result.stage,
        result.processed,
        result.passed,
        result.failed,
        result.run_id,
    )
    for key, value in result.details.items():
        log.info("  %s: %s", key, value)
    return result.success


def _print_stats(stats: PipelineStats) -> None:
    print("Leads by status:")  # noqa: T201
    for status, count in stats.leads.items():
        print(f"  {status:<10} {count}")  # noqa: T201
    print("Runs by stage:")  # noqa: T201
    for stage, run_stats in stats.runs.items():
        print(  # noqa: T201
            f"  {stage:<10} total={run_stats.total} completed={run_stats.completed} "
            f"failed={run_stats.failed}"
        )
    print("Recent runs:")  # noqa: T201
    for run in stats.recent_runs:
        print(  # noqa: T201
            f"  {run.run_id} {run.stage:<9} {run.status:<9} "
            f"{run.started_at.isoformat(timespec='seconds')} "
            f"processed={run.leads_processed} passed={run.leads_passed} "
            f"failed={run.leads_failed}"
        )


def _dispatch(args: argparse.Namespace) -> bool:
    context = build_context(config_path=args.config)
    match args.command:
        case "discover":
            return _report(run_discover(context, source_name=args.source, limit=args.limit))
        case "collect":
            return _report(run_collect(context, discover_run_id=args.run_id, limit=args.limit))
        case "filter":
            return _report(run_filter(context, limit=args.limit))
        case "enrich":
            return _report(run_enrich(context, limit=args.limit))
        case "score":
            return _report(run_score(context, limit=args.limit))
        case "output":
            return _report(
                run_output(
                    context,
                    output_format=args.format,
                    min_score=args.min_score,
                    limit=args.limit,
                )
            )
        case "refresh":
            return _report(run_refresh(context))
        case "pipeline":
            result = run_pipeline(
                context,
                skip_discover=args.skip_discover,
                skip_enrich=args.skip_enrich,
                limit=args.limit,
            )
            for stage_result in result.results:
                _report(stage_result)
            return result.success
        case "stats":
            _print_stats(gather_stats(context))
            return True
        case _:
            raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        success = _dispatch(parsed_args)
    except Exception:
        log.exception("Fatal error during run")
        sys.exit(1)

    if not success:
        log.error("Command %r did not complete successfully", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
