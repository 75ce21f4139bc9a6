import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .config import LOG_FORMAT, LOG_LEVEL
from .exceptions import FeedbackSenseError
from .models.batch import BatchProgress
from .processing.batch_config import PROFILE_NAMES, validate_batch_size
from .processing.pipeline import FeedbackPipeline
from .processing.record_store import InMemoryRecordStore

logger = logging.getLogger(__name__)


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Send log output to stdout and quiet the HTTP client loggers."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stdout,
    )

    # Suppress HTTP request logging from OpenAI/httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise FeedbackSenseError(f"Could not read {path}: {e}") from e


def _batch_size(args: argparse.Namespace) -> int | None:
    return validate_batch_size(args.batch_size) if args.batch_size is not None else None


def _print_progress(progress: BatchProgress) -> None:
    print(
        f"  Batch {progress.batches_completed}/{progress.total_batches}: "
        f"{progress.processed}/{progress.total} ({progress.percentage}%)",
        file=sys.stderr,
    )


def _print_summary(summary: dict[str, Any]) -> None:
    print(f"Total: {summary['total']} | Processed: {summary['processed']} | Failed: {summary['failed']}")
    for error in summary["errors"][:5]:
        print(f"  - {error['feedback_id'] or 'row'}: {error['error']}")
    if len(summary["errors"]) > 5:
        print(f"  ... and {len(summary['errors']) - 5} more")


def cmd_analyze(args: argparse.Namespace) -> int:
    """Analyze new feedback and write the resulting records."""
    rows = _read_json(Path(args.input))
    if not isinstance(rows, list):
        raise FeedbackSenseError(f"Expected a list of feedback rows in {args.input}")

    store = InMemoryRecordStore()
    pipeline = FeedbackPipeline.from_environment(record_store=store)
    summary = pipeline.import_feedback(
        rows,
        profile=args.profile,
        batch_size=_batch_size(args),
        on_progress=_print_progress,
    )

    if args.output:
        store.save(args.output)
    else:
        print(json.dumps([item.to_dict() for item in store.find_many()], indent=2))
    _print_summary(summary.to_dict())
    return 0 if summary.failed == 0 else 1


def cmd_reanalyze(args: argparse.Namespace) -> int:
    """Re-analyze stored feedback records in place."""
    store = InMemoryRecordStore.load(args.records)
    pipeline = FeedbackPipeline.from_environment(record_store=store)

    filter: dict[str, Any] = {}
    if args.category:
        filter["categories"] = args.category
    if args.source:
        filter["sources"] = args.source

    summary = pipeline.reanalyze_records(
        filter,
        profile=args.profile,
        batch_size=_batch_size(args),
        on_progress=_print_progress,
    )
    store.save(args.output or args.records)
    _print_summary(summary.to_dict())
    return 0 if summary.failed == 0 else 1


def cmd_metrics(args: argparse.Namespace) -> int:
    """Report AI accuracy from a file of user corrections."""
    corrections = _read_json(Path(args.corrections))
    if not isinstance(corrections, list):
        raise FeedbackSenseError(f"Expected a list of corrections in {args.corrections}")

    pipeline = FeedbackPipeline()
    for entry in corrections:
        pipeline.record_correction(
            entry.get("text", ""),
            entry["prediction"],
            entry["correction"],
            float(entry.get("confidence", 0.0)),
        )

    print(json.dumps(pipeline.get_ai_performance_metrics(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="feedbacksense",
        description="Categorize and analyze customer feedback",
    )
    parser.add_argument("--log-level", default=LOG_LEVEL, help="Logging level (default: %(default)s)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze a JSON list of new feedback")
    analyze.add_argument("input", help="JSON file with feedback strings or {content, source} rows")
    analyze.add_argument("-o", "--output", help="Write the created records to this file")
    analyze.add_argument("--profile", default="csv_import", choices=PROFILE_NAMES)
    analyze.add_argument("--batch-size", type=int, help="Override the profile's batch size")
    analyze.set_defaults(func=cmd_analyze)

    reanalyze = subparsers.add_parser("reanalyze", help="Re-analyze a JSON file of stored records")
    reanalyze.add_argument("records", help="JSON file with feedback records")
    reanalyze.add_argument("-o", "--output", help="Write results here instead of in place")
    reanalyze.add_argument("--category", action="append", help="Only items in this category")
    reanalyze.add_argument("--source", action="append", help="Only items from this source")
    reanalyze.add_argument("--profile", default="reanalysis", choices=PROFILE_NAMES)
    reanalyze.add_argument("--batch-size", type=int, help="Override the profile's batch size")
    reanalyze.set_defaults(func=cmd_reanalyze)

    metrics = subparsers.add_parser("metrics", help="Report AI accuracy from user corrections")
    metrics.add_argument(
        "corrections",
        help="JSON file with {text, prediction, correction, confidence} entries",
    )
    metrics.set_defaults(func=cmd_metrics)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the FeedbackSense command line."""
    # Load environment variables from .env file
    load_dotenv()

    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        return args.func(args)
    except FeedbackSenseError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
