"""Command-line entry point for running underwriting from JSON files."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from lendermatch.config import settings
from lendermatch.core.enums import UnderwritingStatus
from lendermatch.core.logging import configure_logging
from lendermatch.services.rule_engine.scoring import rank_results
from lendermatch.services.underwriting_service import UnderwritingService

logger = logging.getLogger(__name__)

EXIT_COMPLETED = 0
EXIT_FAILED = 1
EXIT_BAD_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lendermatch",
        description="Match a loan application against lender credit policies",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        help="Log level for messages written to stderr (default: %(default)s)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    evaluate = subparsers.add_parser(
        "evaluate",
        help="Run underwriting and print the run as JSON",
    )
    evaluate.add_argument("application", type=Path, help="Loan application JSON file")
    evaluate.add_argument("catalog", type=Path, help="JSON array of lender policies")
    evaluate.add_argument("--pretty", action="store_true", help="Indent the JSON output")
    evaluate.add_argument(
        "--ranked",
        action="store_true",
        help="Order results eligible first, then by fit score",
    )
    return parser


def _read_json(path: Path) -> Any:
    with path.open(encoding="utf-8") as f:
        return json.load(f)


def run_evaluate(args: argparse.Namespace) -> int:
    """Evaluate an application file against a catalog file."""
    try:
        application = _read_json(args.application)
        catalog = _read_json(args.catalog)
    except (OSError, ValueError) as e:
        print(f"lendermatch: cannot read input: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    if not isinstance(catalog, list):
        print("lendermatch: catalog must be a JSON array of policies", file=sys.stderr)
        return EXIT_BAD_INPUT

    with UnderwritingService() as service:
        run = service.evaluate(application, catalog)

    if args.ranked and run.results:
        run = run.model_copy(update={"results": rank_results(run.results)})

    print(run.model_dump_json(by_alias=True, indent=2 if args.pretty else None))

    if run.status == UnderwritingStatus.COMPLETED:
        return EXIT_COMPLETED
    logger.error(f"Underwriting run {run.id} failed: {run.error}")
    return EXIT_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "evaluate":
        return run_evaluate(args)
    return EXIT_BAD_INPUT


if __name__ == "__main__":
    sys.exit(main())
