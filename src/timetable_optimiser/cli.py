"""Command line entry point for running a timetable search."""

from __future__ import annotations

import argparse
import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

from .config import settings
from .data.json_repository import load_transit_data
from .logging_config import configure_logging
from .persistence.filesystem import FileStorage
from .schemas.search import SearchParameters
from .services.search.service import prepare_search, run_search

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Recommend an improved bus timetable from historic running data")
    parser.add_argument("--dataset", type=Path, default=None, help="JSON dataset (defaults to TOR_DATASET_FILE)")
    parser.add_argument("--service", required=True, help="Primary service id to optimise")
    parser.add_argument(
        "--date",
        dest="dates",
        action="append",
        type=date.fromisoformat,
        required=True,
        help="Sample date (YYYY-MM-DD); repeat for several days",
    )
    parser.add_argument("--include", action="append", default=None, help="Secondary service to include; repeatable")
    parser.add_argument("--iterations", type=int, default=None, help="Number of accepted moves to search for")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs")
    parser.add_argument(
        "--on-exhausted",
        choices=["stop", "free_tabu"],
        default="stop",
        help="What to do when no legal move remains",
    )
    parser.add_argument("--persist", action="store_true", help="Write report and timetable under the data root")
    parser.add_argument("--log-level", default=None, help="Logging level (defaults to TOR_LOG_LEVEL)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    provider = load_transit_data(args.dataset.expanduser().resolve() if args.dataset else None)
    primary = provider.get_service(args.service)
    included = [provider.get_service(service_id) for service_id in args.include] if args.include else None

    overrides = {"random_seed": args.seed} if args.seed is not None else {}
    parameters = SearchParameters(**overrides)
    prepared = prepare_search(provider, primary, args.dates, parameters, included_services=included)
    report = run_search(
        prepared,
        args.iterations,
        exhaustion_policy=args.on_exhausted,
        persist=args.persist,
        storage=FileStorage(settings.data_root) if args.persist else None,
    )
    logger.info(
        f"Search stopped ({report.stopped_reason}) after {report.iterations_run} iterations, "
        f"objective {report.start_objective:.2f} -> {report.best_objective:.2f}"
    )
    print(json.dumps(report.model_dump(mode="json"), indent=2))
    return 0
