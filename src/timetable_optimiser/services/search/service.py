"""Search preparation and orchestration service."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Literal, Optional, Sequence

from ...data.provider import TransitDataProvider
from ...data.retrieval import TimetableRetrieval
from ...errors import DataUnavailableError, NoMoveFoundError
from ...models.domain import Direction, ScheduledVisit, Service, Stop
from ...persistence.filesystem import FileStorage
from ...schemas.search import LatenessReportModel, MoveModel, SearchParameters, SearchReport
from ..evaluation.performance import LatenessReport, PerformanceEvaluator
from ..route_analysis.collection import RouteSegmentCollection
from ..route_analysis.finder import RouteSegmentFinder
from .evaluator import TimeTableEvaluator

logger = logging.getLogger(__name__)

ExhaustionPolicy = Literal["stop", "free_tabu"]


@dataclass(slots=True)
class PreparedSearch:
    evaluator: TimeTableEvaluator
    collection: RouteSegmentCollection
    primary_service: Service
    dates: list[date]
    lateness_report: list[LatenessReport]


def _route_stops(provider: TransitDataProvider, services: Iterable[Service]) -> list[Stop]:
    stops: list[Stop] = []
    seen: set[Stop] = set()
    for service in services:
        try:
            route = provider.get_stops(service, Direction.BOTH)
        except DataUnavailableError as exc:
            logger.warning(f"Cannot prefetch stops of service {service}: {exc}")
            continue
        for stop in route:
            if stop not in seen:
                seen.add(stop)
                stops.append(stop)
    return stops


def prepare_search(
    provider: TransitDataProvider,
    primary_service: Service,
    dates: Sequence[date],
    parameters: Optional[SearchParameters] = None,
    *,
    included_services: Optional[Iterable[Service]] = None,
    rng: Optional[random.Random] = None,
) -> PreparedSearch:
    """Discover shared routes, download starting timetables and warm the history cache."""

    if not dates:
        raise ValueError("At least one date is required to prepare a search.")
    params = parameters or SearchParameters.from_settings()
    dates = sorted(dates)

    finder = RouteSegmentFinder(provider, primary_service, params.route_segment_minimum)
    collection = RouteSegmentCollection.from_finder(finder, included_services)

    retrieval = TimetableRetrieval(provider, params.max_fetch_workers)
    performance = PerformanceEvaluator()
    retrieval.on_fetched = performance.add_records

    starting: dict[Service, list[ScheduledVisit]] = {}
    for service in list(collection.included_services):
        timetable = retrieval.first_scheduled_timetable(service, dates)
        if timetable is None:
            if service == primary_service:
                raise DataUnavailableError(f"No scheduled timetable for primary service {service} on the given dates.")
            logger.warning(f"Excluding service {service}: no scheduled timetable available")
            collection.remove_service(service)
            continue
        starting[service] = timetable

    retrieval.prefetch_services(collection.included_services, dates)
    retrieval.prefetch_stops(_route_stops(provider, collection.included_services), dates)
    logger.info(
        f"Prepared search for service {primary_service} with {len(starting)} services over {len(dates)} dates"
    )

    evaluator = TimeTableEvaluator(
        provider,
        collection,
        dates,
        starting,
        params,
        retrieval=retrieval,
        rng=rng,
    )
    return PreparedSearch(
        evaluator=evaluator,
        collection=collection,
        primary_service=primary_service,
        dates=list(dates),
        lateness_report=performance.generate_lateness_report(),
    )


def run_search(
    prepared: PreparedSearch,
    iterations: Optional[int] = None,
    *,
    exhaustion_policy: ExhaustionPolicy = "stop",
    should_stop: Optional[Callable[[], bool]] = None,
    persist: bool = False,
    storage: Optional[FileStorage] = None,
) -> SearchReport:
    evaluator = prepared.evaluator
    limit = iterations or evaluator.parameters.iteration_limit
    reason: Literal["iteration_limit", "exhausted", "stopped"] = "iteration_limit"

    while len(evaluator.moves_made) < limit:
        if should_stop is not None and should_stop():
            reason = "stopped"
            break
        try:
            evaluator.perform_iteration()
        except NoMoveFoundError as exc:
            if exhaustion_policy == "free_tabu" and len(evaluator.tabu_list) > 0:
                logger.warning(f"{exc} Freeing up the tabu list early and retrying.")
                evaluator.free_up_tabu_early()
                continue
            logger.warning(f"{exc} Stopping the search.")
            reason = "exhausted"
            break

    report = build_report(prepared, reason)
    if persist:
        storage = storage or FileStorage()
        run_dir = storage.save_search(report, evaluator.current_solution)
        logger.info(f"Search outputs written to {run_dir}")
    return report


def build_report(prepared: PreparedSearch, reason: Literal["iteration_limit", "exhausted", "stopped"]) -> SearchReport:
    evaluator = prepared.evaluator
    final = evaluator.current_solution.objective_function_value()
    start = evaluator.start_solution.objective_function_value() if evaluator.start_solution is not None else final
    best = evaluator.best_score if evaluator.best_score is not None else final

    moves = [
        MoveModel(
            iteration=index,
            service_id=move.service.service_id,
            stop_id=move.target_record.stop_id,
            journey_code=move.target_record.journey_code,
            running_board=move.target_record.running_board,
            original_arrival=move.target_record.scheduled_arrival,
            proposed_arrival=move.proposed_arrival,
            proposed_departure=move.proposed_departure,
            change_amount_minutes=round(move.change_amount_minutes, 3),
            objective=round(score, 3),
            changed_record_ids=list(move.changed_record_ids),
            description=move.describe(),
        )
        for index, (move, score) in enumerate(evaluator.moves_made, start=1)
    ]
    return SearchReport(
        primary_service_id=prepared.primary_service.service_id,
        services=[service.service_id for service in evaluator.current_solution.services()],
        dates=prepared.dates,
        iterations_run=len(evaluator.moves_made),
        start_objective=round(start, 3),
        final_objective=round(final, 3),
        best_objective=round(best, 3),
        best_iteration=evaluator.best_iteration,
        stopped_reason=reason,
        moves=moves,
        lateness=[
            LatenessReportModel(
                service_id=entry.service_id,
                on_time_percentage=entry.on_time_percentage,
                average_lateness_minutes=entry.average_lateness_minutes,
                sample_count=entry.sample_count,
            )
            for entry in prepared.lateness_report
        ],
    )
