"""Tabu search over a network timetable."""

from __future__ import annotations

import logging
import random
from datetime import date
from typing import Mapping, Optional, Sequence

from ...data.provider import TransitDataProvider
from ...data.retrieval import TimetableRetrieval
from ...data.stops import StopDirectory
from ...errors import NoMoveFoundError
from ...models.domain import ScheduledVisit, Service
from ...schemas.search import SearchParameters
from ..evaluation.cohesion import ServiceCohesionEvaluator
from ..evaluation.slack import SlackTimeEvaluator
from ..route_analysis.collection import RouteSegmentCollection
from ..simulation.dwell import DwellTimeSimulator
from ..simulation.journey import JourneyTimeSimulator
from .move import Move
from .neighbourhood import NeighbourhoodGenerator
from .selector import MoveSelector
from .solution import Solution
from .tabu import TabuList

logger = logging.getLogger(__name__)


class TimeTableEvaluator:
    """Runs one search session, an iteration at a time.

    Each iteration blames the current solution, builds a neighbourhood of
    moves, accepts the best non-tabu one and records it. When no move can be
    built, :class:`NoMoveFoundError` is raised and the caller decides whether to
    stop or call :meth:`free_up_tabu_early` and try again.
    """

    def __init__(
        self,
        provider: TransitDataProvider,
        collection: RouteSegmentCollection,
        dates: Sequence[date],
        starting_timetables: Mapping[Service, Sequence[ScheduledVisit]],
        parameters: Optional[SearchParameters] = None,
        *,
        retrieval: Optional[TimetableRetrieval] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.parameters = parameters or SearchParameters.from_settings()
        self.related_dates = list(dates)
        self.collection = collection
        self.retrieval = retrieval or TimetableRetrieval(provider, self.parameters.max_fetch_workers)
        self.rng = rng or random.Random(self.parameters.random_seed)

        stops = StopDirectory(provider)
        self.slack_evaluator = SlackTimeEvaluator(
            provider,
            collection,
            JourneyTimeSimulator(self.retrieval, self.related_dates),
            DwellTimeSimulator(self.retrieval, self.related_dates),
            stops=stops,
            dominance=self.parameters.slack_dominance,
            max_workers=self.parameters.max_chain_workers,
        )
        self.cohesion_evaluator = ServiceCohesionEvaluator(collection, self.parameters.cohesion_dominance)
        self.tabu_list = TabuList(self.parameters.tabu_tenure)
        self.neighbourhood = NeighbourhoodGenerator(
            self.slack_evaluator,
            self.rng,
            stops=stops,
            neighbourhood_size=self.parameters.neighbourhood_size,
            candidate_list_size=self.parameters.candidate_list_size,
            drop_off_minutes=(self.parameters.drop_off_min_minutes, self.parameters.drop_off_max_minutes),
        )
        self.selector = MoveSelector(self.slack_evaluator, self.cohesion_evaluator)

        self.current_solution = Solution.from_scheduled(starting_timetables)
        self.start_solution: Optional[Solution] = None
        self.best_solution: Optional[Solution] = None
        self.best_iteration = 0
        self.moves_made: list[tuple[Move, float]] = []
        self.iteration_count = 1

    @property
    def best_score(self) -> Optional[float]:
        return self.best_solution.objective_function_value() if self.best_solution is not None else None

    def perform_iteration(self) -> Move:
        first = self.iteration_count == 1
        if first:
            self.slack_evaluator.find_blame(self.current_solution)
        self.cohesion_evaluator.find_blame(self.current_solution)
        self.current_solution.calculate_total_blames()
        if first and self.start_solution is None:
            self.start_solution = self.current_solution.clone()
            self.best_solution = self.start_solution.clone()
            logger.info(f"Starting objective {self.start_solution.objective_function_value():.2f}")

        moves = self.neighbourhood.generate(self.current_solution, self.tabu_list)
        if not moves:
            raise NoMoveFoundError(f"No candidate moves could be generated at iteration {self.iteration_count}.")

        solution, move = self.selector.select(self.current_solution, moves, self.tabu_list)
        self.current_solution = solution
        score = solution.objective_function_value()
        if self.best_solution is None or score < self.best_solution.objective_function_value():
            self.best_solution = solution.clone()
            self.best_iteration = self.iteration_count

        self.moves_made.append((move, score))
        logger.info(f"Iteration {self.iteration_count}: {self.get_current_score_string()} | {move.describe()}")
        self.iteration_count += 1
        return move

    def free_up_tabu_early(self) -> Optional[str]:
        return self.tabu_list.free_up_early()

    def get_current_score_string(self) -> str:
        if not self.moves_made:
            start = self.start_solution.objective_function_value() if self.start_solution is not None else 0.0
            return f"Starting score: {start:.2f}"

        score = self.moves_made[-1][1]
        if len(self.moves_made) > 1:
            previous = self.moves_made[-2][1]
        else:
            previous = self.start_solution.objective_function_value() if self.start_solution is not None else score

        if self.best_iteration == len(self.moves_made):
            status = "Personal Best"
        elif score < previous:
            status = "Improved"
        elif score == previous:
            status = "Unchanged"
        else:
            status = "Worse"
        return f"{status}: {score:.2f}"
