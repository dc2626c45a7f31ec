"""Squeaky-wheel generation of candidate moves from high-blame visits."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ...config import settings
from ...data.stops import StopDirectory
from ...errors import InvariantViolationError
from ...models.domain import Service
from ..evaluation.blamed import BlamedVisit
from ..evaluation.slack import SlackTimeEvaluator
from .move import Move
from .solution import Solution
from .tabu import TabuList

logger = logging.getLogger(__name__)


class NeighbourhoodGenerator:
    """Turns the highest-blame visits into candidate moves.

    Targets are picked greedily by total weight, at most one per journey, and
    then drawn at random. Each move pulls the target onto its slack target and
    lets the change fade out over a random horizon of the same running board.
    """

    def __init__(
        self,
        slack_evaluator: SlackTimeEvaluator,
        rng: random.Random,
        *,
        stops: Optional[StopDirectory] = None,
        neighbourhood_size: Optional[int] = None,
        candidate_list_size: Optional[int] = None,
        drop_off_minutes: Optional[tuple[int, int]] = None,
    ) -> None:
        self.slack_evaluator = slack_evaluator
        self.rng = rng
        self.stops = stops or slack_evaluator.stops
        self.neighbourhood_size = neighbourhood_size if neighbourhood_size is not None else settings.neighbourhood_size
        self.candidate_list_size = (
            candidate_list_size if candidate_list_size is not None else settings.candidate_list_size
        )
        self.drop_off_minutes = drop_off_minutes or (settings.drop_off_min_minutes, settings.drop_off_max_minutes)
        if self.drop_off_minutes[0] > self.drop_off_minutes[1]:
            raise ValueError("Drop-off window minimum must not exceed its maximum.")

    def generate(self, solution: Solution, tabu_list: TabuList) -> list[Move]:
        services = {service.service_id: service for service in solution.services()}
        blame = sorted(solution.all_visits(), key=lambda visit: visit.total_weight)
        moves: list[Move] = []
        while blame and len(moves) < self.candidate_list_size:
            targets = self._high_blame_areas(blame, services, tabu_list)
            while targets and len(moves) < self.candidate_list_size:
                target = targets.pop(self.rng.randrange(len(targets)))
                move = self.build_move(solution, services[target.service_id], target)
                if tabu_list.is_tabu(move):
                    logger.debug(f"Discarding tabu move on {target.get_id()}")
                    continue
                moves.append(move)
        logger.debug(f"Generated {len(moves)} candidate moves")
        return moves

    def _high_blame_areas(
        self,
        blame: list[BlamedVisit],
        services: dict[str, Service],
        tabu_list: TabuList,
    ) -> list[BlamedVisit]:
        """Pop the highest-blame usable visits off ``blame``, one per journey."""
        areas: list[BlamedVisit] = []
        while blame and len(areas) < self.neighbourhood_size:
            candidate = blame[-1]
            if (
                tabu_list.is_visit_tabu(candidate)
                or candidate.slack.target_arrival is None
                or self.stops.is_terminal(services[candidate.service_id], candidate.stop_id)
            ):
                blame.pop()
                continue
            areas.append(candidate)
            journey = (candidate.service_id, candidate.journey_code)
            blame[:] = [visit for visit in blame if (visit.service_id, visit.journey_code) != journey]
        return areas

    def build_move(self, solution: Solution, service: Service, target: BlamedVisit) -> Move:
        timetable = [visit.clone() for visit in solution.timetable(service)]
        board = [visit for visit in timetable if visit.running_board == target.running_board]
        target_id = target.get_id()
        position = next((index for index, visit in enumerate(board) if visit.get_id() == target_id), None)
        if position is None:
            raise InvariantViolationError(f"Target visit {target_id} is missing from its cloned timetable.")

        drop_off = target.scheduled_arrival + timedelta(minutes=self.rng.randint(*self.drop_off_minutes))
        window: list[BlamedVisit] = []
        for visit in board[position:]:
            if visit.scheduled_arrival > drop_off:
                break
            window.append(visit)

        before = {visit.get_id(): (visit.scheduled_arrival, visit.scheduled_departure) for visit in window}
        window[0].set_suggested_to_real()
        self._propagate_forwards(service, window, drop_off)

        changed = [
            visit.get_id()
            for visit in window
            if visit.get_id() == target_id
            or (visit.scheduled_arrival, visit.scheduled_departure) != before[visit.get_id()]
        ]
        proposed = window[0]
        return Move(
            service=service,
            new_timetable=timetable,
            changed_record_ids=tuple(changed),
            target_record=target.clone(),
            proposed_arrival=proposed.scheduled_arrival,
            proposed_departure=proposed.scheduled_departure,
            change_amount_minutes=(proposed.scheduled_arrival - target.scheduled_arrival).total_seconds() / 60.0,
        )

    def _propagate_forwards(self, service: Service, window: Sequence[BlamedVisit], drop_off: datetime) -> None:
        """Chain simulated times from the moved target and blend them into the window."""
        propagated: list[tuple[datetime, datetime]] = [(window[0].scheduled_arrival, window[0].scheduled_departure)]
        for previous, current in zip(window, window[1:]):
            leaving = propagated[-1][1]
            arrival = self.slack_evaluator.earliest_arrival(service, previous, current, leaving)
            layover = current.scheduled_departure - current.scheduled_arrival
            propagated.append((arrival, arrival + layover))

        start = window[0].scheduled_arrival
        for visit, (arrival, _) in zip(window[1:], propagated[1:]):
            if arrival >= drop_off:
                break
            _weight_drop_off(visit, start, drop_off, arrival)


def _weight_drop_off(visit: BlamedVisit, start: datetime, drop_off: datetime, propagated: datetime) -> None:
    """Blend the propagated arrival with the current one, fading out towards ``drop_off``."""
    total = (drop_off - start).total_seconds()
    if total <= 0:
        return
    till_end = (drop_off - propagated).total_seconds()
    share = min(max(till_end / total, 0.0), 1.0)
    dwell = visit.scheduled_departure - visit.scheduled_arrival
    arrival = visit.scheduled_arrival + (propagated - visit.scheduled_arrival) * share
    visit.update_times(arrival, arrival + dwell)
