"""Blame for schedule slack compared with simulated minimum running times."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Sequence

from ...config import settings
from ...data.provider import TransitDataProvider
from ...data.stops import StopDirectory
from ...models.domain import Service
from ..route_analysis.collection import RouteSegmentCollection
from ..simulation.dwell import DwellTimeSimulator
from ..simulation.journey import JourneyTimeSimulator
from .blamed import BlamedVisit
from .standardise import standardise

if TYPE_CHECKING:
    from ..search.solution import Solution

logger = logging.getLogger(__name__)


class SlackTimeEvaluator:
    """Compares each running board with a chain of simulated travel and dwell times.

    Each leg starts from the previous visit's scheduled departure, so a visit's
    blame reflects the slack on its own leg.
    """

    def __init__(
        self,
        provider: TransitDataProvider,
        collection: RouteSegmentCollection,
        journey_simulator: JourneyTimeSimulator,
        dwell_simulator: DwellTimeSimulator,
        *,
        stops: Optional[StopDirectory] = None,
        dominance: Optional[float] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.provider = provider
        self.collection = collection
        self.journey_simulator = journey_simulator
        self.dwell_simulator = dwell_simulator
        self.stops = stops or StopDirectory(provider)
        self.dominance = dominance if dominance is not None else settings.slack_dominance
        self.max_workers = max_workers if max_workers is not None else settings.max_chain_workers

    def find_blame(self, solution: Solution) -> None:
        for service in solution.services():
            self.find_service_blame(solution, service)
        self.standardise(solution)

    def find_service_blame(self, solution: Solution, service: Service) -> None:
        """Raw blame for one service; call :meth:`standardise` afterwards."""
        visits = solution.writable(service)
        boards: dict[str, list[BlamedVisit]] = {}
        for visit in visits:
            boards.setdefault(visit.running_board, []).append(visit)
        chains = [boards[key] for key in sorted(boards)]

        if self.max_workers == 1 or len(chains) <= 1:
            for chain in chains:
                self._blame_chain(service, chain)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                list(executor.map(lambda chain: self._blame_chain(service, chain), chains))
        logger.debug(f"Slack blame computed for {len(visits)} visits of service {service}")

    def standardise(self, solution: Solution) -> None:
        standardise([visit.slack for visit in solution.writable_visits()], self.dominance)

    def _blame_chain(self, service: Service, chain: Sequence[BlamedVisit]) -> None:
        if not chain:
            return
        first = chain[0]
        _apply_blame(first, first.scheduled_arrival, first.scheduled_departure)
        for previous, current in zip(chain, chain[1:]):
            arrival, departure = self.theoretical_times(service, previous, current, previous.scheduled_departure)
            _apply_blame(current, arrival, departure)

    def theoretical_times(
        self,
        service: Service,
        previous: BlamedVisit,
        current: BlamedVisit,
        leaving: datetime,
    ) -> tuple[datetime, datetime]:
        """Earliest arrival and departure at ``current`` when leaving ``previous`` at ``leaving``."""
        arrival = self.earliest_arrival(service, previous, current, leaving)
        next_stop = self.stops.get(service, current.stop_id)
        dwell = self.dwell_simulator.estimate(arrival, next_stop, self.provider.services_at(next_stop))
        return arrival, arrival + dwell

    def earliest_arrival(
        self,
        service: Service,
        previous: BlamedVisit,
        current: BlamedVisit,
        leaving: datetime,
    ) -> datetime:
        last_stop = self.stops.get(service, previous.stop_id)
        next_stop = self.stops.get(service, current.stop_id)
        travel = self.journey_simulator.estimate(
            leaving,
            last_stop,
            next_stop,
            self.collection.services_between(last_stop, next_stop),
        )
        return leaving + travel


def _apply_blame(visit: BlamedVisit, arrival: datetime, departure: datetime) -> None:
    raw = (
        (arrival - visit.scheduled_arrival).total_seconds() + (departure - visit.scheduled_departure).total_seconds()
    ) / 60.0
    visit.slack.raw_weight = raw
    visit.slack.weight = abs(raw)
    visit.slack.target_arrival = arrival
    visit.slack.target_departure = departure

