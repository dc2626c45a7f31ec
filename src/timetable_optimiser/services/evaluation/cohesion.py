"""Blame for uneven spacing between services calling at the same stop."""

from __future__ import annotations

import logging
from datetime import timedelta
from itertools import groupby
from typing import TYPE_CHECKING, Optional, Sequence

from ...config import settings
from ..route_analysis.collection import RouteSegmentCollection
from .blamed import BlamedVisit
from .standardise import standardise

if TYPE_CHECKING:
    from ..search.solution import Solution

logger = logging.getLogger(__name__)


class ServiceCohesionEvaluator:
    """Penalises visits that break an even headway within each hour at a shared stop."""

    def __init__(self, collection: RouteSegmentCollection, dominance: Optional[float] = None) -> None:
        self.collection = collection
        self.dominance = dominance if dominance is not None else settings.cohesion_dominance

    def find_blame(self, solution: Solution) -> None:
        for visit in solution.writable_visits():
            visit.cohesion.reset()

        groups = 0
        for stop, services in self.collection.services_at_stop_of_interest.items():
            if len(services) < 2:
                continue
            records = [
                visit
                for service in services
                if service in solution
                for visit in solution.writable(service)
                if visit.stop_id == stop.stop_id
            ]
            records.sort(key=lambda visit: visit.scheduled_arrival)
            for _, hour in groupby(records, key=lambda visit: visit.scheduled_arrival.hour):
                groups += _blame_hour(list(hour))

        standardise([visit.cohesion for visit in solution.all_visits()], self.dominance)
        logger.debug(f"Cohesion blame computed over {groups} hourly groups")


def _blame_hour(visits: Sequence[BlamedVisit]) -> int:
    count = len(visits)
    if count <= 1:
        return 0
    spacing = 60.0 / count
    hour_start = visits[0].scheduled_arrival.replace(minute=0, second=0, microsecond=0)
    offsets = [
        (hour_start + timedelta(minutes=index * spacing) - visit.scheduled_arrival).total_seconds() / 60.0
        for index, visit in enumerate(visits)
    ]
    mean_offset = sum(offsets) / count
    for visit, offset in zip(visits, offsets):
        raw = offset - mean_offset
        shift = timedelta(minutes=raw)
        visit.cohesion.raw_weight = raw
        visit.cohesion.weight = abs(raw)
        visit.cohesion.target_arrival = visit.scheduled_arrival + shift
        visit.cohesion.target_departure = visit.scheduled_departure + shift
    return 1
