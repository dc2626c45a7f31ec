"""Travel time estimation between two consecutive stops."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from ...models.domain import HistoricVisit, Service, Stop, seconds_of_day
from .base import TimeSample, TimeSimulator

logger = logging.getLogger(__name__)


class JourneyTimeSimulator(TimeSimulator):
    """Estimates how long a vehicle needs to travel from one stop to the next.

    With ``forward`` set, samples are keyed by departure from the start stop;
    otherwise by arrival at the end stop.
    """

    def estimate(
        self,
        target: datetime,
        start: Stop,
        end: Stop,
        services: Sequence[Service],
        *,
        forward: bool = True,
    ) -> timedelta:
        per_day: list[list[TimeSample]] = []
        for service in services:
            for day in self.retrieval.service_history(service, self.dates):
                samples = list(_journey_samples(day, start, end, forward))
                if samples:
                    per_day.append(samples)
        if not per_day:
            logger.debug(f"No travel history between {start} and {end}; assuming zero travel time")
        return self._estimate(per_day, target)


def _journey_samples(
    visits: Iterable[HistoricVisit],
    start: Stop,
    end: Stop,
    forward: bool,
) -> Iterable[TimeSample]:
    journeys: dict[tuple[str, str], list[HistoricVisit]] = {}
    for visit in visits:
        journeys.setdefault((visit.running_board, visit.journey_code), []).append(visit)

    for journey in journeys.values():
        journey.sort(key=lambda visit: visit.sequence)
        for previous, current in zip(journey, journey[1:]):
            if not (previous.is_same_stop(start) and current.is_same_stop(end)):
                continue
            travel = (current.actual_arrival - previous.actual_departure).total_seconds()
            moment = previous.actual_departure if forward else current.actual_arrival
            yield TimeSample(duration=travel, time_of_interest=seconds_of_day(moment))
