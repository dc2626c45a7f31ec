"""Dwell time estimation at a single stop."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Sequence

from ...models.domain import HistoricVisit, Service, Stop, seconds_of_day
from .base import TimeSample, TimeSimulator, service_ids


def dwell_seconds(visit: HistoricVisit) -> float:
    """Time a vehicle genuinely needed at a stop.

    A vehicle arriving early at a timing point has to wait for its scheduled
    time, so only the time after the scheduled arrival counts. Leaving a timing
    point before the scheduled departure means no dwell was needed at all.
    """
    if not visit.is_timing_point:
        return max((visit.actual_departure - visit.actual_arrival).total_seconds(), 0.0)
    if visit.actual_arrival >= visit.scheduled_arrival:
        return max((visit.actual_departure - visit.actual_arrival).total_seconds(), 0.0)
    if visit.actual_departure < visit.scheduled_departure:
        return 0.0
    return max((visit.actual_departure - visit.scheduled_arrival).total_seconds(), 0.0)


class DwellTimeSimulator(TimeSimulator):
    """Estimates how long a vehicle waits at a stop around a given time."""

    def estimate(self, target: datetime, stop: Stop, services: Sequence[Service]) -> timedelta:
        wanted = service_ids(services)
        per_day: list[list[TimeSample]] = []
        for day in self.retrieval.stop_history(stop, self.dates):
            by_service: dict[str, list[TimeSample]] = {}
            for visit in day:
                if visit.service_id not in wanted or not visit.is_same_stop(stop):
                    continue
                by_service.setdefault(visit.service_id, []).append(
                    TimeSample(duration=dwell_seconds(visit), time_of_interest=seconds_of_day(visit.actual_arrival))
                )
            per_day.extend(by_service.values())
        return self._estimate(per_day, target)
