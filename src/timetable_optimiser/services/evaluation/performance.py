"""Punctuality summary of how services actually ran."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterable, List

import numpy as np

from ...models.domain import HistoricVisit, Service

LATE_THRESHOLD_MINUTES = 5.0
EARLY_THRESHOLD_MINUTES = -1.0


@dataclass(slots=True)
class LatenessRecord:
    lateness_minutes: float

    @classmethod
    def from_visit(cls, visit: HistoricVisit) -> "LatenessRecord":
        arrival = visit.actual_arrival or visit.scheduled_arrival
        return cls((arrival - visit.scheduled_arrival).total_seconds() / 60.0)

    @property
    def is_late(self) -> bool:
        return self.lateness_minutes >= LATE_THRESHOLD_MINUTES or self.lateness_minutes <= EARLY_THRESHOLD_MINUTES


@dataclass(slots=True)
class LatenessReport:
    service_id: str
    on_time_percentage: float
    average_lateness_minutes: float
    sample_count: int


class PerformanceEvaluator:
    """Collects lateness per service; safe to feed from fetch worker threads."""

    def __init__(self) -> None:
        self._records: dict[str, List[LatenessRecord]] = {}
        self._lock = threading.Lock()

    def add_records(self, service: Service, visits: Iterable[HistoricVisit]) -> None:
        records = [LatenessRecord.from_visit(visit) for visit in visits]
        with self._lock:
            self._records.setdefault(service.service_id, []).extend(records)

    def generate_lateness_report(self) -> list[LatenessReport]:
        with self._lock:
            snapshot = {service_id: list(records) for service_id, records in self._records.items()}

        reports: list[LatenessReport] = []
        for service_id in sorted(snapshot):
            records = snapshot[service_id]
            if not records:
                continue
            lateness = np.array([record.lateness_minutes for record in records], dtype=float)
            on_time = sum(1 for record in records if not record.is_late)
            reports.append(
                LatenessReport(
                    service_id=service_id,
                    on_time_percentage=round(on_time / len(records) * 100.0, 2),
                    average_lateness_minutes=round(float(lateness.mean()), 2),
                    sample_count=len(records),
                )
            )
        return reports
