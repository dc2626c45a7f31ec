"""Contract for the transit data collaborator consumed by the optimiser."""

from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from ..models.domain import Direction, HistoricVisit, ScheduledVisit, Service, Stop


class TransitDataProvider(Protocol):
    """Read-only access to network, schedule and historic running data.

    Implementations raise ``DataUnavailableError`` when a service, stop or date
    has no data. Every call may be made from worker threads.
    """

    def list_services(self) -> Sequence[Service]:
        ...

    def get_stops(self, service: Service, direction: Direction) -> Sequence[Stop]:
        ...

    def services_at(self, stop: Stop) -> Sequence[Service]:
        ...

    def get_scheduled_timetable(self, service: Service, day: date) -> Sequence[ScheduledVisit]:
        ...

    def get_service_history(self, service: Service, day: date) -> Sequence[HistoricVisit]:
        ...

    def get_stop_history(self, stop: Stop, day: date) -> Sequence[HistoricVisit]:
        ...
