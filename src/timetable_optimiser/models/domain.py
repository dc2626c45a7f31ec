"""Domain models for services, stops and timetable visits."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional


class Direction(str, Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"
    BOTH = "both"


@dataclass(frozen=True, slots=True)
class Service:
    """A route identifier. Equality and hashing use the id only."""

    service_id: str
    name: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.service_id


@dataclass(frozen=True, slots=True)
class Stop:
    """A bus stop. Equality and hashing use the id only."""

    stop_id: str
    name: str = field(default="", compare=False)
    latitude: Optional[float] = field(default=None, compare=False)
    longitude: Optional[float] = field(default=None, compare=False)
    service_ids: tuple[str, ...] = field(default=(), compare=False)

    def __str__(self) -> str:
        return f"{self.name} ({self.stop_id})" if self.name else self.stop_id


@dataclass(frozen=True, slots=True)
class ScheduledVisit:
    """One scheduled (service, stop) occurrence as issued by the data source."""

    service_id: str
    stop_id: str
    sequence: int
    is_outbound: bool
    journey_code: str
    running_board: str
    is_timing_point: bool
    scheduled_arrival: datetime
    scheduled_departure: datetime

    def get_id(self) -> str:
        return visit_id(
            self.service_id,
            self.stop_id,
            self.journey_code,
            self.sequence,
            self.running_board,
        )

    def match_direction(self, direction: Direction) -> bool:
        if direction is Direction.BOTH:
            return True
        return self.is_outbound == (direction is Direction.OUTBOUND)

    def is_same_stop(self, stop: Stop | str) -> bool:
        stop_id = stop.stop_id if isinstance(stop, Stop) else stop
        return self.stop_id == stop_id

    def is_same_service(self, service: Service | str) -> bool:
        service_id = service.service_id if isinstance(service, Service) else service
        return self.service_id == service_id


@dataclass(frozen=True, slots=True)
class HistoricVisit(ScheduledVisit):
    """A scheduled visit with the times the vehicle actually ran."""

    actual_arrival: Optional[datetime] = None
    actual_departure: Optional[datetime] = None

    @property
    def is_solid(self) -> bool:
        return self.actual_arrival is not None and self.actual_departure is not None


def visit_id(service_id: str, stop_id: str, journey_code: str, sequence: int, running_board: str) -> str:
    return f"{service_id}|{stop_id}|{journey_code}|{sequence}|{running_board}"


def solid_only(visits: Iterable[HistoricVisit]) -> list[HistoricVisit]:
    """Keep only the visits with both actual arrival and departure recorded."""
    return [visit for visit in visits if visit.is_solid]


def seconds_of_day(moment: datetime) -> float:
    return moment.hour * 3600 + moment.minute * 60 + moment.second + moment.microsecond / 1_000_000
