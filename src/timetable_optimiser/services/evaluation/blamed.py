"""Timetable entries carrying blame weights."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ...errors import InvariantViolationError
from ...models.domain import ScheduledVisit


@dataclass(slots=True)
class Weight:
    """Blame under one objective.

    ``raw_weight`` is signed minutes; ``weight`` is only meaningful once the
    whole solution has been standardised.
    """

    weight: Optional[float] = None
    raw_weight: Optional[float] = None
    target_arrival: Optional[datetime] = None
    target_departure: Optional[datetime] = None

    def reset(self) -> None:
        self.weight = None
        self.raw_weight = None
        self.target_arrival = None
        self.target_departure = None

    def clone(self) -> "Weight":
        return dataclasses.replace(self)


@dataclass(slots=True)
class BlamedVisit:
    """A scheduled visit whose times the search may rewrite."""

    visit: ScheduledVisit
    scheduled_arrival: datetime
    scheduled_departure: datetime
    slack: Weight = field(default_factory=Weight)
    cohesion: Weight = field(default_factory=Weight)
    total_weight: float = 0.0

    @classmethod
    def from_visit(cls, visit: ScheduledVisit) -> "BlamedVisit":
        return cls(visit=visit, scheduled_arrival=visit.scheduled_arrival, scheduled_departure=visit.scheduled_departure)

    @property
    def service_id(self) -> str:
        return self.visit.service_id

    @property
    def stop_id(self) -> str:
        return self.visit.stop_id

    @property
    def sequence(self) -> int:
        return self.visit.sequence

    @property
    def journey_code(self) -> str:
        return self.visit.journey_code

    @property
    def running_board(self) -> str:
        return self.visit.running_board

    @property
    def is_outbound(self) -> bool:
        return self.visit.is_outbound

    @property
    def is_timing_point(self) -> bool:
        return self.visit.is_timing_point

    @property
    def is_moved(self) -> bool:
        return (
            self.scheduled_arrival != self.visit.scheduled_arrival
            or self.scheduled_departure != self.visit.scheduled_departure
        )

    def get_id(self) -> str:
        return self.visit.get_id()

    def update_times(self, arrival: datetime, departure: datetime) -> None:
        """Rewrite the scheduled times; existing blame no longer applies."""
        self.scheduled_arrival = arrival
        self.scheduled_departure = departure
        self.slack.reset()
        self.cohesion.reset()
        self.total_weight = 0.0

    def proposed_times(self) -> tuple[Optional[datetime], Optional[datetime]]:
        return self.slack.target_arrival, self.slack.target_departure

    def set_suggested_to_real(self) -> None:
        arrival, departure = self.proposed_times()
        if arrival is None or departure is None:
            raise InvariantViolationError(f"Visit {self.get_id()} has no slack target to apply.")
        self.update_times(arrival, departure)

    def update_total_weight(self) -> float:
        self.total_weight = self.slack.weight or 0.0
        return self.total_weight

    def clone(self) -> "BlamedVisit":
        return BlamedVisit(
            visit=self.visit,
            scheduled_arrival=self.scheduled_arrival,
            scheduled_departure=self.scheduled_departure,
            slack=self.slack.clone(),
            cohesion=self.cohesion.clone(),
            total_weight=self.total_weight,
        )
