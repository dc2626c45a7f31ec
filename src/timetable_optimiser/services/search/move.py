"""A proposed replacement of one service's timetable."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List

from ...models.domain import Service
from ..evaluation.blamed import BlamedVisit


@dataclass(slots=True)
class Move:
    service: Service
    new_timetable: List[BlamedVisit]
    changed_record_ids: tuple[str, ...]
    target_record: BlamedVisit
    proposed_arrival: datetime
    proposed_departure: datetime
    change_amount_minutes: float

    def describe(self) -> str:
        target = self.target_record
        direction = "outbound" if target.is_outbound else "inbound"
        return (
            f"Service {self.service} {direction} at stop {target.stop_id}, "
            f"originally scheduled for {target.scheduled_arrival:%H:%M:%S}, "
            f"now moved to {self.proposed_arrival:%H:%M:%S} ({self.change_amount_minutes:+.1f} min) "
            f"on journey {target.journey_code}, running board {target.running_board}; "
            f"{len(self.changed_record_ids)} visits changed"
        )
