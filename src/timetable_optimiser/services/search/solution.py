"""Copy-on-write container for a candidate timetable."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping, Sequence

from ...errors import InvariantViolationError
from ...models.domain import ScheduledVisit, Service
from ..evaluation.blamed import BlamedVisit

if TYPE_CHECKING:
    from .move import Move


def order_timetable(visits: Iterable[BlamedVisit]) -> list[BlamedVisit]:
    """Order visits by running board, then journey start, journey and sequence.

    Only the originally issued times are used so the order never changes as
    moves rewrite the schedule.
    """
    visits = list(visits)
    journey_start: dict[tuple[str, str], datetime] = {}
    for visit in visits:
        key = (visit.running_board, visit.journey_code)
        departure = visit.visit.scheduled_departure
        if key not in journey_start or departure < journey_start[key]:
            journey_start[key] = departure
    return sorted(
        visits,
        key=lambda visit: (
            visit.running_board,
            journey_start[(visit.running_board, visit.journey_code)],
            visit.journey_code,
            visit.sequence,
        ),
    )


class Solution:
    """Timetable for one representative day, keyed by service.

    Arrays are shared between clones and copied the first time a solution
    writes to them, so every mutation must go through :meth:`writable`.
    """

    def __init__(self, timetables: Mapping[Service, Sequence[BlamedVisit]]) -> None:
        self._timetables: dict[Service, list[BlamedVisit]] = {
            service: order_timetable(visits) for service, visits in timetables.items()
        }
        self._owned: set[Service] = set(self._timetables)

    @classmethod
    def from_scheduled(cls, timetables: Mapping[Service, Sequence[ScheduledVisit]]) -> "Solution":
        return cls(
            {service: [BlamedVisit.from_visit(visit) for visit in visits] for service, visits in timetables.items()}
        )

    def __contains__(self, service: object) -> bool:
        return service in self._timetables

    def __len__(self) -> int:
        return len(self._timetables)

    def services(self) -> list[Service]:
        return list(self._timetables)

    def timetable(self, service: Service) -> tuple[BlamedVisit, ...]:
        """Read-only view of a service's visits."""
        return tuple(self._require(service))

    def all_visits(self) -> Iterator[BlamedVisit]:
        for visits in self._timetables.values():
            yield from visits

    def writable(self, service: Service) -> list[BlamedVisit]:
        """The service's array, copied first if it is shared with another solution."""
        visits = self._require(service)
        if service not in self._owned:
            visits = [visit.clone() for visit in visits]
            self._timetables[service] = visits
            self._owned.add(service)
        return visits

    def writable_visits(self) -> Iterator[BlamedVisit]:
        for service in self.services():
            yield from self.writable(service)

    def clone(self) -> "Solution":
        # Both sides now share every array and copy on their next write.
        self._owned.clear()
        copy = Solution.__new__(Solution)
        copy._timetables = dict(self._timetables)
        copy._owned = set()
        return copy

    def replace_move(self, move: "Move") -> "Solution":
        """A clone with the moved service's array swapped for the move's timetable."""
        self._require(move.service)
        candidate = self.clone()
        candidate._timetables[move.service] = [visit.clone() for visit in move.new_timetable]
        candidate._owned.add(move.service)
        return candidate

    def objective_function_value(self) -> float:
        return sum(abs(visit.slack.raw_weight or 0.0) for visit in self.all_visits())

    def score_of_service(self, service: Service) -> float:
        return sum(abs(visit.slack.raw_weight or 0.0) for visit in self._require(service))

    def calculate_total_blames(self) -> None:
        for visit in self.writable_visits():
            visit.update_total_weight()

    def find_visit(self, service: Service, record_id: str) -> BlamedVisit | None:
        for visit in self._require(service):
            if visit.get_id() == record_id:
                return visit
        return None

    def _require(self, service: Service) -> list[BlamedVisit]:
        try:
            return self._timetables[service]
        except KeyError as exc:
            raise InvariantViolationError(f"Service {service} is not part of this solution.") from exc
