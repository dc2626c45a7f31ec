"""In-memory transit data provider."""

from __future__ import annotations

import dataclasses
from datetime import date
from typing import Mapping, Sequence

from ..errors import DataUnavailableError
from ..models.domain import Direction, HistoricVisit, ScheduledVisit, Service, Stop


class InMemoryTransitData:
    """Serves a fixed network held in plain collections.

    ``routes`` maps a service id to its ordered stop ids per direction. Stop
    histories are derived from the histories of the services visiting the stop.
    """

    def __init__(
        self,
        services: Sequence[Service],
        stops: Sequence[Stop],
        routes: Mapping[str, Mapping[Direction, Sequence[str]]],
        scheduled: Mapping[str, Mapping[date, Sequence[ScheduledVisit]]] | None = None,
        historic: Mapping[str, Mapping[date, Sequence[HistoricVisit]]] | None = None,
    ) -> None:
        self._services = {service.service_id: service for service in services}
        self._routes = {
            service_id: {direction: tuple(stop_ids) for direction, stop_ids in directions.items()}
            for service_id, directions in routes.items()
        }
        self._scheduled = {key: dict(days) for key, days in (scheduled or {}).items()}
        self._historic = {key: dict(days) for key, days in (historic or {}).items()}

        visiting: dict[str, set[str]] = {}
        for service_id, directions in self._routes.items():
            if service_id not in self._services:
                raise ValueError(f"Route defined for unknown service '{service_id}'.")
            for stop_ids in directions.values():
                for stop_id in stop_ids:
                    visiting.setdefault(stop_id, set()).add(service_id)

        known = {stop.stop_id: stop for stop in stops}
        self._stops: dict[str, Stop] = {}
        for stop_id in set(known) | set(visiting):
            base = known.get(stop_id, Stop(stop_id=stop_id))
            self._stops[stop_id] = dataclasses.replace(
                base, service_ids=tuple(sorted(visiting.get(stop_id, ())))
            )

    def list_services(self) -> list[Service]:
        return [self._services[key] for key in sorted(self._services)]

    def get_stop(self, stop_id: str) -> Stop:
        try:
            return self._stops[stop_id]
        except KeyError as exc:
            raise DataUnavailableError(f"Unknown stop '{stop_id}'.") from exc

    def get_service(self, service_id: str) -> Service:
        try:
            return self._services[service_id]
        except KeyError as exc:
            raise DataUnavailableError(f"Unknown service '{service_id}'.") from exc

    def get_stops(self, service: Service, direction: Direction) -> list[Stop]:
        directions = self._routes.get(service.service_id)
        if directions is None:
            raise DataUnavailableError(f"No route stored for service '{service.service_id}'.")
        if direction is Direction.BOTH:
            stop_ids = [*directions.get(Direction.OUTBOUND, ()), *directions.get(Direction.INBOUND, ())]
        else:
            stop_ids = list(directions.get(direction, ()))
        return [self._stops[stop_id] for stop_id in stop_ids]

    def services_at(self, stop: Stop) -> list[Service]:
        entry = self._stops.get(stop.stop_id)
        if entry is None:
            return []
        return [self._services[service_id] for service_id in entry.service_ids]

    def get_scheduled_timetable(self, service: Service, day: date) -> list[ScheduledVisit]:
        visits = self._scheduled.get(service.service_id, {}).get(day)
        if not visits:
            raise DataUnavailableError(f"No schedule for service '{service.service_id}' on {day.isoformat()}.")
        return list(visits)

    def get_service_history(self, service: Service, day: date) -> list[HistoricVisit]:
        visits = self._historic.get(service.service_id, {}).get(day)
        if not visits:
            raise DataUnavailableError(f"No history for service '{service.service_id}' on {day.isoformat()}.")
        return list(visits)

    def get_stop_history(self, stop: Stop, day: date) -> list[HistoricVisit]:
        found = False
        visits: list[HistoricVisit] = []
        for service in self.services_at(stop):
            history = self._historic.get(service.service_id, {}).get(day)
            if not history:
                continue
            found = True
            visits.extend(visit for visit in history if visit.is_same_stop(stop))
        if not found:
            raise DataUnavailableError(f"No history for stop '{stop.stop_id}' on {day.isoformat()}.")
        visits.sort(key=lambda visit: visit.scheduled_arrival)
        return visits
