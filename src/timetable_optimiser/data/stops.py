"""Cached lookups of a service's stops."""

from __future__ import annotations

import threading

from ..errors import DataUnavailableError
from ..models.domain import Direction, Service, Stop
from .provider import TransitDataProvider


class StopDirectory:
    """Resolves stop ids on a service's route and knows each route's terminals."""

    def __init__(self, provider: TransitDataProvider) -> None:
        self.provider = provider
        self._stops: dict[str, dict[str, Stop]] = {}
        self._terminals: dict[str, frozenset[str]] = {}
        self._lock = threading.Lock()

    def get(self, service: Service, stop_id: str) -> Stop:
        self._load(service)
        return self._stops[service.service_id].get(stop_id) or Stop(stop_id=stop_id)

    def is_terminal(self, service: Service, stop_id: str) -> bool:
        """True for the first or last stop of the service in either direction."""
        self._load(service)
        return stop_id in self._terminals[service.service_id]

    def _load(self, service: Service) -> None:
        with self._lock:
            if service.service_id in self._stops:
                return
        stops: dict[str, Stop] = {}
        terminals: set[str] = set()
        for direction in (Direction.OUTBOUND, Direction.INBOUND):
            try:
                route = list(self.provider.get_stops(service, direction))
            except DataUnavailableError:
                route = []
            for stop in route:
                stops.setdefault(stop.stop_id, stop)
            if route:
                terminals.update((route[0].stop_id, route[-1].stop_id))
        with self._lock:
            self._stops.setdefault(service.service_id, stops)
            self._terminals.setdefault(service.service_id, frozenset(terminals))
