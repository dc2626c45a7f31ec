"""Per-stop view of the services considered during a search."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from ...data.provider import TransitDataProvider
from ...models.domain import Direction, Service, Stop
from .finder import RouteSegmentFinder
from .models import RouteSegment

logger = logging.getLogger(__name__)


class RouteSegmentCollection:
    """Tracks which services are of interest at each stop of the primary route.

    Every stop of the primary service starts with just the primary service.
    Opting a secondary service in adds it at each stop of its shared segments.
    """

    def __init__(
        self,
        provider: TransitDataProvider,
        primary_service: Service,
        segments: Sequence[RouteSegment] = (),
    ) -> None:
        self.provider = provider
        self.primary_service = primary_service
        self.segments = list(segments)
        self.services_at_stop_of_interest: dict[Stop, list[Service]] = {
            stop: [primary_service] for stop in provider.get_stops(primary_service, Direction.BOTH)
        }
        self.included_services: list[Service] = [primary_service]
        self.excluded_services: list[Service] = []
        for segment in self.segments:
            if segment.secondary_service not in self.excluded_services:
                self.excluded_services.append(segment.secondary_service)

    @classmethod
    def from_finder(
        cls,
        finder: RouteSegmentFinder,
        include: Optional[Iterable[Service]] = None,
    ) -> "RouteSegmentCollection":
        """Build a collection, opting in ``include`` or every discovered service."""
        collection = cls(finder.provider, finder.primary_service, finder.find_shared_route_segments())
        chosen = list(include) if include is not None else list(collection.excluded_services)
        for service in chosen:
            if service != finder.primary_service:
                collection.add_service(service)
        return collection

    def add_service(self, service: Service) -> None:
        if service == self.primary_service:
            raise ValueError("The primary service is always included.")
        if service in self.included_services:
            return
        for segment in self._segments_for(service):
            for stop in segment.stops:
                services = self.services_at_stop_of_interest.setdefault(stop, [self.primary_service])
                if service not in services:
                    services.append(service)
        self.included_services.append(service)
        if service in self.excluded_services:
            self.excluded_services.remove(service)
        logger.debug(f"Service {service} added to the collection")

    def remove_service(self, service: Service) -> None:
        if service == self.primary_service:
            raise ValueError("The primary service cannot be removed.")
        if service not in self.included_services:
            return
        for segment in self._segments_for(service):
            for stop in segment.stops:
                services = self.services_at_stop_of_interest.get(stop)
                if services and service in services:
                    services.remove(service)
        self.included_services.remove(service)
        if any(segment.secondary_service == service for segment in self.segments):
            self.excluded_services.append(service)
        logger.debug(f"Service {service} removed from the collection")

    def services_between(self, first: Stop, second: Stop) -> list[Service]:
        """Services of interest that can be compared on the edge ``first`` to ``second``."""
        if first in self.services_at_stop_of_interest and second in self.services_at_stop_of_interest:
            pools = (self.services_at_stop_of_interest[first], self.services_at_stop_of_interest[second])
        else:
            pools = (
                [s for s in self.provider.services_at(first) if s in self.included_services],
                [s for s in self.provider.services_at(second) if s in self.included_services],
            )
        services: list[Service] = []
        for pool in pools:
            for service in pool:
                if service not in services:
                    services.append(service)
        return services

    def shared_stops(self) -> list[Stop]:
        """Stops where at least two services of interest call."""
        return [stop for stop, services in self.services_at_stop_of_interest.items() if len(services) >= 2]

    def all_shared_stops(self) -> list[Stop]:
        """Every stop on any discovered segment, whether or not it is opted in."""
        stops: list[Stop] = []
        seen: set[Stop] = set()
        for segment in self.segments:
            for stop in segment.stops:
                if stop not in seen:
                    seen.add(stop)
                    stops.append(stop)
        return stops

    def stops_of_interest(self) -> list[Stop]:
        return list(self.services_at_stop_of_interest)

    def _segments_for(self, service: Service) -> list[RouteSegment]:
        return [segment for segment in self.segments if segment.secondary_service == service]
