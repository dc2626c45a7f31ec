"""Discovery of route segments shared between a primary service and others."""

from __future__ import annotations

import logging
from typing import Optional

from ...config import settings
from ...errors import DataUnavailableError
from ...data.provider import TransitDataProvider
from ...models.domain import Direction, Service, Stop
from .models import RouteSegment

logger = logging.getLogger(__name__)


class RouteSegmentFinder:
    """Finds every run of stops the primary service shares with another service.

    Discovery is a single streak-matching pass over the primary service's stops,
    followed by validation against each secondary service's own stop order.
    Results are memoised on the instance.
    """

    def __init__(
        self,
        provider: TransitDataProvider,
        primary_service: Service,
        minimum_length: Optional[int] = None,
    ) -> None:
        self.provider = provider
        self.primary_service = primary_service
        self.minimum_length = minimum_length if minimum_length is not None else settings.route_segment_minimum
        if self.minimum_length < 1:
            raise ValueError("Route segment minimum length must be positive.")
        self._segments: Optional[list[RouteSegment]] = None

    def find_shared_route_segments(self) -> list[RouteSegment]:
        if self._segments is None:
            candidates = self._find_streaks()
            self._segments = self._validate(candidates)
            logger.info(
                f"Found {len(self._segments)} shared route segments for service {self.primary_service} "
                f"({len(candidates)} before validation)"
            )
        return list(self._segments)

    def services_in_segments(self) -> list[Service]:
        """The primary service followed by each distinct secondary service."""
        services = [self.primary_service]
        for segment in self.find_shared_route_segments():
            if segment.secondary_service not in services:
                services.append(segment.secondary_service)
        return services

    def _find_streaks(self) -> list[RouteSegment]:
        committed: list[RouteSegment] = []
        continuing: dict[Service, RouteSegment] = {}

        for stop in self.provider.get_stops(self.primary_service, Direction.BOTH):
            extended: dict[Service, RouteSegment] = {}
            for service in self.provider.services_at(stop):
                if service == self.primary_service or service in extended:
                    continue
                segment = continuing.pop(service, None)
                if segment is None:
                    segment = RouteSegment(secondary_service=service)
                segment.stops.append(stop)
                extended[service] = segment
            self._commit(continuing.values(), committed)
            continuing = extended

        self._commit(continuing.values(), committed)
        return committed

    def _commit(self, segments, committed: list[RouteSegment]) -> None:
        for segment in segments:
            if len(segment) >= self.minimum_length:
                committed.append(segment)

    def _validate(self, segments: list[RouteSegment]) -> list[RouteSegment]:
        validated: list[RouteSegment] = []
        route_cache: dict[Service, list[Stop]] = {}
        for segment in segments:
            service = segment.secondary_service
            if service not in route_cache:
                try:
                    route_cache[service] = list(self.provider.get_stops(service, Direction.BOTH))
                except DataUnavailableError as exc:
                    logger.warning(f"Dropping segment with service {service}: stops unavailable ({exc})")
                    continue
            runs = _matching_runs(segment.stops, route_cache[service])
            if not runs:
                logger.warning(
                    f"Dropping segment {segment.stop_ids()} with service {service}: "
                    "stops never match the service's own route"
                )
                continue
            if len(runs) > 1 or len(runs[0]) != len(segment):
                logger.warning(
                    f"Segment {segment.stop_ids()} diverges from service {service}; "
                    f"split into {[len(run) for run in runs]}"
                )
            for run in runs:
                if len(run) >= self.minimum_length:
                    validated.append(RouteSegment(secondary_service=service, stops=run))
        return validated


def _matching_runs(segment: list[Stop], route: list[Stop]) -> list[list[Stop]]:
    """Split ``segment`` into maximal runs that ``route`` visits consecutively."""

    positions: dict[Stop, list[int]] = {}
    for index, stop in enumerate(route):
        positions.setdefault(stop, []).append(index)

    runs: list[list[Stop]] = []
    start = 0
    while start < len(segment):
        best = 0
        for position in positions.get(segment[start], ()):
            length = 1
            while (
                start + length < len(segment)
                and position + length < len(route)
                and route[position + length] == segment[start + length]
            ):
                length += 1
            best = max(best, length)
        if best == 0:
            start += 1
            continue
        runs.append(segment[start:start + best])
        start += best
    return runs
