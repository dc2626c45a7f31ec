"""Route analysis domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from ...models.domain import Service, Stop


@dataclass(slots=True)
class RouteSegment:
    """A run of consecutive stops visited by the primary and a secondary service."""

    secondary_service: Service
    stops: List[Stop] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.stops)

    def stop_ids(self) -> list[str]:
        return [stop.stop_id for stop in self.stops]
