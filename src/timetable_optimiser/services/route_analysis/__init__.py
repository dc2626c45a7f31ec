"""Shared route segment discovery."""

from .collection import RouteSegmentCollection
from .finder import RouteSegmentFinder
from .models import RouteSegment

__all__ = ["RouteSegment", "RouteSegmentCollection", "RouteSegmentFinder"]
