"""Travel and dwell time simulators."""

from .dwell import DwellTimeSimulator, dwell_seconds
from .journey import JourneyTimeSimulator

__all__ = ["DwellTimeSimulator", "JourneyTimeSimulator", "dwell_seconds"]
