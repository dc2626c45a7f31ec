"""Timetable optimisation recommendations from historic bus running data."""

__version__ = "0.1.0"
