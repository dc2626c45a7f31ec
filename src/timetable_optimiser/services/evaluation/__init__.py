"""Blame evaluators and timetable performance summaries."""

from .blamed import BlamedVisit, Weight
from .cohesion import ServiceCohesionEvaluator
from .performance import LatenessRecord, LatenessReport, PerformanceEvaluator
from .slack import SlackTimeEvaluator
from .standardise import standardise

__all__ = [
    "BlamedVisit",
    "Weight",
    "ServiceCohesionEvaluator",
    "SlackTimeEvaluator",
    "PerformanceEvaluator",
    "LatenessRecord",
    "LatenessReport",
    "standardise",
]
