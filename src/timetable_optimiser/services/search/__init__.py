"""Tabu search over network timetables."""

from .evaluator import TimeTableEvaluator
from .move import Move
from .neighbourhood import NeighbourhoodGenerator
from .selector import MoveSelector, penalised_objective
from .service import PreparedSearch, prepare_search, run_search
from .solution import Solution
from .tabu import TabuList

__all__ = [
    "Move",
    "MoveSelector",
    "NeighbourhoodGenerator",
    "PreparedSearch",
    "Solution",
    "TabuList",
    "TimeTableEvaluator",
    "penalised_objective",
    "prepare_search",
    "run_search",
]
