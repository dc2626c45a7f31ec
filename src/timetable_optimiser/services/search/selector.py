"""Scores candidate moves and accepts the best one."""

from __future__ import annotations

import logging
from typing import Sequence

from ...errors import NoMoveFoundError
from ..evaluation.cohesion import ServiceCohesionEvaluator
from ..evaluation.slack import SlackTimeEvaluator
from .move import Move
from .solution import Solution
from .tabu import TabuList

logger = logging.getLogger(__name__)

# (minimum |change| in minutes, objective multiplier), largest first
CHANGE_PENALTIES: tuple[tuple[float, float], ...] = ((15.0, 1.5), (10.0, 1.2), (5.0, 1.1))


def penalised_objective(objective: float, change_amount_minutes: float) -> float:
    """Inflate the objective of moves that shift a visit by a lot at once."""
    change = abs(change_amount_minutes)
    for threshold, factor in CHANGE_PENALTIES:
        if change >= threshold:
            return objective * factor
    return objective


class MoveSelector:
    def __init__(self, slack_evaluator: SlackTimeEvaluator, cohesion_evaluator: ServiceCohesionEvaluator) -> None:
        self.slack_evaluator = slack_evaluator
        self.cohesion_evaluator = cohesion_evaluator

    def evaluate(self, current: Solution, move: Move) -> Solution:
        """Apply ``move`` to a clone of ``current`` and re-blame it."""
        candidate = current.replace_move(move)
        self.slack_evaluator.find_service_blame(candidate, move.service)
        self.slack_evaluator.standardise(candidate)
        self.cohesion_evaluator.find_blame(candidate)
        candidate.calculate_total_blames()
        return candidate

    def select(self, current: Solution, moves: Sequence[Move], tabu_list: TabuList) -> tuple[Solution, Move]:
        """Pick the candidate with the lowest penalised objective and make it tabu."""
        best: tuple[float, Solution, Move] | None = None
        for move in moves:
            if tabu_list.is_tabu(move):
                continue
            candidate = self.evaluate(current, move)
            score = penalised_objective(candidate.objective_function_value(), move.change_amount_minutes)
            logger.debug(f"Candidate on {move.target_record.get_id()} scored {score:.3f}")
            if best is None or score < best[0]:
                best = (score, candidate, move)

        if best is None:
            raise NoMoveFoundError(f"None of the {len(moves)} candidate moves could be applied.")

        _, solution, move = best
        tabu_list.set_tabu(move)
        return solution, move
