"""Short-term memory of recently changed visits."""

from __future__ import annotations

import logging
from typing import Optional

from ...config import settings
from ...errors import InvariantViolationError
from ..evaluation.blamed import BlamedVisit
from .move import Move

logger = logging.getLogger(__name__)


class TabuList:
    """Maps visit ids to the number of iterations they stay off-limits."""

    def __init__(self, tenure: Optional[int] = None) -> None:
        self.tenure = tenure if tenure is not None else settings.tabu_tenure
        if self.tenure < 1:
            raise ValueError("Tabu tenure must be positive.")
        self._entries: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._entries

    def remaining(self, record_id: str) -> int:
        return self._entries.get(record_id, 0)

    def is_tabu(self, move: Move) -> bool:
        return any(record_id in self._entries for record_id in move.changed_record_ids)

    def is_visit_tabu(self, visit: BlamedVisit) -> bool:
        return visit.get_id() in self._entries

    def set_tabu(self, move: Move) -> None:
        """Age every entry by one iteration, then add the move's visits at full tenure."""
        self._entries = {record_id: left - 1 for record_id, left in self._entries.items() if left - 1 > 0}
        for record_id in move.changed_record_ids:
            if record_id in self._entries:
                raise InvariantViolationError(f"Visit {record_id} is already tabu.")
            self._entries[record_id] = self.tenure

    def free_up_early(self) -> Optional[str]:
        """Age the oldest entry by one; returns its id if that released it."""
        if not self._entries:
            return None
        oldest = next(iter(self._entries))
        self._entries[oldest] -= 1
        if self._entries[oldest] > 0:
            return None
        del self._entries[oldest]
        logger.info(f"Released {oldest} from the tabu list early")
        return oldest
