"""Serializers for search outputs."""

from __future__ import annotations

import csv
import io
from typing import TYPE_CHECKING, Optional, Sequence

from ...schemas.search import MoveModel, SearchReport

if TYPE_CHECKING:
    from ..search.solution import Solution


def _fmt_time(value) -> str:
    return value.isoformat() if value is not None else ""


def _fmt_weight(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.4f}"


def search_report_to_json(report: SearchReport) -> dict:
    return report.model_dump(mode="json")


def moves_to_csv(moves: Sequence[MoveModel]) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "iteration",
        "service_id",
        "stop_id",
        "journey_code",
        "running_board",
        "original_arrival",
        "proposed_arrival",
        "proposed_departure",
        "change_amount_minutes",
        "objective",
        "changed_records",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for move in moves:
        writer.writerow(
            {
                "iteration": move.iteration,
                "service_id": move.service_id,
                "stop_id": move.stop_id,
                "journey_code": move.journey_code,
                "running_board": move.running_board,
                "original_arrival": _fmt_time(move.original_arrival),
                "proposed_arrival": _fmt_time(move.proposed_arrival),
                "proposed_departure": _fmt_time(move.proposed_departure),
                "change_amount_minutes": move.change_amount_minutes,
                "objective": move.objective,
                "changed_records": len(move.changed_record_ids),
            }
        )
    return buffer.getvalue()


def timetable_to_csv(solution: Solution) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "service_id",
        "running_board",
        "journey_code",
        "sequence",
        "stop_id",
        "direction",
        "timing_point",
        "original_arrival",
        "scheduled_arrival",
        "scheduled_departure",
        "slack_raw_minutes",
        "slack_weight",
        "cohesion_raw_minutes",
        "cohesion_weight",
        "total_weight",
        "moved",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for service in solution.services():
        for visit in solution.timetable(service):
            writer.writerow(
                {
                    "service_id": visit.service_id,
                    "running_board": visit.running_board,
                    "journey_code": visit.journey_code,
                    "sequence": visit.sequence,
                    "stop_id": visit.stop_id,
                    "direction": "outbound" if visit.is_outbound else "inbound",
                    "timing_point": visit.is_timing_point,
                    "original_arrival": _fmt_time(visit.visit.scheduled_arrival),
                    "scheduled_arrival": _fmt_time(visit.scheduled_arrival),
                    "scheduled_departure": _fmt_time(visit.scheduled_departure),
                    "slack_raw_minutes": _fmt_weight(visit.slack.raw_weight),
                    "slack_weight": _fmt_weight(visit.slack.weight),
                    "cohesion_raw_minutes": _fmt_weight(visit.cohesion.raw_weight),
                    "cohesion_weight": _fmt_weight(visit.cohesion.weight),
                    "total_weight": _fmt_weight(visit.total_weight),
                    "moved": visit.is_moved,
                }
            )
    return buffer.getvalue()
