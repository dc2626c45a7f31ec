"""Load a transit network and its timetables from a JSON dataset."""

from __future__ import annotations

import functools
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

from ..config import settings
from ..models.domain import Direction, HistoricVisit, ScheduledVisit, Service, Stop
from .memory import InMemoryTransitData

logger = logging.getLogger(__name__)


def _parse_datetime(value: Any, field_name: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise ValueError(f"Unable to parse datetime for '{field_name}' from value '{value}'") from exc


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"Unable to parse date key '{value}'") from exc


def _required(row: dict, key: str, context: str) -> Any:
    if key not in row or row[key] is None:
        raise ValueError(f"Missing '{key}' in {context}.")
    return row[key]


def _scheduled_fields(row: dict, service_id: str, context: str) -> dict[str, Any]:
    arrival = _parse_datetime(_required(row, "scheduled_arrival", context), "scheduled_arrival")
    departure = _parse_datetime(row.get("scheduled_departure"), "scheduled_departure") or arrival
    return {
        "service_id": service_id,
        "stop_id": str(_required(row, "stop_id", context)),
        "sequence": int(_required(row, "sequence", context)),
        "is_outbound": bool(row.get("is_outbound", True)),
        "journey_code": str(_required(row, "journey_code", context)),
        "running_board": str(_required(row, "running_board", context)),
        "is_timing_point": bool(row.get("is_timing_point", False)),
        "scheduled_arrival": arrival,
        "scheduled_departure": departure,
    }


def _load_days(section: dict, service_id: str, *, historic: bool) -> dict[date, list]:
    days: dict[date, list] = {}
    for day_key, rows in section.items():
        day = _parse_date(day_key)
        context = f"service '{service_id}' on {day_key}"
        visits = []
        for row in rows:
            fields = _scheduled_fields(row, service_id, context)
            if historic:
                visits.append(
                    HistoricVisit(
                        **fields,
                        actual_arrival=_parse_datetime(row.get("actual_arrival"), "actual_arrival"),
                        actual_departure=_parse_datetime(row.get("actual_departure"), "actual_departure"),
                    )
                )
            else:
                visits.append(ScheduledVisit(**fields))
        days[day] = visits
    return days


def parse_transit_data(payload: dict) -> InMemoryTransitData:
    """Build a provider from an already decoded dataset."""

    stops = [
        Stop(
            stop_id=str(_required(row, "stop_id", "stop entry")),
            name=(row.get("name") or "").strip(),
            latitude=row.get("latitude"),
            longitude=row.get("longitude"),
        )
        for row in payload.get("stops", [])
    ]

    services: list[Service] = []
    routes: dict[str, dict[Direction, list[str]]] = {}
    for row in payload.get("services", []):
        service_id = str(_required(row, "service_id", "service entry"))
        services.append(Service(service_id=service_id, name=(row.get("name") or "").strip()))
        routes[service_id] = {
            Direction.OUTBOUND: [str(stop_id) for stop_id in row.get("outbound", [])],
            Direction.INBOUND: [str(stop_id) for stop_id in row.get("inbound", [])],
        }

    scheduled = {
        service_id: _load_days(section, service_id, historic=False)
        for service_id, section in payload.get("scheduled", {}).items()
    }
    historic = {
        service_id: _load_days(section, service_id, historic=True)
        for service_id, section in payload.get("historic", {}).items()
    }
    logger.info(
        f"Parsed dataset with {len(services)} services, {len(stops)} stops, "
        f"{sum(len(days) for days in historic.values())} service-days of history"
    )
    return InMemoryTransitData(services, stops, routes, scheduled, historic)


@functools.lru_cache(maxsize=1)
def load_transit_data(source: Optional[Path] = None) -> InMemoryTransitData:
    """Load the configured JSON dataset."""

    json_path = source or settings.dataset_file
    if not json_path.exists():
        raise FileNotFoundError(f"Dataset file not found: {json_path}")
    with json_path.open(mode="r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Dataset file '{json_path}' is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Dataset file '{json_path}' must contain a JSON object.")
    return parse_transit_data(payload)


def clear_cache() -> None:
    load_transit_data.cache_clear()
