"""Shared fixtures: a small two-service network with three days of running data."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytest

from src.timetable_optimiser.data.memory import InMemoryTransitData
from src.timetable_optimiser.models.domain import Direction, HistoricVisit, ScheduledVisit, Service, Stop

DAY = date(2021, 3, 1)
DATES = [date(2021, 3, 1), date(2021, 3, 2), date(2021, 3, 3)]
PRIMARY = Service("1", name="Town Centre Circular")
SECONDARY = Service("2", name="University Link")

ROUTES = {
    "1": {Direction.OUTBOUND: ["A", "B", "C", "D"], Direction.INBOUND: ["D", "C", "B", "A"]},
    "2": {Direction.OUTBOUND: ["B", "C", "D", "E"], Direction.INBOUND: ["E", "D", "C", "B"]},
}
TIMING_POINTS = {"C"}
SCHEDULED_LEG_MINUTES = 5
ACTUAL_LEG_MINUTES = {"1": 3.0, "2": 4.0}


def _journey(
    service_id: str,
    board: str,
    code: str,
    outbound: bool,
    start: datetime,
) -> list[ScheduledVisit]:
    stop_ids = ROUTES[service_id][Direction.OUTBOUND if outbound else Direction.INBOUND]
    visits = []
    for index, stop_id in enumerate(stop_ids):
        moment = start + timedelta(minutes=SCHEDULED_LEG_MINUTES * index)
        visits.append(
            ScheduledVisit(
                service_id=service_id,
                stop_id=stop_id,
                sequence=index + 1,
                is_outbound=outbound,
                journey_code=code,
                running_board=board,
                is_timing_point=stop_id in TIMING_POINTS,
                scheduled_arrival=moment,
                scheduled_departure=moment,
            )
        )
    return visits


def _schedule(service_id: str) -> list[ScheduledVisit]:
    offset = 0 if service_id == "1" else 10
    visits: list[ScheduledVisit] = []
    for hour in (7, 8, 9):
        board = f"RB{service_id}" if hour != 8 else f"RB{service_id}X"
        outbound_start = datetime.combine(DAY, time(hour, offset))
        visits += _journey(service_id, board, f"{service_id}-O{hour}", True, outbound_start)
        visits += _journey(service_id, board, f"{service_id}-I{hour}", False, outbound_start + timedelta(minutes=30))
    return visits


def _ran(visits: list[ScheduledVisit], day: date, leg_minutes: float) -> list[HistoricVisit]:
    """Simulate a day's running: faster legs than scheduled, 30s dwell, held at timing points."""
    history: list[HistoricVisit] = []
    previous: dict[str, datetime] = {}
    for visit in visits:
        scheduled_arrival = datetime.combine(day, visit.scheduled_arrival.time())
        scheduled_departure = datetime.combine(day, visit.scheduled_departure.time())
        last = previous.get(visit.journey_code)
        arrival = scheduled_arrival if last is None else last + timedelta(minutes=leg_minutes)
        departure = arrival + timedelta(seconds=30)
        if visit.is_timing_point:
            departure = max(departure, scheduled_departure)
        previous[visit.journey_code] = departure
        history.append(
            HistoricVisit(
                service_id=visit.service_id,
                stop_id=visit.stop_id,
                sequence=visit.sequence,
                is_outbound=visit.is_outbound,
                journey_code=visit.journey_code,
                running_board=visit.running_board,
                is_timing_point=visit.is_timing_point,
                scheduled_arrival=scheduled_arrival,
                scheduled_departure=scheduled_departure,
                actual_arrival=arrival,
                actual_departure=departure,
            )
        )
    return history


def build_network() -> InMemoryTransitData:
    stops = [
        Stop("A", name="Bus Station", latitude=51.45, longitude=-0.97),
        Stop("B", name="Market Place", latitude=51.455, longitude=-0.968),
        Stop("C", name="Broad Street", latitude=51.457, longitude=-0.972),
        Stop("D", name="Hospital", latitude=51.449, longitude=-0.96),
        Stop("E", name="University", latitude=51.44, longitude=-0.94),
    ]
    scheduled = {service_id: {DAY: _schedule(service_id)} for service_id in ROUTES}
    historic = {
        service_id: {
            day: _ran(_schedule(service_id), day, ACTUAL_LEG_MINUTES[service_id] + 0.25 * index)
            for index, day in enumerate(DATES)
        }
        for service_id in ROUTES
    }
    return InMemoryTransitData([PRIMARY, SECONDARY], stops, ROUTES, scheduled, historic)


@pytest.fixture
def network() -> InMemoryTransitData:
    return build_network()


@pytest.fixture
def dates() -> list[date]:
    return list(DATES)


@pytest.fixture
def primary() -> Service:
    return PRIMARY


@pytest.fixture
def secondary() -> Service:
    return SECONDARY
