from datetime import datetime, timedelta

import pytest

from src.timetable_optimiser.errors import InvariantViolationError
from src.timetable_optimiser.models.domain import ScheduledVisit, Service
from src.timetable_optimiser.services.evaluation.blamed import BlamedVisit
from src.timetable_optimiser.services.search.move import Move
from src.timetable_optimiser.services.search.solution import Solution, order_timetable
from src.timetable_optimiser.services.search.tabu import TabuList

SERVICE = Service("1")
OTHER = Service("2")


def _visit(
    stop_id: str,
    sequence: int,
    minute: int,
    *,
    journey: str = "J1",
    board: str = "RB1",
    service_id: str = "1",
) -> ScheduledVisit:
    moment = datetime(2021, 3, 1, 7, 0) + timedelta(minutes=minute)
    return ScheduledVisit(
        service_id=service_id,
        stop_id=stop_id,
        sequence=sequence,
        is_outbound=True,
        journey_code=journey,
        running_board=board,
        is_timing_point=False,
        scheduled_arrival=moment,
        scheduled_departure=moment,
    )


def _blamed(raw: float | None, **kwargs) -> BlamedVisit:
    visit = BlamedVisit.from_visit(_visit(**kwargs))
    visit.slack.raw_weight = raw
    visit.slack.weight = None if raw is None else abs(raw)
    return visit


def _move(*record_ids: str) -> Move:
    target = BlamedVisit.from_visit(_visit("A", 1, 0))
    return Move(
        service=SERVICE,
        new_timetable=[],
        changed_record_ids=record_ids,
        target_record=target,
        proposed_arrival=target.scheduled_arrival,
        proposed_departure=target.scheduled_departure,
        change_amount_minutes=0.0,
    )


def _solution() -> Solution:
    return Solution(
        {
            SERVICE: [
                _blamed(-2.0, stop_id="A", sequence=1, minute=0),
                _blamed(3.5, stop_id="B", sequence=2, minute=5),
            ],
            OTHER: [_blamed(None, stop_id="B", sequence=1, minute=10, service_id="2")],
        }
    )


def test_objective_is_sum_of_absolute_slack() -> None:
    solution = _solution()

    assert solution.objective_function_value() == pytest.approx(5.5)
    assert solution.score_of_service(SERVICE) == pytest.approx(5.5)
    assert solution.score_of_service(OTHER) == 0.0


def test_updating_times_resets_blame() -> None:
    visit = _blamed(4.0, stop_id="A", sequence=1, minute=0)
    visit.cohesion.raw_weight = 1.0
    later = visit.scheduled_arrival + timedelta(minutes=2)

    visit.update_times(later, later)

    assert visit.slack.raw_weight is None and visit.slack.weight is None
    assert visit.cohesion.raw_weight is None
    assert visit.total_weight == 0.0
    assert visit.is_moved


def test_set_suggested_to_real_requires_target() -> None:
    visit = _blamed(1.0, stop_id="A", sequence=1, minute=0)

    with pytest.raises(InvariantViolationError):
        visit.set_suggested_to_real()

    target = visit.scheduled_arrival - timedelta(minutes=1)
    visit.slack.target_arrival = target
    visit.slack.target_departure = target
    visit.set_suggested_to_real()
    assert visit.scheduled_arrival == target


def test_clone_isolation_from_writes() -> None:
    original = _solution()
    copy = original.clone()

    visit = copy.writable(SERVICE)[0]
    visit.update_times(visit.scheduled_arrival + timedelta(minutes=9), visit.scheduled_departure)
    copy.writable(OTHER)[0].slack.raw_weight = 100.0

    assert original.timetable(SERVICE)[0].scheduled_arrival == datetime(2021, 3, 1, 7, 0)
    assert original.timetable(SERVICE)[0].slack.raw_weight == -2.0
    assert original.objective_function_value() == pytest.approx(5.5)
    assert copy.objective_function_value() == pytest.approx(103.5)


def test_original_writes_do_not_leak_into_clone() -> None:
    original = _solution()
    copy = original.clone()

    original.writable(SERVICE)[1].slack.raw_weight = 0.0

    assert copy.timetable(SERVICE)[1].slack.raw_weight == 3.5
    assert original.objective_function_value() == pytest.approx(2.0)


def test_replace_move_swaps_only_that_service() -> None:
    original = _solution()
    replacement = [visit.clone() for visit in original.timetable(SERVICE)]
    replacement[0].slack.raw_weight = 0.0
    move = _move(replacement[0].get_id())
    move.new_timetable = replacement

    candidate = original.replace_move(move)
    replacement[1].slack.raw_weight = 50.0

    assert candidate.objective_function_value() == pytest.approx(3.5)
    assert original.objective_function_value() == pytest.approx(5.5)
    assert candidate.timetable(OTHER)[0] is original.timetable(OTHER)[0]


def test_unknown_service_is_an_invariant_violation() -> None:
    with pytest.raises(InvariantViolationError):
        _solution().writable(Service("missing"))


def test_order_timetable_keeps_journeys_together() -> None:
    visits = [
        BlamedVisit.from_visit(_visit("A", 1, 30, journey="J2")),
        BlamedVisit.from_visit(_visit("D", 4, 15, journey="J1")),
        BlamedVisit.from_visit(_visit("A", 1, 0, journey="J1")),
        BlamedVisit.from_visit(_visit("X", 1, 5, journey="K1", board="RB0")),
        BlamedVisit.from_visit(_visit("B", 2, 30, journey="J1")),
    ]

    ordered = order_timetable(visits)

    assert [(visit.running_board, visit.journey_code, visit.sequence) for visit in ordered] == [
        ("RB0", "K1", 1),
        ("RB1", "J1", 1),
        ("RB1", "J1", 2),
        ("RB1", "J1", 4),
        ("RB1", "J2", 1),
    ]


def test_total_weight_uses_slack_only() -> None:
    solution = _solution()
    visit = solution.writable(SERVICE)[1]
    visit.cohesion.weight = 0.9

    solution.calculate_total_blames()

    assert visit.total_weight == 3.5
    assert solution.timetable(OTHER)[0].total_weight == 0.0


def test_tabu_expires_after_tenure() -> None:
    tabu = TabuList(tenure=3)
    applied = _move("a", "b")

    tabu.set_tabu(applied)
    assert tabu.is_tabu(applied)
    assert tabu.is_tabu(_move("b", "z"))

    for record_id in ("c", "d"):
        tabu.set_tabu(_move(record_id))
        assert tabu.is_tabu(applied)

    tabu.set_tabu(_move("e"))
    assert not tabu.is_tabu(applied)
    assert tabu.remaining("e") == 3


def test_tabu_rejects_retabuing_live_entry() -> None:
    tabu = TabuList(tenure=3)
    tabu.set_tabu(_move("a"))

    with pytest.raises(InvariantViolationError):
        tabu.set_tabu(_move("a"))


def test_tabu_visit_lookup_uses_visit_identity() -> None:
    tabu = TabuList(tenure=2)
    visit = BlamedVisit.from_visit(_visit("A", 1, 0))
    tabu.set_tabu(_move(visit.get_id()))

    assert tabu.is_visit_tabu(visit)
    assert visit.get_id() == "1|A|J1|1|RB1"


def test_free_up_early_ages_only_oldest_entry() -> None:
    tabu = TabuList(tenure=2)
    tabu.set_tabu(_move("a"))
    tabu.set_tabu(_move("b"))

    assert tabu.free_up_early() == "a"
    assert "a" not in tabu and tabu.remaining("b") == 2
    assert tabu.free_up_early() is None
    assert tabu.remaining("b") == 1
    assert tabu.free_up_early() == "b"
    assert len(tabu) == 0
    assert tabu.free_up_early() is None


def test_tabu_tenure_must_be_positive() -> None:
    with pytest.raises(ValueError):
        TabuList(tenure=0)
    with pytest.raises(ValueError):
        TabuList(tenure=-1)
