from datetime import datetime, timedelta

import pytest

from src.timetable_optimiser.data.memory import InMemoryTransitData
from src.timetable_optimiser.data.retrieval import TimetableRetrieval
from src.timetable_optimiser.models.domain import Direction, HistoricVisit, ScheduledVisit, Service, Stop
from src.timetable_optimiser.services.evaluation import (
    PerformanceEvaluator,
    ServiceCohesionEvaluator,
    SlackTimeEvaluator,
    Weight,
    standardise,
)
from src.timetable_optimiser.services.route_analysis import RouteSegmentCollection, RouteSegmentFinder
from src.timetable_optimiser.services.search.solution import Solution
from src.timetable_optimiser.services.simulation import DwellTimeSimulator, JourneyTimeSimulator

STOP = Stop("S")


def _visit(service_id: str, hour: int, minute: int, *, journey: str | None = None) -> ScheduledVisit:
    moment = datetime(2021, 3, 1, hour, minute)
    return ScheduledVisit(
        service_id=service_id,
        stop_id=STOP.stop_id,
        sequence=1,
        is_outbound=True,
        journey_code=journey or f"{service_id}-{hour:02d}{minute:02d}",
        running_board=f"RB{service_id}",
        is_timing_point=False,
        scheduled_arrival=moment,
        scheduled_departure=moment,
    )


def _cohesion_fixture(times: dict[str, list[tuple[int, int]]]):
    services = [Service(service_id) for service_id in times]
    provider = InMemoryTransitData(
        services,
        [STOP],
        {service.service_id: {Direction.OUTBOUND: ["S"]} for service in services},
    )
    collection = RouteSegmentCollection(provider, services[0])
    collection.services_at_stop_of_interest[STOP] = list(services)
    solution = Solution.from_scheduled(
        {
            service: [_visit(service.service_id, hour, minute) for hour, minute in times[service.service_id]]
            for service in services
        }
    )
    return collection, solution


def _by_arrival(solution: Solution) -> list:
    return sorted(solution.all_visits(), key=lambda visit: visit.scheduled_arrival)


def test_standardise_scales_into_dominance() -> None:
    weights = [Weight(raw_weight=value) for value in (-4.0, 2.0, 0.0, 1.0, -3.0)]

    standardise(weights, 2.0)

    # The largest magnitude falls outside the kept run of four and takes its mean, 1.5.
    assert [weight.weight for weight in weights] == pytest.approx([1.0, 4 / 3, 0.0, 2 / 3, 2.0])
    assert all(0.0 <= weight.weight <= 2.0 for weight in weights)


def test_standardise_suppresses_outliers() -> None:
    weights = [Weight(raw_weight=float(value)) for value in range(1, 21)] + [Weight(raw_weight=1000.0)]

    standardise(weights, 2.0)

    # Kept run is 2..19, so 1, 20 and 1000 all become its mean of 10.5.
    assert weights[-1].weight == pytest.approx(1.0)
    assert weights[0].weight == pytest.approx(1.0)
    assert weights[19].weight == pytest.approx(1.0)
    assert weights[1].weight == pytest.approx(0.0)
    assert weights[18].weight == pytest.approx(2.0)


def test_standardise_trims_by_count_on_small_groups() -> None:
    weights = [Weight(raw_weight=0.0) for _ in range(9)] + [Weight(raw_weight=-10.0)]

    standardise(weights, 1.0)

    assert [weight.weight for weight in weights] == [0.0] * 10


def test_standardise_keeps_unset_and_zeroes_flat_input() -> None:
    weights = [Weight(raw_weight=3.0), Weight(), Weight(raw_weight=-3.0)]

    standardise(weights, 1.0)

    assert weights[0].weight == 0.0
    assert weights[1].weight is None
    assert weights[2].weight == 0.0


def test_cohesion_perfectly_spaced_services_get_no_blame() -> None:
    collection, solution = _cohesion_fixture(
        {
            "1": [(1, 0), (1, 30), (2, 0), (2, 30)],
            "2": [(1, 10), (1, 40), (2, 10), (2, 40)],
            "3": [(1, 20), (1, 50), (2, 20), (2, 50)],
        }
    )

    ServiceCohesionEvaluator(collection, dominance=1.0).find_blame(solution)

    for visit in solution.all_visits():
        assert visit.cohesion.raw_weight == pytest.approx(0.0)
        assert visit.cohesion.weight == 0.0
        assert visit.cohesion.target_arrival == visit.scheduled_arrival


def test_cohesion_uneven_hour_is_blamed() -> None:
    collection, solution = _cohesion_fixture(
        {
            "1": [(1, 0), (2, 0)],
            "2": [(1, 20), (2, 20)],
            "3": [(1, 40), (2, 45)],
        }
    )

    ServiceCohesionEvaluator(collection, dominance=1.0).find_blame(solution)

    ordered = _by_arrival(solution)
    # The largest magnitude sits above the kept run and is pulled to its mean.
    assert [visit.cohesion.weight for visit in ordered] == pytest.approx([0, 0, 0, 1.0, 1.0, 0.4])
    late = ordered[-1]
    assert late.cohesion.raw_weight == pytest.approx(-10 / 3)
    assert late.cohesion.target_arrival == datetime(2021, 3, 1, 2, 41, 40)


def test_cohesion_tight_trailing_hour_is_not_blamed() -> None:
    collection, solution = _cohesion_fixture(
        {
            "1": [(1, 0), (1, 30), (2, 0), (2, 30), (3, 0)],
            "2": [(1, 10), (1, 40), (2, 10), (2, 40), (3, 10)],
            "3": [(1, 20), (1, 50), (2, 20), (2, 50), (3, 20)],
        }
    )

    ServiceCohesionEvaluator(collection, dominance=1.0).find_blame(solution)

    weights = [visit.cohesion.weight for visit in solution.all_visits() if visit.cohesion.weight is not None]
    assert len(weights) == 15
    assert weights == [0.0] * 15
    last_hour = [visit for visit in _by_arrival(solution) if visit.scheduled_arrival.hour == 3]
    assert [visit.cohesion.raw_weight for visit in last_hour] == pytest.approx([-10.0, 0.0, 10.0])


def test_cohesion_single_late_call_in_small_hour_is_absorbed() -> None:
    collection, solution = _cohesion_fixture(
        {
            "1": [(1, 0), (1, 40)],
            "2": [(1, 15)],
            "3": [(1, 30), (2, 0)],
        }
    )

    ServiceCohesionEvaluator(collection, dominance=1.0).find_blame(solution)

    ordered = _by_arrival(solution)
    assert [visit.cohesion.raw_weight for visit in ordered[:4]] == pytest.approx([-1.25, -1.25, -1.25, 3.75])
    assert [visit.cohesion.weight for visit in ordered] == [0.0, 0.0, 0.0, 0.0, None]
    assert ordered[4].cohesion.raw_weight is None
    assert ordered[3].cohesion.target_arrival == datetime(2021, 3, 1, 1, 43, 45)


def test_cohesion_ignores_lone_visits_and_single_service_stops() -> None:
    collection, solution = _cohesion_fixture({"1": [(1, 0), (1, 30)], "2": [(1, 10), (3, 5)]})

    ServiceCohesionEvaluator(collection, dominance=1.0).find_blame(solution)
    lone = [visit for visit in solution.all_visits() if visit.scheduled_arrival.hour == 3][0]
    assert lone.cohesion.raw_weight is None
    assert lone.cohesion.weight is None

    collection.services_at_stop_of_interest[STOP] = [Service("1")]
    ServiceCohesionEvaluator(collection, dominance=1.0).find_blame(solution)
    assert all(visit.cohesion.raw_weight is None for visit in solution.all_visits())


def test_cohesion_leaves_objective_untouched() -> None:
    collection, solution = _cohesion_fixture({"1": [(1, 0), (1, 5)], "2": [(1, 50)]})
    before = solution.objective_function_value()

    ServiceCohesionEvaluator(collection).find_blame(solution)
    solution.calculate_total_blames()

    assert solution.objective_function_value() == before == 0.0
    assert all(visit.total_weight == 0.0 for visit in solution.all_visits())


def _slack_setup(network, primary, dates):
    collection = RouteSegmentCollection.from_finder(RouteSegmentFinder(network, primary, minimum_length=3))
    retrieval = TimetableRetrieval(network, max_workers=2)
    evaluator = SlackTimeEvaluator(
        network,
        collection,
        JourneyTimeSimulator(retrieval, dates),
        DwellTimeSimulator(retrieval, dates),
        dominance=3.0,
        max_workers=2,
    )
    timetables = {service: network.get_scheduled_timetable(service, dates[0]) for service in network.list_services()}
    return evaluator, Solution.from_scheduled(timetables)


def test_slack_blame_matches_objective_and_bounds(network, primary, dates) -> None:
    evaluator, solution = _slack_setup(network, primary, dates)

    evaluator.find_blame(solution)

    raws = [visit.slack.raw_weight for visit in solution.all_visits()]
    assert all(raw is not None for raw in raws)
    assert solution.objective_function_value() == pytest.approx(sum(abs(raw) for raw in raws))
    assert solution.objective_function_value() >= 0
    assert all(0.0 <= visit.slack.weight <= 3.0 for visit in solution.all_visits())


def test_slack_first_visit_of_each_board_keeps_its_times(network, primary, dates) -> None:
    evaluator, solution = _slack_setup(network, primary, dates)

    evaluator.find_blame(solution)

    for service in solution.services():
        firsts = {}
        for visit in solution.timetable(service):
            firsts.setdefault(visit.running_board, visit)
        for visit in firsts.values():
            assert visit.slack.raw_weight == 0.0
            assert visit.slack.target_arrival == visit.scheduled_arrival


def test_slack_target_reflects_faster_running(network, primary, dates) -> None:
    evaluator, solution = _slack_setup(network, primary, dates)

    evaluator.find_blame(solution)

    first_journey = [visit for visit in solution.timetable(primary) if visit.journey_code == "1-O7"]
    stop_b = first_journey[1]
    assert stop_b.stop_id == "B"
    # Scheduled leg is 5 minutes, observed legs take 3 to 3.5 minutes.
    travel = stop_b.slack.target_arrival - first_journey[0].scheduled_departure
    assert timedelta(minutes=3) <= travel <= timedelta(minutes=3, seconds=30)
    assert stop_b.slack.raw_weight < 0


def test_slack_parallel_and_sequential_agree(network, primary, dates) -> None:
    evaluator, parallel = _slack_setup(network, primary, dates)
    evaluator.find_blame(parallel)

    sequential_evaluator, sequential = _slack_setup(network, primary, dates)
    sequential_evaluator.max_workers = 1
    sequential_evaluator.find_blame(sequential)

    assert [visit.slack.raw_weight for visit in parallel.all_visits()] == pytest.approx(
        [visit.slack.raw_weight for visit in sequential.all_visits()]
    )


def _lateness_visit(arrival_offset_minutes: float | None) -> HistoricVisit:
    scheduled = datetime(2021, 3, 1, 7, 0)
    actual = None if arrival_offset_minutes is None else scheduled + timedelta(minutes=arrival_offset_minutes)
    return HistoricVisit(
        service_id="1",
        stop_id="A",
        sequence=1,
        is_outbound=True,
        journey_code="J1",
        running_board="RB1",
        is_timing_point=False,
        scheduled_arrival=scheduled,
        scheduled_departure=scheduled,
        actual_arrival=actual,
        actual_departure=actual,
    )


def test_performance_report_counts_late_and_early_visits() -> None:
    evaluator = PerformanceEvaluator()
    evaluator.add_records(Service("1"), [_lateness_visit(offset) for offset in (0, 2, 6, -1, None)])
    evaluator.add_records(Service("0"), [_lateness_visit(1)])

    report = evaluator.generate_lateness_report()

    assert [entry.service_id for entry in report] == ["0", "1"]
    service_one = report[1]
    assert service_one.sample_count == 5
    assert service_one.on_time_percentage == 60.0
    assert service_one.average_lateness_minutes == pytest.approx(1.4)
