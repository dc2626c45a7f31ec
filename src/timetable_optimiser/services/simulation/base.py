"""Shared interpolation for the travel and dwell time simulators."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ...data.retrieval import TimetableRetrieval
from ...models.domain import Service, seconds_of_day


@dataclass(slots=True)
class TimeSample:
    """An observed duration and the clock time (seconds of day) it was seen at."""

    duration: float
    time_of_interest: float


@dataclass(slots=True)
class Estimate:
    duration: float
    weight: float


def inverse_weight(distance_seconds: float) -> float:
    """Accuracy weight for a sample ``distance_seconds`` away from the target."""
    distance = abs(distance_seconds)
    return 1.0 if distance <= 1.0 else 1.0 / distance


def bracket(samples: Sequence[TimeSample], target: float) -> Optional[tuple[TimeSample, TimeSample]]:
    """Samples either side of ``target``; ``samples`` must be sorted by time of interest.

    Outside the observed range, or with a single sample, the nearest sample is
    returned twice.
    """
    if not samples:
        return None
    if len(samples) == 1 or target <= samples[0].time_of_interest:
        return samples[0], samples[0]
    if target >= samples[-1].time_of_interest:
        return samples[-1], samples[-1]
    for index in range(1, len(samples)):
        if samples[index].time_of_interest >= target:
            return samples[index - 1], samples[index]
    return samples[-1], samples[-1]


def interpolate(before: TimeSample, after: TimeSample, target: float) -> Estimate:
    """Blend two samples so the one closer to ``target`` dominates."""
    to_before = target - before.time_of_interest
    to_after = after.time_of_interest - target
    total = to_before + to_after
    if before is after or total <= 0:
        return Estimate(before.duration, inverse_weight(to_before))
    duration = before.duration * (to_after / total) + after.duration * (to_before / total)
    return Estimate(duration, inverse_weight(min(to_before, to_after)))


def weighted_average(estimates: Sequence[Estimate]) -> float:
    total_weight = sum(estimate.weight for estimate in estimates)
    if not estimates or total_weight <= 0:
        return 0.0
    return sum(estimate.duration * estimate.weight for estimate in estimates) / total_weight


class TimeSimulator:
    """Estimates a duration at a clock time from several days of history."""

    def __init__(self, retrieval: TimetableRetrieval, dates: Sequence[date]) -> None:
        self.retrieval = retrieval
        self.dates = list(dates)

    def _estimate(self, per_day_samples: Sequence[list[TimeSample]], target: datetime) -> timedelta:
        target_seconds = seconds_of_day(target)
        estimates: list[Estimate] = []
        for samples in per_day_samples:
            samples.sort(key=lambda sample: sample.time_of_interest)
            pair = bracket(samples, target_seconds)
            if pair is not None:
                estimates.append(interpolate(*pair, target_seconds))
        return timedelta(seconds=weighted_average(estimates))


def service_ids(services: Sequence[Service]) -> set[str]:
    return {service.service_id for service in services}
