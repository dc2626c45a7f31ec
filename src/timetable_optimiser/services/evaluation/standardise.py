"""Outlier suppression and min-max scaling of blame weights."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .blamed import Weight

TRIMMED_SHARE = 0.05
KEPT_SHARE = 0.9


def standardise(weights: Sequence[Weight], dominance: float) -> None:
    """Scale ``|raw_weight|`` of every weight into ``[0, dominance]`` in place.

    Magnitudes are sorted and a run of ``int(n * 0.9)`` values starting at
    ``int(n * 0.05)`` is kept. Anything below or above that run is replaced by
    the run's mean, then the result is min-max scaled over the run's range.
    Unset raw weights stay unset.
    """
    present = [weight for weight in weights if weight.raw_weight is not None]
    for weight in weights:
        if weight.raw_weight is None:
            weight.weight = None
    if not present:
        return

    magnitudes = np.abs(np.array([weight.raw_weight for weight in present], dtype=float))
    kept = int(magnitudes.size * KEPT_SHARE)
    if kept >= 1:
        start = int(magnitudes.size * TRIMMED_SHARE)
        middle = np.sort(magnitudes)[start : start + kept]
        low, high = middle.min(), middle.max()
        magnitudes = np.where((magnitudes < low) | (magnitudes > high), middle.mean(), magnitudes)

    span = float(magnitudes.max() - magnitudes.min())
    if span <= 0:
        scaled = np.zeros_like(magnitudes)
    else:
        scaled = np.clip((magnitudes - magnitudes.min()) / span * dominance, 0.0, dominance)

    for weight, value in zip(present, scaled):
        weight.weight = float(value)
