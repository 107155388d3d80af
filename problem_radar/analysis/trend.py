"""Weekly trend buckets and least-squares slope for an idea."""

import math
import time
from dataclasses import dataclass, field
from typing import Iterable

from problem_radar.analysis.scoring import SECONDS_PER_DAY


@dataclass
class TrendResult:
    """Weekly counts (oldest first) and their OLS slope."""
    bins: list[int] = field(default_factory=list)
    slope: float = 0.0


def _slope(values: list[int]) -> float:
    n = len(values)
    x_mean = (n - 1) / 2
    y_mean = sum(values) / n
    numerator = 0.0
    denominator = 0.0
    for x, y in enumerate(values):
        numerator += (x - x_mean) * (y - y_mean)
        denominator += (x - x_mean) ** 2
    if denominator == 0:
        return 0.0
    return numerator / denominator


def compute_trend(
    posts: Iterable,
    window_days: int,
    now: float | None = None,
) -> TrendResult:
    """Bucket posts into weeks and fit a slope.

    Args:
        posts: Objects with a `created_utc` attribute (unix seconds).
        window_days: Window length in days.
        now: Reference unix time. Defaults to the current time.

    Returns:
        TrendResult where bins[0] is the oldest week and bins[-1] the latest.
    """
    if now is None:
        now = time.time()

    weeks = max(1, math.ceil(window_days / 7))
    bins = [0] * weeks

    for post in posts:
        age_days = max(0.0, (now - post.created_utc) / SECONDS_PER_DAY)
        if age_days > window_days:
            continue
        index = weeks - 1 - math.floor(age_days / 7)
        index = min(weeks - 1, max(0, index))
        bins[index] += 1

    return TrendResult(bins=bins, slope=_slope(bins))
