"""
Sales velocity classification.

Thresholds are percentiles of the non-zero weekly sales rates across the
whole catalog, computed once per run:

    sorted_rates = sorted(r for r in rates if r > 0)
    slow = sorted_rates[floor(slow_percentile * n)]
    fast = sorted_rates[floor(fast_percentile * n)]

Classification:
    avg == 0          → Slow
    avg >= fast       → Fast
    anything else     → Average

A positive rate at or below the slow threshold is Average, not Slow. Slow
is reserved for items that did not sell at all in the window.
"""

import math
from dataclasses import dataclass
from typing import Iterable

from models.inventory_metric import SalesVelocity
from exceptions import InvalidPercentileError


@dataclass(frozen=True)
class VelocityThresholds:
    """Percentile cut points of one run's rate population."""

    slow: float = 0.0
    fast: float = 0.0
    population_size: int = 0


def percentile_value(sorted_rates: list[float], percentile: float) -> float:
    """
    Value at floor(percentile × n) in an ascending list.

    The index is clamped to the last element so percentile 1.0 is usable.
    """
    index = min(math.floor(percentile * len(sorted_rates)), len(sorted_rates) - 1)
    return sorted_rates[index]


def compute_thresholds(
    rates: Iterable[float],
    slow_percentile: float = 0.25,
    fast_percentile: float = 0.75,
) -> VelocityThresholds:
    """
    Compute slow and fast thresholds from a rate population.

    Args:
        rates: Weekly sales rates of every (product, flavor); zeros are ignored
        slow_percentile: Position of the slow threshold, in [0, 1]
        fast_percentile: Position of the fast threshold, in [0, 1]

    Returns:
        VelocityThresholds; both 0 when no rate is positive

    Raises:
        InvalidPercentileError: If a percentile is outside [0, 1]
    """
    for name, value in (("slow_percentile", slow_percentile), ("fast_percentile", fast_percentile)):
        if not 0 <= value <= 1:
            raise InvalidPercentileError(
                f"{name} must be between 0 and 1",
                details={"field": name, "provided": value}
            )

    non_zero = sorted(r for r in rates if r > 0)
    if not non_zero:
        return VelocityThresholds()

    return VelocityThresholds(
        slow=percentile_value(non_zero, slow_percentile),
        fast=percentile_value(non_zero, fast_percentile),
        population_size=len(non_zero),
    )


def classify_velocity(avg_weekly_sales: float, thresholds: VelocityThresholds) -> SalesVelocity:
    """Classify one item's weekly rate against a run's thresholds."""
    if avg_weekly_sales == 0:
        return SalesVelocity.SLOW
    if avg_weekly_sales >= thresholds.fast:
        return SalesVelocity.FAST
    return SalesVelocity.AVERAGE
