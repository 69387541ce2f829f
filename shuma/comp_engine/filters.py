"""
Price Outlier Filter for the Comp Engine

Rejects comparables whose price per square metre falls outside the Tukey
fences [Q1 - 1.5 x IQR, Q3 + 1.5 x IQR] of the scored set.
"""

import math
from typing import Final, List, Sequence

from .models import OutlierSplit, ScoredComparable


# =============================================================================
# Configuration Constants
# =============================================================================

# Tukey fence multiplier
IQR_MULTIPLIER: Final = 1.5

# Below this many priced comparables the quartiles are not meaningful
MIN_PRICED_FOR_IQR: Final = 5

LOWER_QUARTILE: Final = 0.25
UPPER_QUARTILE: Final = 0.75


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """
    Percentile by linear interpolation between closest ranks.

    Args:
        sorted_values: Values in ascending order
        p: Fraction in [0, 1]

    Returns:
        Interpolated value (0 for an empty sequence)
    """
    if not sorted_values:
        return 0.0
    idx = (len(sorted_values) - 1) * p
    lo = math.floor(idx)
    hi = math.ceil(idx)
    if lo == hi:
        return sorted_values[lo]
    weight = idx - lo
    return sorted_values[lo] * (1 - weight) + sorted_values[hi] * weight


class PriceOutlierFilter:
    """
    IQR outlier rule on price per square metre.

    Comparables without a usable price per square metre do not contribute to
    the quartiles but are still partitioned against the fences.
    """

    def __init__(
        self,
        multiplier: float = IQR_MULTIPLIER,
        min_sample: int = MIN_PRICED_FOR_IQR,
    ):
        self._multiplier = multiplier
        self._min_sample = min_sample

    def split(self, scored: List[ScoredComparable]) -> OutlierSplit:
        """
        Partition scored comparables into kept and outliers.

        Args:
            scored: Scored comparables (any order)

        Returns:
            OutlierSplit; everything is kept when fewer than min_sample
            comparables carry a positive, finite price per square metre
        """
        prices = sorted(
            c.price_per_sqm for c in scored
            if math.isfinite(c.price_per_sqm) and c.price_per_sqm > 0
        )

        if len(prices) < self._min_sample:
            return OutlierSplit(kept=list(scored), outliers=[])

        lower, upper = self.fences(prices)

        kept = [c for c in scored if lower <= c.price_per_sqm <= upper]
        outliers = [c for c in scored if not lower <= c.price_per_sqm <= upper]
        return OutlierSplit(kept=kept, outliers=outliers)

    def fences(self, sorted_prices: Sequence[float]) -> tuple[float, float]:
        """Lower and upper Tukey fences for ascending values."""
        q1 = percentile(sorted_prices, LOWER_QUARTILE)
        q3 = percentile(sorted_prices, UPPER_QUARTILE)
        iqr = q3 - q1
        return q1 - self._multiplier * iqr, q3 + self._multiplier * iqr


def filter_price_outliers_by_iqr(scored: List[ScoredComparable]) -> OutlierSplit:
    """Split scored comparables into kept / outliers by the IQR rule."""
    return PriceOutlierFilter().split(scored)
