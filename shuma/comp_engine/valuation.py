"""
Valuation Aggregator for the Comp Engine

Implements:
- Quality controls (IQR outlier removal with fallback to the full set)
- Mid value as the similarity-weighted mean of adjusted prices
- Uncertainty spread from price dispersion, bounded to [8%, 18%]
- Low / high range around the mid value
"""

import logging
import math
from typing import Final, List, Sequence

from .filters import PriceOutlierFilter
from .models import ScoredComparable, ValuationSummary
from utils.coercion import clamp, round_half_up
from utils.formatting import format_percent


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

# Spread = clamp(SPREAD_BASE + dispersion, SPREAD_MIN, SPREAD_MAX)
SPREAD_BASE: Final = 0.06
SPREAD_MIN: Final = 0.08
SPREAD_MAX: Final = 0.18

# Floor applied to each similarity weight so all-zero scores still average
MIN_WEIGHT: Final = 0.0001

INSUFFICIENT_DATA_RATIONALE: Final = "No comparables supplied; insufficient data for a value range"
NO_PRICED_RATIONALE: Final = "No comparable carries a price; insufficient data for a value range"
RANGE_STATEMENT: Final = "Value is a range for appraiser review, not a final signed value"


def is_priced(comparable: ScoredComparable) -> bool:
    """True when the comparable's raw price is finite and positive."""
    price = comparable.raw_price
    return price is not None and math.isfinite(price) and price > 0


def weighted_mean(values: Sequence[float], weights: Sequence[float]) -> float:
    """Weighted mean with each weight floored at MIN_WEIGHT."""
    if not values:
        return 0.0
    total = 0.0
    weight_sum = 0.0
    for value, weight in zip(values, weights):
        w = max(MIN_WEIGHT, weight if weight is not None and math.isfinite(weight) else MIN_WEIGHT)
        total += value * w
        weight_sum += w
    return total / weight_sum if weight_sum else 0.0


def stddev(values: Sequence[float]) -> float:
    """Population standard deviation (0 for fewer than two values)."""
    if len(values) <= 1:
        return 0.0
    mean = sum(values) / len(values)
    variance = sum((x - mean) ** 2 for x in values) / len(values)
    return math.sqrt(variance)


class ValuationAggregator:
    """
    Combines scored comparables into a low / mid / high estimate.

    Pipeline order:
    1. QUALITY CONTROL - IQR filter on price per square metre
    2. POOL - kept subset, or the full scored set if nothing survives
    3. VALUATE - weighted mean of adjusted prices
    4. RANGE - spread from dispersion
    """

    def __init__(self, outlier_filter: PriceOutlierFilter = None):
        self._filter = outlier_filter or PriceOutlierFilter()

    def aggregate(self, scored: List[ScoredComparable]) -> ValuationSummary:
        """
        Build the value range from the scored (not yet filtered) set.

        Args:
            scored: Output of ComparableScorer.rank / score

        Returns:
            ValuationSummary; all zeros with comparables_used=0 when no
            comparable carries a usable price
        """
        priced = [c for c in scored if is_priced(c)]
        unpriced_ids = [c.id for c in scored if not is_priced(c)]
        if unpriced_ids:
            logger.info("Skipping %d comparables without a price: %s", len(unpriced_ids), unpriced_ids)

        if not priced:
            rationale = [INSUFFICIENT_DATA_RATIONALE if not scored else NO_PRICED_RATIONALE]
            return ValuationSummary(
                low=0,
                mid=0,
                high=0,
                comparables_used=0,
                outlier_ids=[],
                unpriced_ids=unpriced_ids,
                rationale=rationale,
            )

        split = self._filter.split(priced)
        pool = split.kept if split.kept else list(priced)
        excluded_ids = split.outlier_ids if split.kept else []

        prices = [c.adjusted_price for c in pool]
        weighted_mid = weighted_mean(prices, [c.score for c in pool])
        dispersion = stddev(prices) / max(1.0, weighted_mid)
        spread = clamp(SPREAD_BASE + dispersion, SPREAD_MIN, SPREAD_MAX)

        mid = round_half_up(weighted_mid)
        bounds = (
            round_half_up(weighted_mid * (1 - spread)),
            round_half_up(weighted_mid * (1 + spread)),
        )

        rationale = [
            f"{len(pool)} comparables used after outlier filtering",
            f"{len(excluded_ids)} price-per-sqm outliers excluded",
            f"Dispersion={format_percent(dispersion * 100)}",
            f"Spread=±{format_percent(spread * 100)}",
            RANGE_STATEMENT,
        ]
        if not split.kept:
            rationale.insert(1, "All comparables fell outside the IQR fences; full set used")
        if unpriced_ids:
            rationale.insert(1, f"{len(unpriced_ids)} comparables without a price excluded")

        logger.debug(
            "Valuation: pool=%d outliers=%d mid=%d spread=%.3f",
            len(pool),
            len(excluded_ids),
            mid,
            spread,
        )

        return ValuationSummary(
            low=min(bounds),
            mid=mid,
            high=max(bounds),
            comparables_used=len(pool),
            outlier_ids=excluded_ids,
            unpriced_ids=unpriced_ids,
            dispersion=dispersion,
            spread=spread,
            rationale=rationale,
        )


def calculate_valuation_range(scored: List[ScoredComparable]) -> ValuationSummary:
    """Low / mid / high range from scored comparables."""
    return ValuationAggregator().aggregate(scored)
