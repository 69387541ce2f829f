"""
Comp Engine

Comparable scoring, price-per-sqm outlier rejection and weighted valuation
ranges for a subject property against a caller-supplied comparable pool.

Subject + pool -> ComparableScorer -> PriceOutlierFilter -> ValuationAggregator
"""

from .models import (
    SubjectPropertyFeatures,
    ComparableCandidate,
    SimilarityBreakdown,
    AdjustmentBreakdown,
    ScoredComparable,
    OutlierSplit,
    AdjustmentOverrideEvent,
    ValuationSummary,
)
from .scoring import ComparableScorer, score_comparable, rank_comparables
from .filters import PriceOutlierFilter, filter_price_outliers_by_iqr, IQR_MULTIPLIER
from .valuation import ValuationAggregator, calculate_valuation_range
from .adjustments import apply_adjustment_override

__all__ = [
    # Models
    "SubjectPropertyFeatures",
    "ComparableCandidate",
    "SimilarityBreakdown",
    "AdjustmentBreakdown",
    "ScoredComparable",
    "OutlierSplit",
    "AdjustmentOverrideEvent",
    "ValuationSummary",
    # Engine
    "ComparableScorer",
    "PriceOutlierFilter",
    "ValuationAggregator",
    "IQR_MULTIPLIER",
    # Functional API
    "score_comparable",
    "rank_comparables",
    "filter_price_outliers_by_iqr",
    "calculate_valuation_range",
    "apply_adjustment_override",
]

__version__ = "1.0"
