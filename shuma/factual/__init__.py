"""
Factual Reliability Engine

Reliability scoring for property, transaction and planning facts from
heterogeneous sources. Advisory only: no value opinion is ever produced.
"""

from .models import (
    SourceCredibility,
    SourceMeta,
    FactAddress,
    PropertyFact,
    TransactionFact,
    PlanningFact,
    FactualDataInput,
    TransactionAssessment,
    PlanningAssessment,
    FactualDataResult,
)
from .engine import (
    FactualReliabilityEngine,
    build_factual_data_layer,
    completeness_score,
    reliability_score,
    OUTLIER_DEVIATION_THRESHOLD,
)

__all__ = [
    "SourceCredibility",
    "SourceMeta",
    "FactAddress",
    "PropertyFact",
    "TransactionFact",
    "PlanningFact",
    "FactualDataInput",
    "TransactionAssessment",
    "PlanningAssessment",
    "FactualDataResult",
    "FactualReliabilityEngine",
    "build_factual_data_layer",
    "completeness_score",
    "reliability_score",
    "OUTLIER_DEVIATION_THRESHOLD",
]
