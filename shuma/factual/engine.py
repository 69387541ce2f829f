"""
Factual Reliability Engine

Scores how far property, transaction and planning facts can be trusted and
flags price-per-sqm outliers among the transactions. The output grounds
report drafting; it never contains a price estimate.

Reliability (0-100) of any fact:
    round(clamp(completeness * 0.35 + source * 0.30 + recency * 0.20
                + consistency * 0.15, 0, 100))
"""

import logging
import statistics
from datetime import datetime
from typing import Any, Dict, Final, List, Mapping, Optional, Sequence, Tuple, Union

from .models import (
    FactualDataInput,
    FactualDataResult,
    PlanningAssessment,
    PlanningFact,
    PropertyFact,
    SourceCredibility,
    SourceMeta,
    TransactionAssessment,
    TransactionFact,
)
from utils.coercion import clamp, parse_iso_datetime, round_half_up


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

CREDIBILITY_SCORES: Final[Dict[SourceCredibility, int]] = {
    SourceCredibility.OFFICIAL: 100,
    SourceCredibility.REGISTRY: 100,
    SourceCredibility.GOVERNMENT: 95,
    SourceCredibility.MUNICIPALITY: 95,
    SourceCredibility.VENDOR: 75,
    SourceCredibility.USER: 50,
    SourceCredibility.UNKNOWN: 60,
}
DEFAULT_SOURCE_SCORE: Final = 60

# (max age in days, score), checked in order
RECENCY_BUCKETS: Final[Tuple[Tuple[int, int], ...]] = (
    (90, 100),
    (180, 90),
    (365, 75),
    (730, 60),
)
STALE_RECENCY_SCORE: Final = 40
UNDATED_RECENCY_SCORE: Final = 50

COMPLETENESS_WEIGHT: Final = 0.35
SOURCE_WEIGHT: Final = 0.30
RECENCY_WEIGHT: Final = 0.20
CONSISTENCY_WEIGHT: Final = 0.15

DEFAULT_CONSISTENCY: Final = 70
PROPERTY_CONSISTENCY: Final = 80

# Relative distance from the median price per sqm above which a transaction is an outlier
OUTLIER_DEVIATION_THRESHOLD: Final = 0.40

PROPERTY_WEIGHT: Final = 0.45
TRANSACTION_WEIGHT: Final = 0.45
MISSING_DATA_WEIGHT: Final = 0.10
MISSING_DATA_PENALTY_SCORE: Final = 50
COMPLETE_DATA_SCORE: Final = 80

MISSING_PROPERTY: Final = "Missing property details"
MISSING_ADDRESS: Final = "Property address incomplete"
MISSING_AREA: Final = "Property area missing"
MISSING_TRANSACTIONS: Final = "No transaction records"
MISSING_PLANNING: Final = "No planning/zoning records"

NOTE_INCOMPLETE: Final = "Data is incomplete; verify missing items before use."
NOTE_OUTLIERS: Final = "Outliers removed from main set; review manually if relevant."
NOTE_FACTUAL_ONLY: Final = "No valuation or price opinion generated; factual data only."


def completeness_score(values: Sequence[Any]) -> int:
    """Share of present values (not None, not empty string), 0-100."""
    if not values:
        return 0
    present = sum(1 for v in values if v is not None and v != "")
    return round_half_up(present / len(values) * 100)


def source_score(source: Optional[SourceMeta]) -> int:
    if source is None:
        return DEFAULT_SOURCE_SCORE
    return CREDIBILITY_SCORES.get(source.credibility, DEFAULT_SOURCE_SCORE)


def reliability_score(
    completeness: float,
    source: float,
    recency: float,
    consistency: float = DEFAULT_CONSISTENCY,
) -> int:
    score = (
        completeness * COMPLETENESS_WEIGHT
        + source * SOURCE_WEIGHT
        + recency * RECENCY_WEIGHT
        + consistency * CONSISTENCY_WEIGHT
    )
    return round_half_up(clamp(score, 0, 100))


class FactualReliabilityEngine:
    """
    Read-only assessor for sourced facts.

    Attributes:
        as_of: Moment recency is measured from (defaults to now, UTC)
    """

    def __init__(self, as_of: datetime = None):
        if as_of is None:
            self.as_of = datetime.utcnow()
            return
        self.as_of = parse_iso_datetime(as_of)
        if self.as_of is None:
            raise ValueError(f"Invalid as_of timestamp: {as_of!r}")

    def build(self, data: FactualDataInput) -> FactualDataResult:
        """
        Assess the facts in data.

        Args:
            data: Property, transactions and planning facts (all optional)

        Returns:
            FactualDataResult with reliability-annotated facts
        """
        prop = data.property
        transactions = data.transactions or []
        planning = data.planning or []

        missing = self._missing_flags(prop, data.transactions, data.planning)
        used, outliers, deviation = self._split_outliers(transactions)

        transactions_used = [self._assess_transaction(t, deviation) for t in used]
        outliers_detected = [self._assess_transaction(t, deviation) for t in outliers]
        planning_used = [self._assess_planning(p) for p in planning]

        property_reliability = self._property_reliability(prop)
        if transactions_used:
            avg_transaction = round_half_up(
                sum(t.reliability for t in transactions_used) / len(transactions_used)
            )
        else:
            avg_transaction = 0

        missing_component = MISSING_DATA_PENALTY_SCORE if missing else COMPLETE_DATA_SCORE
        aggregate = round_half_up(clamp(
            property_reliability * PROPERTY_WEIGHT
            + avg_transaction * TRANSACTION_WEIGHT
            + missing_component * MISSING_DATA_WEIGHT,
            0,
            100,
        ))

        notes = []
        if missing:
            notes.append(NOTE_INCOMPLETE)
        if outliers_detected:
            notes.append(NOTE_OUTLIERS)
        notes.append(NOTE_FACTUAL_ONLY)

        logger.debug(
            "Factual layer: property=%d transactions=%d outliers=%d missing=%d score=%d",
            property_reliability,
            len(transactions_used),
            len(outliers_detected),
            len(missing),
            aggregate,
        )

        return FactualDataResult(
            property_summary=self._summarize_property(prop),
            transactions_used=transactions_used,
            outliers_detected=outliers_detected,
            planning_used=planning_used,
            missing_data=missing,
            data_reliability_score=aggregate,
            notes_for_appraiser=" ".join(notes),
        )

    def recency_score(self, value: Any) -> int:
        """Score how recent a date is relative to as_of; undated or unparsable is 50."""
        parsed = parse_iso_datetime(value)
        if parsed is None:
            return UNDATED_RECENCY_SCORE
        days = (self.as_of - parsed).total_seconds() / 86400
        for max_days, score in RECENCY_BUCKETS:
            if days <= max_days:
                return score
        return STALE_RECENCY_SCORE

    # -------------------------------------------------------------------------
    # Outliers
    # -------------------------------------------------------------------------

    def _split_outliers(
        self, transactions: List[TransactionFact]
    ) -> Tuple[List[TransactionFact], List[TransactionFact], Dict[int, float]]:
        """
        Route transactions deviating from the median price per sqm by more
        than OUTLIER_DEVIATION_THRESHOLD to the outlier list.

        Deviations are keyed by object identity so repeated ids stay distinct.
        Transactions without a usable price per sqm are always kept.
        """
        rates = [t.price_per_sqm for t in transactions if t.price_per_sqm is not None]
        center = statistics.median(rates) if rates else None

        used: List[TransactionFact] = []
        outliers: List[TransactionFact] = []
        deviation: Dict[int, float] = {}

        for tx in transactions:
            rate = tx.price_per_sqm
            if not rate or not center:
                used.append(tx)
                continue
            dev = abs(rate - center) / center
            deviation[id(tx)] = dev
            if dev > OUTLIER_DEVIATION_THRESHOLD:
                outliers.append(tx)
            else:
                used.append(tx)

        return used, outliers, deviation

    # -------------------------------------------------------------------------
    # Per-fact assessment
    # -------------------------------------------------------------------------

    def _assess_transaction(
        self, tx: TransactionFact, deviation: Mapping[int, float]
    ) -> TransactionAssessment:
        address = tx.address
        completeness = completeness_score([
            tx.price,
            tx.date,
            tx.area,
            address.city if address else None,
            address.street if address else None,
        ])
        dev = deviation.get(id(tx))
        consistency = clamp(100 - dev * 100, 0, 100) if dev is not None else DEFAULT_CONSISTENCY

        return TransactionAssessment(
            id=tx.id,
            price=tx.price,
            price_per_sqm=tx.price_per_sqm,
            date=tx.date,
            area=tx.area,
            address=address,
            deal_nature=tx.deal_nature,
            asset_type=tx.asset_type,
            source=tx.source,
            deviation_pct=dev,
            reliability=reliability_score(
                completeness,
                source_score(tx.source),
                self.recency_score(tx.date),
                consistency,
            ),
        )

    def _assess_planning(self, plan: PlanningFact) -> PlanningAssessment:
        completeness = completeness_score([
            plan.plan_id,
            plan.plan_name,
            plan.land_use,
            plan.rights_description,
            plan.build_ratio,
        ])
        updated_at = plan.source.updated_at if plan.source else None
        return PlanningAssessment(
            plan_id=plan.plan_id,
            plan_name=plan.plan_name,
            land_use=plan.land_use,
            rights_description=plan.rights_description,
            build_ratio=plan.build_ratio,
            source=plan.source,
            reliability=reliability_score(
                completeness,
                source_score(plan.source),
                self.recency_score(updated_at),
            ),
        )

    def _property_reliability(self, prop: Optional[PropertyFact]) -> int:
        address = prop.address if prop else None
        completeness = completeness_score([
            address.city if address else None,
            address.street if address else None,
            prop.built_area if prop else None,
            prop.total_area if prop else None,
            prop.floor if prop else None,
            prop.build_year if prop else None,
        ])
        source = prop.source if prop else None
        return reliability_score(
            completeness,
            source_score(source),
            self.recency_score(source.updated_at if source else None),
            PROPERTY_CONSISTENCY,
        )

    # -------------------------------------------------------------------------
    # Summary helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _missing_flags(
        prop: Optional[PropertyFact],
        transactions: Optional[List[TransactionFact]],
        planning: Optional[List[PlanningFact]],
    ) -> List[str]:
        missing = []
        if prop is None:
            missing.append(MISSING_PROPERTY)
        else:
            address = prop.address
            if not address or not address.city or not address.street:
                missing.append(MISSING_ADDRESS)
            if not prop.built_area and not prop.total_area:
                missing.append(MISSING_AREA)
        if not transactions:
            missing.append(MISSING_TRANSACTIONS)
        if not planning:
            missing.append(MISSING_PLANNING)
        return missing

    @staticmethod
    def _summarize_property(prop: Optional[PropertyFact]) -> Optional[dict]:
        if prop is None:
            return None
        return {
            "address": prop.address.to_dict() if prop.address else None,
            "built_area": prop.built_area,
            "total_area": prop.total_area,
            "floor": prop.floor,
            "total_floors": prop.total_floors,
            "build_year": prop.build_year,
            "amenities": list(prop.amenities),
            "source": prop.source.to_dict() if prop.source else None,
        }


def build_factual_data_layer(
    data: Union[FactualDataInput, Mapping[str, Any]],
    as_of: datetime = None,
) -> FactualDataResult:
    """Reliability-annotated fact summary for property, transaction and planning facts."""
    if not isinstance(data, FactualDataInput):
        data = FactualDataInput.from_dict(data or {})
    return FactualReliabilityEngine(as_of=as_of).build(data)
