"""
Data models for the Comp Engine

Feature vectors for the subject and candidate properties, the scored
comparable with its per-dimension similarities and price adjustments, and
the valuation summary.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from utils.coercion import pick, to_float, to_text


@dataclass(frozen=True)
class SubjectPropertyFeatures:
    """
    The property being valued.

    Supplied by the caller (typically the property-editing form); the engine
    never fetches these itself.
    """
    area_sqm: Optional[float]
    floor_num: Optional[float]
    rooms: Optional[float]
    building_age_years: Optional[float]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SubjectPropertyFeatures":
        """Build from JSON (snake_case or camelCase keys)."""
        return cls(
            area_sqm=to_float(pick(data, "area_sqm", "areaSqm")),
            floor_num=to_float(pick(data, "floor_num", "floorNum", "floor")),
            rooms=to_float(data.get("rooms")),
            building_age_years=to_float(pick(data, "building_age_years", "buildingAgeYears")),
        )


@dataclass(frozen=True)
class ComparableCandidate:
    """
    A previously sold property offered as evidence for the subject.

    Missing numerics stay None and contribute zero similarity for that
    dimension rather than being guessed.
    """
    id: str
    distance_meters: Optional[float]
    area_sqm: Optional[float]
    floor_num: Optional[float]
    rooms: Optional[float]
    building_age_years: Optional[float]
    price: Optional[float]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ComparableCandidate":
        """Build from JSON (snake_case or camelCase keys)."""
        return cls(
            id=to_text(data.get("id")) or "",
            distance_meters=to_float(pick(data, "distance_meters", "distanceMeters")),
            area_sqm=to_float(pick(data, "area_sqm", "areaSqm")),
            floor_num=to_float(pick(data, "floor_num", "floorNum", "floor")),
            rooms=to_float(data.get("rooms")),
            building_age_years=to_float(pick(data, "building_age_years", "buildingAgeYears")),
            price=to_float(pick(data, "price", "price_nis", "priceNis")),
        )


@dataclass(frozen=True)
class SimilarityBreakdown:
    """Per-dimension similarity, each in [0, 1]."""
    geo: float
    area: float
    floor: float
    rooms: float
    building_age: float

    def to_dict(self) -> dict:
        return {
            "geo": self.geo,
            "area": self.area,
            "floor": self.floor,
            "rooms": self.rooms,
            "building_age": self.building_age,
        }


@dataclass(frozen=True)
class AdjustmentBreakdown:
    """
    Price adjustment components as fractions of the comparable's raw price.

    total_percent is the capped sum of the named components.
    """
    floor: float
    rooms: float
    area: float
    total_percent: float

    def to_dict(self) -> dict:
        return {
            "floor": self.floor,
            "rooms": self.rooms,
            "area": self.area,
            "total_percent": self.total_percent,
        }


@dataclass(frozen=True)
class ScoredComparable:
    """
    A candidate scored against one subject.

    Derived per valuation request; never cached across requests.
    """
    id: str
    score: float
    similarity: SimilarityBreakdown
    adjustment: AdjustmentBreakdown
    raw_price: float
    adjusted_price: int
    price_per_sqm: float
    explanation: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "id": self.id,
            "score": self.score,
            "similarity": self.similarity.to_dict(),
            "adjustment": self.adjustment.to_dict(),
            "raw_price": self.raw_price,
            "adjusted_price": self.adjusted_price,
            "price_per_sqm": self.price_per_sqm,
            "explanation": list(self.explanation),
        }


@dataclass(frozen=True)
class OutlierSplit:
    """Result of IQR outlier filtering. Order of the input is preserved in both lists."""
    kept: List[ScoredComparable]
    outliers: List[ScoredComparable]

    @property
    def outlier_ids(self) -> List[str]:
        return [c.id for c in self.outliers]


@dataclass(frozen=True)
class AdjustmentOverrideEvent:
    """Audit record of one manually overridden adjustment component."""
    comparable_id: str
    field: str
    old_value: float
    new_value: float
    reason: str
    appraiser_id: str
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "comparable_id": self.comparable_id,
            "field": self.field,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "reason": self.reason,
            "appraiser_id": self.appraiser_id,
            "timestamp": self.timestamp,
        }


@dataclass
class ValuationSummary:
    """
    Low / mid / high value range from scored comparables.

    Invariant: low <= mid <= high.
    comparables_used == 0 means insufficient data, never "value is zero".
    Comparables without a positive price are listed in unpriced_ids and
    never enter the mid value.
    """
    low: int
    mid: int
    high: int
    comparables_used: int
    outlier_ids: List[str] = field(default_factory=list)
    unpriced_ids: List[str] = field(default_factory=list)

    # Diagnostics (for the appraiser's audit trail)
    dispersion: float = 0.0
    spread: float = 0.0
    rationale: List[str] = field(default_factory=list)

    @property
    def is_sufficient(self) -> bool:
        return self.comparables_used > 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "low": self.low,
            "mid": self.mid,
            "high": self.high,
            "comparables_used": self.comparables_used,
            "outlier_ids": list(self.outlier_ids),
            "unpriced_ids": list(self.unpriced_ids),
            "dispersion": self.dispersion,
            "spread": self.spread,
            "is_sufficient": self.is_sufficient,
            "rationale": list(self.rationale),
        }
