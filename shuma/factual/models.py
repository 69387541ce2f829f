"""
Fact models for the Factual Reliability Engine

Property, transaction and planning facts gathered from heterogeneous sources.
Provenance (SourceMeta) is a first-class attribute of every fact.

None of these types carries a valuation or price opinion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional

from utils.coercion import pick, to_float, to_text


class SourceCredibility(Enum):
    """Declared credibility class of a data source."""

    OFFICIAL = "official"
    REGISTRY = "registry"
    GOVERNMENT = "government"
    MUNICIPALITY = "municipality"
    VENDOR = "vendor"
    USER = "user"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "SourceCredibility":
        """Case-insensitive lookup; unrecognised values are UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        normalised = str(value).lower().strip()
        for member in cls:
            if member.value == normalised:
                return member
        return cls.UNKNOWN


@dataclass(frozen=True)
class SourceMeta:
    """Where a fact came from, how credible that source is, and when it was updated."""

    source: str
    credibility: SourceCredibility = SourceCredibility.UNKNOWN
    updated_at: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["SourceMeta"]:
        if not data:
            return None
        return cls(
            source=to_text(data.get("source")) or "",
            credibility=SourceCredibility.from_string(data.get("credibility")),
            updated_at=to_text(pick(data, "updated_at", "updatedAt")),
            notes=to_text(data.get("notes")),
        )

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "credibility": self.credibility.value,
            "updated_at": self.updated_at,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class FactAddress:
    """Address parts as reported by a source (not normalised)."""

    city: Optional[str] = None
    street: Optional[str] = None
    house_number: Optional[str] = None
    postal_code: Optional[str] = None
    neighborhood: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["FactAddress"]:
        if not data:
            return None
        return cls(
            city=to_text(data.get("city")),
            street=to_text(data.get("street")),
            house_number=to_text(pick(data, "house_number", "houseNumber")),
            postal_code=to_text(pick(data, "postal_code", "postalCode")),
            neighborhood=to_text(data.get("neighborhood")),
        )

    def to_dict(self) -> dict:
        return {
            "city": self.city,
            "street": self.street,
            "house_number": self.house_number,
            "postal_code": self.postal_code,
            "neighborhood": self.neighborhood,
        }


@dataclass(frozen=True)
class PropertyFact:
    """Physical facts about the subject property."""

    address: Optional[FactAddress] = None
    built_area: Optional[float] = None
    total_area: Optional[float] = None
    floor: Optional[float] = None
    total_floors: Optional[float] = None
    build_year: Optional[float] = None
    amenities: List[str] = field(default_factory=list)
    source: Optional[SourceMeta] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PropertyFact":
        return cls(
            address=FactAddress.from_dict(data.get("address")),
            built_area=to_float(pick(data, "built_area", "builtArea")),
            total_area=to_float(pick(data, "total_area", "totalArea")),
            floor=to_float(data.get("floor")),
            total_floors=to_float(pick(data, "total_floors", "totalFloors")),
            build_year=to_float(pick(data, "build_year", "buildYear")),
            amenities=[str(a) for a in data.get("amenities") or []],
            source=SourceMeta.from_dict(data.get("source")),
        )


@dataclass(frozen=True)
class TransactionFact:
    """A recorded sale as reported by a source."""

    id: str
    price: Optional[float]
    date: Optional[str]
    area: Optional[float] = None
    address: Optional[FactAddress] = None
    deal_nature: Optional[str] = None
    asset_type: Optional[str] = None
    source: Optional[SourceMeta] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TransactionFact":
        return cls(
            id=to_text(data.get("id")) or "",
            price=to_float(data.get("price")),
            date=to_text(data.get("date")),
            area=to_float(data.get("area")),
            address=FactAddress.from_dict(data.get("address")),
            deal_nature=to_text(pick(data, "deal_nature", "dealNature")),
            asset_type=to_text(pick(data, "asset_type", "assetType")),
            source=SourceMeta.from_dict(data.get("source")),
        )

    @property
    def price_per_sqm(self) -> Optional[float]:
        if self.price is None or not self.area or self.area <= 0:
            return None
        return self.price / self.area


@dataclass(frozen=True)
class PlanningFact:
    """A statutory plan record (e.g. a TABA document) as reported by a source."""

    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    land_use: Optional[str] = None
    rights_description: Optional[str] = None
    build_ratio: Optional[float] = None
    notes: Optional[str] = None
    source: Optional[SourceMeta] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlanningFact":
        return cls(
            plan_id=to_text(pick(data, "plan_id", "planId")),
            plan_name=to_text(pick(data, "plan_name", "planName")),
            land_use=to_text(pick(data, "land_use", "landUse")),
            rights_description=to_text(pick(data, "rights_description", "rightsDescription")),
            build_ratio=to_float(pick(data, "build_ratio", "buildRatio")),
            notes=to_text(data.get("notes")),
            source=SourceMeta.from_dict(data.get("source")),
        )


@dataclass(frozen=True)
class FactualDataInput:
    """Everything the engine is asked to assess. Every part is optional."""

    property: Optional[PropertyFact] = None
    transactions: Optional[List[TransactionFact]] = None
    planning: Optional[List[PlanningFact]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FactualDataInput":
        property_data = data.get("property")
        transactions = data.get("transactions")
        planning = data.get("planning")
        return cls(
            property=PropertyFact.from_dict(property_data) if property_data else None,
            transactions=(
                [TransactionFact.from_dict(t) for t in transactions if isinstance(t, Mapping)]
                if transactions is not None else None
            ),
            planning=(
                [PlanningFact.from_dict(p) for p in planning if isinstance(p, Mapping)]
                if planning is not None else None
            ),
        )


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class TransactionAssessment:
    """A transaction fact annotated with its reliability (0-100)."""

    id: str
    price: Optional[float]
    price_per_sqm: Optional[float]
    date: Optional[str]
    area: Optional[float]
    address: Optional[FactAddress]
    deal_nature: Optional[str]
    asset_type: Optional[str]
    source: Optional[SourceMeta]
    deviation_pct: Optional[float]
    reliability: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "price": self.price,
            "price_per_sqm": self.price_per_sqm,
            "date": self.date,
            "area": self.area,
            "address": self.address.to_dict() if self.address else None,
            "deal_nature": self.deal_nature,
            "asset_type": self.asset_type,
            "source": self.source.to_dict() if self.source else None,
            "deviation_pct": self.deviation_pct,
            "reliability": self.reliability,
        }


@dataclass(frozen=True)
class PlanningAssessment:
    """A planning fact annotated with its reliability (0-100)."""

    plan_id: Optional[str]
    plan_name: Optional[str]
    land_use: Optional[str]
    rights_description: Optional[str]
    build_ratio: Optional[float]
    source: Optional[SourceMeta]
    reliability: int

    def to_dict(self) -> dict:
        return {
            "plan_id": self.plan_id,
            "plan_name": self.plan_name,
            "land_use": self.land_use,
            "rights_description": self.rights_description,
            "build_ratio": self.build_ratio,
            "source": self.source.to_dict() if self.source else None,
            "reliability": self.reliability,
        }


@dataclass(frozen=True)
class FactualDataResult:
    """
    Reliability-annotated fact summary for report drafting.

    Invariant: contains grounded, sourced facts only. There is no price
    opinion or valuation field on this type.
    """

    property_summary: Optional[dict]
    transactions_used: List[TransactionAssessment]
    outliers_detected: List[TransactionAssessment]
    planning_used: List[PlanningAssessment]
    missing_data: List[str]
    data_reliability_score: int
    notes_for_appraiser: str

    def to_dict(self) -> dict:
        return {
            "property_summary": self.property_summary,
            "transactions_used": [t.to_dict() for t in self.transactions_used],
            "outliers_detected": [t.to_dict() for t in self.outliers_detected],
            "planning_used": [p.to_dict() for p in self.planning_used],
            "missing_data": list(self.missing_data),
            "data_reliability_score": self.data_reliability_score,
            "notes_for_appraiser": self.notes_for_appraiser,
        }
