"""
Ingestion Schema - Raw and Cleaned Transaction Records

RawTransactionRecord is what an external feed (government transaction feed,
listing marketplace, user entry) hands us. It is immutable once received.

CleanedTransactionRecord is the raw record plus everything derived during a
single ingestion run: normalised address, completeness, confidence and the
dedupe key.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Final, Mapping, Optional

from shuma.address import NormalizedAddress
from utils.coercion import pick, to_float, to_text


# =============================================================================
# Rejection Handling
# =============================================================================


REJECTION_CODES: Final[dict[str, str]] = {
    "INVALID_RECORD": "record must be a mapping",
    "MISSING_SOURCE": "missing source",
    "MISSING_SOURCE_RECORD_ID": "missing source_record_id",
    "MISSING_ADDRESS": "missing address",
    "MISSING_TRANSACTION_DATE": "missing transaction_date",
    "INVALID_PRICE": "invalid price: must be a finite number greater than 0",
}


@dataclass(frozen=True)
class IngestionError:
    """A row that failed validation. No partial record is ever emitted for it."""

    index: int
    code: str
    reason: str

    @classmethod
    def create(cls, index: int, code: str) -> "IngestionError":
        reason = REJECTION_CODES.get(code, f"Unknown code: {code}")
        return cls(index=index, code=code, reason=reason)

    def to_dict(self) -> dict:
        return {"index": self.index, "code": self.code, "reason": self.reason}


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class RawTransactionRecord:
    """
    A transaction as received from an external feed.

    Fields are stored as received (after lossless coercion); validation
    happens in the pipeline so a bad row becomes an error entry, not an
    exception.
    """

    source: Optional[str]
    source_record_id: Optional[str]
    address: Optional[str]
    transaction_date: Optional[str]
    price: Optional[float]

    city: Optional[str] = None
    area_sqm: Optional[float] = None
    floor_num: Optional[float] = None
    rooms: Optional[float] = None
    lat: Optional[float] = None
    lon: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawTransactionRecord":
        """
        Build a record from feed JSON.

        Accepts snake_case and the camelCase keys used by upstream feeds.
        Numerics that cannot be coerced become None.
        """
        transaction_date = pick(data, "transaction_date", "transactionDate")
        if isinstance(transaction_date, date):
            transaction_date = transaction_date.isoformat()

        return cls(
            source=to_text(data.get("source")),
            source_record_id=to_text(pick(data, "source_record_id", "sourceRecordId")),
            address=to_text(data.get("address")),
            transaction_date=to_text(transaction_date),
            price=to_float(pick(data, "price", "price_nis", "priceNis")),
            city=to_text(data.get("city")),
            area_sqm=to_float(pick(data, "area_sqm", "areaSqm", "area")),
            floor_num=to_float(pick(data, "floor_num", "floorNum", "floor")),
            rooms=to_float(data.get("rooms")),
            lat=to_float(data.get("lat")),
            lon=to_float(pick(data, "lon", "lng")),
        )

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "source_record_id": self.source_record_id,
            "address": self.address,
            "city": self.city,
            "transaction_date": self.transaction_date,
            "price": self.price,
            "area_sqm": self.area_sqm,
            "floor_num": self.floor_num,
            "rooms": self.rooms,
            "lat": self.lat,
            "lon": self.lon,
        }


@dataclass(frozen=True)
class CleanedTransactionRecord:
    """
    A validated record with its derived scores.

    Created once per ingestion run and routed either to the cleaned set or
    to the duplicates set (first occurrence of a dedupe key wins).
    """

    record: RawTransactionRecord
    normalized_address: NormalizedAddress
    completeness_score: float
    dedupe_key: str
    confidence_score: float

    @property
    def source_record_id(self) -> Optional[str]:
        return self.record.source_record_id

    @property
    def price(self) -> Optional[float]:
        return self.record.price

    def to_dict(self) -> dict:
        data = self.record.to_dict()
        data.update({
            "normalized_address": self.normalized_address.to_dict(),
            "completeness_score": self.completeness_score,
            "dedupe_key": self.dedupe_key,
            "confidence_score": self.confidence_score,
        })
        return data


# =============================================================================
# Run Result
# =============================================================================


@dataclass(frozen=True)
class IngestionStats:
    """Counts and average confidence for one run."""

    total: int
    clean_count: int
    duplicate_count: int
    error_count: int
    avg_confidence: float

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "clean_count": self.clean_count,
            "duplicate_count": self.duplicate_count,
            "error_count": self.error_count,
            "avg_confidence": self.avg_confidence,
        }


@dataclass
class IngestionResult:
    """
    Partitioned output of one ingestion run.

    Invariant: len(cleaned) + len(duplicates) + len(errors) == input rows.
    """

    cleaned: list[CleanedTransactionRecord] = field(default_factory=list)
    duplicates: list[CleanedTransactionRecord] = field(default_factory=list)
    errors: list[IngestionError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.cleaned) + len(self.duplicates) + len(self.errors)

    @property
    def stats(self) -> IngestionStats:
        avg_confidence = (
            sum(r.confidence_score for r in self.cleaned) / len(self.cleaned)
            if self.cleaned
            else 0.0
        )
        return IngestionStats(
            total=self.total,
            clean_count=len(self.cleaned),
            duplicate_count=len(self.duplicates),
            error_count=len(self.errors),
            avg_confidence=avg_confidence,
        )

    def to_dict(self) -> dict:
        return {
            "cleaned": [r.to_dict() for r in self.cleaned],
            "duplicates": [r.to_dict() for r in self.duplicates],
            "errors": [e.to_dict() for e in self.errors],
            "stats": self.stats.to_dict(),
        }
