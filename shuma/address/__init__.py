"""
Address normalisation and record fingerprinting.

Turns free-text Hebrew addresses into structured, canonical keys and derives
the deterministic dedupe fingerprint used by ingestion.
"""

from .normalization import (
    AddressNormalizer,
    NormalizedAddress,
    ParsedAddress,
    normalize_israeli_address,
    fuzzy_address_score,
)
from .fingerprint import (
    dedupe_fingerprint,
    geo_bucket,
    area_bucket,
    GEO_BUCKET_SCALE,
    AREA_BUCKET_SQM,
)

__all__ = [
    # Normalisation
    "AddressNormalizer",
    "NormalizedAddress",
    "ParsedAddress",
    "normalize_israeli_address",
    "fuzzy_address_score",
    # Fingerprints
    "dedupe_fingerprint",
    "geo_bucket",
    "area_bucket",
    "GEO_BUCKET_SCALE",
    "AREA_BUCKET_SQM",
]
