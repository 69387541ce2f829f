"""
Dedupe Fingerprints

Deterministic identity keys for transaction records built from fuzzy inputs:
the normalised address, the city, a coarse geo cell and an area bucket.

Format: {normalized_address}|{city}|{lat_bucket}|{lon_bucket}|{area_bucket}
"""

from typing import Final, Optional

from utils.coercion import round_half_up, to_float


# =============================================================================
# Bucketing Constants
# =============================================================================

# Coordinates are bucketed to round(value x 1000): ~111 m cells at Israeli latitudes
GEO_BUCKET_SCALE: Final[int] = 1000

# Area is bucketed to the nearest multiple of this many square metres
AREA_BUCKET_SQM: Final[int] = 5

MISSING_BUCKET: Final[str] = "na"
FINGERPRINT_SEPARATOR: Final[str] = "|"


def geo_bucket(value: Optional[float]) -> str:
    """Bucket a latitude or longitude into a ~0.001 degree cell."""
    number = to_float(value)
    if number is None:
        return MISSING_BUCKET
    return str(round_half_up(number * GEO_BUCKET_SCALE))


def area_bucket(area_sqm: Optional[float]) -> str:
    """Bucket an area to the nearest AREA_BUCKET_SQM."""
    number = to_float(area_sqm)
    if number is None:
        return MISSING_BUCKET
    return str(round_half_up(number / AREA_BUCKET_SQM) * AREA_BUCKET_SQM)


def dedupe_fingerprint(
    normalized_address: Optional[str],
    city: Optional[str] = None,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    area_sqm: Optional[float] = None,
) -> str:
    """
    Build the dedupe key for one record.

    Pure and deterministic: identical inputs always give identical keys, and
    records in the same geo cell and area bucket collapse to one key even if
    their coordinates differ slightly.

    Args:
        normalized_address: NormalizedAddress.normalized
        city: Record city (or parsed city); None becomes ""
        lat: Latitude in degrees
        lon: Longitude in degrees
        area_sqm: Area in square metres

    Returns:
        Fingerprint string
    """
    return FINGERPRINT_SEPARATOR.join([
        (normalized_address or "").strip().lower(),
        (city or "").strip().lower(),
        geo_bucket(lat),
        geo_bucket(lon),
        area_bucket(area_sqm),
    ])
