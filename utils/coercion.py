"""
Numeric and date coercion helpers.

Every helper here is total: bad input resolves to None (or the lower
clamp bound) instead of raising.
"""

import math
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Clamp value into [minimum, maximum]. NaN resolves to minimum."""
    if value is None or math.isnan(value):
        return minimum
    return max(minimum, min(maximum, value))


def to_float(value: Any) -> Optional[float]:
    """
    Coerce a raw value to a finite float.

    Booleans, blanks, unparsable strings, NaN and infinities all become None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def to_text(value: Any) -> Optional[str]:
    """Coerce to a stripped string; empty becomes None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def round_half_up(value: float) -> int:
    """Round .5 away from the lower integer (money rounding, not banker's)."""
    return int(math.floor(value + 0.5))


def parse_iso_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime into a naive UTC datetime.

    Accepts date/datetime objects and strings such as "2024-03-01",
    "2024-03-01T10:00:00" and "2024-03-01T10:00:00Z".
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_iso_date(value: Any) -> Optional[date]:
    """Parse an ISO-8601 string (or date/datetime) to a date."""
    parsed = parse_iso_datetime(value)
    return parsed.date() if parsed else None


def pick(data: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-None value among keys (snake_case and camelCase aliases)."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None
