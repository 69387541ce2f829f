"""
Manual Adjustment Overrides

An appraiser may replace individual adjustment components of a scored
comparable (e.g. a floor premium they judge differently). The total is
re-capped, the adjusted price recomputed, and every changed component is
returned as an audit event. The input comparable is never mutated.
"""

from dataclasses import replace
from datetime import datetime
from typing import Final, List, Mapping, Tuple

from .models import AdjustmentBreakdown, AdjustmentOverrideEvent, ScoredComparable
from .scoring import cap_adjustment
from utils.coercion import round_half_up, to_float


OVERRIDABLE_FIELDS: Final[Tuple[str, ...]] = ("floor", "rooms", "area")


def apply_adjustment_override(
    scored: ScoredComparable,
    patch: Mapping[str, float],
    appraiser_id: str,
    reason: str,
) -> Tuple[ScoredComparable, List[AdjustmentOverrideEvent]]:
    """
    Apply an appraiser's override to named adjustment components.

    Args:
        scored: Comparable as produced by the scorer
        patch: {component: new_fraction}, components from OVERRIDABLE_FIELDS
        appraiser_id: Who made the change
        reason: Why (required for the audit trail)

    Returns:
        Tuple of (updated comparable, audit events for changed fields)

    Raises:
        ValueError: Unknown component, non-numeric value, or missing
            appraiser id / reason
    """
    if not appraiser_id or not appraiser_id.strip():
        raise ValueError("appraiser_id is required")
    if not reason or not reason.strip():
        raise ValueError("reason is required")

    unknown = sorted(set(patch) - set(OVERRIDABLE_FIELDS))
    if unknown:
        raise ValueError(f"Cannot override adjustment fields: {', '.join(unknown)}")

    current = scored.adjustment.to_dict()
    updated = dict(current)
    timestamp = datetime.utcnow().isoformat()
    events = []

    for name, raw_value in patch.items():
        value = to_float(raw_value)
        if value is None:
            raise ValueError(f"Adjustment override for '{name}' must be a finite number")
        if value == current[name]:
            continue
        updated[name] = value
        events.append(AdjustmentOverrideEvent(
            comparable_id=scored.id,
            field=name,
            old_value=current[name],
            new_value=value,
            reason=reason.strip(),
            appraiser_id=appraiser_id.strip(),
            timestamp=timestamp,
        ))

    total = cap_adjustment(sum(updated[name] for name in OVERRIDABLE_FIELDS))
    adjustment = AdjustmentBreakdown(
        floor=updated["floor"],
        rooms=updated["rooms"],
        area=updated["area"],
        total_percent=total,
    )

    return (
        replace(
            scored,
            adjustment=adjustment,
            adjusted_price=round_half_up(scored.raw_price * (1 + total)),
        ),
        events,
    )
