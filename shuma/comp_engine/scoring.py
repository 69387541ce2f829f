"""
Comparable Scorer

Multi-factor similarity between a subject and each candidate, plus a bounded
price adjustment that moves the candidate's price toward the subject's
features.

Similarity per dimension decays linearly to zero over a fixed maximum
difference. The composite score is a fixed weighted sum.
"""

from typing import Final, List, Optional

from .models import (
    AdjustmentBreakdown,
    ComparableCandidate,
    ScoredComparable,
    SimilarityBreakdown,
    SubjectPropertyFeatures,
)
from utils.coercion import clamp, round_half_up


# =============================================================================
# Configuration Constants
# =============================================================================

# Difference at which similarity reaches zero
MAX_DISTANCE_METERS: Final = 3000
MAX_AREA_DIFF_SQM: Final = 120
MAX_FLOOR_DIFF: Final = 15
MAX_ROOMS_DIFF: Final = 5
MAX_AGE_DIFF_YEARS: Final = 60

# Composite weights (sum to 1.0)
WEIGHT_GEO: Final = 0.30
WEIGHT_AREA: Final = 0.25
WEIGHT_FLOOR: Final = 0.15
WEIGHT_ROOMS: Final = 0.15
WEIGHT_AGE: Final = 0.15

# Price adjustment coefficients
ADJUSTMENT_PER_FLOOR: Final = 0.004
ADJUSTMENT_PER_ROOM: Final = 0.01
ADJUSTMENT_PER_100_SQM: Final = 0.02
MAX_TOTAL_ADJUSTMENT: Final = 0.20

# Explanation thresholds
EXPLAIN_CLOSE_DISTANCE_METERS: Final = 700
EXPLAIN_SIMILAR_AREA_SQM: Final = 15
EXPLAIN_SIMILAR_FLOORS: Final = 2
EXPLAIN_SIMILAR_ROOMS: Final = 0.5


def _diff(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None or b is None:
        return None
    return a - b


def linear_similarity(difference: Optional[float], max_difference: float) -> float:
    """1 at zero difference, 0 at max_difference or beyond. Unknown difference scores 0."""
    if difference is None:
        return 0.0
    return clamp(1 - abs(difference) / max_difference, 0.0, 1.0)


class ComparableScorer:
    """
    Scores and ranks candidate comparables for one subject.

    Stateless: every call recomputes from its inputs.
    """

    def score(
        self,
        subject: SubjectPropertyFeatures,
        candidate: ComparableCandidate,
    ) -> ScoredComparable:
        """
        Score one candidate against the subject.

        Args:
            subject: Subject feature vector
            candidate: Candidate feature vector with raw price

        Returns:
            ScoredComparable with composite score, breakdowns and adjusted price
        """
        similarity = self.similarity(subject, candidate)
        composite = (
            WEIGHT_GEO * similarity.geo
            + WEIGHT_AREA * similarity.area
            + WEIGHT_FLOOR * similarity.floor
            + WEIGHT_ROOMS * similarity.rooms
            + WEIGHT_AGE * similarity.building_age
        )
        score = clamp(composite, 0.0, 1.0)

        adjustment = self.adjustment(subject, candidate)
        raw_price = candidate.price or 0.0
        adjusted_price = round_half_up(raw_price * (1 + adjustment.total_percent))

        area = candidate.area_sqm
        price_per_sqm = raw_price / area if area is not None and area > 0 else 0.0

        return ScoredComparable(
            id=candidate.id,
            score=score,
            similarity=similarity,
            adjustment=adjustment,
            raw_price=raw_price,
            adjusted_price=adjusted_price,
            price_per_sqm=price_per_sqm,
            explanation=self._explain(subject, candidate, score),
        )

    def similarity(
        self,
        subject: SubjectPropertyFeatures,
        candidate: ComparableCandidate,
    ) -> SimilarityBreakdown:
        """Per-dimension similarity with linear decay."""
        return SimilarityBreakdown(
            geo=linear_similarity(candidate.distance_meters, MAX_DISTANCE_METERS),
            area=linear_similarity(_diff(subject.area_sqm, candidate.area_sqm), MAX_AREA_DIFF_SQM),
            floor=linear_similarity(_diff(subject.floor_num, candidate.floor_num), MAX_FLOOR_DIFF),
            rooms=linear_similarity(_diff(subject.rooms, candidate.rooms), MAX_ROOMS_DIFF),
            building_age=linear_similarity(
                _diff(subject.building_age_years, candidate.building_age_years),
                MAX_AGE_DIFF_YEARS,
            ),
        )

    def adjustment(
        self,
        subject: SubjectPropertyFeatures,
        candidate: ComparableCandidate,
    ) -> AdjustmentBreakdown:
        """
        Price adjustment toward the subject.

        A higher floor, more rooms or more area on the subject raises the
        comparable's price. The total is capped at +/-20%.
        """
        floor_diff = _diff(subject.floor_num, candidate.floor_num) or 0.0
        rooms_diff = _diff(subject.rooms, candidate.rooms) or 0.0
        area_diff = _diff(subject.area_sqm, candidate.area_sqm) or 0.0

        floor = ADJUSTMENT_PER_FLOOR * floor_diff
        rooms = ADJUSTMENT_PER_ROOM * rooms_diff
        area = ADJUSTMENT_PER_100_SQM * area_diff / 100

        return AdjustmentBreakdown(
            floor=floor,
            rooms=rooms,
            area=area,
            total_percent=cap_adjustment(floor + rooms + area),
        )

    def rank(
        self,
        subject: SubjectPropertyFeatures,
        pool: List[ComparableCandidate],
        top_k: int,
    ) -> List[ScoredComparable]:
        """
        Score every candidate and return the top_k by descending score.

        Ties keep the order of the input pool. top_k below 1 is treated as 1.
        """
        scored = [self.score(subject, candidate) for candidate in pool]
        # sorted() is stable with reverse=True, so equal scores keep pool order
        ranked = sorted(scored, key=lambda s: s.score, reverse=True)
        return ranked[:max(1, top_k)]

    @staticmethod
    def _explain(
        subject: SubjectPropertyFeatures,
        candidate: ComparableCandidate,
        score: float,
    ) -> List[str]:
        reasons = []
        if candidate.distance_meters is not None and candidate.distance_meters <= EXPLAIN_CLOSE_DISTANCE_METERS:
            reasons.append("Very close geo-location")

        area_diff = _diff(subject.area_sqm, candidate.area_sqm)
        if area_diff is not None and abs(area_diff) <= EXPLAIN_SIMILAR_AREA_SQM:
            reasons.append("Similar built area")

        floor_diff = _diff(subject.floor_num, candidate.floor_num)
        if floor_diff is not None and abs(floor_diff) <= EXPLAIN_SIMILAR_FLOORS:
            reasons.append("Similar floor level")

        rooms_diff = _diff(subject.rooms, candidate.rooms)
        if rooms_diff is not None and abs(rooms_diff) <= EXPLAIN_SIMILAR_ROOMS:
            reasons.append("Similar room count")

        reasons.append(f"Similarity score={score * 100:.1f}%")
        return reasons


def cap_adjustment(total: float) -> float:
    """Cap a total adjustment fraction at +/-MAX_TOTAL_ADJUSTMENT."""
    return clamp(total, -MAX_TOTAL_ADJUSTMENT, MAX_TOTAL_ADJUSTMENT)


def score_comparable(
    subject: SubjectPropertyFeatures,
    candidate: ComparableCandidate,
) -> ScoredComparable:
    """Score one candidate against the subject."""
    return ComparableScorer().score(subject, candidate)


def rank_comparables(
    subject: SubjectPropertyFeatures,
    pool: List[ComparableCandidate],
    top_k: int,
) -> List[ScoredComparable]:
    """Score, sort (stable, descending) and truncate to top_k (minimum 1)."""
    return ComparableScorer().rank(subject, pool, top_k)
