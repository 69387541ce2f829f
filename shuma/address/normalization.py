"""
Israeli Address Normalisation

Parses free-text Hebrew addresses into structured parts and a canonical
"city|street|house_number" key, and scores fuzzy similarity between two
addresses.

Pipeline:
1. Expand abbreviations (ordered substitution table)
2. Strip quote marks and bidi control characters, collapse whitespace
3. Extract entrance / apartment from the expanded text
4. Strip sub-unit tokens (apartment, floor, entrance) so they never reach
   the street field
5. Parse house number, city and street
6. Resolve street aliases to a canonical spelling

Unmatched fields resolve to None. Nothing here raises on bad input.
"""

import re
from dataclasses import dataclass
from typing import Final, List, Optional, Pattern, Tuple

from rapidfuzz.distance import Levenshtein

from utils.coercion import clamp


# =============================================================================
# Lookup Tables
# =============================================================================

# Applied in order. A prefix abbreviation only matches as a whole token
# ("רח'" / "רח." / "רח ") so that words like "רחוב" or "רחובות" are untouched.
ABBREVIATIONS: Final[List[Tuple[Pattern[str], str]]] = [
    (re.compile(r"\bרח(?:['׳.]|\b)\s*"), "רחוב "),
    (re.compile(r"\bשד(?:['׳.]|\b)\s*"), "שדרות "),
    (re.compile(r"\bככר\b"), "כיכר"),
    (re.compile(r"\bת[\"״']?א\b"), "תל אביב"),
    (re.compile(r"\bפ[\"״]ת\b"), "פתח תקווה"),
    (re.compile(r"\bב[\"״]ש\b"), "באר שבע"),
]

# Sub-unit tokens removed from the street-bearing text
SUB_UNIT_TOKENS: Final[List[Pattern[str]]] = [
    re.compile(r"\bמס\.?\s*דירה\s*\d+[א-ת]?"),
    re.compile(r"\bדירה\s*\d+[א-ת]?"),
    re.compile(r"\bקומה\s*\d+[א-ת]?"),
    re.compile(r"\bכניסה\s*[א-ת\d]+"),
]

QUOTE_CHARS: Final = re.compile(r"[\"'׳״`]")
BIDI_CONTROL_CHARS: Final = re.compile("[\u200e\u200f\u202a-\u202e\u2066-\u2069]")
WHITESPACE: Final = re.compile(r"\s+")

HOUSE_NUMBER_PATTERN: Final = re.compile(r"(?<!\d)(\d{1,5}[א-תA-Za-z]?)(?![\dא-תA-Za-z])")
ENTRANCE_PATTERN: Final = re.compile(r"כניסה\s*([א-ת\d]+)")
APARTMENT_PATTERN: Final = re.compile(r"(?:דירה|דיר)\s*(\d+[א-ת]?)")
STREET_PREFIX_PATTERN: Final = re.compile(r"^(?:רחוב|שדרות)\s+")

# Longer names first so "תל אביב-יפו" wins over "תל אביב"
KNOWN_CITIES: Final[Tuple[str, ...]] = (
    "תל אביב-יפו",
    "תל אביב",
    "ירושלים",
    "חיפה",
    "ראשון לציון",
    "פתח תקווה",
    "נתניה",
    "באר שבע",
    "רמת גן",
    "חולון",
    "בני ברק",
    "אשדוד",
    "הרצליה",
    "רחובות",
)

STREET_ALIASES: Final[dict[str, Tuple[str, ...]]] = {
    "ויצמן": ("וייצמן", "ויצמן"),
    "הרצל": ("הרצל", "הרצל׳", "הרצל'"),
    "בן גוריון": ("בן-גוריון", "בן גוריון", "בןגוריון"),
    "רוטשילד": ("רוטשילד", "רוטשילד'", "רוטשלד"),
    "זבוטינסקי": ("זבוטינסקי", "ז'בוטינסקי", "ז׳בוטינסקי", "זאבוטינסקי"),
}

# Address confidence weights
CONFIDENCE_CITY: Final = 0.35
CONFIDENCE_STREET: Final = 0.35
CONFIDENCE_HOUSE_NUMBER: Final = 0.2
CONFIDENCE_LENGTH_BONUS: Final = 0.05
CONFIDENCE_KEY_BONUS: Final = 0.05
MIN_CLEANED_LENGTH_FOR_BONUS: Final = 10

# Fuzzy score blend
FUZZY_LEVENSHTEIN_WEIGHT: Final = 0.6
FUZZY_TRIGRAM_WEIGHT: Final = 0.4

KEY_SEPARATOR: Final = "|"


@dataclass(frozen=True)
class ParsedAddress:
    """Structured parts of an address. Any part may be None."""
    city: Optional[str] = None
    street: Optional[str] = None
    house_number: Optional[str] = None
    entrance: Optional[str] = None
    apartment: Optional[str] = None


@dataclass(frozen=True)
class NormalizedAddress:
    """
    Derived view of a raw address string.

    Stateless and recomputed on demand; never persisted as authoritative.
    """
    raw: str
    cleaned: str
    normalized: str
    parts: ParsedAddress
    canonical_street: Optional[str]
    confidence: float

    @property
    def city(self) -> Optional[str]:
        return self.parts.city

    @property
    def street(self) -> Optional[str]:
        return self.parts.street

    @property
    def house_number(self) -> Optional[str]:
        return self.parts.house_number

    @property
    def entrance(self) -> Optional[str]:
        return self.parts.entrance

    @property
    def apartment(self) -> Optional[str]:
        return self.parts.apartment

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "raw": self.raw,
            "cleaned": self.cleaned,
            "normalized": self.normalized,
            "city": self.city,
            "street": self.street,
            "house_number": self.house_number,
            "entrance": self.entrance,
            "apartment": self.apartment,
            "canonical_street": self.canonical_street,
            "confidence": self.confidence,
        }


class AddressNormalizer:
    """
    Canonicalises Israeli street addresses.

    All methods are pure; an instance holds only the immutable lookup tables.
    """

    def __init__(
        self,
        known_cities: Tuple[str, ...] = KNOWN_CITIES,
        street_aliases: Optional[dict[str, Tuple[str, ...]]] = None,
    ):
        self._known_cities = known_cities
        self._street_aliases = street_aliases if street_aliases is not None else STREET_ALIASES

    def normalize(self, raw: Optional[str]) -> NormalizedAddress:
        """
        Normalise a free-text address.

        Args:
            raw: Address as typed or received from a feed

        Returns:
            NormalizedAddress (empty parts and zero confidence for blank input)
        """
        original = str(raw or "").strip()

        expanded = original
        for pattern, replacement in ABBREVIATIONS:
            expanded = pattern.sub(replacement, expanded)
        expanded = self._strip_noise(expanded)

        cleaned = expanded
        for token in SUB_UNIT_TOKENS:
            cleaned = token.sub(" ", cleaned)
        cleaned = WHITESPACE.sub(" ", cleaned).strip()

        parts = self.parse_parts(cleaned, unit_source=expanded)
        canonical_street = self.canonicalize_street(parts.street)

        normalized = KEY_SEPARATOR.join(
            part for part in (parts.city, canonical_street, parts.house_number) if part
        ).lower()

        confidence = self._estimate_confidence(parts, cleaned, normalized)

        return NormalizedAddress(
            raw=original,
            cleaned=cleaned,
            normalized=normalized,
            parts=parts,
            canonical_street=canonical_street,
            confidence=confidence,
        )

    def parse_parts(self, text: str, unit_source: Optional[str] = None) -> ParsedAddress:
        """
        Split cleaned address text into city, street and house number.

        Entrance and apartment are read from unit_source (the text before
        sub-unit tokens were stripped), falling back to text.
        """
        text = (text or "").strip()
        unit_text = unit_source if unit_source is not None else text

        house_match = HOUSE_NUMBER_PATTERN.search(text)
        house_number = house_match.group(1) if house_match else None

        city = self.extract_city(text)

        street = text
        if city:
            street = re.sub(rf"\b{re.escape(city)}\b", " ", street)
        if house_number:
            street = street.replace(house_number, " ", 1)
        street = WHITESPACE.sub(" ", street.replace(",", " ")).strip(" -")
        street = STREET_PREFIX_PATTERN.sub("", street).strip()

        entrance_match = ENTRANCE_PATTERN.search(unit_text)
        apartment_match = APARTMENT_PATTERN.search(unit_text)

        return ParsedAddress(
            city=city,
            street=street or None,
            house_number=house_number,
            entrance=entrance_match.group(1) if entrance_match else None,
            apartment=apartment_match.group(1) if apartment_match else None,
        )

    def extract_city(self, text: str) -> Optional[str]:
        """Return the first known city contained in text."""
        for city in self._known_cities:
            if city in text:
                return city
        return None

    def canonicalize_street(self, street: Optional[str]) -> Optional[str]:
        """Resolve a street spelling to its canonical alias, or return it unchanged."""
        if not street:
            return None
        key = WHITESPACE.sub(" ", street.strip()).lower()
        for canonical, aliases in self._street_aliases.items():
            if any(key == alias.lower() for alias in aliases):
                return canonical
        return street

    def fuzzy_score(self, a: Optional[str], b: Optional[str]) -> float:
        """
        Similarity of two raw addresses in [0, 1].

        0.6 x (1 - normalised Levenshtein) + 0.4 x trigram Dice coefficient,
        computed on the normalised keys. Empty keys score 0.
        """
        x = self.normalize(a).normalized
        y = self.normalize(b).normalized
        if not x or not y:
            return 0.0

        lev_score = Levenshtein.normalized_similarity(x, y)
        tri_score = trigram_dice(x, y)

        return clamp(
            FUZZY_LEVENSHTEIN_WEIGHT * lev_score + FUZZY_TRIGRAM_WEIGHT * tri_score,
            0.0,
            1.0,
        )

    @staticmethod
    def _strip_noise(text: str) -> str:
        text = QUOTE_CHARS.sub("", text)
        text = BIDI_CONTROL_CHARS.sub("", text)
        return WHITESPACE.sub(" ", text).strip()

    @staticmethod
    def _estimate_confidence(parts: ParsedAddress, cleaned: str, normalized: str) -> float:
        score = 0.0
        if parts.city:
            score += CONFIDENCE_CITY
        if parts.street:
            score += CONFIDENCE_STREET
        if parts.house_number:
            score += CONFIDENCE_HOUSE_NUMBER
        if len(cleaned) >= MIN_CLEANED_LENGTH_FOR_BONUS:
            score += CONFIDENCE_LENGTH_BONUS
        if KEY_SEPARATOR in normalized:
            score += CONFIDENCE_KEY_BONUS
        return clamp(score, 0.0, 1.0)


# =============================================================================
# String Similarity
# =============================================================================


def trigrams(text: str) -> set[str]:
    """Character trigrams of text padded with two spaces on each side."""
    padded = f"  {text}  "
    return {padded[i:i + 3] for i in range(len(padded) - 2)}


def trigram_dice(a: str, b: str) -> float:
    """Dice coefficient over padded character trigrams."""
    set_a = trigrams(a)
    set_b = trigrams(b)
    if not set_a or not set_b:
        return 0.0
    return 2 * len(set_a & set_b) / (len(set_a) + len(set_b))


# =============================================================================
# Module-level API
# =============================================================================


def normalize_israeli_address(raw: Optional[str]) -> NormalizedAddress:
    """Normalise a raw Hebrew address string."""
    return AddressNormalizer().normalize(raw)


def fuzzy_address_score(a: Optional[str], b: Optional[str]) -> float:
    """Fuzzy similarity of two raw addresses in [0, 1]."""
    return AddressNormalizer().fuzzy_score(a, b)
