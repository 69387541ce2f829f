"""
Tests for dedupe fingerprints.
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shuma.address import dedupe_fingerprint, geo_bucket, area_bucket


class TestBuckets:
    """Tests for geo and area bucketing."""

    def test_geo_bucket_rounds_to_thousandths(self):
        assert geo_bucket(32.0853) == "32085"
        assert geo_bucket(34.7818) == "34782"

    def test_area_bucket_nearest_five(self):
        assert area_bucket(98) == "100"
        assert area_bucket(92) == "90"
        assert area_bucket(92.5) == "95"

    @pytest.mark.parametrize("value", [None, "", "abc", float("nan")])
    def test_missing_values_use_placeholder(self, value):
        assert geo_bucket(value) == "na"
        assert area_bucket(value) == "na"


class TestDedupeFingerprint:
    """Tests for the five-part fingerprint."""

    def test_fingerprint_format(self):
        key = dedupe_fingerprint("תל אביב|ויצמן|12", "תל אביב", 32.0853, 34.7818, 98)
        assert key == "תל אביב|ויצמן|12|תל אביב|32085|34782|100"

    def test_same_cell_same_key(self):
        a = dedupe_fingerprint("חיפה|הרצל|5", "חיפה", 32.81001, 34.99001, 81)
        b = dedupe_fingerprint("חיפה|הרצל|5", "חיפה", 32.81004, 34.98998, 79)
        assert a == b

    def test_different_area_bucket_differs(self):
        a = dedupe_fingerprint("חיפה|הרצל|5", "חיפה", 32.81, 34.99, 80)
        b = dedupe_fingerprint("חיפה|הרצל|5", "חיפה", 32.81, 34.99, 120)
        assert a != b

    def test_missing_optionals(self):
        key = dedupe_fingerprint("חיפה|הרצל|5", None)
        assert key == "חיפה|הרצל|5||na|na|na"

    def test_deterministic(self):
        args = ("באר שבע|רגר|20", "באר שבע", 31.25, 34.79, 70)
        assert dedupe_fingerprint(*args) == dedupe_fingerprint(*args)
