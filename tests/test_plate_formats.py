"""
Tests for Plate Format Table

Tests canonical formatting, pattern order and table extension.
"""

import pytest

from platecam.plates.formats import (
    PlatePattern,
    PatternTable,
    CanonicalPlate,
    INDIA_PATTERNS,
    NO_MATCH,
    format_plate,
    is_valid_plate,
)


class TestIndiaFormats:
    """Test the default Indian pattern table"""

    def test_standard_plate(self):
        """Test 2 letters + 2 digits + series + 4 digits"""
        plate = format_plate("HR26AB1234")
        assert isinstance(plate, CanonicalPlate)
        assert plate.text == "HR 26 AB 1234"
        assert plate.pattern == "standard"
        assert plate.segments == {
            "state": "HR",
            "district": "26",
            "series": "AB",
            "number": "1234",
        }

    def test_single_letter_series(self):
        """Test 1-letter series"""
        assert format_plate("DL03C1234").text == "DL 03 C 1234"

    def test_legacy_plate(self):
        """Test legacy form splits state, district, number"""
        plate = format_plate("HR261234")
        assert plate.text == "HR 26 1234"
        assert plate.pattern == "legacy"
        assert format_plate("HR26123456").text == "HR 26 123456"
        assert format_plate("HR26123") is NO_MATCH

    def test_country_prefixed(self):
        """Test IND prefix, including the I->1 corrected form"""
        assert format_plate("INDHR26AB1234").text == "IND HR 26 AB 1234"
        plate = format_plate("1NDHR26AB1234")
        assert plate.text == "IND HR 26 AB 1234"
        assert plate.pattern == "country_prefixed"
        assert plate.segments["country"] == "IND"

    def test_bharat_series(self):
        """Test BH series"""
        plate = format_plate("22BH1234AA")
        assert plate.text == "22 BH 1234 AA"
        assert plate.pattern == "bharat_series"

    def test_special_plate(self):
        """Test 3 letters + 4 digits"""
        plate = format_plate("DLA1234")
        assert plate.text == "DLA 1234"
        assert plate.pattern == "special"

    def test_spaces_ignored(self):
        """Test whitespace-preserving input formats the same"""
        assert format_plate("HR 26 AB 1234").text == "HR 26 AB 1234"
        assert format_plate("HR 26\tAB  1234").text == "HR 26 AB 1234"

    def test_no_match(self):
        """Test text that fits no pattern"""
        assert format_plate("ZZZZZZZZ") is NO_MATCH
        assert format_plate("HR26AB12345") is NO_MATCH
        assert not is_valid_plate("ZZZZZZZZ")
        assert is_valid_plate("HR26AB1234")

    def test_invalid_input_never_raises(self):
        """Test malformed input returns NO_MATCH"""
        assert format_plate("") is NO_MATCH
        assert format_plate(None) is NO_MATCH
        assert format_plate(1234) is NO_MATCH
        assert format_plate("hr26ab1234") is NO_MATCH  # not normalized
        assert format_plate("HR٢٦AB١٢٣٤") is NO_MATCH  # non-ASCII digits

    def test_deterministic(self):
        """Test same input always picks the same pattern"""
        results = {format_plate("HR26AB1234").pattern for _ in range(20)}
        assert results == {"standard"}


class TestNoMatchSentinel:
    """Test NO_MATCH behaviour"""

    def test_falsy_singleton(self):
        """Test sentinel is falsy and unique"""
        assert not NO_MATCH
        assert format_plate("ZZZZ") is format_plate("1234")
        assert repr(NO_MATCH) == "NO_MATCH"


class TestPatternTable:
    """Test pattern tables as data"""

    def test_default_order(self):
        """Test most specific patterns come first"""
        assert INDIA_PATTERNS.names == [
            "country_prefixed",
            "standard",
            "bharat_series",
            "legacy",
            "special",
        ]

    def test_first_match_wins(self):
        """Test evaluation stops at the first matching pattern"""
        loose = PlatePattern(name="loose", regex=r'([A-Z0-9]+)', segments=("all",))
        table = INDIA_PATTERNS.extended(loose, before="standard")

        plate = format_plate("HR26AB1234", table)
        assert plate.pattern == "loose"
        assert plate.text == "HR26AB1234"

        # Appended at the end, the loose pattern only catches leftovers
        table = INDIA_PATTERNS.extended(loose)
        assert format_plate("HR26AB1234", table).pattern == "standard"
        assert format_plate("ZZZZZZZZ", table).pattern == "loose"

    def test_extended_returns_new_table(self):
        """Test extension leaves the original table unchanged"""
        extra = PlatePattern(name="temporary", regex=r'T([0-9]{4})', segments=("number",), literals={"prefix": "T"})
        table = INDIA_PATTERNS.extended(extra)

        assert len(table) == len(INDIA_PATTERNS) + 1
        assert "temporary" not in INDIA_PATTERNS.names
        assert format_plate("T1234", table).text == "T 1234"

    def test_without(self):
        """Test removing a pattern"""
        table = INDIA_PATTERNS.without("legacy")
        assert format_plate("HR261234", table) is NO_MATCH

    def test_group_count_checked(self):
        """Test segment names must match capture groups"""
        with pytest.raises(ValueError):
            PlatePattern(name="bad", regex=r'([A-Z]{2})([0-9]{2})', segments=("state",))

    def test_duplicate_names_rejected(self):
        """Test pattern names are unique within a table"""
        pattern = PlatePattern(name="dup", regex=r'([A-Z]+)', segments=("x",))
        with pytest.raises(ValueError):
            PatternTable([pattern, pattern])
