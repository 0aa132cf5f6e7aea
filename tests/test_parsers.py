"""
Tests for cell coercion, date normalization and variant keys.
"""

from datetime import date, datetime, timedelta

import pandas as pd
import pytest

from core.parsers import (
    DateNormalizer,
    VariantKeyNormalizer,
    cell_text,
    column_to_index,
    generate_variant_key,
    index_to_column,
    normalize_date,
)


class TestCellText:
    def test_blank_values_become_empty(self):
        assert cell_text(None) == ""
        assert cell_text(float("nan")) == ""
        assert cell_text(pd.NaT) == ""

    def test_integral_float_drops_decimal(self):
        assert cell_text(2024.0) == "2024"
        assert cell_text(2024.5) == "2024.5"

    def test_strips_whitespace(self):
        assert cell_text("  AMG Line ") == "AMG Line"


class TestColumnLetters:
    @pytest.mark.parametrize(
        "letters,index",
        [("A", 0), ("L", 11), ("S", 18), ("T", 19), ("Y", 24), ("Z", 25), ("AA", 26), ("AZ", 51)],
    )
    def test_letters_to_index_and_back(self, letters, index):
        assert column_to_index(letters) == index
        assert index_to_column(index) == letters

    def test_rejects_non_letters(self):
        with pytest.raises(ValueError):
            column_to_index("A1")


class TestDateNormalizer:
    """Delivery dates in every encoding seen in dealer files."""

    def test_serial_45000(self):
        assert normalize_date(45000) == "2023-03-14"
        assert normalize_date("45000") == "2023-03-14"
        assert normalize_date(45000.75) == "2023-03-14"

    def test_serials_59_and_60_differ_by_one_day(self):
        d59 = date.fromisoformat(normalize_date(59))
        d60 = date.fromisoformat(normalize_date(60))
        assert d60 - d59 == timedelta(days=1)

    def test_serial_one_is_anchor(self):
        assert normalize_date(1) == "1899-12-31"

    def test_out_of_range_numbers_are_empty(self):
        assert normalize_date("999999") == ""
        assert normalize_date(0) == ""
        assert normalize_date(-5) == ""

    def test_structured_dates(self):
        assert normalize_date(datetime(2024, 6, 1, 15, 30)) == "2024-06-01"
        assert normalize_date(date(2024, 6, 1)) == "2024-06-01"
        assert normalize_date(pd.Timestamp("2024-06-01")) == "2024-06-01"

    @pytest.mark.parametrize("value", [None, "", "   ", "undefined", "null", float("nan")])
    def test_empty_markers(self, value):
        assert normalize_date(value) == ""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("2024-06-01", "2024-06-01"),
            ("2024.6.1", "2024-06-01"),
            ("2024.06.15", "2024-06-15"),
            ("6/1/2024", "2024-06-01"),
            ("12/05/2024", "2024-12-05"),
            ("2024년 6월 1일", "2024-06-01"),
            ("입고 예정 2024년6월1일", "2024-06-01"),
            ("20240601", "2024-06-01"),
            ("June 1, 2024", "2024-06-01"),
        ],
    )
    def test_text_formats(self, text, expected):
        assert normalize_date(text) == expected

    def test_day_first_when_first_part_cannot_be_month(self):
        assert normalize_date("25/12/2024") == "2024-12-25"

    def test_unparseable_text_is_empty(self):
        assert normalize_date("미정") == ""
        assert normalize_date("not a date") == ""

    @pytest.mark.parametrize("text", ["12:00", "Monday", "3:45 PM", "오후 3시"])
    def test_text_without_year_and_month_is_empty(self, text):
        assert normalize_date(text) == ""

    def test_month_and_year_mean_the_first(self):
        assert normalize_date("June 2024") == "2024-06-01"
        assert normalize_date("Jun 2024") == "2024-06-01"

    def test_free_text_never_borrows_todays_date(self):
        today = date.today().isoformat()
        results = [normalize_date(t) for t in ("12:00", "Monday", "June 2024", "June 15, 2024")]
        assert today not in results
        assert results[3] == "2024-06-15"

    def test_results_are_memoized(self):
        normalizer = DateNormalizer()
        normalizer.normalize("2024.6.1")
        assert normalizer._cache["2024.6.1"] == "2024-06-01"


class TestVariantKeyNormalizer:
    """Differently spelled inputs for one variant must share a key."""

    def test_equivalent_spellings_share_a_key(self):
        assert generate_variant_key("Mercedes-AMG G 63", "Black", "  AMG Line ", "2024") == (
            generate_variant_key("G 63", "black", "amg line", 2024)
        )

    def test_float_year_matches_text_year(self):
        assert generate_variant_key("G 63", "", "", 2024.0) == generate_variant_key(
            "G 63", "", "", "2024"
        )

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Mercedes-AMG G 63", "g 63"),
            ("Mercedes-Maybach S 680", "s 680"),
            ("Mercedes-Benz E 300", "e 300"),
            ("Mercedes EQS 450+", "eqs 450+"),
            ("E 300 4MATIC", "e 300 4m"),
            ("CLE 200 Coupé", "cle 200 coupe"),
            ("CLE 200 coupe", "cle 200 coupe"),
            ("  C 200   Sedan ", "c 200 sedan"),
            ("GLC 300 Cabriolet", "glc 300 cabriolet"),
        ],
    )
    def test_normalize_model(self, raw, expected):
        assert VariantKeyNormalizer().normalize_model(raw) == expected

    def test_only_one_prefix_is_stripped(self):
        assert VariantKeyNormalizer().normalize_model("Mercedes-Benz Mercedes G 63") == "mercedes g 63"

    def test_prefix_needs_following_space(self):
        assert VariantKeyNormalizer().normalize_model("Mercedes-AMGGT") == "mercedes-amggt"

    def test_different_variants_differ(self):
        assert generate_variant_key("G 63", "Black", "", "2024") != generate_variant_key(
            "G 63", "White", "", "2024"
        )
        assert generate_variant_key("G 63", "", "", "2024") != generate_variant_key(
            "G 63", "", "", "2025"
        )

    def test_key_layout(self):
        assert generate_variant_key("G 63", "Black", "AMG Line", "2024") == "g 63_black_amg line_2024"
