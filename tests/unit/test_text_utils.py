"""
Tests for product name normalization.
"""

import pytest

from utils.text_utils import normalize_product_name, clean_cell


class TestNormalizeProductName:

    @pytest.mark.parametrize("raw,expected", [
        ("Steel Rods", "steel rods"),
        ("  steel rods ", "steel rods"),
        ("STRASSE", "strasse"),
        ("Straße", "strasse"),
        ("Stéel", "stéel"),
        ("", ""),
        (None, ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_product_name(raw) == expected

    def test_inner_whitespace_kept(self):
        assert normalize_product_name("Steel  Rods") != normalize_product_name("Steel Rods")


class TestCleanCell:

    def test_trims(self):
        assert clean_cell("  kg ") == "kg"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_is_none(self, raw):
        assert clean_cell(raw) is None
