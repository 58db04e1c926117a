"""
Tests for display-name normalization.
"""
import pytest

from supplement_finder.core.normalizer import flag_label, humanize_column, prettify_key


class TestPrettifyKey:
    """Tests for prettify_key()."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("vitamin_b12", "Vitamin B12"),
            ("coq10", "CoQ10"),
            ("omega_3_fatty_acids", "Omega 3 Fatty Acids"),
            ("vitamin_d_3", "Vitamin D3"),
            ("vitamin_k2", "Vitamin K2"),
            ("methyl_b12", "Methyl B12"),
            ("lions_mane_and_bacopa", "Lions Mane and Bacopa"),
            ("coq_10_ubiquinol", "CoQ10 Ubiquinol"),
            ("magnesium__glycinate ", "Magnesium Glycinate"),
        ],
    )
    def test_known_keys(self, raw, expected):
        """Test canonical display forms of typical keys."""
        assert prettify_key(raw) == expected

    def test_d_and_k_take_single_digit_only(self):
        """Test that D/K canonicalization stops at one digit while B does not."""
        assert prettify_key("vitamin_b_12") == "Vitamin B12"
        assert prettify_key("vitamin_d_25") == "Vitamin D 25"

    def test_rest_of_word_case_is_kept(self):
        """Test that only the first letter of each word is changed."""
        assert prettify_key("l-theanine_PLUS") == "L-theanine PLUS"

    @pytest.mark.parametrize("raw", ["", "   ", "___", None])
    def test_empty_input(self, raw):
        """Test that empty-ish input gives an empty string."""
        assert prettify_key(raw) == ""

    @pytest.mark.parametrize(
        "raw",
        [
            "vitamin_b12",
            "Vitamin B 6",
            "coq 10",
            "omega_3_fatty_acids",
            "ashwagandha AND rhodiola",
            "vitamin_d_25",
            "b1_b2_b3",
            "  zinc  ",
            "",
        ],
    )
    def test_idempotent(self, raw):
        """Test that prettifying twice equals prettifying once."""
        once = prettify_key(raw)
        assert prettify_key(once) == once


class TestColumnLabels:
    """Tests for humanize_column() and flag_label()."""

    def test_humanize_column(self):
        """Test that detail column names become title-cased labels."""
        assert humanize_column("level_of_evidence") == "Level Of Evidence"
        assert humanize_column("why_top_choice") == "Why Top Choice"

    def test_flag_label(self):
        """Test that flag columns become badge text."""
        assert flag_label("sleep_flag") == "Sleep"
        assert flag_label("anti_inflammatory_flag") == "Anti inflammatory"
