"""Tests for OCR label correction."""

import pytest

from payroll_extract.sdk.normalize import MEDICARE_OCR_VARIANTS, normalize_text


class TestCorrections:
    """Known OCR garbles are rewritten to the canonical labels."""

    @pytest.mark.parametrize("variant", MEDICARE_OCR_VARIANTS)
    def test_medicare_variants(self, variant):
        assert normalize_text(f"{variant} 12.50 120.00") == "Medicare 12.50 120.00"

    def test_variant_case_insensitive(self):
        assert normalize_text("VADEARE 12.50") == "Medicare 12.50"

    def test_truncated_social_security(self):
        assert normalize_text("Social Securit 124.00") == "Social Security 124.00"

    def test_split_med_care(self):
        assert normalize_text("Med  Care 29.00") == "Medicare 29.00"

    def test_correct_labels_untouched(self):
        text = "Medicare 29.00 290.00\nSocial Security Tax 124.00"
        assert normalize_text(text) == text

    def test_variant_inside_word_untouched(self):
        assert normalize_text("Medicare Employee") == "Medicare Employee"

    def test_empty(self):
        assert normalize_text("") == ""
        assert normalize_text(None) == ""


class TestIdempotence:
    """normalize_text(normalize_text(t)) == normalize_text(t)."""

    @pytest.mark.parametrize("text", [
        "Vadeare 12.50",
        "Social Securit 124.00\nMed Care 29.00",
        "Social Security Securit",
        "medicarea medicare medicar",
        "Federal Income Tax 150.00 1,500.00",
    ])
    def test_idempotent(self, text):
        once = normalize_text(text)
        assert normalize_text(once) == once
