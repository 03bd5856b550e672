"""Tests for currency parsing and money-token scanning."""

import pytest

from payroll_extract.sdk.amounts import find_amounts, first_amount, parse_currency, split_lines, truncate


class TestParseCurrency:
    """Currency token parsing."""

    @pytest.mark.parametrize("token,expected", [
        ("45.00", 45.0),
        ("$1,234.56", 1234.56),
        ("(45.00)", -45.0),
        ("-12.5", -12.5),
        ("($1,000.00)", -1000.0),
        ("7", 7.0),
    ])
    def test_valid_tokens(self, token, expected):
        assert parse_currency(token) == expected

    def test_truncates_not_rounds(self):
        assert parse_currency("$1,234.567") == 1234.56
        assert parse_currency("0.999") == 0.99

    @pytest.mark.parametrize("token", ["", "   ", "abc", "$", None])
    def test_invalid_tokens(self, token):
        assert parse_currency(token) is None

    def test_truncate_float(self):
        assert truncate(2.999) == 2.99
        assert truncate(-2.999) == -2.99


class TestFindAmounts:
    """Money tokens ignore SSN, date and percentage digits."""

    def test_skips_ssn_date_and_percent(self):
        line = "SSN 123-45-6789 on 01/15/2024 paid 45.00 (3.5%)"
        assert find_amounts(line) == [45.0]

    def test_pair_in_order(self):
        assert find_amounts("Medicare 29.00 290.00") == [29.0, 290.0]

    def test_parenthesized_negative(self):
        assert find_amounts("Adjustment (50.00) 100.00") == [-50.0, 100.0]

    def test_first_amount(self):
        assert first_amount("Net Pay $1,619.00 YTD 20,000.00") == 1619.0
        assert first_amount("Net Pay") is None


def test_split_lines_drops_blanks():
    assert split_lines("  a \n\n b\n   \n") == ["a", "b"]
    assert split_lines("") == []
