"""Currency parsing shared by every extractor.

Amounts on a pay stub are truncated, never rounded, to cents. The money token
pattern refuses digits that belong to SSNs, dates, percentages and
identifiers (e.g. the "45" in 123-45-6789 or the "15" in 01/15/2024).
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import List, Optional

_NUMBER = r"\$?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{1,2})?"

# Money token: optional sign or parentheses, optional $, grouped digits, cents.
MONEY = (
    r"(?<![\w/.,$-])"
    r"(?:\(" + _NUMBER + r"\)|-?" + _NUMBER + r")"
    r"(?![\d/%]|-\d|\.\d|,\d)"
)
MONEY_RE = re.compile(MONEY)

CENT = Decimal("0.01")


def truncate(value: float) -> float:
    """Truncate toward zero at two decimals."""
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_DOWN))


def parse_currency(token: str) -> Optional[float]:
    """Parse a currency token.

    Parentheses or a leading minus mean negative; "$" and grouping commas
    are stripped; the value is truncated to two decimals.

    Returns:
        The amount, or None if the token is not a number
    """
    if token is None:
        return None
    cleaned = str(token).strip()
    if not cleaned:
        return None

    negative = (cleaned.startswith("(") and cleaned.endswith(")")) or cleaned.startswith("-")
    cleaned = re.sub(r"[$,()\s]", "", cleaned).lstrip("-")

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None

    amount = amount.quantize(CENT, rounding=ROUND_DOWN)
    return float(-amount if negative else amount)


def find_amounts(line: str) -> List[float]:
    """All money tokens on a line, in order."""
    amounts = []
    for match in MONEY_RE.finditer(line):
        value = parse_currency(match.group(0))
        if value is not None:
            amounts.append(value)
    return amounts


def first_amount(line: str) -> Optional[float]:
    """First money token on a line, or None."""
    match = MONEY_RE.search(line)
    if not match:
        return None
    return parse_currency(match.group(0))


def split_lines(text: str) -> List[str]:
    """Split text into stripped, non-empty lines."""
    if not text:
        return []
    return [line.strip() for line in text.splitlines() if line.strip()]
