"""OCR correction rules applied to page text before any field parsing."""

import re
from typing import List, Tuple

MEDICARE_OCR_VARIANTS = [
    "vadeare",
    "vedeare",
    "vedicare",
    "vedeicare",
    "medeare",
    "medeicare",
    "medecare",
    "medicaree",
    "medicar",
    "medicre",
    "medcar",
    "medicore",
    "medicarea",
    "medicarey",
    "medicarei",
    "meicare",
    "madicare",
]

# Applied in order. Every replacement is a fixed point of every rule, so the
# whole chain is idempotent.
CORRECTIONS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"\bSocial\s+Securit(?:y)?\b", re.IGNORECASE), "Social Security"),
    (
        re.compile(
            r"\b(?:" + "|".join(re.escape(v) for v in MEDICARE_OCR_VARIANTS) + r")\b",
            re.IGNORECASE,
        ),
        "Medicare",
    ),
    (re.compile(r"\bMed\s+Care\b", re.IGNORECASE), "Medicare"),
]


def normalize_text(text: str) -> str:
    """Correct OCR garbles of deduction labels.

    Pure and idempotent: normalize_text(normalize_text(t)) == normalize_text(t).
    """
    if not text:
        return text or ""
    for pattern, replacement in CORRECTIONS:
        text = pattern.sub(replacement, text)
    return text
