"""Completeness predicates driving every escalation decision.

The same predicates are applied to records from every method, so a record
is judged identically whether it came from patterns, the language model or
the vision service.
"""

from typing import Optional

from .definitions import get_definition, state_income_definitions
from .jurisdiction import detect_jurisdiction, is_income_tax_exempt
from .schemas import PayrollRecord

FEDERAL_KEYS = ("federalIncome", "socialSecurity", "medicare")


def _has_number(record: PayrollRecord, key: str) -> bool:
    pair = record.statutory_deductions.get(key)
    return pair is not None and pair.this_period is not None


def is_federal_complete(record: PayrollRecord) -> bool:
    """Federal income, social security and medicare are all present."""
    return all(_has_number(record, key) for key in FEDERAL_KEYS)


def state_income_value(record: PayrollRecord) -> Optional[float]:
    """First state-income amount present on the record, in table order."""
    for definition in state_income_definitions():
        pair = record.deduction(definition)
        if pair is not None:
            return pair.this_period
    return None


def is_jurisdiction_complete(record: PayrollRecord) -> bool:
    """Exempt or unknown jurisdiction, or a state income line is present."""
    code = detect_jurisdiction(record)
    if code is None or is_income_tax_exempt(code):
        return True
    return state_income_value(record) is not None


def is_fully_complete(record: PayrollRecord) -> bool:
    return is_federal_complete(record) and is_jurisdiction_complete(record)


def missing_federal_keys(record: PayrollRecord) -> list:
    """Federal keys absent from the record, by display label."""
    return [get_definition(key).label for key in FEDERAL_KEYS if not _has_number(record, key)]
