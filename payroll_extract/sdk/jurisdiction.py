"""Filing-state detection for a payroll record.

Signals, strongest first:
1. The address: a state code followed by a ZIP, else the last state name or
   unambiguous abbreviation in the address.
2. A state reported by the vision service (detected_state).
3. Jurisdiction-tagged deduction keys already populated, WI and AZ before
   CA (CA keywords are the most generic and also catch unlabeled lines).

None means unknown; callers treat unknown permissively.
"""

import logging
import re
from typing import List, Optional, Tuple

from .definitions import JurisdictionTable, jurisdiction_definitions, load_jurisdictions
from .schemas import PayrollRecord

logger = logging.getLogger(__name__)

DEDUCTION_PRIORITY = ("WI", "AZ", "CA")

STATE_ZIP_RE = re.compile(r"\b([A-Z]{2})\s+\d{5}(?:-\d{4})?\b")


def _name_matches(address: str, table: JurisdictionTable) -> List[Tuple[int, int, str]]:
    """(end, length, code) for every state name or usable abbreviation."""
    hits = []
    for code, name in table.states.items():
        name_pattern = r"\b" + r"\s+".join(re.escape(part) for part in name.upper().split()) + r"\b"
        for match in re.finditer(name_pattern, address):
            hits.append((match.end(), match.end() - match.start(), code))

        if code in table.ambiguous_abbreviations:
            continue
        for match in re.finditer(r"\b" + code + r"\b", address):
            hits.append((match.end(), 2, code))
    return hits


def detect_from_address(address: Optional[str], table: Optional[JurisdictionTable] = None) -> Optional[str]:
    """State code named in a free-text address, or None."""
    if not address:
        return None
    table = table or load_jurisdictions()
    upper = address.upper()

    zip_codes = [m.group(1) for m in STATE_ZIP_RE.finditer(upper) if m.group(1) in table.states]
    if zip_codes:
        return zip_codes[-1]

    hits = _name_matches(upper, table)
    if not hits:
        return None
    # Last occurrence wins ("1 Washington Ave, Reno, Nevada"); a longer name
    # ending at the same place wins over the shorter one it contains.
    hits.sort()
    return hits[-1][2]


def detect_from_deductions(record: PayrollRecord) -> Optional[str]:
    """State implied by populated jurisdiction-tagged deductions."""
    populated = set()
    for definition in jurisdiction_definitions():
        if record.deduction(definition) is not None:
            populated.add(definition.jurisdiction)
    if not populated:
        return None

    for code in DEDUCTION_PRIORITY:
        if code in populated:
            return code
    return sorted(populated)[0]


def detect_jurisdiction(record: PayrollRecord, table: Optional[JurisdictionTable] = None) -> Optional[str]:
    """Detect the filing state of a record, or None if unknown."""
    table = table or load_jurisdictions()

    code = detect_from_address(record.employee_info.address, table)
    if code:
        return code

    if record.detected_state and table.is_known(record.detected_state):
        return record.detected_state.upper()

    return detect_from_deductions(record)


def is_income_tax_exempt(code: Optional[str], table: Optional[JurisdictionTable] = None) -> bool:
    """True for states without a personal income tax."""
    if not code:
        return False
    table = table or load_jurisdictions()
    return code.upper() in table.no_income_tax
