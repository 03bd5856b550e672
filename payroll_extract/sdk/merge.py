"""Field-level back-fill of jurisdiction deductions from a second record."""

import logging
from typing import Iterable, Optional, Tuple

from .definitions import get_definition, jurisdiction_definitions
from .schemas import AmountPair, PayrollRecord

logger = logging.getLogger(__name__)


def _is_positive(pair: Optional[AmountPair]) -> bool:
    return pair is not None and pair.this_period is not None and pair.this_period > 0


def merge_records(
    primary: PayrollRecord,
    secondary: PayrollRecord,
    fields: Optional[Iterable[str]] = None,
) -> Tuple[PayrollRecord, bool]:
    """Copy `primary`, back-filling deduction keys from `secondary`.

    For each key (default: every jurisdiction-tagged deduction), a pair that
    primary lacks is copied whenever secondary has one. A pair primary holds
    is replaced only when it is not positive and secondary's is. A present
    positive value is never overwritten. Neither input is modified.

    Returns:
        (merged record, whether any field changed)
    """
    if fields is None:
        definitions = jurisdiction_definitions()
    else:
        definitions = [get_definition(key) for key in fields]

    buckets = {
        "statutory": dict(primary.statutory_deductions),
        "voluntary": dict(primary.voluntary_deductions),
    }
    changed = False

    for definition in definitions:
        target = buckets[definition.bucket]
        current = target.get(definition.key)
        if _is_positive(current):
            continue
        candidate = secondary.deduction(definition)
        if candidate is None:
            continue
        if current is None or _is_positive(candidate):
            target[definition.key] = candidate
            changed = True
            logger.debug(f"merge: back-filled {definition.key}={candidate.this_period}")

    if not changed:
        return primary, False

    merged = primary.model_copy(update={
        "statutory_deductions": buckets["statutory"],
        "voluntary_deductions": buckets["voluntary"],
    })
    return merged, True
