"""Loader for the static definition tables shipped in payroll_extract/definitions/.

Both tables are read once per process and cached. Callers receive immutable
views (tuples of frozen models, frozensets), so nothing can mutate them at
runtime.
"""

import logging
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from .config import ConfigError
from .schemas import DeductionDefinition

logger = logging.getLogger(__name__)

DEFINITIONS_DIR = Path(__file__).parent.parent / "definitions"


class JurisdictionTable(BaseModel):
    """US state codes, names and the no-income-tax partition."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    states: Dict[str, str]
    no_income_tax: FrozenSet[str]
    ambiguous_abbreviations: FrozenSet[str] = frozenset()

    def is_known(self, code: Optional[str]) -> bool:
        return bool(code) and code.upper() in self.states


_deductions: Optional[Tuple[DeductionDefinition, ...]] = None
_jurisdictions: Optional[JurisdictionTable] = None


def _load_yaml(name: str) -> dict:
    path = DEFINITIONS_DIR / name
    try:
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot load definition table {path}: {e}") from e


def load_deduction_definitions() -> Tuple[DeductionDefinition, ...]:
    """Return the deduction definitions in table order."""
    global _deductions
    if _deductions is None:
        data = _load_yaml("deductions.yaml")
        try:
            _deductions = tuple(
                DeductionDefinition.model_validate(item)
                for item in data.get("deductions", [])
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid deductions.yaml: {e}") from e
        logger.debug(f"Loaded {len(_deductions)} deduction definitions")
    return _deductions


def load_jurisdictions() -> JurisdictionTable:
    """Return the jurisdiction table."""
    global _jurisdictions
    if _jurisdictions is None:
        data = _load_yaml("jurisdictions.yaml")
        try:
            _jurisdictions = JurisdictionTable.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid jurisdictions.yaml: {e}") from e
    return _jurisdictions


def get_definition(key: str) -> DeductionDefinition:
    """Look up a deduction definition by key.

    Raises:
        KeyError: If no definition has that key
    """
    for definition in load_deduction_definitions():
        if definition.key == key:
            return definition
    raise KeyError(key)


def jurisdiction_definitions(code: Optional[str] = None) -> List[DeductionDefinition]:
    """Jurisdiction-tagged definitions, optionally restricted to one state."""
    return [
        d for d in load_deduction_definitions()
        if d.jurisdiction and (code is None or d.jurisdiction == code)
    ]


def state_income_definitions() -> List[DeductionDefinition]:
    """Definitions flagged as a jurisdiction's income-tax line."""
    return [d for d in load_deduction_definitions() if d.state_income]
