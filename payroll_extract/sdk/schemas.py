"""Pydantic schemas for extracted payroll data.

Records produced by the extraction engine are frozen: once a page result is
returned it is never mutated. Transformations (hybrid merge, page-1 pay
period replication) build new instances with model_copy(update=...).

JSON aliases use the camelCase names found in language-model and vision
responses (thisPeriod, yearToDate, employeeInfo, ...).
"""

import re
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Provenance
# =============================================================================


class ExtractionMethod(str, Enum):
    """Which extraction method produced the winning record for a page."""

    REGEX = "regex"
    LLM = "llm"
    VISION = "vision"
    HYBRID = "hybrid"


DeductionBucket = Literal["statutory", "voluntary"]


# =============================================================================
# Static configuration
# =============================================================================


class DeductionDefinition(BaseModel):
    """One deduction line a pay stub may carry.

    Loaded from definitions/deductions.yaml. The keywords drive line-window
    scanning; the label patterns drive strict/relaxed regex matching.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    key: str = Field(..., description="Stable identity (e.g., 'medicare')")
    label: str = Field(..., description="Display label, used as export column header")
    bucket: DeductionBucket = Field(..., description="Target deduction bucket")
    keywords: tuple[str, ...] = Field(default=(), description="Lower-case phrases for line matching")
    labels: tuple[str, ...] = Field(default=(), description="Regex fragments matching the printed label")
    exclude: tuple[str, ...] = Field(default=(), description="Lines containing these are skipped by window scans")
    jurisdiction: Optional[str] = Field(default=None, description="State code for state-specific lines")
    state_income: bool = Field(default=False, description="Line is the jurisdiction's income tax")
    aggressive: bool = Field(default=False, description="Enable the forward ±3-line range scan")

    @field_validator("labels")
    @classmethod
    def check_labels(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"label pattern {pattern!r}: {e}") from e
        return value


# =============================================================================
# Extracted values
# =============================================================================


class AmountPair(BaseModel):
    """Current-period and year-to-date amounts for one stub line."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    this_period: float = Field(..., alias="thisPeriod")
    year_to_date: Optional[float] = Field(default=None, alias="yearToDate")


class PayPeriod(BaseModel):
    """Pay period dates as printed on the stub."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    start: str = ""
    end: str = ""


class EmployeeInfo(BaseModel):
    """Identity and summary fields. Every field is optional."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: Optional[str] = None
    ssn: Optional[str] = None
    employee_id: Optional[str] = Field(default=None, alias="employeeId")
    account_number: Optional[str] = Field(default=None, alias="accountNumber")
    address: Optional[str] = None
    pay_period: Optional[PayPeriod] = Field(default=None, alias="payPeriod")
    pay_date: Optional[str] = Field(default=None, alias="payDate")
    check_number: Optional[str] = Field(default=None, alias="checkNumber")
    gross_pay: Optional[float] = Field(default=None, alias="grossPay")
    net_pay: Optional[float] = Field(default=None, alias="netPay")
    hourly_rate: Optional[float] = Field(default=None, alias="hourlyRate")
    ytd_gross: Optional[float] = Field(default=None, alias="ytdGross")
    ytd_net: Optional[float] = Field(default=None, alias="ytdNet")


class ExtractedLine(BaseModel):
    """A generic 'label amount amount' line captured for audit."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    label: str
    this_period: float = Field(..., alias="thisPeriod")
    year_to_date: float = Field(..., alias="yearToDate")


class PayrollRecord(BaseModel):
    """Structured payroll data for a single page."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    employee_info: EmployeeInfo = Field(default_factory=EmployeeInfo, alias="employeeInfo")
    statutory_deductions: Dict[str, AmountPair] = Field(default_factory=dict, alias="statutoryDeductions")
    voluntary_deductions: Dict[str, AmountPair] = Field(default_factory=dict, alias="voluntaryDeductions")
    net_pay_adjustments: Dict[str, AmountPair] = Field(default_factory=dict, alias="netPayAdjustments")
    hours: Dict[str, float] = Field(default_factory=dict)
    earnings: Dict[str, float] = Field(default_factory=dict)
    all_extracted_data: Dict[str, ExtractedLine] = Field(default_factory=dict, alias="allExtractedData")
    detected_state: Optional[str] = Field(default=None, alias="detectedState")

    def bucket(self, name: DeductionBucket) -> Dict[str, AmountPair]:
        """Deduction bucket by definition bucket name."""
        if name == "statutory":
            return self.statutory_deductions
        return self.voluntary_deductions

    def deduction(self, definition: DeductionDefinition) -> Optional[AmountPair]:
        """Amount pair for a deduction definition, if extracted."""
        return self.bucket(definition.bucket).get(definition.key)

    @property
    def has_identity_or_deductions(self) -> bool:
        """True if the page carries a name, SSN or any deduction."""
        info = self.employee_info
        return bool(
            info.name
            or info.ssn
            or self.statutory_deductions
            or self.voluntary_deductions
        )


class PageResult(BaseModel):
    """Resolved extraction for one page of a document."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    page_number: int = Field(..., ge=1, alias="pageNumber")
    source_text: str = Field(default="", alias="sourceText")
    payroll_record: PayrollRecord = Field(..., alias="payrollRecord")
    extraction_method: ExtractionMethod = Field(..., alias="extractionMethod")
    ocr_used: bool = Field(default=False, alias="ocrUsed")
    vision_attempts: int = Field(default=0, ge=0, alias="visionAttempts")


class DocumentResult(BaseModel):
    """All page results for one source document."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    source_file: str = Field(..., alias="sourceFile")
    page_count: int = Field(default=0, ge=0, alias="pageCount")
    pages: List[PageResult] = Field(default_factory=list)
    error: Optional[str] = None
