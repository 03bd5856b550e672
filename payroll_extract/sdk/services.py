"""External extraction collaborators.

The escalation controller depends only on three small protocols. The
defaults here drive the Gemini CLI: text extraction sends the normalized
page text, vision and OCR hand Gemini the single-page PDF written by
pdf_source.

Every failure (CLI error, timeout, unparseable or invalid response) is
raised as ExtractionServiceError, which the controller treats as a method
failure.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from pydantic import ValidationError

from .. import gemini_client
from .amounts import parse_currency, truncate
from .definitions import load_deduction_definitions
from .fields import derive_period_start
from .jurisdiction import detect_from_address
from .normalize import normalize_text
from .schemas import AmountPair, EmployeeInfo, PayPeriod, PayrollRecord

logger = logging.getLogger(__name__)


class ExtractionServiceError(Exception):
    """An external extraction call failed, timed out or returned garbage."""
    pass


@runtime_checkable
class TextExtractionService(Protocol):
    def extract(self, page_text: str) -> PayrollRecord:
        ...


@runtime_checkable
class VisionExtractionService(Protocol):
    def extract(self, page_image: Path) -> PayrollRecord:
        ...


@runtime_checkable
class OcrEngine(Protocol):
    def recognize(self, page_image: Path) -> str:
        ...


# =============================================================================
# Prompts
# =============================================================================


TEXT_EXTRACTION_PROMPT = """EXTRACTION TASK: payroll stub text -> JSON.

Pay period: look for "Pay Period: a to b", "Period: a - b", "Period Starting/Ending",
"Period Start/End" or "Start/End Date". Dates as MM/DD/YYYY.

Mandatory deductions:
- Federal income tax ("Federal Income", "Fed Income Tax", "FIT", "Federal Withholding")
- Social security ("Social Security", "SS Tax", "OASDI", "Soc Sec")
- Medicare ("Medicare", "Med Tax", "FICA Med", "Medicare EE")
- State income tax, unless the state (from the address) is one of
  NV, WY, SD, TX, FL, AK, TN, NH, WA, which have none.

Amounts usually come in pairs: current period, then year to date.
(50.00) and -50.00 both mean -50.00.

Return this structure:
{
  "employeeInfo": {
    "name": "Full employee name", "ssn": "XXX-XX-XXXX", "employeeId": null,
    "address": "full address", "accountNumber": null,
    "grossPay": 0.00, "netPay": 0.00, "hourlyRate": 0.00, "ytdGross": 0.00, "ytdNet": 0.00,
    "payPeriod": {"start": "MM/DD/YYYY", "end": "MM/DD/YYYY"},
    "payDate": "MM/DD/YYYY", "checkNumber": null
  },
  "statutoryDeductions": {
    "federalIncome": {"thisPeriod": 0.00, "yearToDate": 0.00},
    "socialSecurity": {"thisPeriod": 0.00, "yearToDate": 0.00},
    "medicare": {"thisPeriod": 0.00, "yearToDate": 0.00},
    "californiaStateIncome": {"thisPeriod": 0.00, "yearToDate": 0.00},
    "californiaStateDI": {"thisPeriod": 0.00, "yearToDate": 0.00},
    "wisconsinStateIncome": {"thisPeriod": 0.00, "yearToDate": 0.00},
    "wisconsinStateDI": {"thisPeriod": 0.00, "yearToDate": 0.00},
    "arizonaStateIncome": {"thisPeriod": 0.00, "yearToDate": 0.00}
  },
  "voluntaryDeductions": {"miscNonTaxableDeduction": {"thisPeriod": 0.00, "yearToDate": 0.00}},
  "netPayAdjustments": {"miscReimbursement": {"thisPeriod": 0.00, "yearToDate": 0.00}},
  "earnings": {"regular": 0.00, "overtime": 0.00, "doubleTime": 0.00},
  "hours": {"regular": 0.0, "overtime": 0.0, "doubleTime": 0.0, "total": 0.0}
}

PAYSTUB TEXT:
"""

VISION_EXTRACTION_PROMPT = """EXTRACTION TASK: read the pay stub in {file_path}.

Find every deduction line (federal income, social security, medicare, state taxes).
Each deduction usually has a current period and a year-to-date amount.
Social security and medicare are on every US pay stub. States without income
tax (NV, WY, SD, TX, FL, AK, TN, NH, WA) have stateIncome null.
California also has State DI; Wisconsin does not.

Return this structure:
{
  "employeeName": "Full Name",
  "ssn": "XXX-XX-XXXX",
  "address": "Full employee address with city and state",
  "accountNumber": null,
  "detectedState": "Two-letter uppercase state code",
  "payPeriod": {"start": "MM/DD/YYYY", "end": "MM/DD/YYYY"},
  "payDate": "MM/DD/YYYY",
  "deductions": {
    "federalIncome": {"thisPeriod": 0.00, "yearToDate": 0.00},
    "socialSecurity": {"thisPeriod": 0.00, "yearToDate": 0.00},
    "medicare": {"thisPeriod": 0.00, "yearToDate": 0.00},
    "stateIncome": {"thisPeriod": 0.00, "yearToDate": 0.00},
    "stateDI": {"thisPeriod": 0.00, "yearToDate": 0.00}
  },
  "grossPay": 0.00,
  "netPay": 0.00
}"""

OCR_PROMPT = """Transcribe all text in {file_path} exactly as printed, line by line,
keeping labels and their amounts on the same line. Output only the text."""


# =============================================================================
# Response conversion
# =============================================================================


EMPLOYEE_STRING_FIELDS = {
    "name": "name",
    "ssn": "ssn",
    "employeeId": "employee_id",
    "accountNumber": "account_number",
    "address": "address",
    "payDate": "pay_date",
    "checkNumber": "check_number",
}
EMPLOYEE_AMOUNT_FIELDS = {
    "grossPay": "gross_pay",
    "netPay": "net_pay",
    "hourlyRate": "hourly_rate",
    "ytdGross": "ytd_gross",
    "ytdNet": "ytd_net",
}
PERIOD_FIELDS = {"regular": "regular", "overtime": "overtime", "doubleTime": "double_time", "total": "total"}

# stateIncome/stateDI in the flat vision response, by detected state
VISION_STATE_KEYS = {
    "CA": ("californiaStateIncome", "californiaStateDI"),
    "WI": ("wisconsinStateIncome", "wisconsinStateDI"),
    "AZ": ("arizonaStateIncome", None),
}
DEFAULT_VISION_STATE = "CA"


def _amount(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return truncate(float(value))
    if isinstance(value, str):
        return parse_currency(value)
    return None


def _string(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _pair(value: Any) -> Optional[AmountPair]:
    if isinstance(value, dict):
        this_period = _amount(value.get("thisPeriod"))
        if this_period is None:
            return None
        return AmountPair(this_period=this_period, year_to_date=_amount(value.get("yearToDate")))
    this_period = _amount(value)
    if this_period is None:
        return None
    return AmountPair(this_period=this_period)


def _pairs(section: Any) -> Dict[str, AmountPair]:
    if not isinstance(section, dict):
        return {}
    pairs = {}
    for key, value in section.items():
        pair = _pair(value)
        if pair is not None:
            pairs[key] = pair
    return pairs


def _numbers(section: Any) -> Dict[str, float]:
    if not isinstance(section, dict):
        return {}
    numbers = {}
    for source, target in PERIOD_FIELDS.items():
        value = _amount(section.get(source))
        if value is not None:
            numbers[target] = value
    return numbers


def _pay_period(value: Any) -> Optional[PayPeriod]:
    if not isinstance(value, dict):
        return None
    start = _string(value.get("start")) or ""
    end = _string(value.get("end")) or ""
    if end and not start:
        start = derive_period_start(end) or ""
    if not start and not end:
        return None
    return PayPeriod(start=start, end=end or start)


def _employee_info(data: Dict[str, Any]) -> EmployeeInfo:
    info: Dict[str, Any] = {}
    for source, target in EMPLOYEE_STRING_FIELDS.items():
        value = _string(data.get(source))
        if value is not None:
            info[target] = value
    for source, target in EMPLOYEE_AMOUNT_FIELDS.items():
        value = _amount(data.get(source))
        if value is not None:
            info[target] = value
    pay_period = _pay_period(data.get("payPeriod"))
    if pay_period is not None:
        info["pay_period"] = pay_period
    return EmployeeInfo(**info)


def record_from_llm_response(data: Dict[str, Any]) -> PayrollRecord:
    """Convert a language-model JSON response into a PayrollRecord."""
    employee = data.get("employeeInfo")
    return PayrollRecord(
        employee_info=_employee_info(employee if isinstance(employee, dict) else {}),
        statutory_deductions=_pairs(data.get("statutoryDeductions")),
        voluntary_deductions=_pairs(data.get("voluntaryDeductions")),
        net_pay_adjustments=_pairs(data.get("netPayAdjustments")),
        hours=_numbers(data.get("hours")),
        earnings=_numbers(data.get("earnings")),
    )


def record_from_vision_response(data: Dict[str, Any]) -> PayrollRecord:
    """Convert the flat vision JSON response into a PayrollRecord.

    stateIncome/stateDI are routed to the detected state's keys. The state
    comes from detectedState, else from the address; an unknown state is
    routed to California.
    """
    flat = dict(data)
    flat["name"] = data.get("employeeName") or data.get("name")
    info = _employee_info(flat)

    detected = _string(data.get("detectedState"))
    detected = detected.upper() if detected else None
    state = detected or detect_from_address(info.address)

    deductions = data.get("deductions") if isinstance(data.get("deductions"), dict) else {}
    statutory: Dict[str, AmountPair] = {}
    for key in ("federalIncome", "socialSecurity", "medicare"):
        pair = _pair(deductions.get(key))
        if pair is not None:
            statutory[key] = pair

    income_key, di_key = _route_state_keys(state)
    income = _pair(deductions.get("stateIncome"))
    if income is not None:
        statutory[income_key] = income
    di = _pair(deductions.get("stateDI"))
    if di is not None and di_key:
        statutory[di_key] = di

    return PayrollRecord(
        employee_info=info,
        statutory_deductions=statutory,
        detected_state=detected,
    )


def _route_state_keys(state: Optional[str]):
    if state in VISION_STATE_KEYS:
        return VISION_STATE_KEYS[state]
    for definition in load_deduction_definitions():
        if definition.state_income and definition.jurisdiction == state:
            return definition.key, None
    return VISION_STATE_KEYS[DEFAULT_VISION_STATE]


# =============================================================================
# Gemini-backed defaults
# =============================================================================


class GeminiTextExtractor:
    """Language-model extraction over normalized page text."""

    def __init__(self, timeout: int = 120):
        self.timeout = timeout

    def extract(self, page_text: str) -> PayrollRecord:
        prompt = TEXT_EXTRACTION_PROMPT + normalize_text(page_text)
        try:
            data = gemini_client.process_json_prompt(prompt, timeout=self.timeout)
            return record_from_llm_response(data)
        except (RuntimeError, ValidationError, ValueError) as e:
            raise ExtractionServiceError(f"language-model extraction failed: {e}") from e


class GeminiVisionExtractor:
    """Vision extraction over a single-page PDF artifact."""

    def __init__(self, timeout: int = 120):
        self.timeout = timeout

    def extract(self, page_image: Path) -> PayrollRecord:
        try:
            data = gemini_client.process_file(VISION_EXTRACTION_PROMPT, str(page_image), timeout=self.timeout)
            return record_from_vision_response(data)
        except (RuntimeError, ValidationError, ValueError) as e:
            raise ExtractionServiceError(f"vision extraction failed: {e}") from e


class GeminiOcrEngine:
    """Text recognition for image-only pages."""

    def __init__(self, timeout: int = 120):
        self.timeout = timeout

    def recognize(self, page_image: Path) -> str:
        try:
            return gemini_client.process_file(
                OCR_PROMPT, str(page_image), timeout=self.timeout, expect_json=False
            )
        except RuntimeError as e:
            raise ExtractionServiceError(f"OCR failed: {e}") from e
