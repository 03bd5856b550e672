"""Pattern-rule extraction of a PayrollRecord from page text.

Every field is an ordered strategy list (see strategies.py). Deduction
strategies are generated from definitions/deductions.yaml; identity and
summary fields are declared here.

Usage:
    record = extract_with_patterns(page_text)

    extractor = FieldExtractor()
    record = extractor.extract(page_text)
    extractor.debug_info["pattern_usage"]["medicare"]
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from .amounts import MONEY, parse_currency, split_lines
from .config import ExtractionSettings
from .definitions import load_deduction_definitions
from .normalize import normalize_text
from .scanner import find_near
from .schemas import (
    AmountPair,
    DeductionDefinition,
    EmployeeInfo,
    ExtractedLine,
    PayPeriod,
    PayrollRecord,
)
from .strategies import (
    HEURISTIC,
    WINDOW,
    Strategy,
    deduction_strategies,
    first_match,
    new_debug_info,
    regex_strategy,
)

logger = logging.getLogger(__name__)

DATE = r"\d{1,2}/\d{1,2}/\d{2,4}"
HOURS = r"(\d[\d,]*(?:\.\d+)?)"
PERSON = r"([A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+)+)"

PERIOD_LENGTH_DAYS = 13

NAME_DENYLIST = re.compile(
    r"\b(federal|gross|net|pay(?:period)?|deduction|hours|total|page|tax|income|ssn"
    r"|number|address|state|company|phone|account|check|period|ytd"
    r"|social|security|medicare|insurance|withholding|earnings|deposit)\b",
    re.IGNORECASE,
)
NAME_LABELS = re.compile(
    r"^(?:employee|vendor|candidate|applicant|associate|worker|team member|owner|name|staff)[:\s-]*",
    re.IGNORECASE,
)
SSN_TOKEN = re.compile(r"([0-9X*]{3}[-\s][0-9X*]{2}[-\s][0-9X*]{4})", re.IGNORECASE)

GROSS_KEYWORDS = ("gross pay", "total gross", "gross earnings", "gross amount")
NET_KEYWORDS = ("net pay", "net amount", "total net", "net earnings")


# =============================================================================
# Name helpers
# =============================================================================


def clean_employee_name(name: str) -> str:
    """Cut a name at 'Federal' (stub footers run the name into tax lines)."""
    if not name:
        return name
    index = name.lower().find("federal")
    if index != -1:
        return name[:index].strip()
    return name.strip()


def sanitize_name_line(raw_line: str) -> Optional[str]:
    """Reduce a line to a plausible person name, or None."""
    normalized = " ".join(raw_line.split())
    if len(normalized) < 4:
        return None

    stripped = NAME_LABELS.sub("", normalized).strip()
    if len(stripped) < 4:
        return None

    cleaned = " ".join(re.sub(r"[^A-Za-z\s.'-]", " ", stripped).split())
    if len(cleaned) < 4:
        return None
    if NAME_DENYLIST.search(cleaned):
        return None

    words = cleaned.split(" ")
    if len(words) < 2:
        return None
    if not any(re.fullmatch(r"[A-Z][a-z]+", w) or re.fullmatch(r"[A-Z]{2,}", w) for w in words):
        return None

    return cleaned


def guess_name_from_lines(lines: Sequence[str], lookback: int) -> Optional[str]:
    """Reverse window scan; lines without digits are preferred in each window."""
    ordered = list(reversed(lines))
    for i in range(len(ordered)):
        chunk = ordered[i:i + lookback]
        for require_no_digits in (True, False):
            for raw_line in chunk:
                if require_no_digits and re.search(r"\d", raw_line):
                    continue
                cleaned = sanitize_name_line(raw_line)
                if cleaned:
                    return clean_employee_name(cleaned)
    return None


def _name_from_third_to_last(text: str, lines: List[str]) -> Optional[str]:
    if len(lines) < 3:
        return None
    line = lines[-3]
    if not re.search(r"[A-Za-z]", line) or not 2 < len(line) < 100:
        return None
    cleaned = " ".join(re.sub(r"[^\w\s.-]", "", line).split())
    if not cleaned or re.search(r"\d", cleaned):
        return None
    name = clean_employee_name(cleaned)
    if not name or NAME_DENYLIST.search(name):
        return None
    return name


def _accept_name(match: re.Match) -> Optional[str]:
    candidate = match.group(1).strip()
    if len(candidate) <= 3 or re.search(r"\d", candidate):
        return None
    return clean_employee_name(candidate) or None


# =============================================================================
# SSN helpers
# =============================================================================


def _ssn_from_match(match: re.Match) -> Optional[str]:
    if match.lastindex and match.lastindex >= 3:
        return f"{match.group(1)}-{match.group(2)}-{match.group(3)}"
    return re.sub(r"\s+", "-", match.group(1))


def guess_ssn_from_lines(lines: Sequence[str], lookback: int) -> Optional[str]:
    """Reverse window scan for any SSN-shaped token."""
    ordered = list(reversed(lines))
    for i in range(len(ordered)):
        for raw_line in ordered[i:i + lookback]:
            match = SSN_TOKEN.search(raw_line)
            if match:
                return re.sub(r"\s+", "-", match.group(1))
    return None


# =============================================================================
# Account number
# =============================================================================


def _account_from_lines(text: str, lines: List[str]) -> Optional[str]:
    for i, line in enumerate(lines):
        lower = line.lower()
        if "account" not in lower or "total" in lower or "balance" in lower:
            continue
        match = re.search(r"(\d{3,}(?:-\d+)*)", " ".join(lines[i:i + 3]))
        if match:
            return match.group(1)
    return None


# =============================================================================
# Pay period
# =============================================================================


def _parse_date(value: str) -> Optional[datetime]:
    for fmt in ("%m/%d/%Y", "%m/%d/%y"):
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    return None


def derive_period_start(end: str) -> Optional[str]:
    """Start of a two-week period ending on `end`, as MM/DD/YYYY."""
    end_date = _parse_date(end)
    if end_date is None:
        return None
    return (end_date - timedelta(days=PERIOD_LENGTH_DAYS)).strftime("%m/%d/%Y")


def extract_pay_period(text: str) -> Optional[PayPeriod]:
    """Pay period from 'Pay Period: a to b' or start/end labels.

    Start/end labels override the range form. A missing start is derived
    from the end date.
    """
    start = end = None

    match = re.search(
        r"\b(?:Pay\s+Period|Period)[:\s]+(" + DATE + r")\s*(?:to|-|through|thru)?\s*(" + DATE + r")?",
        text,
        re.IGNORECASE,
    )
    if match:
        start = match.group(1)
        end = match.group(2) or match.group(1)

    start_match = re.search(
        r"\b(?:Period\s+Starting|Starting|Period\s+Start|Start\s+Date)[:\s]+(" + DATE + r")",
        text,
        re.IGNORECASE,
    )
    end_match = re.search(
        r"\b(?:Period\s+Ending|Ending|Period\s+End|End\s+Date)[:\s]+(" + DATE + r")",
        text,
        re.IGNORECASE,
    )
    if start_match:
        start = start_match.group(1)
    if end_match:
        end = end_match.group(1)

    if not start and end:
        start = derive_period_start(end)
        if start:
            logger.debug(f"derived period start {start} from end {end}")

    if not start and not end:
        return None
    return PayPeriod(start=start or "", end=end or start or "")


# =============================================================================
# Extractor
# =============================================================================


def _money(match: re.Match) -> Optional[float]:
    return parse_currency(match.group(1))


def _hours(match: re.Match) -> Optional[float]:
    try:
        return float(match.group(1).replace(",", ""))
    except ValueError:
        return None


def _money_strategies(field: str, labels: Sequence[str]) -> List[Strategy]:
    return [
        regex_strategy(f"{field}:{i}", r"\b" + label + r"[:\s]+(" + MONEY + r")", _money)
        for i, label in enumerate(labels)
    ]


class FieldExtractor:
    """Runs every field extractor over one page of text.

    debug_info records, per field, which strategy matched.
    """

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        definitions: Optional[Sequence[DeductionDefinition]] = None,
    ):
        self.settings = settings or ExtractionSettings()
        self.definitions = tuple(definitions) if definitions is not None else load_deduction_definitions()
        self.debug_info: Dict[str, Any] = new_debug_info()

        lookback = self.settings.lookback
        self.field_strategies: Dict[str, List[Strategy]] = {
            "name": [
                Strategy("name:third-to-last", HEURISTIC, _name_from_third_to_last),
                regex_strategy("name:tax-override", r"(?i:Tax\s+Override):[ \t]*" + PERSON, _accept_name, flags=0),
                regex_strategy("name:vendor", r"(?i:\bVendor)[:\s]+([^\n]+)", _accept_name, flags=0),
                regex_strategy("name:employee-name", r"(?i:\bEmployee\s+Name)[:\s]+" + PERSON, _accept_name, flags=0),
                regex_strategy("name:name", r"^[ \t]*(?i:Name)[: \t]+" + PERSON, _accept_name, flags=re.MULTILINE),
                regex_strategy("name:employee", r"(?i:\bEmployee)[: \t]+" + PERSON, _accept_name, flags=0),
                Strategy("name:window", WINDOW, lambda t, l: guess_name_from_lines(l, lookback)),
            ],
            "ssn": [
                regex_strategy(
                    "ssn:labelled",
                    r"(?:SSN|Social\s+Security\s+Number|Social\s+Security|SS#|SS\s+Number)[:\s]*"
                    r"([X\d]{3}[- \t]?[X\d]{2}[- \t]?\d{4})\b",
                    _ssn_from_match,
                ),
                regex_strategy("ssn:bare", r"\b([X\d]{3}-[X\d]{2}-\d{4})\b", _ssn_from_match),
                regex_strategy("ssn:masked", r"(?<![\w*])([X*]{3}[- \t][X*]{2}[- \t]\d{4})\b", _ssn_from_match),
                regex_strategy(
                    "ssn:number-label",
                    r"\bNumber[:\s]*([X\d]{3}[- \t]?[X\d]{2}[- \t]?\d{4})\b",
                    _ssn_from_match,
                ),
                regex_strategy(
                    "ssn:split",
                    r"\b(?:SSN|SS)[: \t]*([X\d]{3})[ \t]*([X\d]{2})[ \t]*(\d{4})\b",
                    _ssn_from_match,
                ),
                Strategy("ssn:window", WINDOW, lambda t, l: guess_ssn_from_lines(l, lookback)),
            ],
            "employee_id": [
                regex_strategy("employee_id:labelled", r"\b(?:Employee\s+ID|EMP\s+ID|ID)\b[:#\s]*(\d+)"),
            ],
            "address": [
                regex_strategy("address:labelled", r"\bAddress[:\s]+([^\n]+)", lambda m: m.group(1).strip() or None),
            ],
            "account_number": [
                regex_strategy(
                    "account_number:labelled",
                    r"\b(?:Account\s*(?:Number|#)?|Acct\s*(?:Number|#)?)[:\s]+(\d[\d-]*)",
                ),
                Strategy("account_number:window", WINDOW, _account_from_lines),
            ],
            "pay_date": [
                regex_strategy("pay_date:labelled", r"\b(?:Pay\s+Date|Check\s+Date)[:\s]+(" + DATE + r")"),
            ],
            "check_number": [
                regex_strategy("check_number:labelled", r"\bCheck(?:\s*#|\s+Number|\s+No\.?)?[:\s]+(\d+)\b"),
            ],
            "gross_pay": _money_strategies(
                "gross_pay",
                [r"Gross\s+Pay", r"Total\s+Gross", r"Gross\s+Earnings", r"Gross\s+Amount"],
            ) + [
                Strategy("gross_pay:window", WINDOW, lambda t, l: find_near(l, GROSS_KEYWORDS, lookback)),
            ],
            "net_pay": _money_strategies(
                "net_pay",
                [r"Net\s+Pay", r"Total\s+Net", r"Net\s+Amount", r"Net\s+Earnings"],
            ) + [
                Strategy("net_pay:window", WINDOW, lambda t, l: find_near(l, NET_KEYWORDS, lookback)),
            ],
            "hourly_rate": [
                regex_strategy(
                    "hourly_rate:labelled",
                    r"\b(?:Hourly\s+Rate|Pay\s+Rate|Rate)[:\s]+(\$?\d[\d,]*(?:\.\d+)?)",
                    _money,
                ),
            ],
            "ytd_gross": _money_strategies("ytd_gross", [r"YTD\s+Gross"]),
            "ytd_net": _money_strategies("ytd_net", [r"YTD\s+Net"]),
        }

        self.hours_strategies: Dict[str, List[Strategy]] = {
            "regular": [regex_strategy("hours.regular", r"\bRegular(?:\s+Hours)?[:\s]+" + HOURS, _hours)],
            "overtime": [regex_strategy("hours.overtime", r"\b(?:Overtime|OT)(?:\s+Hours)?[:\s]+" + HOURS, _hours)],
            "double_time": [
                regex_strategy("hours.double_time", r"\b(?:Double\s+Time|DT)(?:\s+Hours)?[:\s]+" + HOURS, _hours),
            ],
            "total": [regex_strategy("hours.total", r"\bTotal\s+Hours[:\s]+" + HOURS, _hours)],
        }

        self.earnings_strategies: Dict[str, List[Strategy]] = {
            "regular": _money_strategies("earnings.regular", [r"Regular\s+(?:Pay|Earnings)"]),
            "overtime": _money_strategies("earnings.overtime", [r"(?:Overtime|OT)\s+(?:Pay|Earnings)"]),
            "double_time": _money_strategies("earnings.double_time", [r"(?:Double\s+Time|DT)\s+(?:Pay|Earnings)"]),
        }

        self.deduction_strategies: Dict[str, List[Strategy]] = {
            d.key: deduction_strategies(d, lookback, self.settings.aggressive_ranges)
            for d in self.definitions
        }

    def _run(self, field: str, strategies: List[Strategy], text: str, lines: List[str]) -> Any:
        return first_match(strategies, text, lines, field, self.debug_info)

    def extract(self, text: str) -> PayrollRecord:
        """Extract a record from page text. Never raises for missing fields."""
        self.debug_info = new_debug_info()
        text = normalize_text(text or "")
        lines = split_lines(text)

        info: Dict[str, Any] = {}
        for field, strategies in self.field_strategies.items():
            value = self._run(field, strategies, text, lines)
            if value is not None:
                info[field] = value

        pay_period = extract_pay_period(text)
        if pay_period is not None:
            info["pay_period"] = pay_period

        buckets: Dict[str, Dict[str, AmountPair]] = {"statutory": {}, "voluntary": {}}
        for definition in self.definitions:
            pair = self._run(definition.key, self.deduction_strategies[definition.key], text, lines)
            if pair is not None:
                buckets[definition.bucket][definition.key] = pair

        adjustments: Dict[str, AmountPair] = {}
        reimbursement = re.search(
            r"\bMisc\.?\s+Reimbursement[ \t]*:?[ \t]*(" + MONEY + r")(?:[ \t]+(" + MONEY + r"))?",
            text,
            re.IGNORECASE,
        )
        if reimbursement:
            this_period = parse_currency(reimbursement.group(1))
            if this_period is not None:
                ytd = parse_currency(reimbursement.group(2)) if reimbursement.group(2) else None
                adjustments["miscReimbursement"] = AmountPair(this_period=this_period, year_to_date=ytd)

        hours = {}
        for key, strategies in self.hours_strategies.items():
            value = self._run(f"hours.{key}", strategies, text, lines)
            if value is not None:
                hours[key] = value

        earnings = {}
        for key, strategies in self.earnings_strategies.items():
            value = self._run(f"earnings.{key}", strategies, text, lines)
            if value is not None:
                earnings[key] = value

        record = PayrollRecord(
            employee_info=EmployeeInfo(**info),
            statutory_deductions=buckets["statutory"],
            voluntary_deductions=buckets["voluntary"],
            net_pay_adjustments=adjustments,
            hours=hours,
            earnings=earnings,
            all_extracted_data=extract_all_lines(text),
        )
        logger.debug(
            f"pattern extraction: name={record.employee_info.name!r} "
            f"statutory={sorted(record.statutory_deductions)}"
        )
        return record


ALL_LINES_RE = re.compile(
    r"^[ \t]*([A-Za-z][A-Za-z .&/'-]*?)[ \t]+(" + MONEY + r")[ \t]+(" + MONEY + r")",
    re.MULTILINE,
)


def extract_all_lines(text: str) -> Dict[str, ExtractedLine]:
    """Capture every 'label amount amount' line, keyed by snake-cased label."""
    captured: Dict[str, ExtractedLine] = {}
    for match in ALL_LINES_RE.finditer(text):
        label = " ".join(match.group(1).split()).rstrip(" .:-")
        this_period = parse_currency(match.group(2))
        year_to_date = parse_currency(match.group(3))
        if not label or this_period is None or year_to_date is None:
            continue
        key = label.lower().replace(" ", "_")
        captured[key] = ExtractedLine(label=label, this_period=this_period, year_to_date=year_to_date)
    return captured


def extract_with_patterns(text: str, settings: Optional[ExtractionSettings] = None) -> PayrollRecord:
    """Pattern-rule extraction of one page."""
    return FieldExtractor(settings).extract(text)
