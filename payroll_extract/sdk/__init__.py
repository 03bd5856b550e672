"""Payroll Extract SDK - field extraction engine for pay-stub pages."""

from .config import (
    get_config_dir,
    get_settings_path,
    load_settings,
    save_settings,
    get_setting,
    set_setting,
    get_data_path,
    load_extraction_settings,
    ExtractionSettings,
    ConfigError,
)

from .schemas import (
    ExtractionMethod,
    DeductionDefinition,
    AmountPair,
    PayPeriod,
    EmployeeInfo,
    ExtractedLine,
    PayrollRecord,
    PageResult,
    DocumentResult,
)

from .definitions import (
    load_deduction_definitions,
    load_jurisdictions,
    get_definition,
    JurisdictionTable,
)

from .normalize import normalize_text

from .amounts import parse_currency

from .scanner import (
    split_lines,
    find_near,
    find_near_aggressive,
)

from .fields import (
    FieldExtractor,
    extract_with_patterns,
)

from .jurisdiction import (
    detect_jurisdiction,
    is_income_tax_exempt,
)

from .completeness import (
    is_federal_complete,
    is_jurisdiction_complete,
    is_fully_complete,
    state_income_value,
)

from .merge import merge_records

from .services import (
    ExtractionServiceError,
    TextExtractionService,
    VisionExtractionService,
    OcrEngine,
    GeminiTextExtractor,
    GeminiVisionExtractor,
    GeminiOcrEngine,
)

from .escalation import (
    EscalationController,
    EscalationState,
    Resolution,
)

from .pdf_source import (
    PdfPageSource,
    Page,
    DocumentError,
)

from .aggregator import (
    process_document,
    process_pdf,
    process_batch,
)

from .export import (
    write_results_csv,
    save_results_json,
    load_results_json,
)

__all__ = [
    # Config
    "get_config_dir",
    "get_settings_path",
    "load_settings",
    "save_settings",
    "get_setting",
    "set_setting",
    "get_data_path",
    "load_extraction_settings",
    "ExtractionSettings",
    "ConfigError",
    # Schemas
    "ExtractionMethod",
    "DeductionDefinition",
    "AmountPair",
    "PayPeriod",
    "EmployeeInfo",
    "ExtractedLine",
    "PayrollRecord",
    "PageResult",
    "DocumentResult",
    # Definitions
    "load_deduction_definitions",
    "load_jurisdictions",
    "get_definition",
    "JurisdictionTable",
    # Extraction
    "normalize_text",
    "parse_currency",
    "split_lines",
    "find_near",
    "find_near_aggressive",
    "FieldExtractor",
    "extract_with_patterns",
    "detect_jurisdiction",
    "is_income_tax_exempt",
    "is_federal_complete",
    "is_jurisdiction_complete",
    "is_fully_complete",
    "state_income_value",
    "merge_records",
    # Services
    "ExtractionServiceError",
    "TextExtractionService",
    "VisionExtractionService",
    "OcrEngine",
    "GeminiTextExtractor",
    "GeminiVisionExtractor",
    "GeminiOcrEngine",
    # Orchestration
    "EscalationController",
    "EscalationState",
    "Resolution",
    "PdfPageSource",
    "Page",
    "DocumentError",
    "process_document",
    "process_pdf",
    "process_batch",
    # Export
    "write_results_csv",
    "save_results_json",
    "load_results_json",
]
