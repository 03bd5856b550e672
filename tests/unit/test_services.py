"""Tests for language-model and vision response conversion and the Gemini services."""

from pathlib import Path
from unittest.mock import patch

import pytest

from payroll_extract.sdk.schemas import AmountPair, PayPeriod
from payroll_extract.sdk.services import (
    ExtractionServiceError,
    GeminiOcrEngine,
    GeminiTextExtractor,
    GeminiVisionExtractor,
    OcrEngine,
    TextExtractionService,
    VisionExtractionService,
    record_from_llm_response,
    record_from_vision_response,
)


class TestLlmResponse:
    def test_full_response(self):
        record = record_from_llm_response({
            "employeeInfo": {
                "name": "Jane Doe",
                "ssn": "XXX-XX-1234",
                "grossPay": "2,000.00",
                "netPay": 1619,
                "payPeriod": {"start": "01/01/2024", "end": "01/14/2024"},
            },
            "statutoryDeductions": {
                "federalIncome": {"thisPeriod": 150.0, "yearToDate": 1500.0},
                "medicare": {"thisPeriod": 29.009, "yearToDate": 290},
                "socialSecurity": {"thisPeriod": None, "yearToDate": None},
            },
            "voluntaryDeductions": {"miscNonTaxableDeduction": {"thisPeriod": "(25.00)"}},
            "hours": {"regular": 80, "doubleTime": 2.5},
        })

        info = record.employee_info
        assert info.name == "Jane Doe"
        assert info.gross_pay == 2000.0
        assert info.net_pay == 1619.0
        assert info.pay_period == PayPeriod(start="01/01/2024", end="01/14/2024")
        assert record.statutory_deductions["medicare"] == AmountPair(this_period=29.0, year_to_date=290.0)
        assert "socialSecurity" not in record.statutory_deductions
        assert record.voluntary_deductions["miscNonTaxableDeduction"].this_period == -25.0
        assert record.hours == {"regular": 80.0, "double_time": 2.5}

    def test_period_start_derived(self):
        record = record_from_llm_response({"employeeInfo": {"payPeriod": {"start": None, "end": "01/14/2024"}}})
        assert record.employee_info.pay_period == PayPeriod(start="01/01/2024", end="01/14/2024")

    def test_malformed_sections_ignored(self):
        record = record_from_llm_response({"employeeInfo": "Jane", "statutoryDeductions": []})
        assert not record.has_identity_or_deductions


class TestVisionResponse:
    def test_detected_state_routing(self):
        record = record_from_vision_response({
            "employeeName": "Jane Doe",
            "detectedState": "wi",
            "deductions": {
                "federalIncome": {"thisPeriod": 150.0, "yearToDate": 1500.0},
                "stateIncome": {"thisPeriod": 50.0, "yearToDate": 500.0},
                "stateDI": {"thisPeriod": 5.0, "yearToDate": 50.0},
            },
        })
        assert record.employee_info.name == "Jane Doe"
        assert record.detected_state == "WI"
        assert record.statutory_deductions["wisconsinStateIncome"].this_period == 50.0
        assert record.statutory_deductions["wisconsinStateDI"].this_period == 5.0
        assert "californiaStateIncome" not in record.statutory_deductions

    def test_state_from_address(self):
        record = record_from_vision_response({
            "address": "1 Center St, Phoenix, AZ 85001",
            "deductions": {
                "stateIncome": {"thisPeriod": 33.0, "yearToDate": 330.0},
                "stateDI": {"thisPeriod": 1.0},
            },
        })
        assert record.statutory_deductions["arizonaStateIncome"].this_period == 33.0
        assert set(record.statutory_deductions) == {"arizonaStateIncome"}

    def test_unknown_state_defaults_to_california(self):
        record = record_from_vision_response({
            "deductions": {"stateIncome": {"thisPeriod": 60.0}, "stateDI": {"thisPeriod": 18.0}},
        })
        assert record.statutory_deductions["californiaStateIncome"].this_period == 60.0
        assert record.statutory_deductions["californiaStateDI"].this_period == 18.0

    def test_null_state_income_for_exempt_state(self):
        record = record_from_vision_response({
            "detectedState": "NV",
            "deductions": {"medicare": {"thisPeriod": 29.0}, "stateIncome": None},
        })
        assert set(record.statutory_deductions) == {"medicare"}


class TestProtocols:
    def test_gemini_defaults_satisfy_protocols(self):
        assert isinstance(GeminiTextExtractor(), TextExtractionService)
        assert isinstance(GeminiVisionExtractor(), VisionExtractionService)
        assert isinstance(GeminiOcrEngine(), OcrEngine)


class TestGeminiServices:
    @patch("payroll_extract.gemini_client.process_json_prompt")
    def test_text_extractor(self, mock_prompt):
        mock_prompt.return_value = {"statutoryDeductions": {"medicare": {"thisPeriod": 29.0}}}

        record = GeminiTextExtractor(timeout=30).extract("Vadeare 29.00")

        prompt = mock_prompt.call_args[0][0]
        assert prompt.endswith("Medicare 29.00")
        assert mock_prompt.call_args[1]["timeout"] == 30
        assert record.statutory_deductions["medicare"].this_period == 29.0

    @patch("payroll_extract.gemini_client.process_json_prompt")
    def test_text_extractor_failure(self, mock_prompt):
        mock_prompt.side_effect = RuntimeError("Gemini CLI timed out after 120s")
        with pytest.raises(ExtractionServiceError, match="timed out"):
            GeminiTextExtractor().extract("Medicare 29.00")

    @patch("payroll_extract.gemini_client.process_file")
    def test_vision_extractor(self, mock_file):
        mock_file.return_value = {"employeeName": "Jane Doe", "deductions": {}}
        record = GeminiVisionExtractor().extract(Path("/tmp/page_01.pdf"))
        assert record.employee_info.name == "Jane Doe"
        assert mock_file.call_args[0][1] == "/tmp/page_01.pdf"

    @patch("payroll_extract.gemini_client.process_file")
    def test_vision_extractor_failure(self, mock_file):
        mock_file.side_effect = RuntimeError("Failed to parse JSON")
        with pytest.raises(ExtractionServiceError):
            GeminiVisionExtractor().extract(Path("/tmp/page_01.pdf"))

    @patch("payroll_extract.gemini_client.process_file")
    def test_ocr_engine_raw_text(self, mock_file):
        mock_file.return_value = "Medicare 29.00 290.00"
        assert GeminiOcrEngine().recognize(Path("/tmp/page_01.pdf")) == "Medicare 29.00 290.00"
        assert mock_file.call_args[1]["expect_json"] is False
