"""Payroll Extract - field extraction engine for pay-stub PDFs."""

__version__ = "0.3.0"
