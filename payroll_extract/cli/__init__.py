"""Payroll Extract CLI."""
