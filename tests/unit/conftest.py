"""Shared fixtures: isolated config/data directories and sample stub text."""

import pytest
import PyPDF2


CA_STUB = """ACME STAFFING LLC
Employee Name: Jane Doe
SSN: XXX-XX-1234
Address: 100 Main St, Sacramento, CA 95814
Pay Period: 01/01/2024 to 01/14/2024
Pay Date: 01/19/2024
Check Number: 100234
Regular Hours 80.00
Regular Pay 2000.00
Gross Pay 2,000.00
Federal Income Tax 150.00 1,500.00
Social Security 124.00 1,240.00
Medicare 29.00 290.00
CA State Income 60.00 600.00
CA State DI 18.00 180.00
Net Pay 1,619.00
Jane Doe
Thank you for your service
Page 1 of 1
"""

NV_STUB = """Address: 12 Elm St, Reno, NV
Federal Income Tax 200.00 2,000.00
OASDI 310.00 3,100.00
Medicare 72.50 725.00
"""


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Point config and data lookups at a temp directory."""
    config_dir = tmp_path / "config"
    data_dir = tmp_path / "data"
    monkeypatch.setenv("PAYROLL_EXTRACT_CONFIG_PATH", str(config_dir))
    monkeypatch.setenv("XDG_DATA_HOME", str(data_dir))
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    return {"config": config_dir, "data": data_dir}


@pytest.fixture
def ca_stub():
    return CA_STUB


@pytest.fixture
def nv_stub():
    return NV_STUB


@pytest.fixture
def blank_pdf(tmp_path):
    """A valid one-page PDF with no text layer."""
    path = tmp_path / "blank.pdf"
    writer = PyPDF2.PdfWriter()
    writer.add_blank_page(width=612, height=792)
    with open(path, "wb") as f:
        writer.write(f)
    return path
