"""Rich renderer for extracted page results.

Transforms SDK models into formatted Rich tables.
"""

from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from payroll_extract.sdk import DocumentResult, PageResult, PayrollRecord, load_deduction_definitions

METHOD_STYLES = {
    "regex": "cyan",
    "llm": "magenta",
    "vision": "yellow",
    "hybrid": "green",
}


def render_document(console: Console, document: DocumentResult) -> None:
    """Render every page of one document.

    Args:
        console: Rich Console instance
        document: Result from process_pdf()
    """
    if document.error:
        console.print(Panel(
            f"[red]{document.error}[/red]",
            title=document.source_file,
            border_style="red"
        ))
        return

    if not document.pages:
        console.print(Panel(
            "[yellow]No pages with a name, SSN or deductions[/yellow]",
            title=f"{document.source_file} ({document.page_count} page(s))",
            border_style="yellow"
        ))
        return

    for page in document.pages:
        render_page(console, page, title=f"{document.source_file} - page {page.page_number}")


def render_page(console: Console, page: PageResult, title: Optional[str] = None) -> None:
    """Render one page: identity panel, then deductions table."""
    method = page.extraction_method.value
    style = METHOD_STYLES.get(method, "white")
    subtitle = f"[{style}]{method}[/{style}]"
    if page.ocr_used:
        subtitle += " [dim](OCR)[/dim]"
    if page.vision_attempts:
        subtitle += f" [dim]vision x{page.vision_attempts}[/dim]"

    console.print(Panel(
        _identity_table(page.payroll_record),
        title=title or f"Page {page.page_number}",
        subtitle=subtitle,
        border_style="dim",
    ))
    console.print(_deductions_table(page.payroll_record))


def render_record(console: Console, record: PayrollRecord, title: str = "Extracted") -> None:
    """Render a bare record (pattern extraction on a text file)."""
    console.print(Panel(_identity_table(record), title=title, border_style="dim"))
    console.print(_deductions_table(record))


def _identity_table(record: PayrollRecord) -> Table:
    info = record.employee_info
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("key", style="dim")
    table.add_column("value")

    period = info.pay_period
    rows = [
        ("Name", info.name),
        ("SSN", info.ssn),
        ("Employee ID", info.employee_id),
        ("Account", info.account_number),
        ("Address", info.address),
        ("Pay Period", f"{period.start} - {period.end}" if period else None),
        ("Pay Date", info.pay_date),
        ("Check #", info.check_number),
        ("Gross Pay", _money(info.gross_pay)),
        ("Net Pay", _money(info.net_pay)),
    ]
    for label, value in rows:
        table.add_row(label, value if value else "[dim]--[/dim]")
    return table


def _deductions_table(record: PayrollRecord) -> Table:
    table = Table(box=box.SIMPLE)
    table.add_column("Deduction")
    table.add_column("This Period", justify="right")
    table.add_column("YTD", justify="right")

    for definition in load_deduction_definitions():
        pair = record.deduction(definition)
        if pair is None:
            continue
        table.add_row(definition.label, _money(pair.this_period), _money(pair.year_to_date) or "")

    for key, pair in record.net_pay_adjustments.items():
        table.add_row(f"[dim]{key}[/dim]", _money(pair.this_period), _money(pair.year_to_date) or "")

    return table


def _money(value: Optional[float]) -> Optional[str]:
    if value is None:
        return None
    return f"${value:,.2f}"
