"""Payroll Extract CLI - pull structured payroll data out of pay-stub PDFs."""

import json
import logging
import os
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from payroll_extract import __version__
from payroll_extract.sdk import (
    ConfigError,
    DocumentError,
    EscalationController,
    FieldExtractor,
    GeminiOcrEngine,
    GeminiTextExtractor,
    GeminiVisionExtractor,
    get_data_path,
    get_settings_path,
    load_extraction_settings,
    load_settings,
    process_batch,
    process_pdf,
    save_results_json,
    write_results_csv,
)

from .renderers import render_document, render_record


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.environ.get("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s.%(msecs)03d %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
        force=True,
    )


def _load_settings():
    try:
        return load_extraction_settings()
    except ConfigError as e:
        raise click.ClickException(str(e))


def _build_pipeline(settings, no_llm: bool, no_vision: bool, no_ocr: bool):
    """Controller and OCR engine with the requested external methods."""
    controller = EscalationController(
        text_service=None if no_llm else GeminiTextExtractor(timeout=settings.llm_timeout),
        vision_service=None if no_vision else GeminiVisionExtractor(timeout=settings.vision_timeout),
        settings=settings,
    )
    ocr_engine = None if no_ocr else GeminiOcrEngine(timeout=settings.ocr_timeout)
    return controller, ocr_engine


def _method_options(f):
    f = click.option("--no-ocr", is_flag=True, help="Never OCR image-only pages.")(f)
    f = click.option("--no-vision", is_flag=True, help="Skip the vision fallback.")(f)
    f = click.option("--no-llm", is_flag=True, help="Skip the language-model attempt.")(f)
    return f


@click.group()
@click.version_option(version=__version__, prog_name="payroll-extract")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging (overrides LOG_LEVEL).")
def cli(verbose):
    """Payroll Extract - structured data from pay-stub PDFs.

    Each page is parsed with pattern rules, then escalated to a language
    model and a vision model (via the Gemini CLI) when federal or state
    deductions are missing.

    Configuration is loaded from (in order):

    \b
    1. PAYROLL_EXTRACT_CONFIG_PATH environment variable
    2. ~/.config/payroll-extract/settings.json (XDG default)
    """
    _configure_logging(verbose)


@cli.command("extract")
@click.argument("pdf", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_method_options
@click.option("--format", "output_format", type=click.Choice(["table", "json"]),
              default="table", help="Output format.")
@click.option("--csv", "csv_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Also write the page rows to this CSV file.")
@click.option("--save", is_flag=True, help="Save the results as JSON under the data directory.")
def extract(pdf, no_llm, no_vision, no_ocr, output_format, csv_path, save):
    """Extract payroll data from every page of PDF."""
    settings = _load_settings()
    controller, ocr_engine = _build_pipeline(settings, no_llm, no_vision, no_ocr)

    try:
        document = process_pdf(pdf, controller, ocr_engine, settings)
    except DocumentError as e:
        raise click.ClickException(str(e))

    if output_format == "json":
        click.echo(json.dumps(document.model_dump(mode="json", by_alias=True), indent=2))
    else:
        render_document(Console(), document)

    if csv_path:
        write_results_csv([document], csv_path)
        click.echo(f"Wrote {csv_path}", err=True)

    if save:
        saved = save_results_json(document)
        click.echo(f"Saved {saved}", err=True)


@cli.command("batch")
@click.argument("pdfs", nargs=-1, required=True,
                type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_method_options
@click.option("--csv", "csv_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Write all page rows to this CSV file.")
@click.option("--workers", type=click.IntRange(min=1), help="Documents processed concurrently.")
def batch(pdfs, no_llm, no_vision, no_ocr, csv_path, workers):
    """Extract payroll data from several PDFs concurrently."""
    settings = _load_settings()
    controller, ocr_engine = _build_pipeline(settings, no_llm, no_vision, no_ocr)

    documents = process_batch(list(pdfs), controller, ocr_engine, settings, max_workers=workers)

    table = Table(title=f"{len(documents)} document(s)")
    table.add_column("File")
    table.add_column("Pages", justify="right")
    table.add_column("Kept", justify="right")
    table.add_column("Methods")
    table.add_column("Error", style="red")
    for document in documents:
        methods = sorted({p.extraction_method.value for p in document.pages})
        table.add_row(
            document.source_file,
            str(document.page_count),
            str(len(document.pages)),
            ", ".join(methods),
            document.error or "",
        )
    Console().print(table)

    if csv_path:
        write_results_csv(documents, csv_path)
        click.echo(f"Wrote {csv_path}", err=True)

    failed = [d for d in documents if d.error]
    if failed:
        raise click.ClickException(f"{len(failed)} of {len(documents)} document(s) failed")


@cli.command("text")
@click.argument("text_file", type=click.File("r"))
@click.option("--format", "output_format", type=click.Choice(["table", "json"]),
              default="table", help="Output format.")
@click.option("--debug", is_flag=True, help="Show which strategy matched each field.")
def text(text_file, output_format, debug):
    """Run pattern extraction only on a text file (one page)."""
    settings = _load_settings()
    extractor = FieldExtractor(settings)
    record = extractor.extract(text_file.read())

    if output_format == "json":
        output = {"payrollRecord": record.model_dump(mode="json", by_alias=True)}
        if debug:
            output["debug"] = extractor.debug_info
        click.echo(json.dumps(output, indent=2))
        return

    console = Console()
    render_record(console, record, title=getattr(text_file, "name", "text"))
    if debug:
        for field, usage in extractor.debug_info["pattern_usage"].items():
            status = usage["strategy"] if usage["matched"] else "[dim]no match[/dim]"
            console.print(f"  {field}: {status}")


@cli.group()
def settings():
    """Inspect settings (settings.json)."""
    pass


@settings.command("show")
def settings_show():
    """Show the settings file and effective values."""
    settings_path = get_settings_path()
    try:
        current = load_settings()
    except ConfigError as e:
        raise click.ClickException(str(e))

    click.echo(f"Settings file: {settings_path}")
    click.echo(f"File exists: {settings_path.exists()}")
    click.echo()

    effective = _load_settings()
    click.echo("Effective settings:")
    for key, value in effective.model_dump().items():
        marker = "" if key in current else " (default)"
        click.echo(f"  {key}: {value}{marker}")
    click.echo(f"  data_dir: {get_data_path()}{'' if 'data_dir' in current else ' (default)'}")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
