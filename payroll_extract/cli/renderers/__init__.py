"""Rich renderers for CLI output."""

from .result_renderer import render_document, render_page, render_record

__all__ = ["render_document", "render_page", "render_record"]
