"""Document conversion: opening PDFs and rendering pages to images."""

from __future__ import annotations

from .pdf import PdfDocument, PdfPageRenderer, is_pdf_path, open_document, open_pdf_document
from .profiles import DEFAULT_PROFILES, select_render_profile

__all__ = [
    "PdfDocument",
    "PdfPageRenderer",
    "open_document",
    "open_pdf_document",
    "is_pdf_path",
    "DEFAULT_PROFILES",
    "select_render_profile",
]
