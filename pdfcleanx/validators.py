"""Validation helpers for :mod:`pdfcleanx`."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from io import BytesIO

from pypdf import PdfReader

from .exceptions import InvalidPDFError
from .utils import PathLike, resolve_path

_LOGGER = logging.getLogger("pdfcleanx.validators")


@dataclass(slots=True)
class PDFInfo:
    """Page geometry summary of a PDF document."""

    num_pages: int
    page_sizes: list[tuple[float, float]] = field(default_factory=list)
    is_encrypted: bool = False


def _open_reader(source: PathLike | bytes) -> PdfReader:
    if isinstance(source, (bytes, bytearray)):
        return PdfReader(BytesIO(bytes(source)))
    pdf_path = resolve_path(source)
    _LOGGER.debug("Validating PDF at %s", pdf_path)
    return PdfReader(str(pdf_path))


def get_pdf_info(source: PathLike | bytes) -> PDFInfo:
    """Return the page count and page sizes of *source* (a path or PDF bytes)."""

    try:
        reader = _open_reader(source)
        encrypted = bool(reader.is_encrypted)
        if encrypted:
            reader.decrypt("")
        sizes = [(float(page.mediabox.width), float(page.mediabox.height)) for page in reader.pages]
    except Exception as exc:
        raise InvalidPDFError(f"Failed to parse PDF: {exc}") from exc
    return PDFInfo(num_pages=len(sizes), page_sizes=sizes, is_encrypted=encrypted)


def validate_pdf(source: PathLike | bytes) -> None:
    """Validate that *source* parses and contains at least one page."""

    info = get_pdf_info(source)
    if info.num_pages == 0:
        raise InvalidPDFError("PDF contains no pages")


__all__ = ["PDFInfo", "get_pdf_info", "validate_pdf"]
