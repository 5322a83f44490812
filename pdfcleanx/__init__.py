"""
pdfcleanx - watermark removal for PDF documents.

The engine works directly on page content streams: it tokenizes the decoded
operators, deletes regions that look like watermarks (artifact-tagged marked
content, rotated text and stamps, denylisted phrases) and re-compresses only
the streams it changed. Document-level carriers such as annotations, optional
content layers and shared form XObjects are stripped as well.

Quick Start:
    >>> from pdfcleanx import remove_watermarks
    >>> cleaned = remove_watermarks(open("input.pdf", "rb").read())

Configuration:
    >>> from pdfcleanx import RemovalConfig
    >>> config = RemovalConfig(denylist=("CONFIDENTIAL",), level="conservative")
"""

from __future__ import annotations

from .classifier import AffineTransform, is_suspicious, parse_number
from .codec import clean_stream, decode_stream, encode_stream
from .config import RemovalConfig, RemovalLevel, available_levels
from .exceptions import (
    EncryptedPDFError,
    InvalidPDFError,
    PDFCleanXError,
    SerializationError,
    StreamCodecError,
)
from .remover import (
    BatchResult,
    RemovalResult,
    load_document,
    remove_watermarks,
    remove_watermarks_batch,
    remove_watermarks_from_file,
    save_document,
)
from .rewriter import RewriteResult, StreamRewriter
from .sanitizer import DocumentSanitizer, SanitizeStats, sanitize_document
from .scanner import Region, iter_operations, iter_regions, tokenize
from .validators import PDFInfo, get_pdf_info, validate_pdf

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "remove_watermarks",
    "remove_watermarks_from_file",
    "remove_watermarks_batch",
    "load_document",
    "save_document",
    # Engine
    "DocumentSanitizer",
    "SanitizeStats",
    "sanitize_document",
    "StreamRewriter",
    "RewriteResult",
    "clean_stream",
    "decode_stream",
    "encode_stream",
    "AffineTransform",
    "is_suspicious",
    "parse_number",
    "Region",
    "tokenize",
    "iter_operations",
    "iter_regions",
    # Configuration and results
    "RemovalConfig",
    "RemovalLevel",
    "available_levels",
    "RemovalResult",
    "BatchResult",
    "PDFInfo",
    "get_pdf_info",
    "validate_pdf",
    # Exceptions
    "PDFCleanXError",
    "InvalidPDFError",
    "EncryptedPDFError",
    "StreamCodecError",
    "SerializationError",
    "__version__",
]
