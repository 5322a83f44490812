"""Custom exception types for :mod:`pdfcleanx`."""

from __future__ import annotations


class PDFCleanXError(Exception):
    """Base exception for all pdfcleanx related errors."""


class InvalidPDFError(PDFCleanXError):
    """Raised when the input cannot be loaded as a PDF document."""


class EncryptedPDFError(InvalidPDFError):
    """Raised when an encrypted PDF cannot be opened with an empty password."""


class StreamCodecError(PDFCleanXError):
    """Raised when a content stream cannot be decoded or re-encoded."""


class SerializationError(PDFCleanXError):
    """Raised when the cleaned document cannot be written back to bytes."""


__all__ = [
    "PDFCleanXError",
    "InvalidPDFError",
    "EncryptedPDFError",
    "StreamCodecError",
    "SerializationError",
]
