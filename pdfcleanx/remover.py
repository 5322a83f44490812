"""Public watermark removal entry points."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pypdf import PasswordType, PdfReader, PdfWriter

from .config import RemovalConfig
from .exceptions import EncryptedPDFError, InvalidPDFError, PDFCleanXError, SerializationError
from .sanitizer import DocumentSanitizer, SanitizeStats
from .utils import PathLike, ensure_parent_dir, resolve_path
from .validators import validate_pdf

LOGGER = logging.getLogger("pdfcleanx.remover")


@dataclass(slots=True)
class RemovalResult:
    """Represents the outcome of a file based removal run."""

    input_path: Path
    output_path: Path
    original_size: int
    cleaned_size: int
    stats: SanitizeStats

    @property
    def streams_cleaned(self) -> int:
        return self.stats.streams_cleaned


@dataclass
class BatchResult:
    """
    Result of a batch removal run.

    Attributes:
        total: Number of input files
        success: Number of files cleaned
        failure: Number of files that could not be processed
        results: One entry per input, in input order
    """

    total: int
    success: int
    failure: int
    results: List[Dict[str, Any]] = field(default_factory=list)

    def __str__(self) -> str:
        return f"BatchResult(total={self.total}, success={self.success}, failure={self.failure})"


def _copy_reader_contents(reader: PdfReader) -> PdfWriter:
    writer = PdfWriter()
    writer.clone_reader_document_root(reader)

    metadata = reader.metadata
    if metadata:
        writer.add_metadata(
            {
                key: str(value)
                for key, value in metadata.items()
                if isinstance(key, str) and value is not None
            }
        )

    return writer


def load_document(data: bytes) -> PdfWriter:
    """Load *data* into a writable in-memory copy of the document.

    Encrypted documents are opened with an empty password; the copy is never
    encrypted.
    """

    try:
        reader = PdfReader(BytesIO(data))
    except Exception as exc:  # pypdf exceptions vary
        raise InvalidPDFError(f"Unable to read PDF: {exc}") from exc

    if reader.is_encrypted:
        LOGGER.debug("Attempting to open encrypted PDF with an empty password")
        try:
            status = reader.decrypt("")
        except Exception as exc:  # decrypt errors vary
            raise EncryptedPDFError(f"Unable to decrypt PDF: {exc}") from exc
        if status == PasswordType.NOT_DECRYPTED:
            raise EncryptedPDFError("PDF is encrypted with a non-empty password")

    try:
        writer = _copy_reader_contents(reader)
        page_count = len(writer.pages)
    except PDFCleanXError:
        raise
    except Exception as exc:  # pypdf exceptions vary
        raise InvalidPDFError(f"Unable to read PDF structure: {exc}") from exc

    LOGGER.debug("Loaded PDF with %d pages", page_count)
    return writer


def save_document(document: PdfWriter) -> bytes:
    buffer = BytesIO()
    try:
        document.write(buffer)
    except Exception as exc:  # an internal invariant was violated
        raise SerializationError(f"Unable to write cleaned PDF: {exc}") from exc
    return buffer.getvalue()


def _remove(data: bytes, config: RemovalConfig | None) -> tuple[bytes, SanitizeStats]:
    document = load_document(data)
    sanitizer = DocumentSanitizer(config)
    sanitizer.sanitize(document)
    return save_document(document), sanitizer.stats


def remove_watermarks(data: bytes, *, config: RemovalConfig | None = None) -> bytes:
    """Return a copy of the PDF in *data* with watermark content removed.

    Raises:
        InvalidPDFError: If *data* cannot be loaded as a PDF.
        SerializationError: If the cleaned document cannot be written.
    """

    cleaned, _ = _remove(bytes(data), config)
    return cleaned


def remove_watermarks_from_file(
    input_path: PathLike,
    output_path: PathLike,
    *,
    config: RemovalConfig | None = None,
    post_validate: bool = False,
) -> RemovalResult:
    """Clean *input_path* writing the output to *output_path*."""

    source = resolve_path(input_path)
    destination = resolve_path(output_path)
    if not source.exists():
        raise FileNotFoundError(source)

    data = source.read_bytes()
    cleaned, stats = _remove(data, config)

    ensure_parent_dir(destination)
    destination.write_bytes(cleaned)
    if post_validate:
        validate_pdf(destination)

    LOGGER.info("Removed watermarks from %s into %s", source, destination)
    return RemovalResult(
        input_path=source,
        output_path=destination,
        original_size=len(data),
        cleaned_size=len(cleaned),
        stats=stats,
    )


def remove_watermarks_batch(
    inputs: Iterable[PathLike],
    output_dir: PathLike,
    *,
    config: RemovalConfig | None = None,
    max_workers: Optional[int] = None,
) -> BatchResult:
    """Clean several files in parallel, one document per worker.

    Each output is written to *output_dir* under the input's file name.
    Failures are recorded in the result instead of being raised.
    """

    sources = [resolve_path(path) for path in inputs]
    base_output = resolve_path(output_dir)
    base_output.mkdir(parents=True, exist_ok=True)

    def _process(source: Path) -> Dict[str, Any]:
        destination = base_output / source.name
        try:
            result = remove_watermarks_from_file(source, destination, config=config)
        except (PDFCleanXError, OSError) as exc:
            LOGGER.error("Failed to remove watermarks from %s: %s", source, exc)
            return {"file": str(source), "status": "failure", "error": str(exc)}
        return {
            "file": str(source),
            "status": "success",
            "output": str(result.output_path),
            "streams_cleaned": result.streams_cleaned,
            "xobjects_removed": result.stats.xobjects_removed,
        }

    if not sources:
        return BatchResult(total=0, success=0, failure=0)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        results = list(executor.map(_process, sources))

    success = sum(1 for entry in results if entry["status"] == "success")
    return BatchResult(
        total=len(results),
        success=success,
        failure=len(results) - success,
        results=results,
    )


__all__ = [
    "RemovalResult",
    "BatchResult",
    "load_document",
    "save_document",
    "remove_watermarks",
    "remove_watermarks_from_file",
    "remove_watermarks_batch",
]
