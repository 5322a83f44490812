"""Document level watermark clean-up for :mod:`pdfcleanx`."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterator

from pypdf import PdfWriter
from pypdf.generic import ArrayObject, DictionaryObject, IndirectObject, NameObject, PdfObject, StreamObject

from .codec import clean_stream, decode_stream, encode_stream
from .config import RemovalConfig
from .exceptions import StreamCodecError
from .rewriter import StreamRewriter

LOGGER = logging.getLogger("pdfcleanx.sanitizer")

ObjectKey = tuple[int, int]

_PAGE_ENTRIES = ("/Annots", "/StructParents", "/PieceInfo")
_CATALOG_ENTRIES = ("/OCProperties", "/Perms", "/AcroForm")


@dataclass
class SanitizeStats:
    """Counters collected while sanitizing one document."""

    pages: int = 0
    streams_seen: int = 0
    streams_cleaned: int = 0
    streams_failed: int = 0
    xobjects_removed: int = 0
    annotations_removed: int = 0
    catalog_entries_removed: int = 0

    def __str__(self) -> str:
        return (
            "SanitizeStats(pages={pages}, streams={seen}, cleaned={cleaned}, failed={failed}, "
            "xobjects={xobjects}, annotations={annotations})"
        ).format(
            pages=self.pages,
            seen=self.streams_seen,
            cleaned=self.streams_cleaned,
            failed=self.streams_failed,
            xobjects=self.xobjects_removed,
            annotations=self.annotations_removed,
        )


def _resolve(value: PdfObject | None):
    return value.get_object() if value is not None else None


def object_key(value: PdfObject | None) -> ObjectKey | None:
    """Return the ``(idnum, generation)`` of an indirect reference."""

    if isinstance(value, IndirectObject):
        return value.idnum, value.generation
    reference = getattr(value, "indirect_reference", None)
    if isinstance(reference, IndirectObject):
        return reference.idnum, reference.generation
    return None


def page_xobjects(page: DictionaryObject) -> DictionaryObject | None:
    resources = _resolve(page.get("/Resources"))
    if not isinstance(resources, DictionaryObject):
        return None
    xobjects = _resolve(resources.get("/XObject"))
    return xobjects if isinstance(xobjects, DictionaryObject) else None


def iter_content_streams(page: DictionaryObject) -> Iterator[StreamObject]:
    """Yield the content streams of *page* in declared order."""

    contents = _resolve(page.get("/Contents"))
    if contents is None:
        return
    if isinstance(contents, ArrayObject):
        for item in contents:
            stream = _resolve(item)
            if isinstance(stream, StreamObject):
                yield stream
    elif isinstance(contents, StreamObject):
        yield contents


def count_xobject_usage(document: PdfWriter) -> Counter[ObjectKey]:
    """Count, per XObject reference, the number of pages that name it."""

    usage: Counter[ObjectKey] = Counter()
    for page in document.pages:
        xobjects = page_xobjects(page)
        if xobjects is None:
            continue
        keys = {object_key(value) for value in xobjects.values()}
        keys.discard(None)
        usage.update(keys)
    return usage


class DocumentSanitizer:
    """Strip watermark carriers from every page of a writable document."""

    def __init__(self, config: RemovalConfig | None = None, rewriter: StreamRewriter | None = None) -> None:
        self.config = config or RemovalConfig()
        self.rewriter = rewriter or StreamRewriter(self.config)
        self.stats = SanitizeStats()

    def is_shared(self, usage: int, page_count: int) -> bool:
        if usage <= 0 or page_count <= 0:
            return False
        if page_count <= self.config.small_document_pages:
            return True
        return usage / page_count >= self.config.shared_xobject_ratio

    def sanitize(self, document: PdfWriter) -> PdfWriter:
        """Clean *document* in place and return it."""

        self.stats = SanitizeStats()
        page_count = len(document.pages)
        level = self.config.removal_level

        shared: set[ObjectKey] = set()
        if level.remove_shared_xobjects:
            usage = count_xobject_usage(document)
            shared = {key for key, count in usage.items() if self.is_shared(count, page_count)}
            LOGGER.debug("Shared XObjects across %d pages: %s", page_count, sorted(shared))

        for index, page in enumerate(document.pages):
            self.stats.pages += 1
            self._strip_page_entries(page, index)
            self._strip_properties(page)
            self._strip_xobjects(page, index, shared, remove_forms=level.remove_form_xobjects)
            self._clean_contents(page, index)

        self._strip_catalog(document)
        LOGGER.info("Sanitized document: %s", self.stats)
        return document

    # -- Per-page steps ----------------------------------------------------

    def _strip_page_entries(self, page: DictionaryObject, index: int) -> None:
        for entry in _PAGE_ENTRIES:
            key = NameObject(entry)
            if key not in page:
                continue
            if entry == "/Annots":
                annotations = _resolve(page[key])
                if isinstance(annotations, ArrayObject):
                    self.stats.annotations_removed += len(annotations)
            del page[key]
            LOGGER.debug("Page %d: removed %s", index + 1, entry)

    def _strip_properties(self, page: DictionaryObject) -> None:
        resources = _resolve(page.get("/Resources"))
        if isinstance(resources, DictionaryObject) and NameObject("/Properties") in resources:
            del resources[NameObject("/Properties")]

    def _strip_xobjects(
        self,
        page: DictionaryObject,
        index: int,
        shared: set[ObjectKey],
        *,
        remove_forms: bool,
    ) -> None:
        xobjects = page_xobjects(page)
        if xobjects is None:
            return
        for name in list(xobjects.keys()):
            reference = xobjects.get(name)
            key = object_key(reference)
            xobject = _resolve(reference)
            reason = None
            if key is not None and key in shared:
                reason = "shared"
            elif remove_forms and isinstance(xobject, DictionaryObject) and xobject.get("/Subtype") == "/Form":
                reason = "form"
            if reason is None:
                continue
            del xobjects[name]
            self.stats.xobjects_removed += 1
            LOGGER.debug("Page %d: removed %s XObject %s", index + 1, reason, name)

    def _clean_contents(self, page: DictionaryObject, index: int) -> None:
        streams = list(iter_content_streams(page))
        self.stats.streams_seen += len(streams)
        if len(streams) > 1:
            self._clean_joined_contents(page, index, streams)
            return
        for number, stream in enumerate(streams):
            self._clean_single(stream, index, number)

    def _clean_single(self, stream: StreamObject, index: int, number: int, text: str | None = None) -> None:
        try:
            if text is None:
                changed = clean_stream(stream, self.rewriter)
            else:
                result = self.rewriter.rewrite(text)
                changed = result.changed
                if changed:
                    encode_stream(stream, result.text)
        except Exception as exc:  # one bad stream must not abort the document
            self.stats.streams_failed += 1
            LOGGER.warning("Page %d: skipping content stream %d: %s", index + 1, number, exc)
            return
        if changed:
            self.stats.streams_cleaned += 1

    def _clean_joined_contents(self, page: DictionaryObject, index: int, streams: list[StreamObject]) -> None:
        """Rewrite an array of content streams as one continuous stream.

        Operators may be split across the parts, so they are joined in declared
        order before rewriting.  A changed result replaces ``/Contents`` with the
        first part; an unchanged page keeps every part byte for byte.  When a
        part cannot be decoded the remaining parts are cleaned one by one.
        """

        texts: list[str | None] = []
        for number, stream in enumerate(streams):
            try:
                texts.append(decode_stream(stream))
            except StreamCodecError as exc:
                self.stats.streams_failed += 1
                LOGGER.warning("Page %d: skipping content stream %d: %s", index + 1, number, exc)
                texts.append(None)

        if any(text is None for text in texts):
            for number, (stream, text) in enumerate(zip(streams, texts)):
                if text is not None:
                    self._clean_single(stream, index, number, text)
            return

        result = self.rewriter.rewrite("\n".join(texts))
        if not result.changed:
            return
        contents = _resolve(page.get("/Contents"))
        first = contents[0] if isinstance(contents, ArrayObject) and len(contents) else None
        if not isinstance(first, IndirectObject):
            first = getattr(first, "indirect_reference", None)
        if not isinstance(first, IndirectObject):
            LOGGER.warning("Page %d: content array holds direct objects, left untouched", index + 1)
            return
        try:
            encode_stream(streams[0], result.text)
        except StreamCodecError as exc:
            self.stats.streams_failed += 1
            LOGGER.warning("Page %d: unable to write joined content stream: %s", index + 1, exc)
            return
        page[NameObject("/Contents")] = first
        self.stats.streams_cleaned += 1
        LOGGER.debug("Page %d: merged %d content streams into one", index + 1, len(streams))

    # -- Document level ----------------------------------------------------

    def _strip_catalog(self, document: PdfWriter) -> None:
        catalog = document._root_object
        for entry in _CATALOG_ENTRIES:
            key = NameObject(entry)
            if key in catalog:
                del catalog[key]
                self.stats.catalog_entries_removed += 1
                LOGGER.debug("Removed catalog entry %s", entry)


def sanitize_document(document: PdfWriter, config: RemovalConfig | None = None) -> SanitizeStats:
    """Sanitize *document* in place and return the collected statistics."""

    sanitizer = DocumentSanitizer(config)
    sanitizer.sanitize(document)
    return sanitizer.stats


__all__ = [
    "DocumentSanitizer",
    "SanitizeStats",
    "sanitize_document",
    "count_xobject_usage",
    "iter_content_streams",
    "object_key",
    "page_xobjects",
]
