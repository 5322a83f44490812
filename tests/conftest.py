from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Callable, Iterable
import sys

import pytest
from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.generic import (
    ArrayObject,
    DecodedStreamObject,
    DictionaryObject,
    EncodedStreamObject,
    FloatObject,
    IndirectObject,
    NameObject,
    NumberObject,
)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

BODY_TEXT = b"BT /F1 12 Tf 1 0 0 1 72 700 Tm (Quarterly report) Tj ET"
ROTATED_GROUP = b"q 0.7 0.7 -0.7 0.7 100 200 cm BT /F1 40 Tf (CONFIDENTIAL) Tj ET Q"


class PdfBuilder:
    """Assemble small PDFs with hand-written content streams."""

    def __init__(self) -> None:
        self.writer = PdfWriter()

    def stream(self, data: bytes, *, compress: bool = False, **entries: object) -> IndirectObject:
        stream = DecodedStreamObject()
        stream.set_data(data)
        for key, value in entries.items():
            stream[NameObject(f"/{key}")] = value
        if compress:
            stream = stream.flate_encode()
        return self.writer._add_object(stream)

    def corrupt_stream(self, data: bytes = b"this is not deflate data") -> IndirectObject:
        stream = EncodedStreamObject()
        stream._data = data
        stream[NameObject("/Filter")] = NameObject("/FlateDecode")
        return self.writer._add_object(stream)

    def form_xobject(self, data: bytes = b"0 0 m 50 50 l S") -> IndirectObject:
        return self.stream(
            data,
            Type=NameObject("/XObject"),
            Subtype=NameObject("/Form"),
            BBox=ArrayObject([FloatObject(0), FloatObject(0), FloatObject(50), FloatObject(50)]),
        )

    def image_xobject(self) -> IndirectObject:
        return self.stream(
            b"\x00",
            Type=NameObject("/XObject"),
            Subtype=NameObject("/Image"),
            Width=NumberObject(1),
            Height=NumberObject(1),
            ColorSpace=NameObject("/DeviceGray"),
            BitsPerComponent=NumberObject(8),
        )

    def add_page(
        self,
        contents: bytes | Iterable[bytes | IndirectObject] | IndirectObject | None = None,
        *,
        compress: bool = False,
        xobjects: dict[str, IndirectObject] | None = None,
        annotations: int = 0,
        width: float = 200,
        height: float = 300,
    ) -> PageObject:
        page = self.writer.add_blank_page(width=width, height=height)
        if contents is not None:
            page[NameObject("/Contents")] = self._contents(contents, compress)

        resources = DictionaryObject()
        resources[NameObject("/Properties")] = DictionaryObject(
            {NameObject("/MC0"): DictionaryObject({NameObject("/Name"): NameObject("/Watermark")})}
        )
        if xobjects:
            resources[NameObject("/XObject")] = DictionaryObject(
                {NameObject(name): ref for name, ref in xobjects.items()}
            )
        page[NameObject("/Resources")] = resources

        if annotations:
            annots = ArrayObject()
            for _ in range(annotations):
                annot = DictionaryObject(
                    {
                        NameObject("/Type"): NameObject("/Annot"),
                        NameObject("/Subtype"): NameObject("/Stamp"),
                        NameObject("/Rect"): ArrayObject([NumberObject(0), NumberObject(0), NumberObject(10), NumberObject(10)]),
                    }
                )
                annots.append(self.writer._add_object(annot))
            page[NameObject("/Annots")] = annots
            page[NameObject("/StructParents")] = NumberObject(0)
        return page

    def _contents(self, contents, compress: bool):
        if isinstance(contents, IndirectObject):
            return contents
        if isinstance(contents, bytes):
            return self.stream(contents, compress=compress)
        parts = ArrayObject()
        for part in contents:
            parts.append(part if isinstance(part, IndirectObject) else self.stream(part, compress=compress))
        return parts

    def set_catalog_entry(self, key: str, value: object) -> None:
        self.writer._root_object[NameObject(key)] = value

    def to_bytes(self) -> bytes:
        buffer = BytesIO()
        self.writer.write(buffer)
        return buffer.getvalue()


@pytest.fixture()
def pdf_builder() -> PdfBuilder:
    return PdfBuilder()


@pytest.fixture()
def watermarked_pdf(pdf_builder: PdfBuilder) -> bytes:
    for _ in range(3):
        pdf_builder.add_page(BODY_TEXT + b"\n" + ROTATED_GROUP, compress=True)
    return pdf_builder.to_bytes()


@pytest.fixture()
def page_streams() -> Callable[[bytes], list[list[bytes]]]:
    """Return the decoded content streams of every page, per page."""

    from pdfcleanx.sanitizer import iter_content_streams

    def _read(data: bytes) -> list[list[bytes]]:
        reader = PdfReader(BytesIO(data))
        return [[stream.get_data() for stream in iter_content_streams(page)] for page in reader.pages]

    return _read


@pytest.fixture()
def raw_streams() -> Callable[[bytes], list[list[bytes]]]:
    """Return the still-encoded content stream payloads of every page."""

    from pdfcleanx.sanitizer import iter_content_streams

    def _read(data: bytes) -> list[list[bytes]]:
        reader = PdfReader(BytesIO(data))
        return [[stream._data for stream in iter_content_streams(page)] for page in reader.pages]

    return _read


@pytest.fixture()
def sample_pdf(tmp_path: Path, watermarked_pdf: bytes) -> Path:
    pdf_path = tmp_path / "sample.pdf"
    pdf_path.write_bytes(watermarked_pdf)
    return pdf_path
