from __future__ import annotations

from io import BytesIO
from pathlib import Path

import pytest
from pypdf import PdfReader, PdfWriter

from pdfcleanx import (
    EncryptedPDFError,
    InvalidPDFError,
    RemovalConfig,
    get_pdf_info,
    remove_watermarks,
    remove_watermarks_batch,
    remove_watermarks_from_file,
)
from pdfcleanx.scanner import tokenize

from conftest import BODY_TEXT, ROTATED_GROUP, PdfBuilder


def _is_subsequence(cleaned: bytes, original: bytes) -> bool:
    remaining = iter(token.value for token in tokenize(original.decode("latin-1")))
    return all(any(value == token.value for value in remaining) for token in tokenize(cleaned.decode("latin-1")))


def _encrypt(data: bytes, user_password: str) -> bytes:
    writer = PdfWriter(clone_from=PdfReader(BytesIO(data)))
    writer.encrypt(user_password=user_password, owner_password="owner", algorithm="RC4-128")
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def test_rotated_stamp_is_removed_and_body_kept(watermarked_pdf: bytes, page_streams) -> None:
    cleaned = remove_watermarks(watermarked_pdf)

    for streams in page_streams(cleaned):
        assert [stream.strip() for stream in streams] == [BODY_TEXT]


def test_page_count_and_sizes_are_preserved(pdf_builder: PdfBuilder) -> None:
    pdf_builder.add_page(BODY_TEXT + b"\n" + ROTATED_GROUP, width=612, height=792)
    pdf_builder.add_page(BODY_TEXT, width=792, height=612)
    pdf_builder.add_page(ROTATED_GROUP, width=420, height=595)
    data = pdf_builder.to_bytes()

    before = get_pdf_info(data)
    after = get_pdf_info(remove_watermarks(data))

    assert after.num_pages == before.num_pages == 3
    assert after.page_sizes == before.page_sizes


def test_output_is_a_deletion_of_the_input(pdf_builder: PdfBuilder, page_streams) -> None:
    original = b"\n".join(
        [
            b"/Artifact << /Type /Pagination >> BDC BT (Page 1 of 9) Tj ET EMC",
            BODY_TEXT,
            ROTATED_GROUP,
            b"q 0.5 -0.5 0.5 0.5 0 0 cm /Fm0 Do Q",
            b"0 0 m 100 100 l S",
        ]
    )
    pdf_builder.add_page(original)

    (cleaned,) = page_streams(remove_watermarks(pdf_builder.to_bytes()))[0]

    assert cleaned != original
    assert _is_subsequence(cleaned, original)
    assert b"0 0 m 100 100 l S" in cleaned


def test_second_run_is_a_no_op(watermarked_pdf: bytes, raw_streams) -> None:
    once = remove_watermarks(watermarked_pdf)
    twice = remove_watermarks(once)

    assert raw_streams(twice) == raw_streams(once)


def test_untouched_streams_keep_their_bytes(pdf_builder: PdfBuilder, raw_streams) -> None:
    pdf_builder.add_page(BODY_TEXT, compress=True)
    pdf_builder.add_page([BODY_TEXT, b"q 1 0 0 1 0 0 cm 0 0 m 10 10 l S Q"], compress=True)
    pdf_builder.add_page([BODY_TEXT, ROTATED_GROUP], compress=True)
    data = pdf_builder.to_bytes()

    before = raw_streams(data)
    after = raw_streams(remove_watermarks(data))

    assert after[0] == before[0]
    assert after[1] == before[1]
    assert len(after[2]) == 1
    assert after[2][0] != before[2][0]


def test_denylist_removes_axis_aligned_text(pdf_builder: PdfBuilder, page_streams) -> None:
    pdf_builder.add_page(BODY_TEXT + b"\nBT 1 0 0 1 72 40 Tm (Licensed to Jane Doe) Tj ET")
    data = pdf_builder.to_bytes()

    kept = page_streams(remove_watermarks(data))[0][0]
    cleaned = page_streams(remove_watermarks(data, config=RemovalConfig(denylist=("jane doe",))))[0][0]

    assert b"Jane Doe" in kept
    assert b"Jane Doe" not in cleaned
    assert b"Quarterly report" in cleaned


def test_non_pdf_input_is_rejected() -> None:
    with pytest.raises(InvalidPDFError):
        remove_watermarks(b"this is not a PDF document")
    with pytest.raises(InvalidPDFError):
        remove_watermarks(b"")


def test_corrupt_stream_is_left_in_place(pdf_builder: PdfBuilder, raw_streams, page_streams) -> None:
    pdf_builder.add_page(pdf_builder.corrupt_stream())
    pdf_builder.add_page(BODY_TEXT + b"\n" + ROTATED_GROUP)

    cleaned = remove_watermarks(pdf_builder.to_bytes())

    assert raw_streams(cleaned)[0][0] == b"this is not deflate data"
    assert page_streams(cleaned)[1][0].strip() == BODY_TEXT
    assert get_pdf_info(cleaned).num_pages == 2


def test_encrypted_with_empty_password_is_cleaned(watermarked_pdf: bytes, page_streams) -> None:
    encrypted = _encrypt(watermarked_pdf, "")
    assert get_pdf_info(encrypted).is_encrypted is True

    cleaned = remove_watermarks(encrypted)

    assert get_pdf_info(cleaned).is_encrypted is False
    assert page_streams(cleaned)[0][0].strip() == BODY_TEXT


def test_encrypted_with_password_is_rejected(watermarked_pdf: bytes) -> None:
    with pytest.raises(EncryptedPDFError):
        remove_watermarks(_encrypt(watermarked_pdf, "secret"))


def test_remove_from_file_writes_output(sample_pdf: Path, tmp_path: Path, page_streams) -> None:
    output = tmp_path / "nested" / "clean.pdf"
    result = remove_watermarks_from_file(sample_pdf, output, post_validate=True)

    assert output.exists()
    assert result.output_path == output.resolve()
    assert result.original_size == sample_pdf.stat().st_size
    assert result.cleaned_size == output.stat().st_size
    assert result.streams_cleaned == 3
    assert page_streams(output.read_bytes())[2][0].strip() == BODY_TEXT


def test_remove_from_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        remove_watermarks_from_file(tmp_path / "missing.pdf", tmp_path / "out.pdf")


def test_batch_records_failures(sample_pdf: Path, tmp_path: Path) -> None:
    second = tmp_path / "second.pdf"
    second.write_bytes(sample_pdf.read_bytes())
    bogus = tmp_path / "bogus.pdf"
    bogus.write_text("not a pdf")
    output_dir = tmp_path / "cleaned"

    result = remove_watermarks_batch([sample_pdf, bogus, second], output_dir, max_workers=2)

    assert (result.total, result.success, result.failure) == (3, 2, 1)
    assert [entry["status"] for entry in result.results] == ["success", "failure", "success"]
    assert result.results[0]["streams_cleaned"] == 3
    assert (output_dir / "sample.pdf").exists()
    assert not (output_dir / "bogus.pdf").exists()


def test_empty_batch(tmp_path: Path) -> None:
    result = remove_watermarks_batch([], tmp_path / "cleaned")

    assert (result.total, result.success, result.failure) == (0, 0, 0)
