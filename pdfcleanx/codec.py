"""Decode, rewrite and re-encode page content streams."""

from __future__ import annotations

import logging

from pypdf.filters import FlateDecode
from pypdf.generic import ArrayObject, DictionaryObject, NameObject, NumberObject, StreamObject

from .exceptions import StreamCodecError
from .rewriter import StreamRewriter

_LOGGER = logging.getLogger("pdfcleanx.codec")

FLATE_FILTER = "/FlateDecode"
_FLATE_NAMES = frozenset({FLATE_FILTER, "/Fl"})
_TEXT_ENCODING = "latin-1"


def _resolve(value):
    return value.get_object() if value is not None else None


def stream_filter(stream: StreamObject) -> tuple[str | None, object]:
    """Return the single filter name of *stream* and its decode parameters.

    Raises :class:`StreamCodecError` for filter chains and filters other than
    FlateDecode.
    """

    filters = _resolve(stream.get("/Filter"))
    params = _resolve(stream.get("/DecodeParms"))
    if filters is None:
        return None, None
    if isinstance(filters, ArrayObject):
        if len(filters) == 0:
            return None, None
        if len(filters) != 1:
            raise StreamCodecError(f"Unsupported filter chain: {list(filters)}")
        filters = _resolve(filters[0])
        if isinstance(params, ArrayObject):
            params = _resolve(params[0]) if len(params) else None
    name = str(filters)
    if name not in _FLATE_NAMES:
        raise StreamCodecError(f"Unsupported stream filter: {name}")
    if not isinstance(params, DictionaryObject):
        params = None
    return FLATE_FILTER, params


def decode_stream(stream: StreamObject) -> str:
    """Return the decoded content of *stream* as Latin-1 text."""

    name, params = stream_filter(stream)
    # pypdf exposes no public accessor for the still-encoded payload.
    raw = stream._data
    if name is None:
        return raw.decode(_TEXT_ENCODING)
    try:
        data = FlateDecode.decode(raw, params)
    except Exception as exc:  # pypdf and zlib errors vary
        raise StreamCodecError(f"Unable to inflate content stream: {exc}") from exc
    return data.decode(_TEXT_ENCODING)


def encode_stream(stream: StreamObject, text: str) -> int:
    """Deflate *text* into *stream*, updating ``/Filter`` and ``/Length``.

    Returns the new payload size in bytes.
    """

    try:
        payload = FlateDecode.encode(text.encode(_TEXT_ENCODING))
    except Exception as exc:  # pragma: no cover - zlib failures are unusual
        raise StreamCodecError(f"Unable to deflate content stream: {exc}") from exc

    # No public setter for raw bytes either; set_data() only exists on decoded streams.
    stream._data = payload
    stream[NameObject("/Filter")] = NameObject(FLATE_FILTER)
    stream[NameObject("/Length")] = NumberObject(len(payload))
    if NameObject("/DecodeParms") in stream:
        del stream[NameObject("/DecodeParms")]
    # Drop the cached decoded copy so get_data() reflects the new payload.
    if hasattr(stream, "decoded_self"):
        stream.decoded_self = None
    return len(payload)


def clean_stream(stream: StreamObject, rewriter: StreamRewriter) -> bool:
    """Run *rewriter* over *stream* in place.

    The stream is only re-encoded when the rewriter reports a change, so
    untouched streams keep their original bytes.  Returns whether the stream
    was modified.
    """

    text = decode_stream(stream)
    result = rewriter.rewrite(text)
    if not result.changed:
        return False
    size = encode_stream(stream, result.text)
    _LOGGER.debug("Re-encoded content stream: %d -> %d characters, %d bytes", len(text), len(result.text), size)
    return True


__all__ = ["FLATE_FILTER", "stream_filter", "decode_stream", "encode_stream", "clean_stream"]
