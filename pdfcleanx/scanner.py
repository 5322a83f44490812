"""Lexer and region scanner for decoded PDF content streams.

Content streams are handled as Latin-1 text so that every byte maps to exactly
one character.  The lexer never raises: malformed input degrades into operator
tokens or unterminated strings that simply run to the end of the stream.  All
tokens remember their ``[start, end)`` offsets, which lets callers delete a
region by splicing the original text and leave every other byte untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Collection, Iterable, Iterator, Sequence

__all__ = [
    "TokenKind",
    "Token",
    "Operation",
    "Region",
    "tokenize",
    "iter_operations",
    "iter_regions",
    "iter_nested_regions",
    "decode_string_token",
    "splice_out",
    "MARKED_CONTENT_OPENERS",
    "MARKED_CONTENT_CLOSERS",
]

_LOGGER = logging.getLogger("pdfcleanx.scanner")

_WHITESPACE = "\x00\t\n\r\x0c "
_DELIMITERS = "()<>[]{}/%"
_HEX_DIGITS = "0123456789abcdefABCDEF"

MARKED_CONTENT_OPENERS = frozenset({"BDC", "BMC"})
MARKED_CONTENT_CLOSERS = frozenset({"EMC"})


class TokenKind(str, Enum):
    """Lexical categories of the content stream language."""

    NUMBER = "number"
    NAME = "name"
    STRING = "string"
    HEX_STRING = "hex_string"
    ARRAY_OPEN = "array_open"
    ARRAY_CLOSE = "array_close"
    DICT_OPEN = "dict_open"
    DICT_CLOSE = "dict_close"
    OPERATOR = "operator"
    INLINE_DATA = "inline_data"
    ARRAY = "array"
    DICT = "dict"


@dataclass(frozen=True, slots=True)
class Token:
    """Single lexical token, or a composite array/dictionary operand."""

    kind: TokenKind
    value: str
    start: int
    end: int
    items: tuple["Token", ...] = ()


@dataclass(frozen=True, slots=True)
class Operation:
    """An operator together with the operands that precede it."""

    operator: str
    operands: tuple[Token, ...]
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class Region:
    """Balanced ``opener ... closer`` span of a content stream.

    ``operations`` holds every operation of the span including the opener and
    the closer.  ``direct`` holds the inner operations that are not nested in
    another region of the same family.
    """

    start: int
    end: int
    text: str
    operations: tuple[Operation, ...] = field(repr=False)
    direct: tuple[Operation, ...] = field(repr=False)

    @property
    def opener(self) -> Operation:
        return self.operations[0]

    @property
    def inner(self) -> tuple[Operation, ...]:
        return self.operations[1:-1]

    def contains_operator(self, operators: Collection[str]) -> bool:
        return any(op.operator in operators for op in self.inner)


# -- Lexer --------------------------------------------------------------------


def _is_number(text: str) -> bool:
    digits = 0
    dots = 0
    for index, char in enumerate(text):
        if char in "+-":
            if index != 0:
                return False
        elif char == ".":
            dots += 1
        elif char.isdigit():
            digits += 1
        else:
            return False
    return digits > 0 and dots <= 1


def _scan_literal(text: str, index: int) -> int:
    """Return the offset just past the literal string opening at *index*."""

    depth = 0
    length = len(text)
    while index < length:
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index + 1
        index += 1
    return length


def _scan_inline_data(text: str, index: int) -> int:
    """Return the offset of the ``EI`` that ends inline image data."""

    length = len(text)
    cursor = index
    while True:
        found = text.find("EI", cursor)
        if found < 0:
            return length
        before_ok = found == 0 or text[found - 1] in _WHITESPACE
        after = found + 2
        after_ok = after >= length or text[after] in _WHITESPACE or text[after] in _DELIMITERS
        if before_ok and after_ok:
            return found
        cursor = found + 1


def tokenize(text: str) -> Iterator[Token]:
    """Yield the tokens of *text* from left to right."""

    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if char in _WHITESPACE:
            index += 1
            continue
        if char == "%":
            while index < length and text[index] not in "\r\n":
                index += 1
            continue
        start = index
        if char == "(":
            index = _scan_literal(text, index)
            yield Token(TokenKind.STRING, text[start:index], start, index)
        elif char == "<":
            if text.startswith("<<", index):
                index += 2
                yield Token(TokenKind.DICT_OPEN, "<<", start, index)
            else:
                close = text.find(">", index + 1)
                index = length if close < 0 else close + 1
                yield Token(TokenKind.HEX_STRING, text[start:index], start, index)
        elif char == ">":
            if text.startswith(">>", index):
                index += 2
                yield Token(TokenKind.DICT_CLOSE, ">>", start, index)
            else:
                index += 1
        elif char == "[":
            index += 1
            yield Token(TokenKind.ARRAY_OPEN, "[", start, index)
        elif char == "]":
            index += 1
            yield Token(TokenKind.ARRAY_CLOSE, "]", start, index)
        elif char in "{})":
            index += 1
        elif char == "/":
            index += 1
            while index < length and text[index] not in _WHITESPACE and text[index] not in _DELIMITERS:
                index += 1
            yield Token(TokenKind.NAME, text[start:index], start, index)
        else:
            while index < length and text[index] not in _WHITESPACE and text[index] not in _DELIMITERS:
                index += 1
            word = text[start:index]
            if _is_number(word):
                yield Token(TokenKind.NUMBER, word, start, index)
                continue
            yield Token(TokenKind.OPERATOR, word, start, index)
            if word == "ID":
                # A single whitespace character separates ``ID`` from the binary data.
                if index < length and text[index] in _WHITESPACE:
                    index += 1
                data_end = _scan_inline_data(text, index)
                yield Token(TokenKind.INLINE_DATA, text[index:data_end], index, data_end)
                index = data_end


def iter_operations(tokens: Iterable[Token] | str) -> Iterator[Operation]:
    """Group *tokens* (or the tokens of a text) into operations.

    Arrays and dictionaries become single composite operands.  Operands left
    over at the end of the stream, or trapped in an unterminated array, never
    form an operation.
    """

    if isinstance(tokens, str):
        tokens = tokenize(tokens)

    operands: list[Token] = []
    stack: list[tuple[Token, list[Token]]] = []
    for token in tokens:
        if token.kind in (TokenKind.ARRAY_OPEN, TokenKind.DICT_OPEN):
            stack.append((token, []))
            continue
        if token.kind in (TokenKind.ARRAY_CLOSE, TokenKind.DICT_CLOSE):
            if not stack:
                continue
            opening, items = stack.pop()
            kind = TokenKind.ARRAY if opening.kind is TokenKind.ARRAY_OPEN else TokenKind.DICT
            composite = Token(kind, "", opening.start, token.end, tuple(items))
            (stack[-1][1] if stack else operands).append(composite)
            continue
        if token.kind is TokenKind.OPERATOR and not stack:
            start = operands[0].start if operands else token.start
            yield Operation(token.value, tuple(operands), start, token.end)
            operands = []
            continue
        (stack[-1][1] if stack else operands).append(token)


# -- Regions ------------------------------------------------------------------


def _as_operations(source: str | Sequence[Operation]) -> list[Operation]:
    if isinstance(source, str):
        return list(iter_operations(source))
    return list(source)


def _direct_operations(
    operations: Sequence[Operation],
    openers: Collection[str],
    closers: Collection[str],
) -> tuple[Operation, ...]:
    depth = 0
    direct: list[Operation] = []
    for op in operations:
        if op.operator in openers:
            depth += 1
        elif op.operator in closers and depth:
            depth -= 1
        elif depth == 0:
            direct.append(op)
    return tuple(direct)


def _build_region(
    text: str,
    operations: Sequence[Operation],
    openers: Collection[str],
    closers: Collection[str],
) -> Region:
    start = operations[0].start
    end = operations[-1].end
    return Region(
        start=start,
        end=end,
        text=text[start:end],
        operations=tuple(operations),
        direct=_direct_operations(operations[1:-1], openers, closers),
    )


def iter_regions(
    text: str,
    openers: Collection[str],
    closers: Collection[str],
    *,
    accept: Callable[[Operation], bool] | None = None,
    operations: Sequence[Operation] | None = None,
) -> Iterator[Region]:
    """Yield maximal, non-overlapping balanced regions of *text*.

    A region starts at an opener for which *accept* returns true (every
    opener when *accept* is omitted) and ends at the closer that balances it.
    Openers of the same family re-entered inside the region are counted, so
    the first closer does not end the region early.  An opener that is never
    balanced yields nothing.
    """

    ops = _as_operations(text) if operations is None else list(operations)
    depth = 0
    begin = 0
    for index, op in enumerate(ops):
        if depth == 0:
            if op.operator in openers and (accept is None or accept(op)):
                depth = 1
                begin = index
            continue
        if op.operator in openers:
            depth += 1
        elif op.operator in closers:
            depth -= 1
            if depth == 0:
                yield _build_region(text, ops[begin : index + 1], openers, closers)
    if depth:
        _LOGGER.debug("Unterminated %s region at offset %d left untouched", "/".join(sorted(openers)), ops[begin].start)


def iter_nested_regions(
    text: str,
    openers: Collection[str],
    closers: Collection[str],
    *,
    operations: Sequence[Operation] | None = None,
) -> Iterator[Region]:
    """Yield every balanced region of *text*, nested ones included.

    Regions are ordered by start offset, so an enclosing region is always
    produced before the regions it contains.
    """

    ops = _as_operations(text) if operations is None else list(operations)
    stack: list[int] = []
    pending: list[Region] = []
    for index, op in enumerate(ops):
        if op.operator in openers:
            stack.append(index)
        elif op.operator in closers and stack:
            begin = stack.pop()
            pending.append(_build_region(text, ops[begin : index + 1], openers, closers))
            if not stack:
                pending.sort(key=lambda region: region.start)
                yield from pending
                pending = []
    if stack:
        _LOGGER.debug("%d unterminated %s region(s) left untouched", len(stack), "/".join(sorted(openers)))
    # Regions closed inside an unterminated outer opener are still balanced.
    pending.sort(key=lambda region: region.start)
    yield from pending


def splice_out(text: str, spans: Iterable[tuple[int, int]]) -> str:
    """Remove *spans* from *text*.

    Spans must be ordered by start offset; spans that start inside a span
    already removed are skipped.  When removing a span would join two regular
    tokens a single space is kept in its place.
    """

    pieces: list[str] = []
    cursor = 0
    for start, end in spans:
        if start < cursor or end <= start:
            continue
        pieces.append(text[cursor:start])
        before = text[start - 1] if start > 0 else ""
        after = text[end] if end < len(text) else ""
        if before and after and before not in _WHITESPACE and after not in _WHITESPACE:
            pieces.append(" ")
        cursor = end
    pieces.append(text[cursor:])
    return "".join(pieces)


# -- String operands ----------------------------------------------------------

_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f", "(": "(", ")": ")", "\\": "\\"}


def _decode_literal(raw: str) -> str:
    body = raw[1:-1] if raw.endswith(")") else raw[1:]
    out: list[str] = []
    index = 0
    length = len(body)
    while index < length:
        char = body[index]
        if char != "\\":
            out.append(char)
            index += 1
            continue
        index += 1
        if index >= length:
            break
        escaped = body[index]
        if escaped in _ESCAPES:
            out.append(_ESCAPES[escaped])
            index += 1
        elif escaped in "01234567":
            digits = escaped
            index += 1
            while index < length and len(digits) < 3 and body[index] in "01234567":
                digits += body[index]
                index += 1
            out.append(chr(int(digits, 8) & 0xFF))
        elif escaped in "\r\n":
            # Line continuation.
            index += 1
            if escaped == "\r" and index < length and body[index] == "\n":
                index += 1
        else:
            out.append(escaped)
            index += 1
    return "".join(out)


def _decode_hex(raw: str) -> str:
    digits = "".join(char for char in raw[1:].rstrip(">") if char in _HEX_DIGITS)
    if len(digits) % 2:
        digits += "0"
    return bytes.fromhex(digits).decode("latin-1")


def decode_string_token(token: Token) -> str:
    """Return the character content of a literal or hex string operand."""

    if token.kind is TokenKind.STRING:
        value = _decode_literal(token.value)
    elif token.kind is TokenKind.HEX_STRING:
        value = _decode_hex(token.value)
    else:
        return ""
    if value.startswith("\xfe\xff"):
        return value[2:].encode("latin-1").decode("utf-16-be", errors="ignore")
    return value
