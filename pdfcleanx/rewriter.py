"""Rule pipeline that strips watermark operators from decoded content streams."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from .classifier import has_suspicious_transform
from .config import RemovalConfig
from .scanner import (
    MARKED_CONTENT_CLOSERS,
    MARKED_CONTENT_OPENERS,
    Operation,
    Region,
    Token,
    TokenKind,
    decode_string_token,
    iter_nested_regions,
    iter_operations,
    iter_regions,
    splice_out,
)

_LOGGER = logging.getLogger("pdfcleanx.rewriter")

Rule = Callable[[str, RemovalConfig], str]

_TEXT_OPENERS = frozenset({"BT"})
_TEXT_CLOSERS = frozenset({"ET"})
_STATE_OPENERS = frozenset({"q"})
_STATE_CLOSERS = frozenset({"Q"})
_SHOW_OPERATORS = frozenset({"Tj", "TJ"})


@dataclass(frozen=True, slots=True)
class RewriteResult:
    """Outcome of :meth:`StreamRewriter.rewrite`."""

    text: str
    changed: bool


def _remove(text: str, regions: Sequence[Region] | Sequence[Operation]) -> str:
    if not regions:
        return text
    return splice_out(text, [(item.start, item.end) for item in regions])


def strip_tagged_marked_content(text: str, config: RemovalConfig) -> str:
    """Drop ``BDC``/``BMC`` ... ``EMC`` blocks tagged as artifacts or watermarks."""

    tags = set(config.marked_content_tags)

    def tagged(op: Operation) -> bool:
        return bool(op.operands) and op.operands[0].kind is TokenKind.NAME and op.operands[0].value in tags

    regions = list(iter_regions(text, MARKED_CONTENT_OPENERS, MARKED_CONTENT_CLOSERS, accept=tagged))
    return _remove(text, regions)


def strip_rotated_text_objects(text: str, config: RemovalConfig) -> str:
    """Drop ``BT`` ... ``ET`` objects placed with a rotated text matrix."""

    regions = [
        region
        for region in iter_regions(text, _TEXT_OPENERS, _TEXT_CLOSERS)
        if has_suspicious_transform(
            region.operations,
            tolerance=config.rotation_tolerance,
            exempt_quarter_turns=config.exempt_quarter_turns,
        )
    ]
    return _remove(text, regions)


def _rotated_state_groups(text: str, config: RemovalConfig, payload: frozenset[str]) -> list[Region]:
    selected: list[Region] = []
    covered_until = -1
    for region in iter_nested_regions(text, _STATE_OPENERS, _STATE_CLOSERS):
        if region.start < covered_until:
            continue
        if not region.contains_operator(payload):
            continue
        if has_suspicious_transform(
            region.direct,
            tolerance=config.rotation_tolerance,
            operators=("cm",),
            exempt_quarter_turns=config.exempt_quarter_turns,
        ):
            selected.append(region)
            covered_until = region.end
    return selected


def strip_rotated_text_groups(text: str, config: RemovalConfig) -> str:
    """Drop ``q ... cm ... BT ... ET ... Q`` groups whose own ``cm`` is rotated."""

    return _remove(text, _rotated_state_groups(text, config, _TEXT_OPENERS))


def strip_rotated_xobject_groups(text: str, config: RemovalConfig) -> str:
    """Drop ``q ... cm ... /Name Do Q`` groups whose own ``cm`` is rotated."""

    return _remove(text, _rotated_state_groups(text, config, frozenset({"Do"})))


def _shown_text(operation: Operation) -> str:
    pieces: list[str] = []
    for operand in operation.operands:
        if operand.kind is TokenKind.ARRAY:
            pieces.extend(_strings_of(operand.items))
        else:
            pieces.extend(_strings_of((operand,)))
    return "".join(pieces)


def _strings_of(tokens: Sequence[Token]) -> list[str]:
    return [
        decode_string_token(token)
        for token in tokens
        if token.kind in (TokenKind.STRING, TokenKind.HEX_STRING)
    ]


def strip_denylisted_text(text: str, config: RemovalConfig) -> str:
    """Drop ``Tj``/``TJ`` operators whose text contains a denylisted phrase."""

    if not config.denylist:
        return text
    needles = [term.lower() for term in config.denylist]
    matches = [
        op
        for op in iter_operations(text)
        if op.operator in _SHOW_OPERATORS and any(needle in _shown_text(op).lower() for needle in needles)
    ]
    return _remove(text, matches)


DEFAULT_RULES: tuple[Rule, ...] = (
    strip_tagged_marked_content,
    strip_rotated_text_objects,
    strip_rotated_text_groups,
    strip_rotated_xobject_groups,
    strip_denylisted_text,
)


class StreamRewriter:
    """Apply the watermark rules, in order, to decoded stream text."""

    def __init__(self, config: RemovalConfig | None = None, rules: Sequence[Rule] | None = None) -> None:
        self.config = config or RemovalConfig()
        self.rules = tuple(rules) if rules is not None else DEFAULT_RULES

    def rewrite(self, text: str) -> RewriteResult:
        cleaned = text
        for rule in self.rules:
            before = len(cleaned)
            cleaned = rule(cleaned, self.config)
            if len(cleaned) != before:
                _LOGGER.debug("Rule %s removed %d characters", rule.__name__, before - len(cleaned))
        return RewriteResult(text=cleaned, changed=len(cleaned) != len(text))


__all__ = [
    "Rule",
    "RewriteResult",
    "StreamRewriter",
    "DEFAULT_RULES",
    "strip_tagged_marked_content",
    "strip_rotated_text_objects",
    "strip_rotated_text_groups",
    "strip_rotated_xobject_groups",
    "strip_denylisted_text",
]
