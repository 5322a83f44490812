"""Detection of rotated or skewed coordinate transforms."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Collection, Iterable, Sequence

from .config import DEFAULT_ROTATION_TOLERANCE
from .scanner import Operation, Region, Token, TokenKind, iter_operations

__all__ = [
    "AffineTransform",
    "MATRIX_OPERATORS",
    "parse_number",
    "transform_from_operation",
    "iter_transforms",
    "is_suspicious",
    "has_suspicious_transform",
]

MATRIX_OPERATORS = frozenset({"cm", "Tm"})

_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)")


def parse_number(text: str) -> float | None:
    """Parse a PDF numeric literal, returning ``None`` when malformed."""

    if not _NUMBER_RE.fullmatch(text):
        return None
    return float(text)


@dataclass(frozen=True, slots=True)
class AffineTransform:
    """The six terms of a ``[a b c d e f]`` transformation matrix."""

    a: float
    b: float
    c: float
    d: float
    e: float
    f: float

    @classmethod
    def from_operands(cls, operands: Sequence[Token]) -> "AffineTransform | None":
        if len(operands) != 6:
            return None
        values: list[float] = []
        for operand in operands:
            if operand.kind is not TokenKind.NUMBER:
                return None
            value = parse_number(operand.value)
            if value is None:
                return None
            values.append(value)
        return cls(*values)

    @property
    def scale(self) -> float:
        return max(math.hypot(self.a, self.b), math.hypot(self.c, self.d))

    def is_quarter_turn(self, tolerance: float = DEFAULT_ROTATION_TOLERANCE) -> bool:
        scale = self.scale
        if scale == 0:
            return False
        a, b, c, d = (term / scale for term in (self.a, self.b, self.c, self.d))
        return abs(a) <= tolerance and abs(d) <= tolerance and abs(abs(b) - 1) <= tolerance and abs(abs(c) - 1) <= tolerance

    def is_rotated(self, tolerance: float = DEFAULT_ROTATION_TOLERANCE) -> bool:
        """Return ``True`` when an off-diagonal term exceeds *tolerance*.

        Terms are normalised by the matrix scale so that a font size or zoom
        factor baked into the matrix does not count as rotation.
        """

        scale = self.scale
        if scale == 0:
            return False
        return abs(self.b) / scale > tolerance or abs(self.c) / scale > tolerance


def transform_from_operation(
    operation: Operation,
    operators: Collection[str] = MATRIX_OPERATORS,
) -> AffineTransform | None:
    if operation.operator not in operators:
        return None
    return AffineTransform.from_operands(operation.operands)


def iter_transforms(
    operations: Iterable[Operation],
    operators: Collection[str] = MATRIX_OPERATORS,
) -> Iterable[AffineTransform]:
    for operation in operations:
        transform = transform_from_operation(operation, operators)
        if transform is not None:
            yield transform


def has_suspicious_transform(
    operations: Iterable[Operation],
    *,
    tolerance: float = DEFAULT_ROTATION_TOLERANCE,
    operators: Collection[str] = MATRIX_OPERATORS,
    exempt_quarter_turns: bool = False,
) -> bool:
    for transform in iter_transforms(operations, operators):
        if exempt_quarter_turns and transform.is_quarter_turn(tolerance):
            continue
        if transform.is_rotated(tolerance):
            return True
    return False


def is_suspicious(
    region: str | Region | Iterable[Operation],
    *,
    tolerance: float = DEFAULT_ROTATION_TOLERANCE,
    exempt_quarter_turns: bool = False,
) -> bool:
    """Return ``True`` if any ``cm`` or ``Tm`` in *region* is rotated or skewed.

    Matrix operators with malformed or missing operands never match.
    """

    if isinstance(region, str):
        operations: Iterable[Operation] = iter_operations(region)
    elif isinstance(region, Region):
        operations = region.operations
    else:
        operations = region
    return has_suspicious_transform(
        operations,
        tolerance=tolerance,
        exempt_quarter_turns=exempt_quarter_turns,
    )
