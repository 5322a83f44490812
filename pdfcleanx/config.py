"""Tunable settings for the watermark removal engine."""

from __future__ import annotations

import dataclasses
import logging
import os
from typing import Iterable, Literal

_LOGGER = logging.getLogger("pdfcleanx.config")

RemovalLevelName = Literal["conservative", "standard"]

DEFAULT_ROTATION_TOLERANCE = 0.05
DEFAULT_SHARED_RATIO = 0.8
DEFAULT_SMALL_DOCUMENT_PAGES = 2
DEFAULT_MARKED_CONTENT_TAGS = ("/Artifact", "/Watermark")

_ENV_ROTATION_TOLERANCE = "PDFCLEANX_ROTATION_TOLERANCE"
_ENV_SHARED_RATIO = "PDFCLEANX_SHARED_RATIO"
_ENV_LEVEL = "PDFCLEANX_LEVEL"
_ENV_DENYLIST = "PDFCLEANX_DENYLIST"


@dataclasses.dataclass(frozen=True, slots=True)
class RemovalLevel:
    """Defines behavioural toggles for removal levels."""

    name: RemovalLevelName
    remove_form_xobjects: bool
    remove_shared_xobjects: bool


_LEVELS: dict[RemovalLevelName, RemovalLevel] = {
    "conservative": RemovalLevel("conservative", remove_form_xobjects=False, remove_shared_xobjects=True),
    "standard": RemovalLevel("standard", remove_form_xobjects=True, remove_shared_xobjects=True),
}


@dataclasses.dataclass(frozen=True, slots=True)
class RemovalConfig:
    """Settings shared by the rewriter and the document sanitizer.

    Attributes:
        rotation_tolerance: Largest off-diagonal matrix term (after scale
            normalisation) still considered axis aligned.
        shared_xobject_ratio: Fraction of pages an XObject must appear on to be
            treated as a repeating stamp.
        small_document_pages: Documents with at most this many pages treat any
            XObject usage as shared.
        denylist: Case-insensitive substrings that mark a text-show operator as
            a watermark regardless of its geometry.
        marked_content_tags: Marked-content tags whose blocks are dropped.
        level: Name of the :class:`RemovalLevel` to apply.
        exempt_quarter_turns: Treat exact 90/180/270 degree rotations as clean.
    """

    rotation_tolerance: float = DEFAULT_ROTATION_TOLERANCE
    shared_xobject_ratio: float = DEFAULT_SHARED_RATIO
    small_document_pages: int = DEFAULT_SMALL_DOCUMENT_PAGES
    denylist: tuple[str, ...] = ()
    marked_content_tags: tuple[str, ...] = DEFAULT_MARKED_CONTENT_TAGS
    level: RemovalLevelName = "standard"
    exempt_quarter_turns: bool = False

    def __post_init__(self) -> None:
        if self.level not in _LEVELS:
            raise ValueError(f"Unknown removal level: {self.level}")
        if self.rotation_tolerance < 0:
            raise ValueError("rotation_tolerance must not be negative")
        if not 0 < self.shared_xobject_ratio <= 1:
            raise ValueError("shared_xobject_ratio must be within (0, 1]")
        if self.small_document_pages < 0:
            raise ValueError("small_document_pages must not be negative")
        # Lists are accepted for convenience but stored as tuples.
        object.__setattr__(self, "denylist", _clean_terms(self.denylist))
        object.__setattr__(
            self,
            "marked_content_tags",
            tuple(tag if tag.startswith("/") else f"/{tag}" for tag in self.marked_content_tags),
        )

    @property
    def removal_level(self) -> RemovalLevel:
        return _LEVELS[self.level]

    def with_updates(self, **changes: object) -> "RemovalConfig":
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_env(cls, **overrides: object) -> "RemovalConfig":
        """Build a configuration from ``PDFCLEANX_*`` environment variables.

        Explicit keyword *overrides* win over the environment.
        """

        values: dict[str, object] = {}
        tolerance = os.getenv(_ENV_ROTATION_TOLERANCE)
        if tolerance is not None:
            values["rotation_tolerance"] = float(tolerance)
        ratio = os.getenv(_ENV_SHARED_RATIO)
        if ratio is not None:
            values["shared_xobject_ratio"] = float(ratio)
        level = os.getenv(_ENV_LEVEL)
        if level is not None:
            values["level"] = level.strip().lower()
        denylist = os.getenv(_ENV_DENYLIST)
        if denylist is not None:
            values["denylist"] = tuple(denylist.split(","))
        values.update(overrides)
        _LOGGER.debug("Removal configuration from environment: %s", values)
        return cls(**values)  # type: ignore[arg-type]


def _clean_terms(terms: Iterable[str]) -> tuple[str, ...]:
    cleaned: list[str] = []
    for term in terms:
        value = term.strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return tuple(cleaned)


def available_levels() -> list[str]:
    return sorted(_LEVELS)


__all__ = [
    "RemovalConfig",
    "RemovalLevel",
    "RemovalLevelName",
    "available_levels",
    "DEFAULT_ROTATION_TOLERANCE",
    "DEFAULT_SHARED_RATIO",
    "DEFAULT_SMALL_DOCUMENT_PAGES",
    "DEFAULT_MARKED_CONTENT_TAGS",
]
