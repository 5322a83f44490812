"""Namespace for pluggable pdfcleanx tools."""

from __future__ import annotations

from .common.pipeline import registry


def load_builtin_plugins() -> None:
    from . import unwatermark  # noqa: F401  # register remove-watermark


__all__ = ["registry", "load_builtin_plugins"]
