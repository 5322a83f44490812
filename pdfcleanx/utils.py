"""Utility helpers for :mod:`pdfcleanx`."""

from __future__ import annotations

import logging
import os
from pathlib import Path

_LOGGER = logging.getLogger("pdfcleanx")

PathLike = str | os.PathLike[str]


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False
    return logger


def resolve_path(path: PathLike) -> Path:
    """Resolve *path* into an absolute :class:`~pathlib.Path`."""

    if path is None:
        raise ValueError("Path must not be None")
    resolved = Path(path).expanduser().resolve()
    _LOGGER.debug("Resolved path '%s' to '%s'", path, resolved)
    return resolved


def ensure_parent_dir(path: Path) -> None:
    """Create parent directory for *path* if it does not exist."""

    path.parent.mkdir(parents=True, exist_ok=True)


__all__ = ["PathLike", "get_logger", "resolve_path", "ensure_parent_dir"]
