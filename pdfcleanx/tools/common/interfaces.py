"""Context and base class for registry driven watermark removal runs."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from ...config import RemovalConfig
from ...exceptions import PDFCleanXError
from ...utils import PathLike, resolve_path


@dataclass
class ToolContext:
    """Input/output paths plus loose settings handed to a tool.

    ``config`` may mix :class:`RemovalConfig` fields with tool switches such as
    ``post_validate``; tools store what they produce in ``resources``.
    """

    input_path: PathLike | None = None
    output_path: PathLike | None = None
    config: dict[str, Any] = field(default_factory=dict)
    resources: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.input_path is not None:
            self.input_path = resolve_path(self.input_path)
        if self.output_path is not None:
            self.output_path = resolve_path(self.output_path)

    def require_paths(self) -> tuple[Path, Path]:
        if self.input_path is None or self.output_path is None:
            raise PDFCleanXError("Tool requires both an input and an output path")
        return self.input_path, self.output_path

    def removal_config(self) -> RemovalConfig:
        """Environment defaults overridden by the removal settings in ``config``."""

        known = {item.name for item in fields(RemovalConfig)}
        return RemovalConfig.from_env(**{key: value for key, value in self.config.items() if key in known})


class BaseTool:
    """A named operation run against a :class:`ToolContext`."""

    name: str

    def __init__(self, context: ToolContext) -> None:
        self.context = context

    def run(self) -> Any:  # pragma: no cover - implemented by subclasses
        raise NotImplementedError
