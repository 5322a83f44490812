"""Plugin exposing watermark removal through the registry."""

from __future__ import annotations

from ..remover import RemovalResult, remove_watermarks_from_file
from ..utils import get_logger
from .common.interfaces import BaseTool
from .common.pipeline import register_tool

LOGGER = get_logger("pdfcleanx.tools.unwatermark")


@register_tool("remove-watermark")
class RemoveWatermarkTool(BaseTool):
    def run(self) -> RemovalResult:
        input_path, output_path = self.context.require_paths()
        config = self.context.removal_config()
        LOGGER.debug("Removing watermarks from %s to %s with level %s", input_path, output_path, config.level)
        result = remove_watermarks_from_file(
            input_path,
            output_path,
            config=config,
            post_validate=bool(self.context.config.get("post_validate", False)),
        )
        self.context.resources["result"] = result
        return result
