"""
Identity of the engine as it appears in generated files.
"""

from __future__ import annotations

from dataclasses import dataclass

from .versions import SingleVersion

# Highest dswift-tools-version understood by this engine.
ENGINE_TOOLS_VERSION = SingleVersion.parse("2.0.0")


@dataclass(frozen=True)
class DSwiftInfo:
    module_name: str = "Dynamic Swift"
    app_name: str = "dswift"
    url: str = "https://github.com/TheAngryDarling/dswift"
    version: SingleVersion = ENGINE_TOOLS_VERSION

    def banner_origin_line(self) -> str:
        """Second line of the generated-file banner."""
        return f"//  {self.module_name} can be found at {self.url}.\n\n"


DEFAULT_INFO = DSwiftInfo()

__all__ = ["DSwiftInfo", "DEFAULT_INFO", "ENGINE_TOOLS_VERSION"]
