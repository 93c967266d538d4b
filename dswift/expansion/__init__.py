from __future__ import annotations

from .cache import ContentCache, KeyedCache, PreloadedDetails, TagCache, ToolsVersionCache, detect_encoding
from .edits import Edit, EditList, apply_edits, final_spans, shift_spans
from .expander import IncludeTracker, ProcessedTags, TagExpander

__all__ = [
    "KeyedCache",
    "ContentCache",
    "ToolsVersionCache",
    "TagCache",
    "PreloadedDetails",
    "detect_encoding",
    "Edit",
    "EditList",
    "apply_edits",
    "shift_spans",
    "final_spans",
    "IncludeTracker",
    "ProcessedTags",
    "TagExpander",
]
