"""
Теги dswift: типизированные записи include/reference, их разбор,
лес правил папок и текст замены.
"""

from __future__ import annotations

from .folders import append_child_folder, copy_files, has_been_modified, merge_forest, walk_folder
from .model import (
    FolderRule,
    IncludeFile,
    IncludeFolder,
    IncludePackage,
    ReferenceFile,
    ReferenceFolder,
    Tag,
    TagVariant,
)
from .parse import find_tags, parse_properties

__all__ = [
    "Tag",
    "TagVariant",
    "FolderRule",
    "IncludeFile",
    "IncludeFolder",
    "IncludePackage",
    "ReferenceFile",
    "ReferenceFolder",
    "find_tags",
    "parse_properties",
    "append_child_folder",
    "merge_forest",
    "walk_folder",
    "copy_files",
    "has_been_modified",
]
