"""
Replacement text for expanded tags.

Every tag is replaced by a descriptive comment block (or, for an included
file, by the file's expanded content wrapped in begin/end markers).
Lines after the first are written without indentation; the expander
re-indents them under the original tag.
"""

from __future__ import annotations

import re
from typing import Iterable, Mapping, Optional

from .model import IncludeFile, IncludeFolder, IncludePackage, ReferenceFile, ReferenceFolder


def single_line_list(items: Iterable[str]) -> str:
    return "[" + ", ".join(f"\"{i}\"" for i in items) + "]"


def single_line_map(items: Mapping[str, str]) -> str:
    return "[" + ", ".join(f"\"{k}\": \"{v}\"" for k, v in items.items()) + "]"


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _filter(pattern: Optional[re.Pattern]) -> str:
    return f"\"{pattern.pattern}\"" if pattern is not None else "nil"


def _block(tag_name: str, kind: str, lines: Iterable[str]) -> str:
    out = [f"/* *** {tag_name}[{kind}] Begin ***"]
    out.extend(f"*     {line}" for line in lines)
    out.append(f"*** {tag_name}[{kind}] End *** */")
    return "\n".join(out)


def render_reference_file(ref: ReferenceFile) -> str:
    return _block(ref.tag_name, "file", [f"Path: \"{ref.path}\""])


def render_reference_folder(ref: ReferenceFolder) -> str:
    return _block(ref.tag_name, "folder", [
        f"Path: {ref.path}",
        f"Filter: {_filter(ref.filter)}",
        f"Include Extensions: {single_line_list(ref.include_extensions)}",
        f"Exclude Extensions: {single_line_list(ref.exclude_extensions)}",
        f"Propagate Attributes: {_flag(ref.propagate_attributes)}",
    ])


def render_include_folder(folder: IncludeFolder) -> str:
    return _block(folder.tag_name, "folder", [
        f"Path: \"{folder.path}\"",
        f"Filter: {_filter(folder.filter)}",
        f"Include Extensions: {single_line_list(folder.include_extensions)}",
        f"Exclude Extensions: {single_line_list(folder.exclude_extensions)}",
        f"Extension Mapping: {single_line_map(folder.mapping)}",
        f"Propagate Attributes: {_flag(folder.propagate_attributes)}",
    ])


def render_include_package(package: IncludePackage) -> str:
    return _block(package.tag_name, "package", [
        f"URL: \"{package.url}\"",
        package.requirement.display,
        f"Package Names: {single_line_list(package.package_names)}",
    ])


def render_already_included(include: IncludeFile) -> str:
    """Маркер повторного включения файла с onlyOnce."""
    if include.quiet:
        return ""
    return (
        f"/* *** {include.tag_name}[file] '{include.path}' Begin *** */\n"
        f"/* *** State: Already included elsewhere *** */\n"
        f"/* *** {include.tag_name}[file] '{include.path}' End *** */"
    )


def render_included_file(include: IncludeFile, content: str) -> str:
    """Развёрнутое содержимое включённого файла в обёртке begin/end."""
    if include.quiet:
        return content
    return (
        f"/* *** {include.tag_name}[file] '{include.path}' Begin *** */\n"
        f"{content}\n"
        f"/* *** {include.tag_name}[file] '{include.path}' End *** */"
    )


def reindent(text: str, indent: str) -> str:
    """Prefixes every line after the first with indent."""
    if not indent or "\n" not in text:
        return text
    first, *rest = text.split("\n")
    return "\n".join([first] + [indent + line for line in rest])


__all__ = [
    "single_line_list",
    "single_line_map",
    "render_reference_file",
    "render_reference_folder",
    "render_include_folder",
    "render_include_package",
    "render_already_included",
    "render_included_file",
    "reindent",
]
