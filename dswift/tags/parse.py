"""
Поиск тегов в исходном тексте и разбор их атрибутов в типизированные записи.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Callable, Dict, List, Optional, Tuple

from ..errors import (
    IncludedResourceNotFoundError,
    InvalidTagAttributeRegExValueError,
    InvalidTagAttributeValueError,
    InvalidTagAttributesError,
    InvalidTagError,
    InvalidVersionError,
    InvalidVersionRangeError,
    MissingClosingBlockError,
    MissingTagAttributesError,
)
from ..project import SwiftProject
from ..template.attributes import parse_attributes
from ..template.grammar import DEFAULT_GRAMMAR, INCLUDE_TAG, REFERENCE_TAG, BlockGrammar
from ..template.scanner import line_of
from ..versions import SingleVersion
from .model import (
    Branch,
    ClosedRange,
    Exact,
    From,
    IncludeFile,
    IncludeFolder,
    IncludePackage,
    OpenRange,
    ReferenceFile,
    ReferenceFolder,
    Requirement,
    Revision,
    Tag,
    TagVariant,
)

logger = logging.getLogger(__name__)

_BOOL_VALUES = {"true": True, "false": False}


class _Context:
    """Общие параметры разбора одного тега."""

    def __init__(self, tag: str, attributes: Dict[str, str], path: str, line: int, project: SwiftProject):
        self.tag = tag
        self.attributes = dict(attributes)
        self.path = path
        self.line = line
        self.project = project

    def pop(self, name: str) -> Optional[str]:
        return self.attributes.pop(name, None)

    def pop_bool(self, name: str, display: str, default: bool) -> bool:
        raw = self.pop(name)
        if raw is None:
            return default
        if raw not in _BOOL_VALUES:
            raise InvalidTagAttributeValueError(
                self.path, self.tag, display, raw, self.line, expecting=["true", "false"]
            )
        return _BOOL_VALUES[raw]

    def pop_extensions(self, name: str) -> Tuple[str, ...]:
        raw = self.pop(name)
        if raw is None:
            return ()
        return tuple(_normalize_ext(e) for e in raw.split(",") if e.strip())

    def pop_filter(self) -> Optional[re.Pattern]:
        raw = self.pop("filter")
        if raw is None:
            return None
        try:
            return re.compile(raw)
        except re.error as e:
            raise InvalidTagAttributeRegExValueError(self.path, self.tag, "filter", raw, self.line, e)

    def pop_version(self, name: str) -> Optional[SingleVersion]:
        raw = self.pop(name)
        if raw is None:
            return None
        ver = SingleVersion.try_parse(raw)
        if ver is None:
            raise InvalidVersionError(self.path, self.tag, name, raw, self.line)
        return ver

    def ensure_consumed(self) -> None:
        if self.attributes:
            raise InvalidTagAttributesError(self.path, self.tag, list(self.attributes), self.line)

    def resolve(self, raw: str, *, must_exist: bool) -> Tuple[str, str]:
        """
        Нормализует путь из атрибута и разрешает его относительно папки файла.

        Returns:
            (путь как в атрибуте, абсолютный путь)
        """
        display = raw.strip().replace("<PROJECT_ROOT>", self.project.root_path).replace("//", "/")
        base = os.path.dirname(self.path)
        full = os.path.normpath(os.path.join(base, display))
        if must_exist and not os.path.exists(full):
            raise IncludedResourceNotFoundError(self.path, display, full, self.line)
        return display, full


def _normalize_ext(ext: str) -> str:
    ext = ext.strip()
    return ext[1:] if ext.startswith(".") else ext


# --------------------------- include --------------------------- #

def _include_file(ctx: _Context, raw: str) -> IncludeFile:
    only_once_raw = ctx.attributes.get("onlyonce")
    only_once = ctx.pop_bool("onlyonce", "onlyOnce", False)
    quiet = ctx.pop_bool("quiet", "quiet", False)
    ctx.ensure_consumed()
    display, full = ctx.resolve(raw, must_exist=True)
    logger.debug(f"Found include file '{display}' in '{ctx.path}'")
    return IncludeFile(
        tag_name=ctx.tag,
        path=display,
        absolute_path=full,
        include_only_once=only_once,
        only_once_explicit=only_once_raw is not None,
        quiet=quiet,
    )


def _extension_mapping(ctx: _Context) -> Dict[str, str]:
    raw = ctx.pop("extensionmapping")
    mapping: Dict[str, str] = {}
    if raw is None:
        return mapping
    for pair in (p for p in raw.split(";") if p):
        parts = [p for p in pair.split(":") if p]
        if len(parts) != 2:
            raise InvalidTagAttributeValueError(
                ctx.path, ctx.tag, "extensionMapping", pair, ctx.line, expecting=["{extFrom:extTo}"]
            )
        mapping[_normalize_ext(parts[0])] = _normalize_ext(parts[1])
    return mapping


def _include_folder(ctx: _Context, raw: str) -> IncludeFolder:
    flt = ctx.pop_filter()
    include_ext = ctx.pop_extensions("includeextensions")
    exclude_ext = ctx.pop_extensions("excludeextensions")
    mapping = _extension_mapping(ctx)
    quiet = ctx.pop_bool("quiet", "quiet", False)
    propagate = ctx.pop_bool("propagateattributes", "propagateAttributes", True)
    ctx.ensure_consumed()
    display, full = ctx.resolve(raw, must_exist=True)
    logger.debug(f"Found include folder '{display}' in '{ctx.path}'")
    return IncludeFolder(
        tag_name=ctx.tag,
        path=display,
        absolute_path=full,
        include_extensions=include_ext,
        exclude_extensions=exclude_ext,
        filter=flt,
        propagate_attributes=propagate,
        mapping=mapping,
        quiet=quiet,
    )


def _requirement(ctx: _Context) -> Requirement:
    ver = ctx.pop_version("from")
    if ver is not None:
        return From(ver)

    rng = ctx.pop("range")
    if rng is not None:
        for sep, cls in (("..<", OpenRange), ("...", ClosedRange)):
            if sep not in rng:
                continue
            lo_raw, hi_raw = rng.split(sep, 1)
            lo = SingleVersion.try_parse(lo_raw)
            if lo is None:
                raise InvalidVersionError(ctx.path, ctx.tag, "range", lo_raw, ctx.line)
            hi = SingleVersion.try_parse(hi_raw)
            if hi is None:
                raise InvalidVersionError(ctx.path, ctx.tag, "range", hi_raw, ctx.line)
            if not lo < hi:
                raise InvalidVersionRangeError(ctx.path, ctx.tag, "range", rng, ctx.line)
            return cls(lo, hi)
        raise InvalidVersionRangeError(ctx.path, ctx.tag, "range", rng, ctx.line)

    ver = ctx.pop_version("exact")
    if ver is not None:
        return Exact(ver)

    branch = ctx.pop("branch")
    if branch is not None:
        return Branch(branch)

    revision = ctx.pop("revision")
    if revision is not None:
        return Revision(revision)

    raise MissingTagAttributesError(
        ctx.path, ctx.tag, ["from", "range", "exact", "branch", "revision"], ctx.line
    )


def _include_package(ctx: _Context, url: str) -> IncludePackage:
    if not url.strip() or any(ch.isspace() for ch in url):
        raise InvalidTagAttributeValueError(ctx.path, ctx.tag, "package", url, ctx.line)

    requirement = _requirement(ctx)

    names_raw = ctx.pop("packagenames")
    single = ctx.pop("packagename")
    if names_raw is None:
        names_raw = single
    if names_raw is None:
        raise MissingTagAttributesError(ctx.path, ctx.tag, ["packageNames", "packageName"], ctx.line)
    names = tuple(n.strip() for n in names_raw.split(",") if n.strip())

    quiet = ctx.pop_bool("quiet", "quiet", False)
    ctx.ensure_consumed()
    logger.debug(f"Found include package '{url}' in '{ctx.path}'")
    return IncludePackage(
        tag_name=ctx.tag,
        url=url,
        requirement=requirement,
        package_names=names,
        quiet=quiet,
    )


# --------------------------- reference --------------------------- #

def _reference_file(ctx: _Context, raw: str) -> ReferenceFile:
    ctx.ensure_consumed()
    # Ссылки могут указывать на ещё не сгенерированные файлы
    display, full = ctx.resolve(raw, must_exist=False)
    return ReferenceFile(tag_name=ctx.tag, path=display, absolute_path=full)


def _reference_folder(ctx: _Context, raw: str) -> ReferenceFolder:
    flt = ctx.pop_filter()
    include_ext = ctx.pop_extensions("includeextensions")
    exclude_ext = ctx.pop_extensions("excludeextensions")
    propagate = ctx.pop_bool("propagateattributes", "propagateAttributes", True)
    ctx.ensure_consumed()
    display, full = ctx.resolve(raw, must_exist=True)
    return ReferenceFolder(
        tag_name=ctx.tag,
        path=display,
        absolute_path=full,
        include_extensions=include_ext,
        exclude_extensions=exclude_ext,
        filter=flt,
        propagate_attributes=propagate,
    )


_Builder = Callable[[_Context, str], TagVariant]

_TAG_VARIANTS: Dict[str, List[Tuple[str, _Builder]]] = {
    INCLUDE_TAG: [
        ("file", _include_file),
        ("folder", _include_folder),
        ("package", _include_package),
    ],
    REFERENCE_TAG: [
        ("file", _reference_file),
        ("folder", _reference_folder),
    ],
}


def parse_properties(
    tag: str,
    attributes: Dict[str, str],
    *,
    path: str,
    line: int,
    project: SwiftProject,
) -> TagVariant:
    """
    Преобразует атрибуты тега в типизированный вариант.

    Вариант определяется идентифицирующим атрибутом (file / folder / package);
    все прочие атрибуты должны быть распознаны, иначе InvalidTagAttributesError.
    """
    variants = _TAG_VARIANTS.get(tag)
    if variants is None:
        raise InvalidTagError(path, tag, line)
    ctx = _Context(tag, attributes, path, line, project)
    for ident, build in variants:
        raw = ctx.pop(ident)
        if raw is not None:
            return build(ctx, raw)
    raise MissingTagAttributesError(path, tag, [ident for ident, _ in variants], line)


def find_tags(
    path: str,
    source: str,
    project: SwiftProject,
    grammar: BlockGrammar = DEFAULT_GRAMMAR,
) -> List[Tag]:
    """
    Находит все теги в исходном (неизменённом) тексте, слева направо.
    """
    tags: List[Tag] = []
    opening = grammar.tag_opening
    closing = grammar.closing
    pos = 0
    while True:
        start = source.find(opening, pos)
        if start == -1:
            return tags
        name_start = start + len(opening)
        close_at = source.find(closing, name_start)
        if close_at == -1:
            raise MissingClosingBlockError(path, closing, opening, line_of(source, start))

        name_end = name_start
        while name_end < close_at and not source[name_end].isspace():
            name_end += 1
        name = source[name_start:name_end]
        line = line_of(source, start)
        if grammar.tag_named(name) is None:
            raise InvalidTagError(path, name, line)

        attributes = parse_attributes(
            source, name_end, close_at, tag=name, path=path, tag_start=start,
        )
        end = close_at + len(closing)
        variant = parse_properties(name, attributes, path=path, line=line, project=project)
        tags.append(Tag(variant=variant, start=start, end=end, line=line))
        pos = end


__all__ = ["find_tags", "parse_properties"]
