"""
Раскрытие тегов include/reference в шаблоне.

Теги ищутся один раз в исходном тексте файла, затем раскрываются слева
направо. Замены копятся в списке правок и применяются одним проходом;
итоговые позиции каждой замены вычисляются из префиксных сумм.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple

from ..errors import IncludeCycleError, ToolsVersionRequiredError
from ..info import DEFAULT_INFO, DSwiftInfo
from ..tags.folders import merge_forest
from ..tags.model import (
    FolderRule,
    IncludeFile,
    IncludeFolder,
    IncludePackage,
    ReferenceFile,
    ReferenceFolder,
    Tag,
)
from ..tags.render import (
    reindent,
    render_already_included,
    render_include_folder,
    render_include_package,
    render_included_file,
    render_reference_file,
    render_reference_folder,
)
from ..template.grammar import BlockKind
from ..template.scanner import BlockScanner, line_of
from ..template.tools_version import validate_tools_version
from .cache import PreloadedDetails
from .edits import EditList, Span

logger = logging.getLogger(__name__)


class IncludeTracker:
    """
    Файлы, уже включённые в рамках одного прогона генерации.

    Разделяется между потоками одного прогона; между прогонами не переиспользуется.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seen: Set[str] = set()

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._seen

    def mark(self, path: str) -> bool:
        """Помечает путь; возвращает True, если он встретился впервые."""
        with self._lock:
            if path in self._seen:
                return False
            self._seen.add(path)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


@dataclass
class ProcessedTags:
    """
    Результат раскрытия тегов одного файла.

    `spans[i]` — положение замены i-го тега в итоговом `source`.
    """
    source: str
    encoding: str = "utf-8"
    include_folders: List[FolderRule] = field(default_factory=list)
    reference_folders: List[FolderRule] = field(default_factory=list)
    include_packages: List[IncludePackage] = field(default_factory=list)
    spans: List[Span] = field(default_factory=list)

    @property
    def package_names(self) -> List[str]:
        names: List[str] = []
        for package in self.include_packages:
            names.extend(n for n in package.package_names if n not in names)
        return names

    def add_include_folders(self, folders: Iterable[FolderRule]) -> None:
        self.include_folders = merge_forest(self.include_folders, folders)

    def add_reference_folders(self, folders: Iterable[FolderRule]) -> None:
        self.reference_folders = merge_forest(self.reference_folders, folders)

    def add_packages(self, packages: Iterable[IncludePackage]) -> None:
        for package in packages:
            if all(p.url != package.url for p in self.include_packages):
                self.include_packages.append(package)

    def absorb(self, child: "ProcessedTags") -> None:
        """Поднимает папки и пакеты включённого файла в родителя."""
        self.add_include_folders(child.include_folders)
        self.add_reference_folders(child.reference_folders)
        self.add_packages(child.include_packages)


def leading_whitespace(source: str, offset: int) -> str:
    """Пробелы и табы непосредственно перед offset."""
    start = offset
    while start > 0 and source[start - 1] in " \t":
        start -= 1
    return source[start:offset]


class TagExpander:
    """
    Раскрывает теги файла, рекурсивно обрабатывая включённые файлы.
    """

    def __init__(
        self,
        details: PreloadedDetails,
        *,
        info: DSwiftInfo = DEFAULT_INFO,
        tracker: Optional[IncludeTracker] = None,
    ):
        self.details = details
        self.info = info
        self.tracker = tracker or IncludeTracker()

    def expand(self, path: str) -> ProcessedTags:
        return self._expand(os.path.normpath(os.path.abspath(path)), ())

    def _expand(self, path: str, active: Tuple[str, ...]) -> ProcessedTags:
        content = self.details.contents.get(path)
        result = ProcessedTags(source=content.text, encoding=content.encoding)

        declared = self.details.tools_versions.get(path)
        if declared is None:
            self._reject_tags(path, content.text)
            return result
        validate_tools_version(path, self.info.version, declared)

        tags = self.details.tags.get(path)
        if not tags:
            return result

        active = active + (path,)
        edits = EditList(content.text)
        for tag in tags:
            tag.verify_tools_version(declared, path)
            indent = leading_whitespace(content.text, tag.start)
            replacement = self._replacement(tag, path, active, result)
            edits.replace(tag.start, tag.end, reindent(replacement, indent))

        result.source = edits.apply()
        result.spans = edits.spans()
        logger.debug(f"Expanded {len(tags)} tag(s) in '{path}'")
        return result

    def _reject_tags(self, path: str, text: str) -> None:
        # без заголовка теги не раскрываются и не должны дойти до компилятора
        scanner = BlockScanner(self.details.grammar)
        for block in scanner.iter_blocks(text, path):
            if block.kind.kind is BlockKind.TAG:
                raise ToolsVersionRequiredError(path, block.kind.name, line_of(text, block.start))

    def _replacement(self, tag: Tag, path: str, active: Tuple[str, ...], result: ProcessedTags) -> str:
        variant = tag.variant
        if isinstance(variant, IncludeFile):
            return self._include_file(variant, tag, path, active, result)
        if isinstance(variant, IncludeFolder):
            result.add_include_folders([variant])
            return render_include_folder(variant)
        if isinstance(variant, IncludePackage):
            result.add_packages([variant])
            return render_include_package(variant)
        if isinstance(variant, ReferenceFolder):
            result.add_reference_folders([variant])
            return render_reference_folder(variant)
        if isinstance(variant, ReferenceFile):
            return render_reference_file(variant)
        raise TypeError(f"Unsupported tag variant: {type(variant).__name__}")

    def _include_file(
        self,
        include: IncludeFile,
        tag: Tag,
        path: str,
        active: Tuple[str, ...],
        result: ProcessedTags,
    ) -> str:
        target = include.absolute_path
        if target in active:
            raise IncludeCycleError(path, include.path, tag.line)
        # отметка ставится до раскрытия: проверка и отметка атомарны
        first = self.tracker.mark(target)
        if include.include_only_once and not first:
            logger.debug(f"'{include.path}' already included, skipping")
            return render_already_included(include)

        child = self._expand(target, active)
        result.absorb(child)
        return render_included_file(include, child.source)


__all__ = ["IncludeTracker", "ProcessedTags", "TagExpander", "leading_whitespace"]
