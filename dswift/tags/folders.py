"""
Лес правил папок и операции над ним.

Правила include/reference folder накапливаются по всей цепочке включений
в одно непересекающееся дерево, отсортированное по пути. Затем это дерево
используется для копирования файлов в модуль генератора и для проверки
изменений при решении о повторной генерации.
"""

from __future__ import annotations

import copy
import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional

from ..errors import CopyFilesError, FolderReadError
from .model import (
    FolderRule,
    IncludeFile,
    IncludePackage,
    ReferenceFile,
    TagVariant,
    root_folder,
)

logger = logging.getLogger(__name__)

ROOT_PATH = "/"


def is_descendant(path: str, parent: str) -> bool:
    """
    Лежит ли path строго внутри parent.

    Корень леса ("/") считается предком любого другого пути.
    """
    if path == parent:
        return False
    if parent == ROOT_PATH:
        return True
    prefix = parent if parent.endswith(os.sep) else parent + os.sep
    return path.startswith(prefix)


# --------------------------- Forest merge --------------------------- #

def _sort_children(parent: FolderRule) -> None:
    parent.children.sort(key=lambda c: c.absolute_path)


def _append(parent: FolderRule, folder: FolderRule) -> None:
    for existing in parent.children:
        if existing.absolute_path == folder.absolute_path:
            existing.absorb_attributes(folder)
            for child in folder.children:
                _append(existing, child)
            return

    for existing in parent.children:
        if is_descendant(folder.absolute_path, existing.absolute_path):
            _append(existing, folder)
            return

    kept: List[FolderRule] = []
    for child in parent.children:
        if is_descendant(child.absolute_path, folder.absolute_path):
            _append(folder, child)
        else:
            kept.append(child)
    kept.append(folder)
    parent.children = kept
    _sort_children(parent)


def append_child_folder(parent: FolderRule, folder: FolderRule) -> None:
    """
    Вставляет правило папки в дерево parent, сохраняя инварианты леса.

    Вставляется копия правила: записи тегов живут в кеше и разделяются
    между файлами, поэтому их деревья не должны меняться при слиянии.

    Raises:
        ValueError: Если folder не лежит внутри parent
    """
    if not is_descendant(folder.absolute_path, parent.absolute_path):
        raise ValueError(
            f"Folder '{folder.absolute_path}' is not a descendant of '{parent.absolute_path}'"
        )
    _append(parent, copy.deepcopy(folder))


def append_child_folders(parent: FolderRule, folders: Iterable[FolderRule]) -> None:
    for folder in folders:
        append_child_folder(parent, folder)


def merge_forest(existing: List[FolderRule], folders: Iterable[FolderRule]) -> List[FolderRule]:
    """Сливает folders в лес existing и возвращает новый список верхнего уровня."""
    root = root_folder(existing)
    append_child_folders(root, folders)
    return root.children


# --------------------------- Walk --------------------------- #

@dataclass
class _WalkState:
    rule: FolderRule
    filters: List[re.Pattern] = field(default_factory=list)
    include_extensions: List[str] = field(default_factory=list)
    exclude_extensions: List[str] = field(default_factory=list)
    mapping: Dict[str, str] = field(default_factory=dict)

    @staticmethod
    def of(rule: FolderRule) -> "_WalkState":
        return _WalkState(
            rule=rule,
            filters=[rule.filter] if rule.filter is not None else [],
            include_extensions=list(rule.include_extensions),
            exclude_extensions=list(rule.exclude_extensions),
            mapping=dict(rule.extension_mapping),
        )

    def enter(self, child: Optional[FolderRule]) -> "_WalkState":
        """Состояние для подпапки; child задан, если для неё есть своё правило."""
        if child is None:
            return self
        if not child.propagate_attributes:
            return _WalkState.of(child)

        filters = list(self.filters)
        if child.filter is not None and all(f.pattern != child.filter.pattern for f in filters):
            filters.append(child.filter)
        include_ext = self.include_extensions + [
            e for e in child.include_extensions if e not in self.include_extensions
        ]
        exclude_ext = self.exclude_extensions + [
            e for e in child.exclude_extensions if e not in self.exclude_extensions
        ]
        mapping = dict(self.mapping)
        for k, v in child.extension_mapping.items():
            mapping.setdefault(k, v)
        return _WalkState(child, filters, include_ext, exclude_ext, mapping)

    def accepts(self, file_path: str) -> bool:
        ext = _extension(file_path)
        if self.include_extensions and ext not in self.include_extensions:
            return False
        if ext in self.exclude_extensions:
            return False
        if self.filters and not any(f.search(file_path) for f in self.filters):
            return False
        return True


@dataclass(frozen=True)
class WalkEntry:
    """Файл, отобранный правилом папки."""
    path: str
    relative_path: str
    mapping: Dict[str, str]

    @property
    def destination_name(self) -> str:
        """Относительный путь назначения с учётом замены расширения."""
        ext = _extension(self.relative_path)
        mapped = self.mapping.get(ext)
        if not ext or mapped is None:
            return self.relative_path
        return self.relative_path[: -len(ext)] + mapped


def _extension(path: str) -> str:
    return os.path.splitext(path)[1][1:]


def _child_rule(rule: FolderRule, path: str) -> Optional[FolderRule]:
    for child in rule.children:
        if child.absolute_path == path:
            return child
    return None


def _walk(root: str, current: str, state: _WalkState) -> Iterator[WalkEntry]:
    try:
        names = sorted(os.listdir(current))
    except OSError as e:
        raise FolderReadError(current, e) from e

    for name in names:
        full = os.path.join(current, name)
        if os.path.isdir(full):
            yield from _walk(root, full, state.enter(_child_rule(state.rule, full)))
        elif state.accepts(full):
            yield WalkEntry(full, os.path.relpath(full, root), state.mapping)


def walk_folder(rule: FolderRule) -> Iterator[WalkEntry]:
    """
    Обходит папку правила и отдаёт файлы, прошедшие фильтры.

    Для подпапки с собственным правилом в дереве: при propagate_attributes
    её фильтры, расширения и отображения объединяются с родительскими
    (родительские отображения имеют приоритет), иначе действуют только её правила.
    """
    yield from _walk(rule.absolute_path, rule.absolute_path, _WalkState.of(rule))


def copy_files(rule: FolderRule, destination: str) -> int:
    """
    Копирует отобранные файлы папки в destination, сохраняя структуру.

    Returns:
        Количество скопированных файлов
    """
    count = 0
    for entry in walk_folder(rule):
        target = os.path.join(destination, entry.destination_name)
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            shutil.copy2(entry.path, target)
        except OSError as e:
            raise CopyFilesError(entry.path, target, e) from e
        count += 1
    logger.debug(f"Copied {count} file(s) from '{rule.absolute_path}' to '{destination}'")
    return count


# --------------------------- Modification check --------------------------- #

def _modified_since(path: str, since: float) -> bool:
    try:
        return os.path.getmtime(path) > since
    except OSError:
        return True


def has_been_modified(variant: TagVariant, since: float) -> bool:
    """
    Изменился ли ресурс тега после момента since (mtime в секундах).

    Отсутствующий файл считается изменённым; пакеты не проверяются.
    """
    if isinstance(variant, IncludePackage):
        return False
    if isinstance(variant, (IncludeFile, ReferenceFile)):
        return _modified_since(variant.absolute_path, since)
    if isinstance(variant, FolderRule):
        if not os.path.isdir(variant.absolute_path):
            return True
        for entry in walk_folder(variant):
            if _modified_since(entry.path, since):
                logger.debug(f"'{entry.path}' changed since last generation")
                return True
        return False
    raise TypeError(f"Unsupported tag variant: {type(variant).__name__}")


__all__ = [
    "ROOT_PATH",
    "WalkEntry",
    "is_descendant",
    "append_child_folder",
    "append_child_folders",
    "merge_forest",
    "walk_folder",
    "copy_files",
    "has_been_modified",
]
