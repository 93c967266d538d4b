"""
Потокобезопасные кеши по абсолютному пути файла.

Шаблоны одного прогона могут обрабатываться параллельно внешним
оркестратором. Для каждого ключа вычисление выполняется не более
одного раза; конкурентные запросы того же ключа ждут первый
и получают его результат.
"""

from __future__ import annotations

import codecs
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from ..errors import MissingSourceError
from ..project import SwiftProject
from ..tags.model import Tag
from ..tags.parse import find_tags
from ..template.grammar import DEFAULT_GRAMMAR, BlockGrammar
from ..template.tools_version import parse_tools_version
from ..versions import SingleVersion

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")

# Порядок важен: BOM UTF-32-LE начинается с BOM UTF-16-LE
_BOMS: List[Tuple[bytes, str]] = [
    (codecs.BOM_UTF32_LE, "utf-32"),
    (codecs.BOM_UTF32_BE, "utf-32"),
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
]


class KeyedCache(Generic[K, V]):
    """
    Мемоизация "вычислить один раз" под блокировкой.

    Общая блокировка защищает словари, отдельная блокировка на ключ
    сериализует вычисление. Исключение из compute не кешируется.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: Dict[K, V] = {}
        self._key_locks: Dict[K, threading.Lock] = {}

    def get(self, key: K, compute: Callable[[], V]) -> V:
        with self._lock:
            if key in self._values:
                return self._values[key]
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            with self._lock:
                if key in self._values:
                    return self._values[key]
            value = compute()
            with self._lock:
                self._values[key] = value
                self._key_locks.pop(key, None)
            return value

    def peek(self, key: K) -> Optional[V]:
        with self._lock:
            return self._values.get(key)

    def invalidate(self, key: K) -> None:
        with self._lock:
            self._values.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


def _key(path: str) -> str:
    return os.path.normpath(os.path.abspath(path))


def detect_encoding(data: bytes) -> str:
    """
    Определяет кодировку по BOM; без BOM — UTF-8, если данные валидны, иначе Latin-1.
    """
    for bom, name in _BOMS:
        if data.startswith(bom):
            return name
    try:
        data.decode("utf-8")
    except UnicodeDecodeError:
        return "latin-1"
    return "utf-8"


@dataclass(frozen=True)
class FileContent:
    text: str
    encoding: str


class ContentCache:
    """Текст файлов и их кодировка."""

    def __init__(self, project: SwiftProject):
        self.project = project
        self._cache: KeyedCache[str, FileContent] = KeyedCache()

    def get(self, path: str) -> FileContent:
        key = _key(path)
        return self._cache.get(key, lambda: self._load(key))

    def _load(self, path: str) -> FileContent:
        p = Path(path)
        if not p.is_file():
            raise MissingSourceError(path)
        data = p.read_bytes()
        encoding = self.project.encoding_for(path) or detect_encoding(data)
        logger.debug(f"Read '{path}' ({encoding})")
        return FileContent(data.decode(encoding), encoding)


class ToolsVersionCache:
    """Версия инструментов, объявленная в первой строке файла (или None)."""

    def __init__(self, contents: ContentCache):
        self.contents = contents
        self._cache: KeyedCache[str, Optional[SingleVersion]] = KeyedCache()

    def get(self, path: str) -> Optional[SingleVersion]:
        key = _key(path)
        return self._cache.get(key, lambda: parse_tools_version(key, self.contents.get(key).text))


class TagCache:
    """Теги, найденные в исходном (неизменённом) тексте файла."""

    def __init__(self, contents: ContentCache, project: SwiftProject, grammar: BlockGrammar = DEFAULT_GRAMMAR):
        self.contents = contents
        self.project = project
        self.grammar = grammar
        self._cache: KeyedCache[str, Tuple[Tag, ...]] = KeyedCache()

    def get(self, path: str) -> Tuple[Tag, ...]:
        key = _key(path)
        return self._cache.get(key, lambda: self._find(key))

    def _find(self, path: str) -> Tuple[Tag, ...]:
        tags = tuple(find_tags(path, self.contents.get(path).text, self.project, self.grammar))
        logger.debug(f"Found {len(tags)} tag(s) in '{path}'")
        return tags


@dataclass
class PreloadedDetails:
    """
    Набор кешей одного проекта, передаётся движку как зависимость.
    """
    project: SwiftProject
    grammar: BlockGrammar = DEFAULT_GRAMMAR
    contents: ContentCache = field(init=False)
    tools_versions: ToolsVersionCache = field(init=False)
    tags: TagCache = field(init=False)

    def __post_init__(self):
        self.contents = ContentCache(self.project)
        self.tools_versions = ToolsVersionCache(self.contents)
        self.tags = TagCache(self.contents, self.project, self.grammar)


__all__ = [
    "KeyedCache",
    "FileContent",
    "ContentCache",
    "ToolsVersionCache",
    "TagCache",
    "PreloadedDetails",
    "detect_encoding",
]
