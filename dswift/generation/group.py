"""
Выбор генератора по расширению исходного файла.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from ..errors import NoSupportedGeneratorError
from ..info import DEFAULT_INFO, DSwiftInfo
from ..project import SwiftProject
from .generator import SourceGenerator, remove_generated
from .runner import BuildRunner
from .static import StaticSourceGenerator

logger = logging.getLogger(__name__)

Generator = Union[SourceGenerator, StaticSourceGenerator]


def _extension_of(path: Path) -> str:
    return Path(path).suffix.lower()


class GroupGenerator:
    """
    Набор генераторов проекта: .dswift-шаблоны и .dswift-static дескрипторы.
    """

    def __init__(
        self,
        project: SwiftProject,
        *,
        runner: Optional[BuildRunner] = None,
        info: DSwiftInfo = DEFAULT_INFO,
    ):
        self.dynamic = SourceGenerator(project, runner=runner, info=info)
        self.static = StaticSourceGenerator(project, info=info)
        self.generators: Sequence[Generator] = (self.dynamic, self.static)

    @property
    def supported_extensions(self) -> List[str]:
        return [ext for g in self.generators for ext in g.extensions]

    def generator_for(self, path: Path) -> Generator:
        ext = _extension_of(path)
        for g in self.generators:
            if ext in g.extensions:
                return g
        raise NoSupportedGeneratorError(str(path), ext.lstrip("."))

    def is_supported(self, path: Path) -> bool:
        return _extension_of(path) in self.supported_extensions

    def collect_sources(self, folder: Path) -> List[Path]:
        """Все поддерживаемые исходники в каталоге (рекурсивно), по порядку путей."""
        found = [p for p in Path(folder).rglob("*") if p.is_file() and self.is_supported(p)]
        return sorted(found)

    def requires_generation(self, path: Path) -> bool:
        return self.generator_for(path).requires_generation(path)

    def write_generated(self, path: Path, *, lock: Optional[bool] = None) -> bool:
        return self.generator_for(path).write_generated(path, lock=lock)

    def generate(self, path: Path, *, force: bool = False, lock: Optional[bool] = None) -> bool:
        return self.generator_for(path).generate(path, force=force, lock=lock)

    def clean(self, folder: Path) -> List[Tuple[Path, Path]]:
        """
        Удаляет результаты всех генераторов.

        Returns:
            Пары (исходник, удалённый файл)
        """
        removed: List[Tuple[Path, Path]] = []
        for ext in self.supported_extensions:
            removed.extend(remove_generated(folder, ext))
        logger.debug(f"Removed {len(removed)} generated file(s) under '{folder}'")
        return removed


__all__ = ["GroupGenerator"]
