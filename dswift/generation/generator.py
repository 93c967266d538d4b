"""
Генерация исходного кода из шаблонов .dswift.

Пайплайн одного файла:
  раскрытие тегов → компиляция в программу-генератор → временный
  Swift-пакет (Package.swift, main.swift, включённые папки) →
  сборка и запуск через BuildRunner → чтение результата.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set, Tuple

from ..errors import MissingSourceError
from ..expansion.cache import PreloadedDetails, detect_encoding
from ..expansion.expander import IncludeTracker, ProcessedTags, TagExpander
from ..info import DEFAULT_INFO, DSwiftInfo
from ..naming import NameAllocator, class_names, library_names
from ..project import SwiftProject
from ..tags.folders import copy_files, has_been_modified
from ..tags.model import IncludeFile
from ..template.compiler import GeneratorCompiler
from ..template.grammar import DEFAULT_GRAMMAR, BlockGrammar
from .manifest import MANIFEST_ENCODING, MANIFEST_FILE_NAME, render_manifest
from .runner import BuildRunner, GeneratorModule, SwiftRunner

logger = logging.getLogger(__name__)

SOURCE_EXTENSION = ".dswift"
GENERATED_EXTENSION = ".swift"
FAILED_GENERATION_MARKER = "// Failed to generate source code."
LOCKED_MODE = 0o444


@dataclass(frozen=True)
class GeneratorProgram:
    """Текст программы-генератора и результат раскрытия тегов, из которого он собран."""
    text: str
    class_name: str
    processed: ProcessedTags


@dataclass(frozen=True)
class GeneratedSource:
    source: str
    encoding: str


def generated_path_for(source: Path) -> Path:
    """Путь сгенерированного файла: то же имя с расширением .swift."""
    return Path(source).with_suffix(GENERATED_EXTENSION)


def include_destination(sources_dir: Path, path: str) -> Path:
    """Каталог в модуле, куда копируется включённая папка."""
    rel = path.replace("../", "/").replace("./", "")
    return sources_dir / rel.lstrip("/")


def mtime_of(path: Path) -> Optional[float]:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


def existing_source(path: Path) -> Path:
    """Абсолютный путь к существующему исходному файлу."""
    src = Path(os.path.abspath(path))
    if not src.is_file():
        raise MissingSourceError(str(src))
    return src


def write_if_changed(dest: Path, data: bytes, lock: bool) -> bool:
    """
    Записывает data в dest, только если содержимое отличается.

    Returns:
        True, если файл назначения был (пере)записан
    """
    if dest.is_file():
        if dest.read_bytes() == data:
            logger.debug(f"No changes to source: {dest}")
            return False
        dest.unlink()

    dest.write_bytes(data)
    if lock:
        try:
            os.chmod(dest, LOCKED_MODE)
        except OSError as e:
            logger.warning(f"Unable to mark '{dest}' as read-only: {e}")
    logger.info(f"Wrote {dest}")
    return True


def contains_failed_marker(dest: Path) -> bool:
    data = dest.read_bytes()
    if FAILED_GENERATION_MARKER in data.decode(detect_encoding(data)):
        logger.debug(f"'{dest}' contains the failed generation marker")
        return True
    return False


def remove_generated(folder: Path, extension: str) -> List[Tuple[Path, Path]]:
    """
    Удаляет сгенерированные .swift файлы, у которых есть исходник с расширением extension.

    Returns:
        Пары (исходник, удалённый файл)
    """
    removed: List[Tuple[Path, Path]] = []
    for src in sorted(Path(folder).rglob(f"*{extension}")):
        dest = generated_path_for(src)
        if not dest.is_file():
            continue
        os.chmod(dest, stat.S_IRUSR | stat.S_IWUSR)
        dest.unlink()
        logger.info(f"Removed {dest}")
        removed.append((src, dest))
    return removed


class SourceGenerator:
    """
    Генератор исходников для одного проекта.

    Кеши (PreloadedDetails) и распределители имён разделяются между
    всеми файлами, которые генерирует этот объект; множество
    однократных включений создаётся заново для каждого файла.
    """

    extensions = (SOURCE_EXTENSION,)

    def __init__(
        self,
        project: SwiftProject,
        *,
        runner: Optional[BuildRunner] = None,
        info: DSwiftInfo = DEFAULT_INFO,
        grammar: BlockGrammar = DEFAULT_GRAMMAR,
        details: Optional[PreloadedDetails] = None,
        class_allocator: Optional[NameAllocator] = None,
        library_allocator: Optional[NameAllocator] = None,
    ):
        self.project = project
        self.info = info
        self.details = details or PreloadedDetails(project, grammar)
        self.runner: BuildRunner = runner or SwiftRunner(project.settings.swift)
        self.compiler = GeneratorCompiler(info, grammar)
        self.class_allocator = class_allocator or class_names()
        self.library_allocator = library_allocator or library_names()

    # --------------------------- Program --------------------------- #

    def expand(self, path: Path) -> ProcessedTags:
        expander = TagExpander(self.details, info=self.info, tracker=IncludeTracker())
        return expander.expand(str(path))

    def generator_program(self, path: Path, class_name: Optional[str] = None) -> GeneratorProgram:
        """Раскрывает теги шаблона и компилирует его в программу-генератор."""
        src = existing_source(path)
        processed = self.expand(src)
        class_name = class_name or self.class_allocator.next()
        text = self.compiler.compile(
            processed.source,
            class_name,
            path=str(src),
            package_names=processed.package_names,
            encoding=processed.encoding,
        )
        return GeneratorProgram(text=text, class_name=class_name, processed=processed)

    def generator_source(self, path: Path, class_name: Optional[str] = None) -> str:
        return self.generator_program(path, class_name).text

    # --------------------------- Module --------------------------- #

    def _temp_root(self) -> Path:
        return Path(self.project.settings.temp_dir or tempfile.gettempdir())

    def _module_name(self, temp_root: Path) -> str:
        # пропускаем имена, каталоги которых уже существуют
        while True:
            name = self.library_allocator.next()
            if not (temp_root / name).exists():
                return name

    def create_module(self, path: Path) -> GeneratorModule:
        """
        Создаёт временный Swift-пакет с программой-генератором для шаблона.
        """
        src = existing_source(path)
        program = self.generator_program(src)
        processed = program.processed

        temp_root = self._temp_root()
        name = self._module_name(temp_root)
        module = GeneratorModule(
            name=name,
            path=temp_root / name,
            source_path=str(src),
            encoding=processed.encoding,
            has_dependencies=bool(processed.include_packages),
        )
        module.sources_dir.mkdir(parents=True)
        logger.debug(f"Created temp module folder {module.path}")

        try:
            manifest = render_manifest(name, processed.include_packages)
            (module.path / MANIFEST_FILE_NAME).write_bytes(manifest.encode(MANIFEST_ENCODING))
            module.main_path.write_bytes(program.text.encode(module.encoding))
            logger.debug(f"Wrote {MANIFEST_FILE_NAME} and main.swift for '{src.name}'")

            for folder in processed.include_folders:
                logger.debug(f"Including folder '{folder.path}'")
                copy_files(folder, str(include_destination(module.sources_dir, folder.path)))
        except BaseException:
            shutil.rmtree(module.path, ignore_errors=True)
            raise
        return module

    # --------------------------- Generation --------------------------- #

    def generate_source(self, path: Path) -> GeneratedSource:
        """Собирает и запускает генератор; возвращает итоговый текст и его кодировку."""
        src = existing_source(path)
        logger.info(f"Generating source for '{src}'")
        module = self.create_module(src)
        try:
            result = self.runner.run(module)
            text = result.output_path.read_bytes().decode(module.encoding)
        finally:
            if self.project.settings.keep_temp_modules:
                logger.info(f"Keeping temp module {module.path}")
            else:
                shutil.rmtree(module.path, ignore_errors=True)
        return GeneratedSource(source=text, encoding=module.encoding)

    def write_generated(
        self,
        path: Path,
        destination: Optional[Path] = None,
        *,
        lock: Optional[bool] = None,
    ) -> bool:
        """
        Генерирует файл и записывает его, только если содержимое изменилось.

        Returns:
            True, если файл назначения был (пере)записан
        """
        src = existing_source(path)
        dest = Path(destination) if destination is not None else generated_path_for(src)
        generated = self.generate_source(src)
        if lock is None:
            lock = self.project.settings.lock_generated_files
        return write_if_changed(dest, generated.source.encode(generated.encoding), lock)

    def generate(self, path: Path, *, force: bool = False, lock: Optional[bool] = None) -> bool:
        """Генерирует файл, если он устарел (или всегда при force)."""
        if not force and not self.requires_generation(path):
            logger.debug(f"'{path}' is up to date")
            return False
        return self.write_generated(path, lock=lock)

    # --------------------------- Up-to-date check --------------------------- #

    def requires_generation(self, path: Path) -> bool:
        src = existing_source(path)
        dest = generated_path_for(src)
        if not dest.is_file():
            logger.debug(f"Generated file '{dest}' does not exist")
            return True

        src_mod = mtime_of(src)
        dest_mod = mtime_of(dest)
        if src_mod is None or dest_mod is None:
            return True
        if src_mod > dest_mod:
            logger.debug(f"'{src}' is newer")
            return True

        if contains_failed_marker(dest):
            return True

        return self._references_modified(src, dest_mod, set())

    def _references_modified(self, path: Path, since: float, visited: Set[str]) -> bool:
        key = os.path.normpath(os.path.abspath(str(path)))
        if key in visited:
            return False
        visited.add(key)
        if self.details.tools_versions.get(key) is None:
            return False
        for tag in self.details.tags.get(key):
            if has_been_modified(tag.variant, since):
                logger.debug(f"'{key}': resource of tag on line {tag.line} has changed")
                return True
            if isinstance(tag.variant, IncludeFile):
                if self._references_modified(Path(tag.variant.absolute_path), since, visited):
                    return True
        return False

    # --------------------------- Clean --------------------------- #

    def clean(self, folder: Path) -> List[Path]:
        """Удаляет сгенерированные .swift файлы, у которых есть исходный .dswift."""
        return [dest for _, dest in remove_generated(folder, SOURCE_EXTENSION)]


__all__ = [
    "SourceGenerator",
    "GeneratorProgram",
    "GeneratedSource",
    "generated_path_for",
    "include_destination",
    "existing_source",
    "write_if_changed",
    "contains_failed_marker",
    "remove_generated",
    "mtime_of",
    "SOURCE_EXTENSION",
    "GENERATED_EXTENSION",
    "FAILED_GENERATION_MARKER",
]
