"""
Генерация Swift-исходников из дескрипторов .dswift-static.

Дескриптор: JSON вида::

    {"file": "logo.png", "modifier": "public", "name": "Logo",
     "namespace": "Resources", "type": "binary"}

Файл `file` (путь относительно дескриптора) встраивается в структуру `name`:
как строка (type "text" или "text(<IANA charset>)") или как массив байт
(type "binary").
"""

from __future__ import annotations

import codecs
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..errors import StaticSourceError
from ..expansion.cache import detect_encoding
from ..info import DEFAULT_INFO, DSwiftInfo
from ..project import SwiftProject
from ..template.compiler import swift_encoding
from .generator import (
    GeneratedSource,
    contains_failed_marker,
    existing_source,
    generated_path_for,
    mtime_of,
    remove_generated,
    write_if_changed,
)

logger = logging.getLogger(__name__)

STATIC_EXTENSION = ".dswift-static"

# байт в строке массива для бинарных файлов
_BYTES_PER_LINE = 10


@dataclass(frozen=True)
class StaticFileType:
    """Способ встраивания: текст в кодировке `encoding` или бинарные данные."""
    binary: bool
    encoding: Optional[str] = None

    @classmethod
    def parse(cls, value: str) -> "StaticFileType":
        low = value.lower()
        if low == "binary":
            return cls(binary=True)
        if low == "text":
            return cls(binary=False, encoding="utf-8")
        if low.startswith("text(") and value.endswith(")"):
            charset = value[5:-1]
            try:
                return cls(binary=False, encoding=codecs.lookup(charset).name)
            except LookupError:
                raise ValueError(f"Invalid IANA Encoding String '{charset}'") from None
        raise ValueError(f"Unsupported File Type '{value}'.  Please make sure the application is up-to-date")


class StaticFileDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    file: str
    modifier: Literal["public", "internal"]
    name: str
    namespace: Optional[str] = None
    type: StaticFileType

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, v):
        if isinstance(v, str):
            return StaticFileType.parse(v)
        return v


def _binary_literal(data: bytes, tabs: str) -> str:
    out: List[str] = []
    last = len(data) - 1
    for idx, val in enumerate(data):
        out.append(f"0x{val:02X}")
        if idx < last:
            out.append(", ")
        if idx > 0 and (idx + 1) % _BYTES_PER_LINE == 0:
            out.append("\n" + tabs + "\t\t")
    return "".join(out)


def render_static_source(
    source_name: str,
    descriptor: StaticFileDescriptor,
    data: bytes,
    info: DSwiftInfo = DEFAULT_INFO,
) -> GeneratedSource:
    """
    Текст Swift-файла со встроенным содержимым и кодировка, в которой его писать.

    Текст декодируется объявленной кодировкой; если она не подходит,
    кодировка определяется по данным.
    """
    modifier = descriptor.modifier
    name = descriptor.name
    parts = [
        f"//  This file was dynamically generated from '{source_name}' and '{descriptor.file}' "
        f"by {info.module_name}.  Please do not modify directly.\n",
        f"//  {info.module_name} can be found at {info.url}.\n\n",
        "import Foundation\n\n",
    ]

    struct_modifier = f"{modifier} "
    tabs = ""
    if descriptor.namespace:
        tabs = "\t"
        struct_modifier = ""
        parts.append(f"{modifier} extension {descriptor.namespace} {{\n\n")

    parts.append(f"{tabs}{struct_modifier}struct {name} {{\n")
    parts.append(f"{tabs}\tprivate init() {{ }}\n")

    encoding = "utf-8"
    file_type = descriptor.type
    if not file_type.binary:
        encoding = file_type.encoding or "utf-8"
        try:
            text = data.decode(encoding)
        except UnicodeDecodeError:
            encoding = detect_encoding(data)
            text = data.decode(encoding)
        text = text.replace("\\", "\\\\")
        parts.append(f"{tabs}\t{modifier} static let string: String = \"\"\"\n")
        parts.append(text)
        parts.append("\n\"\"\"\n")
        parts.append(f"{tabs}\t{modifier} static let encoding: String.Encoding = {swift_encoding(encoding)}\n")
        parts.append(f"{tabs}\t{modifier} static var data: Data {{ return {name}.string.data(using: encoding)! }}\n")
    else:
        parts.append(f"{tabs}\tprivate static let _value: [UInt8] = [\n")
        parts.append(f"{tabs}\t\t{_binary_literal(data, tabs)}\n")
        parts.append(f"{tabs}\t]\n")
        parts.append(f"{tabs}\t{modifier} static var data: Data {{ return Data({name}._value) }}\n")

    parts.append(f"{tabs}}}")
    if descriptor.namespace:
        parts.append("\n\n}")
    return GeneratedSource(source="".join(parts), encoding=encoding)


class StaticSourceGenerator:
    """
    Генератор для .dswift-static: сборка Swift не требуется,
    содержимое файла встраивается напрямую.
    """

    extensions = (STATIC_EXTENSION,)

    def __init__(self, project: SwiftProject, *, info: DSwiftInfo = DEFAULT_INFO):
        self.project = project
        self.info = info

    def load_descriptor(self, path: Path) -> StaticFileDescriptor:
        src = existing_source(path)
        try:
            return StaticFileDescriptor.model_validate_json(src.read_bytes())
        except ValidationError as e:
            raise StaticSourceError(str(src), _describe(e)) from e

    @staticmethod
    def static_file_path(source: Path, descriptor: StaticFileDescriptor) -> Path:
        """Путь встраиваемого файла; относительные пути считаются от дескриптора."""
        return Path(os.path.normpath(os.path.join(str(Path(source).parent), descriptor.file)))

    def generate_source(self, path: Path) -> GeneratedSource:
        src = existing_source(path)
        descriptor = self.load_descriptor(src)
        static_path = self.static_file_path(src, descriptor)
        try:
            data = static_path.read_bytes()
        except OSError as e:
            raise StaticSourceError(str(src), f"unable to read '{static_path}': {e}") from e
        logger.info(f"Generating source for '{src}' from '{static_path}'")
        return render_static_source(src.name, descriptor, data, self.info)

    def write_generated(
        self,
        path: Path,
        destination: Optional[Path] = None,
        *,
        lock: Optional[bool] = None,
    ) -> bool:
        src = existing_source(path)
        dest = Path(destination) if destination is not None else generated_path_for(src)
        generated = self.generate_source(src)
        if lock is None:
            lock = self.project.settings.lock_generated_files
        return write_if_changed(dest, generated.source.encode(generated.encoding), lock)

    def generate(self, path: Path, *, force: bool = False, lock: Optional[bool] = None) -> bool:
        if not force and not self.requires_generation(path):
            logger.debug(f"'{path}' is up to date")
            return False
        return self.write_generated(path, lock=lock)

    def requires_generation(self, path: Path) -> bool:
        """
        Устарел, если нет результата, дескриптор или встраиваемый файл новее
        результата, либо результат содержит маркер неудачной генерации.
        """
        src = existing_source(path)
        static_path = self.static_file_path(src, self.load_descriptor(src))
        dest = generated_path_for(src)
        if not dest.is_file():
            logger.debug(f"Generated file '{dest}' does not exist")
            return True

        src_mod = mtime_of(src)
        static_mod = mtime_of(static_path)
        dest_mod = mtime_of(dest)
        if src_mod is None or static_mod is None or dest_mod is None:
            logger.debug("Wasn't able to get all modification dates")
            return True
        if src_mod > dest_mod:
            logger.debug(f"'{src}' is newer")
            return True
        if static_mod > dest_mod:
            logger.debug(f"'{static_path}' is newer")
            return True

        return contains_failed_marker(dest)

    def clean(self, folder: Path) -> List[Path]:
        """Удаляет .swift файлы, сгенерированные из .dswift-static."""
        return [dest for _, dest in remove_generated(folder, STATIC_EXTENSION)]


def _describe(error: ValidationError) -> str:
    msgs = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ()))
        msg = item.get("msg", "")
        msgs.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(msgs)


__all__ = [
    "STATIC_EXTENSION",
    "StaticFileType",
    "StaticFileDescriptor",
    "StaticSourceGenerator",
    "render_static_source",
]
