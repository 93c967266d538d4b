"""
Компилятор блоков в исходный текст программы-генератора (Swift).

Каждый блок превращается либо в оператор внутри generate(), либо в код
уровня класса, либо в код уровня файла. Результат собирается в одну
самодостаточную программу, которая при запуске пишет итоговый текст в файл.
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from ..errors import UnprocessedTagError
from ..info import DEFAULT_INFO, DSwiftInfo
from .grammar import DEFAULT_GRAMMAR, BlockGrammar, BlockKind
from .scanner import BlockScanner, ParsedBlock, line_of

logger = logging.getLogger(__name__)

# Swift String.Encoding для кодеков Python
_SWIFT_ENCODINGS = {
    "utf-8": ".utf8",
    "utf-8-sig": ".utf8",
    "ascii": ".ascii",
    "latin-1": ".isoLatin1",
    "iso8859-1": ".isoLatin1",
    "cp1252": ".windowsCP1252",
    "utf-16": ".utf16",
    "utf-16-le": ".utf16LittleEndian",
    "utf-16-be": ".utf16BigEndian",
    "utf-32": ".utf32",
    "utf-32-le": ".utf32LittleEndian",
    "utf-32-be": ".utf32BigEndian",
}

_OUT_CLASS = (
    "public class Out {\n"
    "    public var buffer: String = \"\"\n"
    "    public init() { }\n"
    "\n"
    "    public func write(_ string: String) {\n"
    "        self.buffer += string\n"
    "    }\n"
    "    public func println(_ string: String) {\n"
    "        self.write(string + \"\\n\")\n"
    "    }\n"
    "}\n"
    "\n"
    "public func +=(lhs: inout Out, rhs: String) {\n"
    "    lhs.buffer += rhs\n"
    "}\n"
)


def swift_encoding(codec: str) -> str:
    """Имя случая String.Encoding для кодека; неизвестные кодеки пишутся как UTF-8."""
    try:
        name = codecs.lookup(codec).name
    except LookupError:
        return ".utf8"
    return _SWIFT_ENCODINGS.get(name, ".utf8")


def escape_text_line(line: str) -> str:
    """Экранирует строку текста для строкового литерала Swift."""
    return line.replace("\\", "\\\\").replace("\"", "\\\"")


def escape_literal(text: str) -> str:
    """Экранирование с переводами строк (для баннера)."""
    for old, new in (("\\", "\\\\"), ("\r", "\\r"), ("\n", "\\n"), ("\"", "\\\"")):
        text = text.replace(old, new)
    return text


@dataclass(frozen=True)
class GeneratedContent:
    """Результат компиляции одного блока: заполнено не более одного поля."""
    generator: Optional[str] = None
    class_level: Optional[str] = None
    global_level: Optional[str] = None


def generate_content(block: ParsedBlock, source: str, path: str) -> GeneratedContent:
    """
    Преобразует блок в фрагмент программы-генератора.

    Raises:
        UnprocessedTagError: Если до компилятора дошёл нераскрытый тег
    """
    kind = block.kind.kind
    if kind is BlockKind.TEXT:
        lines = block.lines
        out = []
        for i, line in enumerate(lines):
            text = escape_text_line(line)
            if i < len(lines) - 1:
                text += "\\n"
            out.append(f"\t\tsourceBuilder += \"{text}\"\n")
        return GeneratedContent(generator="".join(out))
    if kind is BlockKind.BASIC:
        return GeneratedContent(generator=block.body + "\n")
    if kind is BlockKind.INLINE:
        return GeneratedContent(generator=f"\t\tsourceBuilder += \"\\({block.body})\"\n")
    if kind is BlockKind.CLASS:
        return GeneratedContent(class_level=block.body)
    if kind is BlockKind.GLOBAL:
        return GeneratedContent(global_level=block.body)
    if kind is BlockKind.TAG:
        raise UnprocessedTagError(path, block.kind.name, line_of(source, block.start))
    raise RuntimeError(f"Unsupported block kind: {kind}")


def _append(buf: list[str], text: str) -> None:
    buf.append(text)
    if not text.endswith("\n"):
        buf.append("\n")


class GeneratorCompiler:
    """
    Собирает программу-генератор из развёрнутого (без тегов) шаблона.
    """

    def __init__(self, info: DSwiftInfo = DEFAULT_INFO, grammar: BlockGrammar = DEFAULT_GRAMMAR):
        self.info = info
        self.scanner = BlockScanner(grammar)

    def compile(
        self,
        source: str,
        class_name: str,
        *,
        path: str,
        package_names: Iterable[str] = (),
        encoding: str = "utf-8",
    ) -> str:
        """
        Args:
            source: Шаблон после раскрытия тегов
            class_name: Имя генерируемого класса
            path: Путь к исходному шаблону (для баннера и ошибок)
            package_names: Модули подключённых пакетов (по одному import на имя)
            encoding: Кодек исходного файла; в нём программа пишет результат

        Returns:
            Полный текст программы-генератора
        """
        generator: list[str] = []
        class_level: list[str] = []
        global_level: list[str] = []

        for block in self.scanner.iter_blocks(source, path):
            content = generate_content(block, source, path)
            if content.class_level is not None:
                _append(class_level, content.class_level)
            elif content.generator is not None:
                _append(generator, content.generator)
            elif content.global_level is not None:
                _append(global_level, content.global_level)

        generator_text = "".join(generator)
        class_text = "".join(class_level)
        global_text = "".join(global_level)
        file_name = Path(path).name

        parts = ["\nimport Foundation"]
        for name in package_names:
            parts.append(f"\nimport {name}")
        parts.append("\n\n")
        if global_text:
            parts.append(global_text + "\n\n")
        parts.append(_OUT_CLASS)
        parts.append("\n")

        parts.append(f"public class {class_name}: NSObject {{\n\n")
        parts.append(class_text)
        if class_text:
            parts.append("\n\n")
        parts.append("\tpublic override var description: String { return generate() }\n\n")
        parts.append("\n\tpublic func generate() -> String {\n")
        parts.append("\t\tlet out = Out()\n\n")
        parts.append("\t\tvar sourceBuilder = out\n\n")
        parts.append(
            f"\t\tsourceBuilder += \"//  This file was dynamically generated from '{file_name}' "
            f"by {self.info.module_name} v{self.info.version}.  Please do not modify directly.\\n\"\n"
        )
        parts.append(f"\t\tsourceBuilder += \"{escape_literal(self.info.banner_origin_line())}\"\n")
        parts.append(generator_text)
        parts.append("\n\t\treturn sourceBuilder.buffer\n")
        parts.append("\t}\n")
        parts.append("}\n")
        parts.append("\n")
        parts.append("if CommandLine.arguments.count != 2 {\n")
        parts.append("\t print(\"Invalid parameters\")\n")
        parts.append("} else {\n")
        parts.append(f"\t let srcEncoding: String.Encoding = {swift_encoding(encoding)}\n")
        parts.append(f"\t let gen = {class_name}()\n")
        parts.append("\t let src = gen.generate()\n")
        parts.append(
            "\t try src.write(to: URL(fileURLWithPath: CommandLine.arguments[1]), "
            "atomically: true, encoding: srcEncoding)\n"
        )
        parts.append("}")

        logger.debug(f"Compiled generator {class_name} for '{file_name}'")
        return "".join(parts)


__all__ = [
    "GeneratedContent",
    "GeneratorCompiler",
    "generate_content",
    "escape_text_line",
    "escape_literal",
    "swift_encoding",
]
