"""
Шаблонный движок dswift: грамматика блоков, сканер, разбор атрибутов тегов
и компиляция шаблона в программу-генератор.
"""

from __future__ import annotations

from .attributes import parse_attributes
from .compiler import GeneratedContent, GeneratorCompiler, generate_content
from .grammar import DEFAULT_GRAMMAR, BlockGrammar, BlockKind, BlockKindDef
from .scanner import BlockScanner, ParsedBlock, iter_blocks, line_of, scan
from .tools_version import parse_tools_version, validate_tools_version

__all__ = [
    "BlockGrammar",
    "BlockKind",
    "BlockKindDef",
    "DEFAULT_GRAMMAR",
    "BlockScanner",
    "ParsedBlock",
    "scan",
    "iter_blocks",
    "line_of",
    "parse_attributes",
    "GeneratedContent",
    "GeneratorCompiler",
    "generate_content",
    "parse_tools_version",
    "validate_tools_version",
]
