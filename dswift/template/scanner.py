"""
Сканер блоков шаблона.

Находит следующий блок начиная с позиции курсора: литеральный текст
до ближайшего открывающего разделителя либо блок одного из видов грамматики.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from ..errors import MissingClosingBlockError, MissingOpeningBlockError, UnknownBlockKindError
from .grammar import DEFAULT_GRAMMAR, TEXT_KIND, BlockGrammar, BlockKindDef


def line_of(source: str, offset: int) -> int:
    """Номер строки (с 1) для смещения в тексте."""
    return source.count("\n", 0, offset) + 1


def split_block_lines(body: str) -> List[str]:
    """Разбивает тело блока на строки, отбрасывая завершающий \\r каждой строки."""
    return [ln[:-1] if ln.endswith("\r") else ln for ln in body.split("\n")]


def _trim_body(body: str) -> str:
    # Ровно один ведущий и один завершающий перевод строки
    if body.startswith("\r\n"):
        body = body[2:]
    elif body.startswith("\n"):
        body = body[1:]
    if body.endswith("\n"):
        body = body[:-1]
        if body.endswith("\r"):
            body = body[:-1]
    return body


@dataclass(frozen=True)
class ParsedBlock:
    """
    Найденный блок: полуоткрытый диапазон в исходном тексте, вид и тело.
    """
    start: int
    end: int
    kind: BlockKindDef
    body: str

    @property
    def span(self) -> Tuple[int, int]:
        return self.start, self.end

    @property
    def lines(self) -> List[str]:
        return split_block_lines(self.body)


class BlockScanner:
    """
    Последовательный сканер блоков по одной грамматике.
    """

    def __init__(self, grammar: BlockGrammar = DEFAULT_GRAMMAR):
        self.grammar = grammar

    def scan(self, source: str, cursor: int, path: str = "") -> Optional[ParsedBlock]:
        """
        Возвращает блок, начинающийся в позиции cursor, или None в конце текста.
        """
        g = self.grammar
        if cursor >= len(source):
            return None

        open_at = source.find(g.opening, cursor)
        close_at = source.find(g.closing, cursor)

        if close_at != -1 and (open_at == -1 or close_at < open_at):
            raise MissingOpeningBlockError(path, g.closing, line_of(source, close_at))

        if open_at == -1:
            return ParsedBlock(cursor, len(source), TEXT_KIND, source[cursor:])

        if open_at > cursor:
            return ParsedBlock(cursor, open_at, TEXT_KIND, source[cursor:open_at])

        after_open = open_at + len(g.opening)
        for kind in g.kinds:
            token = g.open_token_of(kind)
            if not source.startswith(token, after_open):
                continue
            body_start = after_open + len(token)
            terminator = kind.close_token + g.closing
            close_at = source.find(terminator, body_start)
            if close_at == -1:
                raise MissingClosingBlockError(
                    path,
                    terminator,
                    g.opening + token,
                    line_of(source, open_at),
                )
            body = _trim_body(source[body_start:close_at])
            return ParsedBlock(open_at, close_at + len(terminator), kind, body)

        raise UnknownBlockKindError(path, g.opening, line_of(source, open_at))

    def iter_blocks(self, source: str, path: str = "") -> Iterator[ParsedBlock]:
        cursor = 0
        while True:
            block = self.scan(source, cursor, path)
            if block is None:
                return
            yield block
            cursor = block.end


def scan(source: str, cursor: int, path: str = "", grammar: BlockGrammar = DEFAULT_GRAMMAR) -> Optional[ParsedBlock]:
    """Удобная функция для разового вызова сканера."""
    return BlockScanner(grammar).scan(source, cursor, path)


def iter_blocks(source: str, path: str = "", grammar: BlockGrammar = DEFAULT_GRAMMAR) -> Iterator[ParsedBlock]:
    return BlockScanner(grammar).iter_blocks(source, path)


__all__ = [
    "ParsedBlock",
    "BlockScanner",
    "scan",
    "iter_blocks",
    "line_of",
    "split_block_lines",
]
