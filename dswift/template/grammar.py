"""
Грамматика блоков шаблона dswift.

Описывает внешние разделители (<% ... %>), индикатор тегов (@)
и упорядоченный список видов блоков.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Tuple


class BlockKind(enum.Enum):
    """Виды блоков шаблона."""

    TEXT = "text"        # литеральный текст вне разделителей
    BASIC = "basic"      # <% ... %>   код внутри generate()
    INLINE = "inline"    # <%= ... %>  интерполируемое выражение
    CLASS = "class"      # <%! ... %>  код на уровне класса
    GLOBAL = "global"    # <%!! ... %> код на уровне файла
    TAG = "tag"          # <%@name ... %>


@dataclass(frozen=True)
class BlockKindDef:
    """
    Определение вида блока.

    Для тегов open_token равен tag_indicator + name и вычисляется грамматикой.
    """
    kind: BlockKind
    open_token: str = ""
    close_token: str = ""
    name: str = ""

    @property
    def is_tag(self) -> bool:
        return self.kind is BlockKind.TAG


TEXT_KIND = BlockKindDef(BlockKind.TEXT)


@dataclass(frozen=True)
class BlockGrammar:
    """
    Неизменяемая конфигурация сканера.

    kinds всегда хранятся отсортированными по убыванию длины открывающего токена,
    чтобы более длинные маркеры (!!) проверялись раньше своих префиксов (!).
    """
    opening: str
    closing: str
    tag_indicator: str
    kinds: Tuple[BlockKindDef, ...]

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.kinds, key=lambda k: len(self.open_token_of(k)), reverse=True))
        object.__setattr__(self, "kinds", ordered)

    def open_token_of(self, kind: BlockKindDef) -> str:
        if kind.is_tag:
            return self.tag_indicator + kind.name
        return kind.open_token

    @property
    def tag_opening(self) -> str:
        return self.opening + self.tag_indicator

    @property
    def tag_kinds(self) -> Tuple[BlockKindDef, ...]:
        return tuple(k for k in self.kinds if k.is_tag)

    def tag_named(self, name: str) -> BlockKindDef | None:
        for k in self.tag_kinds:
            if k.name == name:
                return k
        return None


INCLUDE_TAG = "include"
REFERENCE_TAG = "reference"

DEFAULT_GRAMMAR = BlockGrammar(
    opening="<%",
    closing="%>",
    tag_indicator="@",
    kinds=(
        BlockKindDef(BlockKind.GLOBAL, "!!"),
        BlockKindDef(BlockKind.CLASS, "!"),
        BlockKindDef(BlockKind.INLINE, "="),
        BlockKindDef(BlockKind.BASIC, ""),
        BlockKindDef(BlockKind.TAG, name=INCLUDE_TAG),
        BlockKindDef(BlockKind.TAG, name=REFERENCE_TAG),
    ),
)


__all__ = [
    "BlockKind",
    "BlockKindDef",
    "BlockGrammar",
    "TEXT_KIND",
    "INCLUDE_TAG",
    "REFERENCE_TAG",
    "DEFAULT_GRAMMAR",
]
