"""
Разбор атрибутов тега вида name="value" / name='value'.

Значения не экранируются: значение не может содержать собственную кавычку
или перевод строки. Имена атрибутов приводятся к нижнему регистру.
"""

from __future__ import annotations

from typing import Dict

from ..errors import InvalidTagError
from .scanner import line_of

_QUOTES = ("\"", "'")


def parse_attributes(
    source: str,
    name_end: int,
    tag_close: int,
    *,
    tag: str,
    path: str,
    tag_start: int,
) -> Dict[str, str]:
    """
    Разбирает атрибуты в диапазоне source[name_end:tag_close].

    Args:
        source: Полный текст шаблона
        name_end: Позиция сразу после имени тега
        tag_close: Позиция закрывающего разделителя тега
        tag: Имя тега (для сообщений об ошибках)
        path: Путь к файлу (для сообщений об ошибках)
        tag_start: Начало тега (для номера строки)

    Returns:
        Словарь lowercased-имя -> сырое значение

    Raises:
        InvalidTagError: При любом нарушении синтаксиса атрибутов
    """
    def fail(reason: str) -> InvalidTagError:
        return InvalidTagError(path, tag, line_of(source, tag_start), reason)

    attributes: Dict[str, str] = {}
    pos = name_end

    while True:
        while pos < tag_close and source[pos].isspace():
            pos += 1
        if pos >= tag_close:
            return attributes

        name_start = pos
        while pos < tag_close and not source[pos].isspace() and source[pos] != "=":
            pos += 1
        name = source[name_start:pos]

        if pos >= tag_close:
            raise fail(f"missing value for attribute '{name}'")
        if source[pos].isspace():
            raise fail(f"unexpected whitespace after attribute name '{name}'")
        if not name:
            raise fail("missing attribute name")

        # source[pos] == "="
        pos += 1
        if pos >= tag_close:
            raise fail(f"missing value for attribute '{name}'")
        quote = source[pos]
        if quote not in _QUOTES:
            raise fail(f"expected quoted value for attribute '{name}'")

        value_start = pos + 1
        pos = value_start
        while pos < tag_close and source[pos] != quote:
            if source[pos] in "\r\n":
                raise fail(f"invalid character in attribute '{name}' value")
            pos += 1
        if pos >= tag_close:
            raise fail(f"missing attribute '{name}' value end")

        attributes[name.lower()] = source[value_start:pos]
        pos += 1


__all__ = ["parse_attributes"]
