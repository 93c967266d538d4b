"""
Заголовок `// dswift-tools-version: X.Y.Z` в первой строке шаблона.
"""

from __future__ import annotations

import re
from typing import Optional

from ..errors import InvalidToolsVersionError, MinimumToolsVersionNotMetError
from ..versions import SingleVersion

_HEADER_RE = re.compile(r"//\s?dswift-tools-version:")


def parse_tools_version(path: str, source: str) -> Optional[SingleVersion]:
    """
    Возвращает объявленную версию или None, если заголовка нет.

    Заголовок обязан начинаться с позиции 0 и заканчиваться \\n;
    строка заголовка без перевода строки заголовком не считается.
    """
    m = _HEADER_RE.match(source)
    if not m:
        return None
    end = source.find("\n", m.end())
    if end == -1:
        return None
    raw = source[m.end():end].strip()
    ver = SingleVersion.try_parse(raw)
    if ver is None:
        raise InvalidToolsVersionError(path, raw)
    return ver


def validate_tools_version(path: str, engine: SingleVersion, declared: SingleVersion) -> None:
    """Файл не может требовать версию новее движка."""
    if engine < declared:
        raise MinimumToolsVersionNotMetError(path, str(declared), str(engine))


__all__ = ["parse_tools_version", "validate_tools_version"]
