from __future__ import annotations

from importlib import metadata


def tool_version() -> str:
    """Версия установленного дистрибутива dswift (0.0.0 при запуске из исходников)."""
    try:
        return metadata.version("dswift")
    except metadata.PackageNotFoundError:
        return "0.0.0"


__all__ = ["tool_version"]
