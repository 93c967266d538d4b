"""
Сборка и запуск модуля-генератора.

`BuildRunner` — внешняя граница движка: получает каталог модуля
с программой-генератором и возвращает путь к файлу с результатом.
`SwiftRunner` реализует её через swift CLI.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol

from ..errors import BuildModuleFailedError, RunModuleFailedError, SwiftNotFoundError

logger = logging.getLogger(__name__)

OUTPUT_FILE_NAME = "swift.out"

_ERROR_MARKER = ": error: "
_TERMINATED_MARKER = "\nerror: terminated(1):"


@dataclass(frozen=True)
class GeneratorModule:
    """Временный пакет с программой-генератором."""
    name: str
    path: Path
    source_path: str
    encoding: str = "utf-8"
    has_dependencies: bool = False

    @property
    def sources_dir(self) -> Path:
        return self.path / "Sources" / self.name

    @property
    def main_path(self) -> Path:
        return self.sources_dir / "main.swift"

    @property
    def output_path(self) -> Path:
        return self.path / OUTPUT_FILE_NAME


@dataclass(frozen=True)
class RunResult:
    output_path: Path
    log: str = ""


class BuildRunner(Protocol):
    def run(self, module: GeneratorModule) -> RunResult:
        ...


def trim_error_output(text: str) -> str:
    """
    Оставляет из вывода компилятора только текст ошибки:
    начиная с первого "error: " и до служебной строки "error: terminated(1):".
    """
    idx = text.find(_ERROR_MARKER)
    if idx != -1:
        text = text[idx + 2:]
    idx = text.find(_TERMINATED_MARKER)
    if idx != -1:
        text = text[:idx]
    return text


@dataclass(frozen=True)
class _Completed:
    code: int
    output: str


class SwiftRunner:
    """
    swift package update (только при наличии зависимостей) → swift build →
    swift build --show-bin-path → запуск собранного исполняемого файла.
    """

    def __init__(self, swift: str = "swift", *, timeout: Optional[float] = None):
        self.swift = swift
        self.timeout = timeout

    def _exec(self, args: List[str], cwd: Path) -> _Completed:
        logger.debug(f"Running {' '.join(args)} in '{cwd}'")
        try:
            proc = subprocess.run(
                args,
                cwd=str(cwd),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise SwiftNotFoundError(args[0]) from e
        return _Completed(proc.returncode, proc.stdout or "")

    def _swift(self, module: GeneratorModule, *args: str) -> _Completed:
        res = self._exec([self.swift, *args], module.path)
        if res.code != 0:
            logger.debug(f"swift {' '.join(args)} failed for '{module.source_path}'")
            raise BuildModuleFailedError(module.source_path, res.code, trim_error_output(res.output))
        return res

    def build(self, module: GeneratorModule) -> Path:
        """Собирает модуль и возвращает путь к исполняемому файлу."""
        if module.has_dependencies:
            logger.info(f"Loading external resources for '{module.source_path}'")
            self._swift(module, "package", "update")

        logger.info(f"Compiling generator for '{module.source_path}'")
        self._swift(module, "build")
        res = self._swift(module, "build", "--show-bin-path")
        lines = [ln for ln in res.output.splitlines() if ln.strip()]
        if not lines:
            raise BuildModuleFailedError(module.source_path, res.code, "unable to locate build products")
        return Path(lines[-1].strip()) / module.name

    def run(self, module: GeneratorModule) -> RunResult:
        executable = self.build(module)
        logger.info(f"Running generator {executable}")
        res = self._exec([str(executable), str(module.output_path)], executable.parent)
        if res.code != 0:
            raise RunModuleFailedError(str(executable), res.code, res.output)
        return RunResult(module.output_path, res.output)


__all__ = [
    "OUTPUT_FILE_NAME",
    "GeneratorModule",
    "RunResult",
    "BuildRunner",
    "SwiftRunner",
    "trim_error_output",
]
