"""
Сборка модуля-генератора, его запуск и запись результата;
встраивание файлов по дескрипторам .dswift-static.
"""

from __future__ import annotations

from .generator import (
    FAILED_GENERATION_MARKER,
    GeneratedSource,
    GeneratorProgram,
    SourceGenerator,
    generated_path_for,
)
from .group import GroupGenerator
from .manifest import render_manifest
from .runner import BuildRunner, GeneratorModule, RunResult, SwiftRunner
from .static import STATIC_EXTENSION, StaticFileDescriptor, StaticSourceGenerator

__all__ = [
    "SourceGenerator",
    "GeneratorProgram",
    "GeneratedSource",
    "generated_path_for",
    "FAILED_GENERATION_MARKER",
    "GroupGenerator",
    "StaticSourceGenerator",
    "StaticFileDescriptor",
    "STATIC_EXTENSION",
    "render_manifest",
    "BuildRunner",
    "GeneratorModule",
    "RunResult",
    "SwiftRunner",
]
