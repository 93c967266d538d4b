"""
Dynamic Swift: шаблоны .dswift компилируются в программу-генератор на Swift,
запуск которой даёт итоговый исходный код.
"""

from __future__ import annotations

from .errors import DSwiftUserError
from .generation import SourceGenerator
from .project import SwiftProject, load_project

__all__ = ["DSwiftUserError", "SourceGenerator", "SwiftProject", "load_project"]
