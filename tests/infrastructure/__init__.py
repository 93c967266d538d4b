"""
Общая инфраструктура тестов dswift.

Modules:
- file_utils: создание файлов и каталогов
- fake_runner: BuildRunner без Swift, интерпретирующий программу-генератор
- project_builders: проекты и генераторы для тестов
"""

from .file_utils import write, write_template
from .fake_runner import FakeRun, FakeSwiftRunner, interpret_generator
from .project_builders import make_details, make_generator, make_project

__all__ = [
    "write", "write_template",
    "FakeRun", "FakeSwiftRunner", "interpret_generator",
    "make_project", "make_details", "make_generator",
]
