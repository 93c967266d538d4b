from __future__ import annotations

import logging
from pathlib import Path

import pytest

from tests.infrastructure.file_utils import write_template
from tests.infrastructure.project_builders import make_generator


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    # переменные окружения пользователя не должны влиять на тесты
    monkeypatch.delenv("DSWIFT_SWIFT", raising=False)
    monkeypatch.delenv("DSWIFT_DEBUG", raising=False)


@pytest.fixture(autouse=True)
def _reset_dswift_logger():
    logger = logging.getLogger("dswift")
    handlers = list(logger.handlers)
    yield
    for h in logger.handlers[:]:
        if h not in handlers:
            logger.removeHandler(h)


@pytest.fixture
def generator(tmp_path: Path):
    """SourceGenerator проекта в tmp_path с FakeSwiftRunner."""
    return make_generator(tmp_path)


@pytest.fixture
def template(tmp_path: Path):
    """Фабрика шаблонов: template("a.dswift", body, version="2.0.0")."""
    def _make(rel: str, body: str, version: str | None = "2.0.0") -> Path:
        return write_template(tmp_path / rel, body, version)
    return _make
