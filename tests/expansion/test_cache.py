"""Кеши содержимого, версий и тегов."""

from __future__ import annotations

import codecs
import threading
import time

import pytest

from dswift.errors import MissingSourceError
from dswift.expansion.cache import KeyedCache, PreloadedDetails, detect_encoding
from tests.infrastructure.file_utils import write, write_template
from tests.infrastructure.project_builders import make_details, make_project


class TestKeyedCache:

    def test_compute_once_under_threads(self):
        cache: KeyedCache[str, int] = KeyedCache()
        calls = []
        lock = threading.Lock()

        def compute():
            with lock:
                calls.append(1)
            time.sleep(0.05)
            return 42

        results = []
        threads = [threading.Thread(target=lambda: results.append(cache.get("k", compute))) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == [42] * 8
        assert len(calls) == 1

    def test_exception_is_not_cached(self):
        cache: KeyedCache[str, int] = KeyedCache()

        def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.get("k", boom)
        assert "k" not in cache
        assert cache.get("k", lambda: 1) == 1

    def test_invalidate_and_clear(self):
        cache: KeyedCache[str, int] = KeyedCache()
        cache.get("a", lambda: 1)
        cache.get("b", lambda: 2)
        assert cache.peek("a") == 1 and len(cache) == 2
        cache.invalidate("a")
        assert cache.peek("a") is None
        cache.clear()
        assert len(cache) == 0


class TestDetectEncoding:

    @pytest.mark.parametrize("data, expected", [
        (codecs.BOM_UTF32_LE + "x".encode("utf-32-le"), "utf-32"),
        (codecs.BOM_UTF16_LE + "x".encode("utf-16-le"), "utf-16"),
        (codecs.BOM_UTF16_BE + "x".encode("utf-16-be"), "utf-16"),
        (codecs.BOM_UTF8 + b"x", "utf-8-sig"),
        ("привет".encode("utf-8"), "utf-8"),
        (b"caf\xe9", "latin-1"),
        (b"", "utf-8"),
    ])
    def test_detect(self, data, expected):
        assert detect_encoding(data) == expected


class TestPreloadedDetails:

    def test_content_is_cached(self, tmp_path):
        f = write(tmp_path / "a.dswift", "one")
        details = make_details(tmp_path)
        assert details.contents.get(str(f)).text == "one"
        write(f, "two")
        assert details.contents.get(str(f)).text == "one"

    def test_declared_encoding(self, tmp_path):
        f = tmp_path / "a.dswift"
        f.write_bytes("тест".encode("cp1251"))
        details = PreloadedDetails(make_project(tmp_path, encodings={"a.dswift": "cp1251"}))
        content = details.contents.get(str(f))
        assert content.text == "тест"
        assert content.encoding == "cp1251"

    def test_missing_file(self, tmp_path):
        with pytest.raises(MissingSourceError):
            make_details(tmp_path).contents.get(str(tmp_path / "nope.dswift"))

    def test_tools_version_and_tags(self, tmp_path):
        write(tmp_path / "inc.txt", "x")
        f = write_template(tmp_path / "a.dswift", "<%@include file=\"inc.txt\"%>")
        details = make_details(tmp_path)
        assert str(details.tools_versions.get(str(f))) == "2.0.0"
        tags = details.tags.get(str(f))
        assert len(tags) == 1
        assert details.tags.get(str(f)) is tags

    def test_no_header(self, tmp_path):
        f = write_template(tmp_path / "a.dswift", "plain", version=None)
        assert make_details(tmp_path).tools_versions.get(str(f)) is None
