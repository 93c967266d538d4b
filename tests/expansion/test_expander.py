"""Раскрытие тегов include/reference."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from dswift.errors import IncludeCycleError, MinimumToolsVersionNotMetError, ToolsVersionRequiredError
from dswift.expansion.expander import IncludeTracker, TagExpander, leading_whitespace
from tests.infrastructure.file_utils import write, write_template
from tests.infrastructure.project_builders import make_details

PACKAGE = "<%@include package=\"https://example.com/CodeTimer.git\" from=\"1.0.0\" packageName=\"CodeTimer\"%>"


def _expand(root: Path, rel: str = "main.dswift", tracker: IncludeTracker | None = None):
    return TagExpander(make_details(root), tracker=tracker).expand(str(root / rel))


def test_leading_whitespace():
    assert leading_whitespace("a\n \t<%@", 4) == " \t"
    assert leading_whitespace("<%@", 0) == ""


class TestHeader:

    def test_without_header_source_is_unchanged(self, tmp_path):
        body = "Hello <%= name %>"
        write_template(tmp_path / "main.dswift", body, version=None)
        result = _expand(tmp_path)
        assert result.source == body
        assert result.spans == []

    def test_tag_without_header(self, tmp_path):
        """Тег в файле без заголовка: ошибка пользователя с номером строки."""
        write_template(tmp_path / "main.dswift", "a\n<%@include file=\"x.txt\"%>", version=None)
        with pytest.raises(ToolsVersionRequiredError) as exc:
            _expand(tmp_path)
        assert exc.value.line == 2
        assert exc.value.tag == "include"
        assert "dswift-tools-version" in str(exc.value)

    def test_tag_in_included_file_without_header(self, tmp_path):
        write(tmp_path / "inc.dswift", "<%@reference file=\"x.swift\"%>")
        write_template(tmp_path / "main.dswift", "<%@include file=\"inc.dswift\"%>")
        with pytest.raises(ToolsVersionRequiredError) as exc:
            _expand(tmp_path)
        assert exc.value.path == str(tmp_path / "inc.dswift")
        assert exc.value.tag == "reference"

    def test_header_without_tags(self, tmp_path):
        f = write_template(tmp_path / "main.dswift", "Hello")
        assert _expand(tmp_path).source == f.read_text(encoding="utf-8")

    def test_engine_too_old(self, tmp_path):
        write_template(tmp_path / "main.dswift", "x", version="9.0.0")
        with pytest.raises(MinimumToolsVersionNotMetError):
            _expand(tmp_path)

    def test_folder_tag_needs_newer_header(self, tmp_path):
        (tmp_path / "lib").mkdir()
        write_template(tmp_path / "main.dswift", "<%@include folder=\"lib\"%>", version="1.0.0")
        with pytest.raises(MinimumToolsVersionNotMetError) as exc:
            _expand(tmp_path)
        message = str(exc.value)
        assert "'2.0.0'" in message and "'1.0.0'" in message
        assert "include[folder]" in message
        assert exc.value.line == 2

    def test_file_tag_allowed_on_old_header(self, tmp_path):
        write(tmp_path / "inc.txt", "included")
        write_template(tmp_path / "main.dswift", "<%@include file=\"inc.txt\"%>", version="1.0.18")
        assert "included" in _expand(tmp_path).source


class TestIncludeFile:

    def test_content_is_wrapped(self, tmp_path):
        write(tmp_path / "inc.txt", "included")
        write_template(tmp_path / "main.dswift", "a\n<%@include file=\"inc.txt\"%> b")
        assert _expand(tmp_path).source.endswith(
            "a\n/* *** include[file] 'inc.txt' Begin *** */\n"
            "included\n"
            "/* *** include[file] 'inc.txt' End *** */ b"
        )

    def test_quiet(self, tmp_path):
        write(tmp_path / "inc.txt", "included")
        write_template(tmp_path / "main.dswift", "a <%@include file=\"inc.txt\" quiet=\"true\"%> b")
        assert _expand(tmp_path).source.endswith("a included b")

    def test_only_once(self, tmp_path):
        write(tmp_path / "inc.txt", "included")
        tag = "<%@include file=\"inc.txt\" onlyOnce=\"true\"%>"
        write_template(tmp_path / "main.dswift", f"{tag}\n{tag}")
        result = _expand(tmp_path)
        assert result.source.count("included\n") == 1
        second = result.source[result.spans[1][0]:result.spans[1][1]]
        assert "Already included elsewhere" in second
        assert "included\n" not in second

    def test_only_once_quiet(self, tmp_path):
        write(tmp_path / "inc.txt", "included")
        tag = "<%@include file=\"inc.txt\" onlyOnce=\"true\" quiet=\"true\"%>"
        write_template(tmp_path / "main.dswift", f"[{tag}][{tag}]")
        assert _expand(tmp_path).source.endswith("[included][]")

    def test_without_only_once_included_twice(self, tmp_path):
        write(tmp_path / "inc.txt", "included")
        tag = "<%@include file=\"inc.txt\" quiet=\"true\"%>"
        write_template(tmp_path / "main.dswift", f"{tag}{tag}")
        assert _expand(tmp_path).source.endswith("includedincluded")

    def test_tracker_is_shared(self, tmp_path):
        write(tmp_path / "inc.txt", "included")
        write_template(tmp_path / "main.dswift", "<%@include file=\"inc.txt\" onlyOnce=\"true\" quiet=\"true\"%>")
        tracker = IncludeTracker()
        assert _expand(tmp_path, tracker=tracker).source.endswith("included")
        assert len(tracker) == 1
        assert not _expand(tmp_path, tracker=tracker).source.endswith("included")

    def test_only_once_across_threads(self, tmp_path):
        """Общий трекер: файл с onlyOnce включается ровно один раз из всех потоков."""
        write(tmp_path / "inc.txt", "included")
        for i in range(8):
            write_template(tmp_path / f"t{i}.dswift", "<%@include file=\"inc.txt\" onlyOnce=\"true\" quiet=\"true\"%>")
        details = make_details(tmp_path)
        tracker = IncludeTracker()

        def run(i):
            return TagExpander(details, tracker=tracker).expand(str(tmp_path / f"t{i}.dswift")).source

        with ThreadPoolExecutor(max_workers=8) as pool:
            sources = list(pool.map(run, range(8)))
        assert sum(s.endswith("included") for s in sources) == 1

    def test_plain_include_counts_for_only_once(self, tmp_path):
        write(tmp_path / "inc.txt", "included")
        write_template(
            tmp_path / "main.dswift",
            "[<%@include file=\"inc.txt\" quiet=\"true\"%>][<%@include file=\"inc.txt\" onlyOnce=\"true\" quiet=\"true\"%>]",
        )
        assert _expand(tmp_path).source.endswith("[included][]")

    def test_multiline_content_is_reindented(self, tmp_path):
        write(tmp_path / "inc.txt", "l1\nl2")
        write_template(tmp_path / "main.dswift", "x\n    <%@include file=\"inc.txt\"%>\ny")
        assert "\n    /* *** include[file] 'inc.txt' Begin *** */\n    l1\n    l2\n    /* *** include[file] 'inc.txt' End *** */\ny" \
            in _expand(tmp_path).source

    def test_nested_expansion(self, tmp_path):
        write(tmp_path / "leaf.txt", "leaf")
        write_template(tmp_path / "mid.dswift", "mid <%@include file=\"leaf.txt\" quiet=\"true\"%>")
        write_template(tmp_path / "main.dswift", "<%@include file=\"mid.dswift\" quiet=\"true\"%>")
        assert _expand(tmp_path).source.endswith("mid leaf")

    def test_cycle(self, tmp_path):
        write_template(tmp_path / "a.dswift", "<%@include file=\"b.dswift\"%>")
        write_template(tmp_path / "b.dswift", "<%@include file=\"a.dswift\"%>")
        with pytest.raises(IncludeCycleError) as exc:
            _expand(tmp_path, "a.dswift")
        assert "'a.dswift'" in str(exc.value)

    def test_self_include(self, tmp_path):
        write_template(tmp_path / "main.dswift", "<%@include file=\"main.dswift\"%>")
        with pytest.raises(IncludeCycleError):
            _expand(tmp_path)


class TestCollectedResources:

    def test_packages_deduplicated_across_includes(self, tmp_path):
        write_template(tmp_path / "inc.dswift", PACKAGE)
        write_template(tmp_path / "main.dswift", f"{PACKAGE}\n<%@include file=\"inc.dswift\"%>")
        result = _expand(tmp_path)
        assert len(result.include_packages) == 1
        assert result.package_names == ["CodeTimer"]

    def test_package_comment(self, tmp_path):
        write_template(tmp_path / "main.dswift", PACKAGE)
        source = _expand(tmp_path).source
        assert "*     URL: \"https://example.com/CodeTimer.git\"" in source
        assert "*     From: \"1.0.0\"" in source

    def test_folders_form_forest(self, tmp_path):
        (tmp_path / "lib" / "sub").mkdir(parents=True)
        (tmp_path / "other").mkdir()
        write_template(tmp_path / "inc.dswift", "<%@include folder=\"lib/sub\"%>")
        write_template(
            tmp_path / "main.dswift",
            "<%@include folder=\"other\"%><%@include file=\"inc.dswift\"%><%@include folder=\"lib\"%>",
        )
        result = _expand(tmp_path)
        top = [f.absolute_path for f in result.include_folders]
        assert top == [str(tmp_path / "lib"), str(tmp_path / "other")]
        assert [c.absolute_path for c in result.include_folders[0].children] == [str(tmp_path / "lib" / "sub")]

    def test_reference_folders_are_separate(self, tmp_path):
        (tmp_path / "lib").mkdir()
        write_template(tmp_path / "main.dswift", "<%@reference folder=\"lib\"%><%@reference file=\"x.swift\"%>")
        result = _expand(tmp_path)
        assert result.include_folders == []
        assert [f.absolute_path for f in result.reference_folders] == [str(tmp_path / "lib")]
        assert "reference[file] Begin" in result.source

    def test_spans_match_replacements(self, tmp_path):
        write(tmp_path / "inc.txt", "included")
        (tmp_path / "lib").mkdir()
        original = (
            "a <%@include file=\"inc.txt\"%>\n"
            "  <%@include folder=\"lib\"%>\n"
            f"{PACKAGE} z"
        )
        write_template(tmp_path / "main.dswift", original)
        result = _expand(tmp_path)
        assert len(result.spans) == 3
        pieces = [result.source[s:e] for s, e in result.spans]
        assert pieces[0].startswith("/* *** include[file] 'inc.txt' Begin")
        assert pieces[1].startswith("/* *** include[folder] Begin") and "\n  *     Path: \"lib\"" in pieces[1]
        assert pieces[2].startswith("/* *** include[package] Begin")
        assert result.source.endswith("*** include[package] End *** */ z")
        for (s1, e1), (s2, _) in zip(result.spans, result.spans[1:]):
            assert e1 <= s2
