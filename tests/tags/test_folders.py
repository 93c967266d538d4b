"""Лес правил папок: слияние, обход, копирование и проверка изменений."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import List

import pytest

from dswift.errors import FolderReadError
from dswift.tags.folders import (
    append_child_folder,
    copy_files,
    has_been_modified,
    is_descendant,
    merge_forest,
    walk_folder,
)
from dswift.tags.model import (
    Exact,
    FolderRule,
    IncludeFile,
    IncludeFolder,
    IncludePackage,
    ReferenceFile,
    ReferenceFolder,
)
from dswift.versions import SingleVersion
from tests.infrastructure.file_utils import write


def _folder(path: Path, **kwargs) -> IncludeFolder:
    return IncludeFolder(tag_name="include", path=path.name, absolute_path=str(path), **kwargs)


def _paths(rules: List[FolderRule]) -> List[str]:
    return [r.absolute_path for r in rules]


def _assert_forest(rules: List[FolderRule]) -> None:
    """Дети лежат внутри родителя, не пересекаются и отсортированы."""
    paths = _paths(rules)
    assert paths == sorted(paths)
    for a in paths:
        for b in paths:
            assert not is_descendant(a, b)
    for r in rules:
        for c in r.children:
            assert is_descendant(c.absolute_path, r.absolute_path)
        _assert_forest(r.children)


def test_is_descendant():
    assert is_descendant("/a/b", "/a")
    assert is_descendant("/a/b/c", "/a")
    assert not is_descendant("/a", "/a")
    assert not is_descendant("/ab", "/a")
    assert is_descendant("/anything", "/")


class TestMerge:

    def test_child_goes_under_parent(self, tmp_path):
        forest = merge_forest([], [_folder(tmp_path / "a"), _folder(tmp_path / "a" / "b")])
        assert _paths(forest) == [str(tmp_path / "a")]
        assert _paths(forest[0].children) == [str(tmp_path / "a" / "b")]

    def test_parent_adopts_existing_children(self, tmp_path):
        forest = merge_forest([], [
            _folder(tmp_path / "a" / "c"),
            _folder(tmp_path / "a" / "b"),
            _folder(tmp_path / "z"),
            _folder(tmp_path / "a"),
        ])
        assert _paths(forest) == [str(tmp_path / "a"), str(tmp_path / "z")]
        assert _paths(forest[0].children) == [str(tmp_path / "a" / "b"), str(tmp_path / "a" / "c")]
        _assert_forest(forest)

    def test_same_path_merges_mapping(self, tmp_path):
        first = _folder(tmp_path / "a", mapping={"txt": "swift"})
        second = _folder(tmp_path / "a", mapping={"txt": "md", "in": "out"})
        forest = merge_forest([], [first, second])
        assert len(forest) == 1
        # существующие значения имеют приоритет
        assert forest[0].mapping == {"txt": "swift", "in": "out"}

    def test_same_path_merges_children(self, tmp_path):
        a1 = _folder(tmp_path / "a", children=[_folder(tmp_path / "a" / "x")])
        a2 = _folder(tmp_path / "a", children=[_folder(tmp_path / "a" / "y")])
        forest = merge_forest([], [a1, a2])
        assert _paths(forest[0].children) == [str(tmp_path / "a" / "x"), str(tmp_path / "a" / "y")]

    def test_inputs_are_not_mutated(self, tmp_path):
        parent = _folder(tmp_path / "a")
        child = _folder(tmp_path / "a" / "b")
        merge_forest([], [parent, child])
        assert parent.children == []

    def test_sibling_prefix_is_not_a_child(self, tmp_path):
        forest = merge_forest([], [_folder(tmp_path / "ab"), _folder(tmp_path / "a")])
        assert _paths(forest) == [str(tmp_path / "a"), str(tmp_path / "ab")]

    def test_append_outside_parent(self, tmp_path):
        with pytest.raises(ValueError):
            append_child_folder(_folder(tmp_path / "a"), _folder(tmp_path / "b"))

    def test_random_order_keeps_invariants(self, tmp_path):
        names = ["a/b/c", "a", "d/e", "a/b", "d", "a/f", "d/e/g", "a/b/c"]
        forest = merge_forest([], [_folder(tmp_path / n) for n in names])
        _assert_forest(forest)
        assert _paths(forest) == [str(tmp_path / "a"), str(tmp_path / "d")]


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    root = tmp_path / "lib"
    write(root / "a.swift", "a")
    write(root / "b.txt", "b")
    write(root / "c.md", "c")
    write(root / "sub" / "d.swift", "d")
    write(root / "sub" / "e.txt", "e")
    write(root / "sub" / "f.md", "f")
    return root


def _names(rule: FolderRule) -> List[str]:
    return [e.relative_path.replace(os.sep, "/") for e in walk_folder(rule)]


class TestWalk:

    def test_all_files_sorted(self, tree):
        assert _names(_folder(tree)) == ["a.swift", "b.txt", "c.md", "sub/d.swift", "sub/e.txt", "sub/f.md"]

    def test_include_extensions(self, tree):
        assert _names(_folder(tree, include_extensions=("swift",))) == ["a.swift", "sub/d.swift"]

    def test_exclude_extensions(self, tree):
        assert _names(_folder(tree, exclude_extensions=("md", "txt"))) == ["a.swift", "sub/d.swift"]

    def test_filter_searches_full_path(self, tree):
        rule = _folder(tree, filter=re.compile(r"sub/.*\.txt$"))
        assert _names(rule) == ["sub/e.txt"]

    def test_child_rule_propagates(self, tree):
        child = _folder(tree / "sub", exclude_extensions=("md",))
        rule = _folder(tree, include_extensions=("swift", "md"), children=[child])
        # родительский includeExtensions и дочерний excludeExtensions действуют вместе
        assert _names(rule) == ["a.swift", "c.md", "sub/d.swift"]

    def test_child_rule_resets(self, tree):
        child = _folder(tree / "sub", include_extensions=("txt",), propagate_attributes=False)
        rule = _folder(tree, include_extensions=("swift",), children=[child])
        assert _names(rule) == ["a.swift", "sub/e.txt"]

    def test_mapping_parent_wins(self, tree):
        child = _folder(tree / "sub", mapping={"txt": "md", "md": "markdown"})
        rule = _folder(tree, mapping={"txt": "swift"}, children=[child])
        mapped = {e.relative_path.replace(os.sep, "/"): e.destination_name for e in walk_folder(rule)}
        assert mapped["b.txt"] == "b.swift"
        assert mapped["sub/e.txt"].replace(os.sep, "/") == "sub/e.swift"
        assert mapped["sub/f.md"].replace(os.sep, "/") == "sub/f.markdown"
        assert mapped["a.swift"] == "a.swift"

    def test_unreadable_folder(self, tmp_path):
        with pytest.raises(FolderReadError):
            list(walk_folder(_folder(tmp_path / "missing")))


class TestCopyFiles:

    def test_copies_structure_with_mapping(self, tree, tmp_path):
        dest = tmp_path / "out"
        rule = _folder(tree, exclude_extensions=("md",), mapping={"txt": "swift"})
        assert copy_files(rule, str(dest)) == 4
        copied = sorted(p.relative_to(dest).as_posix() for p in dest.rglob("*") if p.is_file())
        assert copied == ["a.swift", "b.swift", "sub/d.swift", "sub/e.swift"]
        assert (dest / "sub" / "e.swift").read_text(encoding="utf-8") == "e"

    def test_reference_folder_has_no_mapping(self, tree, tmp_path):
        rule = ReferenceFolder(
            tag_name="reference", path="lib", absolute_path=str(tree), include_extensions=("txt",),
        )
        copy_files(rule, str(tmp_path / "out"))
        assert (tmp_path / "out" / "b.txt").is_file()


class TestHasBeenModified:

    def test_file(self, tmp_path):
        f = write(tmp_path / "x.txt", "x")
        mtime = f.stat().st_mtime
        variant = IncludeFile(tag_name="include", path="x.txt", absolute_path=str(f))
        assert not has_been_modified(variant, mtime)
        assert has_been_modified(variant, mtime - 10)

    def test_missing_file_counts_as_modified(self, tmp_path):
        variant = ReferenceFile(tag_name="reference", path="x", absolute_path=str(tmp_path / "x"))
        assert has_been_modified(variant, 0)

    def test_folder_uses_filters(self, tree):
        newest = max(p.stat().st_mtime for p in tree.rglob("*") if p.is_file())
        md = tree / "c.md"
        os.utime(md, (newest + 100, newest + 100))
        assert has_been_modified(_folder(tree), newest + 50)
        assert not has_been_modified(_folder(tree, exclude_extensions=("md",)), newest + 50)

    def test_missing_folder(self, tmp_path):
        assert has_been_modified(_folder(tmp_path / "gone"), 0)

    def test_package_never_modified(self):
        package = IncludePackage(
            tag_name="include", url="u", requirement=Exact(SingleVersion.parse("1.0.0")), package_names=("A",),
        )
        assert not has_been_modified(package, 0)
