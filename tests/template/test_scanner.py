"""Тесты сканера блоков."""

from __future__ import annotations

import pytest

from dswift.errors import MissingClosingBlockError, MissingOpeningBlockError, UnknownBlockKindError
from dswift.template.grammar import DEFAULT_GRAMMAR, BlockGrammar, BlockKind, BlockKindDef
from dswift.template.scanner import BlockScanner, iter_blocks, line_of, scan


def _kinds(source: str):
    return [b.kind.kind for b in iter_blocks(source, "t.dswift")]


class TestGrammar:

    def test_kinds_sorted_by_token_length(self):
        """Длинные маркеры проверяются раньше своих префиксов."""
        tokens = [DEFAULT_GRAMMAR.open_token_of(k) for k in DEFAULT_GRAMMAR.kinds]
        assert tokens == sorted(tokens, key=len, reverse=True)
        assert tokens.index("!!") < tokens.index("!")

    def test_tag_lookup(self):
        assert DEFAULT_GRAMMAR.tag_named("include") is not None
        assert DEFAULT_GRAMMAR.tag_named("bogus") is None
        assert DEFAULT_GRAMMAR.tag_opening == "<%@"


class TestScan:

    def test_end_of_input_returns_none(self):
        assert scan("abc", 3) is None
        assert scan("", 0) is None

    def test_plain_text_is_single_block(self):
        block = scan("Hello 50% <b>", 0)
        assert block.kind.kind is BlockKind.TEXT
        assert block.body == "Hello 50% <b>"
        assert block.span == (0, 13)

    def test_text_up_to_opening_marker(self):
        source = "Hello <%= name %>!"
        block = scan(source, 0)
        assert block.kind.kind is BlockKind.TEXT
        assert block.body == "Hello "
        # открывающий маркер не поглощается
        assert block.end == source.index("<%")

    def test_block_kinds(self):
        source = "<%!! g %><%! c %><%= i %><% b %>"
        assert _kinds(source) == [BlockKind.GLOBAL, BlockKind.CLASS, BlockKind.INLINE, BlockKind.BASIC]

    def test_tag_kind(self):
        block = scan("<%@include file=\"a\"%>", 0)
        assert block.kind.kind is BlockKind.TAG
        assert block.kind.name == "include"

    def test_body_trims_single_newline(self):
        block = scan("<%\n\nlet x = 1\n\n%>", 0)
        assert block.body == "\nlet x = 1\n"

    def test_body_trims_crlf(self):
        block = scan("<%\r\nlet x = 1\r\n%>", 0)
        assert block.body == "let x = 1"

    def test_lines_strip_trailing_cr(self):
        block = scan("a\r\nb\r\nc", 0)
        assert block.lines == ["a", "b", "c"]

    def test_blocks_cover_source(self):
        source = "a<% x %>b<%= y %>c"
        blocks = list(iter_blocks(source))
        assert blocks[0].start == 0
        assert blocks[-1].end == len(source)
        for prev, nxt in zip(blocks, blocks[1:]):
            assert prev.end == nxt.start


class TestScanErrors:

    def test_missing_closing_block(self):
        with pytest.raises(MissingClosingBlockError) as exc:
            scan("<% print(1)", 0, "t.dswift")
        assert exc.value.line == 1
        assert "Missing closing" in str(exc.value)

    def test_missing_closing_reports_start_line(self):
        with pytest.raises(MissingClosingBlockError) as exc:
            list(iter_blocks("a\nb\n<%= x\n\n", "t.dswift"))
        assert exc.value.line == 3

    def test_closing_without_opening(self):
        with pytest.raises(MissingOpeningBlockError) as exc:
            list(iter_blocks("a\nb %>", "t.dswift"))
        assert exc.value.line == 2

    def test_closing_before_opening(self):
        with pytest.raises(MissingOpeningBlockError):
            scan("x %> <% y %>", 0)

    def test_unknown_kind_is_reported(self):
        """Без «пустого» вида блока неизвестный маркер — ошибка, а не тихая остановка."""
        grammar = BlockGrammar("<%", "%>", "@", (BlockKindDef(BlockKind.INLINE, "="),))
        with pytest.raises(UnknownBlockKindError) as exc:
            BlockScanner(grammar).scan("a\n<%? x %>", 2, "t.dswift")
        assert exc.value.line == 2


def test_line_of():
    assert line_of("abc", 0) == 1
    assert line_of("a\nb\nc", 4) == 3
