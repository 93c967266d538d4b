"""
Edit list over an immutable source text.

Tag replacements are collected as (original span, replacement) pairs and
applied in one pass; final positions are computed from a prefix sum of
length deltas instead of patching live offsets after every replacement.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

Span = Tuple[int, int]


@dataclass(frozen=True)
class Edit:
    """Replacement of the half-open range [start, end) of the original text."""
    start: int
    end: int
    replacement: str

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Invalid range: start ({self.start}) > end ({self.end})")

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def delta(self) -> int:
        return len(self.replacement) - self.length

    def overlaps(self, other: "Edit") -> bool:
        return not (self.end <= other.start or other.end <= self.start)


def _ordered(edits: Iterable[Edit], text_length: int) -> List[Edit]:
    ordered = sorted(edits, key=lambda e: (e.start, e.end))
    for i, edit in enumerate(ordered):
        if edit.start < 0 or edit.end > text_length:
            raise ValueError(f"Edit {i} [{edit.start}, {edit.end}) is outside of text length {text_length}")
        if i and ordered[i - 1].overlaps(edit):
            raise ValueError(f"Edit {i} [{edit.start}, {edit.end}) overlaps the previous edit")
    return ordered


def apply_edits(text: str, edits: Iterable[Edit]) -> str:
    """
    Applies non-overlapping edits to text.

    Raises:
        ValueError: On out-of-range or overlapping edits
    """
    ordered = _ordered(edits, len(text))
    parts: List[str] = []
    cursor = 0
    for edit in ordered:
        parts.append(text[cursor:edit.start])
        parts.append(edit.replacement)
        cursor = edit.end
    parts.append(text[cursor:])
    return "".join(parts)


def shift_spans(spans: Sequence[Span], done: int, delta: int) -> List[Span]:
    """
    Re-anchors spans after the replacement of spans[done].

    Spans after `done` move by delta; spans up to and including `done` are kept.
    """
    return [
        (s + delta, e + delta) if i > done else (s, e)
        for i, (s, e) in enumerate(spans)
    ]


def final_spans(edits: Sequence[Edit]) -> List[Span]:
    """
    Positions of each edit's replacement in the edited text, in input order.
    """
    order = sorted(range(len(edits)), key=lambda i: (edits[i].start, edits[i].end))
    result: List[Span] = [(0, 0)] * len(edits)
    offset = 0
    for i in order:
        edit = edits[i]
        start = edit.start + offset
        result[i] = (start, start + len(edit.replacement))
        offset += edit.delta
    return result


class EditList:
    """Accumulates edits against one original text."""

    def __init__(self, original: str):
        self.original = original
        self.edits: List[Edit] = []

    def replace(self, start: int, end: int, replacement: str) -> Edit:
        edit = Edit(start, end, replacement)
        self.edits.append(edit)
        return edit

    def apply(self) -> str:
        if not self.edits:
            return self.original
        return apply_edits(self.original, self.edits)

    def spans(self) -> List[Span]:
        return final_spans(self.edits)


__all__ = ["Edit", "EditList", "Span", "apply_edits", "shift_spans", "final_spans"]
