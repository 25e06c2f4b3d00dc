"""Conversions between LSP positions and character offsets.

LSP counts characters in UTF-16 code units; offsets here index Python strings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from lsprotocol.types import Position, Range, TextEdit

if TYPE_CHECKING:
    from extmethod_lsp.models import TextChange


def position_to_offset(text: str, position: Position) -> int:
    """Character offset of ``position``; positions past a line end clamp to it."""
    offset = 0
    for _ in range(position.line):
        newline = text.find("\n", offset)
        if newline == -1:
            return len(text)
        offset = newline + 1
    line_end = text.find("\n", offset)
    if line_end == -1:
        line_end = len(text)
    return offset + _utf16_to_index(text[offset:line_end], position.character)


def offset_to_position(text: str, offset: int) -> Position:
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return Position(line=line, character=_utf16_length(text[line_start:offset]))


def _utf16_length(text: str) -> int:
    return len(text) + sum(1 for char in text if ord(char) > 0xFFFF)


def _utf16_to_index(line: str, units: int) -> int:
    """Index in ``line`` reached after ``units`` UTF-16 code units."""
    count = 0
    for index, char in enumerate(line):
        if count >= units:
            return index
        count += 2 if ord(char) > 0xFFFF else 1
    return len(line)


def to_range(text: str, start: int, end: int) -> Range:
    return Range(start=offset_to_position(text, start), end=offset_to_position(text, end))


def to_text_edit(text: str, change: TextChange) -> TextEdit:
    """LSP edit for ``change``, expressed against ``text``."""
    return TextEdit(range=to_range(text, change.start, change.end), new_text=change.new_text)


def apply_content_change(text: str, change_range: Range | None, new_text: str) -> str:
    """Apply one ``didChange`` content change (full when ``change_range`` is None)."""
    if change_range is None:
        return new_text
    start = position_to_offset(text, change_range.start)
    end = position_to_offset(text, change_range.end)
    return text[:start] + new_text + text[end:]
