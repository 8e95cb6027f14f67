"""Builder for column-aligned plain text reports."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ToPlainText(ABC):
    """Something that can be written as a line of plain-text columns."""

    @abstractmethod
    def to_plain_text(self, builder: "PlainTextBuilder") -> None:
        """Write the fields as columns on one line, ending with a line break."""

    @classmethod
    @abstractmethod
    def to_plain_text_header(cls, builder: "PlainTextBuilder") -> None:
        """Write a line of column headings, ending with a line break."""


class PlainTextBuilder:
    """Accumulates text in padded columns with two-space indentation.

    Text written deeper than the maximum indent level is dropped.
    """

    def __init__(self, max_indent: int = 2) -> None:
        self._parts: list[str] = []
        self._indent_level = 0
        self._max_indent = max_indent
        self._beginning_of_line = True

    def build(self) -> str:
        """Return the text written so far."""
        return "".join(self._parts)

    def indent(self) -> None:
        """Increase the indent level of following lines."""
        self._indent_level += 1

    def outdent(self) -> None:
        """Decrease the indent level of following lines."""
        if self._indent_level == 0:
            raise ValueError("cannot outdent below level zero")
        self._indent_level -= 1

    def new_line(self) -> None:
        """End the current line, unless nothing has been written on it."""
        if not self._beginning_of_line:
            self._parts.append("\n")
            self._beginning_of_line = True

    def str_left(self, text: str, width: int) -> None:
        """Write text left-aligned and padded with spaces to width."""
        if self._indent_level > self._max_indent:
            return
        self._start_line()
        self._parts.append(text.ljust(width))

    def str_right(self, text: str, width: int) -> None:
        """Write text right-aligned and padded with spaces to width."""
        if self._indent_level > self._max_indent:
            return
        self._start_line()
        self._parts.append(text.rjust(width))

    def int_left(self, value: int, width: int) -> None:
        """Write an integer left-aligned in a column of the given width."""
        self.str_left(str(value), width)

    def timestamp_left(self, value: int, width: int) -> None:
        """Write a timestamp left-aligned in a column of the given width."""
        self.str_left(str(value), width)

    def _start_line(self) -> None:
        if self._beginning_of_line:
            self._parts.append("  " * self._indent_level)
            self._beginning_of_line = False