"""Source text representation and span tracking for diagnostics."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass


@dataclass(frozen=True)
class Span:
    """A range within a source file."""

    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def __str__(self) -> str:
        return f"{self.file}:{self.start_line}:{self.start_col}"


class SourceText:
    """Source text with offset to line/column mapping."""

    def __init__(self, text: str, filename: str = "<stdin>") -> None:
        self.text = text
        self.filename = filename
        self.lines = text.splitlines()
        self._line_starts = [0]
        for i, ch in enumerate(text):
            if ch == "\n":
                self._line_starts.append(i + 1)

    def line_at(self, n: int) -> str:
        """Return the 1-indexed line, or empty string if out of range."""
        if 1 <= n <= len(self.lines):
            return self.lines[n - 1]
        return ""

    def position(self, offset: int) -> tuple[int, int]:
        """Map a zero-based offset to a 1-indexed (line, col) pair."""
        offset = max(0, min(offset, len(self.text)))
        line = bisect_right(self._line_starts, offset)
        return line, offset - self._line_starts[line - 1] + 1

    def span(self, offset: int, length: int = 1) -> Span:
        start_line, start_col = self.position(offset)
        end_line, end_col = self.position(offset + max(length, 1) - 1)
        return Span(self.filename, start_line, start_col, end_line, end_col)
