"""Rendering data as JSON or as a plain, tab separated table."""

from __future__ import annotations

import dataclasses
import json
import unicodedata
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

__all__ = ["Formatter", "TableContents", "JSONFormatter", "TableFormatter"]

_TABLE_PADDING = "\t"


class Formatter(ABC):
    """Formats the data returned by a getter into a string."""

    @abstractmethod
    def format(self, getter: Callable[[], Any]) -> str:
        """Call ``getter`` and render what it returns."""


@dataclass
class TableContents:
    """Headers and rows of a table."""

    headers: list[str] = field(default_factory=list)
    data: list[list[str]] = field(default_factory=list)


class JSONFormatter(Formatter):
    """Renders data as JSON indented by two spaces."""

    def format(self, getter: Callable[[], Any]) -> str:
        data = getter()
        if dataclasses.is_dataclass(data) and not isinstance(data, type):
            data = dataclasses.asdict(data)
        return json.dumps(data, indent=2, ensure_ascii=False)


class TableFormatter(Formatter):
    """Renders TableContents as a borderless, tab separated table."""

    def format(self, getter: Callable[[], Any]) -> str:
        contents = getter()
        if not isinstance(contents, TableContents):
            raise TypeError(
                "func returned wrong type for table formatter. wanted TableContents"
            )
        return _render(contents)


def _display_width(text: str) -> int:
    width = 0
    for ch in text:
        if unicodedata.combining(ch):
            continue
        width += 2 if unicodedata.east_asian_width(ch) in ("W", "F") else 1
    return width


def _pad_right(text: str, width: int) -> str:
    return text + " " * max(0, width - _display_width(text))


def _is_num_or_space(ch: str) -> bool:
    return "0" <= ch <= "9" or ch == " "


def _title(name: str) -> str:
    chars = list(name)
    last = len(chars) - 1
    for i, ch in enumerate(chars):
        if ch == "_":
            chars[i] = " "
        elif ch == ".":
            prev_bad = i != 0 and not _is_num_or_space(chars[i - 1])
            next_bad = i != last and not _is_num_or_space(chars[i + 1])
            if prev_bad or next_bad:
                chars[i] = " "
    title = "".join(chars).strip()
    if not title and name:
        title = " "
    return title.upper()


def _render(contents: TableContents) -> str:
    headers = [header.split("\n") for header in contents.headers]
    rows = [[cell.split("\n") for cell in row] for row in contents.data]

    column_count = max([len(headers), *(len(row) for row in rows)])
    widths = [0] * column_count
    for cells in (headers, *rows):
        for column, lines in enumerate(cells):
            widest = max(_display_width(line) for line in lines)
            widths[column] = max(widths[column], widest)

    out: list[str] = []

    if headers:
        height = max(len(lines) for lines in headers)
        for line_no in range(height):
            parts = []
            for column, width in enumerate(widths):
                text = ""
                if column < len(headers) and line_no < len(headers[column]):
                    text = headers[column][line_no]
                pad = " " if column == column_count - 1 else _TABLE_PADDING
                parts.append(_pad_right(_title(text), width) + pad)
            out.append("".join(parts) + "\n")

    for row in rows:
        height = max((len(lines) for lines in row), default=0)
        for line_no in range(height):
            parts = []
            for column, lines in enumerate(row):
                text = lines[line_no] if line_no < len(lines) else ""
                parts.append(_pad_right(text, widths[column]) + _TABLE_PADDING)
            out.append("".join(parts) + "\n")

    return "".join(out)