from __future__ import annotations

from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Optional


@dataclass
class TableRow:
    cells: list[str] = field(default_factory=list)
    header_cells: int = 0
    in_head: bool = False


@dataclass
class HtmlTable:
    rows: list[TableRow] = field(default_factory=list)

    def header_index(self) -> Optional[int]:
        for index, row in enumerate(self.rows):
            if row.in_head and row.cells:
                return index
        for index, row in enumerate(self.rows):
            if row.cells:
                return index
        return None


class _TableBuilder:
    def __init__(self) -> None:
        self.table = HtmlTable()
        self.in_head = False
        self.row: Optional[TableRow] = None
        self.cell_parts: Optional[list[str]] = None
        self.cell_is_header = False

    def start_row(self) -> None:
        self.end_row()
        self.row = TableRow(in_head=self.in_head)

    def end_row(self) -> None:
        self.end_cell()
        if self.row is not None:
            self.table.rows.append(self.row)
            self.row = None

    def start_cell(self, tag: str) -> None:
        self.end_cell()
        if self.row is None:
            self.row = TableRow(in_head=self.in_head)
        self.cell_parts = []
        self.cell_is_header = tag == "th"

    def end_cell(self) -> None:
        if self.cell_parts is None or self.row is None:
            self.cell_parts = None
            return
        text = " ".join("".join(self.cell_parts).split())
        self.row.cells.append(text)
        if self.cell_is_header:
            self.row.header_cells += 1
        self.cell_parts = None


class TableParser(HTMLParser):
    """Collects every ``<table>`` of a document as rows of cell texts.

    Nested tables are reported as separate tables; their text does not leak
    into the enclosing cell. Tables are listed in document order of their
    opening tag.
    """

    _skip_tags = {"script", "style", "noscript", "template"}

    def __init__(self) -> None:
        super().__init__()
        self.tables: list[HtmlTable] = []
        self._stack: list[_TableBuilder] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, Optional[str]]]) -> None:
        if tag in self._skip_tags:
            self._skip_depth += 1
            return
        if tag == "table":
            builder = _TableBuilder()
            self.tables.append(builder.table)
            self._stack.append(builder)
            return
        if not self._stack:
            return
        builder = self._stack[-1]
        if tag == "thead":
            builder.end_row()
            builder.in_head = True
        elif tag in {"tbody", "tfoot"}:
            builder.end_row()
            builder.in_head = False
        elif tag == "tr":
            builder.start_row()
        elif tag in {"td", "th"}:
            builder.start_cell(tag)
        elif tag == "br" and builder.cell_parts is not None:
            builder.cell_parts.append(" ")

    def handle_endtag(self, tag: str) -> None:
        if tag in self._skip_tags:
            if self._skip_depth > 0:
                self._skip_depth -= 1
            return
        if not self._stack:
            return
        builder = self._stack[-1]
        if tag == "table":
            builder.end_row()
            self._stack.pop()
        elif tag == "thead":
            builder.end_row()
            builder.in_head = False
        elif tag == "tr":
            builder.end_row()
        elif tag in {"td", "th"}:
            builder.end_cell()

    def handle_data(self, data: str) -> None:
        if self._skip_depth > 0 or not self._stack:
            return
        builder = self._stack[-1]
        if builder.cell_parts is not None:
            builder.cell_parts.append(data)

    def close(self) -> None:
        super().close()
        while self._stack:
            self._stack.pop().end_row()


def parse_tables(html: str) -> list[HtmlTable]:
    parser = TableParser()
    parser.feed(html)
    parser.close()
    return parser.tables
