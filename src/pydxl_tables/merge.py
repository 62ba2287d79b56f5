"""Merge the EEPROM and RAM control tables of an e-Manual page into one RawGrid."""

import logging
import re
import string

from bs4 import BeautifulSoup, Tag

from .errors import HeaderMismatchError, TableNotFoundError
from .types import RawGrid

logger = logging.getLogger(__name__)

# EEPROM area is table 1 and RAM area is table 2 on the device pages
DEFAULT_TABLE_INDICES: tuple[int, int] = (1, 2)

# Only ASCII whitespace: a lone non-breaking space is a placeholder cell, not an empty one
_ASCII_WS = " \t\r\n\f"
_WS_RUN = re.compile(r"[ \t\r\n\f]+")


def _cell_text(cell: Tag, separator: str = "") -> str:
    return _WS_RUN.sub(" ", cell.get_text(separator)).strip(_ASCII_WS)


def _heading(cell: Tag) -> str:
    # "Size<br>(Byte)" -> "Size (byte)"
    return string.capwords(_cell_text(cell, " ").replace(",", ""))


def parse_table(table: Tag) -> RawGrid:
    """
    Split a <table> into heading cells and body rows.

    Body cells are chunked positionally into rows of header width rather than
    following <tr> boundaries; empty cells are dropped, not counted.
    """
    cells = table.select("tr > *")
    header = tuple(_heading(c) for c in cells if c.name == "th")
    width = len(header)
    rows: list[tuple[str | None, ...]] = []
    if not width:
        logger.warning("Table has no heading cells; body ignored")
        return RawGrid(header=header, rows=rows)
    current: list[str | None] = []
    for cell in cells:
        if cell.name == "th":
            continue
        text = _cell_text(cell)
        if not text:
            continue
        current.append(text)
        if len(current) == width:
            rows.append(tuple(current))
            current = []
    if current:
        logger.warning("Partial trailing row padded to %d cells: %r", width, current)
        current.extend([None] * (width - len(current)))
        rows.append(tuple(current))
    return RawGrid(header=header, rows=rows)


def merge_tables(markup: str, table_indices: tuple[int, int] = DEFAULT_TABLE_INDICES) -> RawGrid:
    """
    Merge two tables of a page (by zero-based <table> index) into one RawGrid.

    Raises TableNotFoundError for a missing index and HeaderMismatchError when
    the two header rows differ. Rows of the first table come first.
    """
    soup = BeautifulSoup(markup, "html.parser")
    tables = soup.find_all("table")
    grids = []
    for index in table_indices:
        if not 0 <= index < len(tables):
            raise TableNotFoundError(index, len(tables))
        grids.append(parse_table(tables[index]))
    first, second = grids
    if first.header != second.header:
        raise HeaderMismatchError(first.header, second.header)
    logger.debug(
        "Merged tables %s: %d + %d rows, header %s",
        table_indices, len(first.rows), len(second.rows), list(first.header),
    )
    return RawGrid(header=first.header, rows=first.rows + second.rows)


def format_grid(grid: RawGrid) -> str:
    """Render a grid as aligned plain-text columns for inspection."""
    lines = [list(grid.header)] + [[c if c is not None else "" for c in row] for row in grid.rows]
    widths = [max(len(line[i]) for line in lines) for i in range(grid.width)]
    out = []
    for n, line in enumerate(lines):
        out.append("  ".join(cell.ljust(w) for cell, w in zip(line, widths)).rstrip())
        if n == 0:
            out.append("  ".join("-" * w for w in widths))
    return "\n".join(out)
