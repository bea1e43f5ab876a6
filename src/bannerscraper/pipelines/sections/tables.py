"""
Decode an HTML table into a list of keyed rows.

The first row supplies the keys: each header cell's text, trimmed,
lower-cased, with all whitespace removed. Duplicate keys get the smallest
integer suffix that makes them unique, so Banner's two blank paren columns
come out as "" and "1".
"""

import logging
import re
from typing import Dict, List, Sequence, Union

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

DATA_CELLS = ("th", "td")
EXTRA_KEY = "extra"

TableRow = Dict[str, str]


def _is_data_cell(node) -> bool:
    return isinstance(node, Tag) and node.name in DATA_CELLS


def uniquify(existing: Sequence[str], value: str) -> str:
    """Append the smallest positive integer to value so it isn't in existing."""
    if value not in existing:
        return value
    append = 1
    while f"{value}{append}" in existing:
        append += 1
    return f"{value}{append}"


def _header_key(cell: Tag) -> str:
    return re.sub(r"\s", "", cell.get_text().strip().lower())


def parse_table(table: Union[Tag, Sequence[Tag], None]) -> List[TableRow]:
    """
    Parse a table using its first row as keys.

    Args:
        table: a single <table> Tag, or the result of soup.select("table");
               anything other than exactly one table yields []

    Returns:
        List of {key: cell text} dicts, one per non-header row
    """
    if isinstance(table, Tag):
        table = [table]
    if not table or len(table) != 1 or table[0].name != "table":
        return []

    # includes both header rows and body rows
    rows = table[0].find_all("tr")
    if not rows:
        logger.error("Table has zero rows")
        return []

    heads: List[str] = []
    for cell in filter(_is_data_cell, rows[0].children):
        heads.append(uniquify(heads, _header_key(cell)))

    parsed: List[TableRow] = []
    for row in rows[1:]:
        values = [cell.get_text() for cell in filter(_is_data_cell, row.children)]
        keys = list(heads)
        if len(values) > len(heads):
            logger.warning(
                "Table row is longer than head, keeping extra cells: %s | %r",
                heads,
                row.get_text(),
            )
            while len(keys) < len(values):
                keys.append(uniquify(keys, EXTRA_KEY))
        parsed.append(dict(zip(keys, values)))

    return parsed


def parse_first_table(html: str) -> List[TableRow]:
    """Parse the only <table> in an HTML fragment."""
    soup = BeautifulSoup(html or "", "html.parser")
    return parse_table(soup.select("table"))
