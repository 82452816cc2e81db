"""Turn rendered table markup into headers and row mappings."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List

from bs4 import BeautifulSoup, Tag

from .errors import ElementNotFoundError

if TYPE_CHECKING:
    from playwright.sync_api import Page


@dataclass(frozen=True)
class TableResult:
    headers: List[str] = field(default_factory=list)
    rows: List[Dict[str, str]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> Dict[str, Any]:
        return {"headers": self.headers, "rows": self.rows, "rowCount": self.row_count}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def _cell_text(cell: Tag) -> str:
    return cell.get_text().strip()


def _column_name(headers: List[str], index: int) -> str:
    if index < len(headers) and headers[index]:
        return headers[index]
    return f"column_{index}"


def parse_table(html: str) -> TableResult:
    """Extract a :class:`TableResult` from the outer HTML of a root element.

    Headers come from the ``thead`` cells, or the first row when there is
    no ``thead``. Data rows are the ``tbody`` rows, or every row but the
    first when there is no ``tbody``. A first row used for headers is never
    returned as data, even when the browser has wrapped it in ``tbody``. Cells beyond the known headers (or
    under an empty header) are keyed ``column_<index>``. Rows without
    cells are dropped. When two cells in a row resolve to the same key, the
    later cell's text replaces the earlier one.
    """
    soup = BeautifulSoup(html, "html.parser")
    root = soup.find()
    if root is None:
        return TableResult()

    header_row = None
    header_cells = root.select("thead th, thead td")
    if header_cells:
        headers = [_cell_text(cell) for cell in header_cells]
    else:
        header_row = root.select_one("tr")
        headers = [_cell_text(cell) for cell in header_row.select("th, td")] if header_row else []

    body_rows = root.select("tbody tr")
    data_rows = body_rows if body_rows else root.select("tr")[1:]
    # rendered markup wraps every row in tbody, including a headerless first row
    data_rows = [row for row in data_rows if row is not header_row]

    rows: List[Dict[str, str]] = []
    for row in data_rows:
        cells = row.select("td, th")
        if not cells:
            continue
        record: Dict[str, str] = {}
        for index, cell in enumerate(cells):
            record[_column_name(headers, index)] = _cell_text(cell)
        rows.append(record)
    return TableResult(headers=headers, rows=rows)


class TableExtractor:
    """Locate a table root on a live page and parse it."""

    def extract(self, page: "Page", root_selector: str = "table") -> TableResult:
        element = page.query_selector(root_selector)
        if element is None:
            raise ElementNotFoundError(
                root_selector, f"Table with selector {root_selector!r} not found"
            )
        html = element.evaluate("node => node.outerHTML")
        return parse_table(html)


__all__ = ["TableExtractor", "TableResult", "parse_table"]
