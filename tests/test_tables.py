from __future__ import annotations

import json

import pytest

from stealth_browser.browser.errors import ElementNotFoundError
from stealth_browser.browser.tables import TableExtractor, TableResult, parse_table
from tests.fakes import FakeElement


def test_header_section_and_body_rows() -> None:
    result = parse_table(
        """
        <table>
          <thead><tr><th> Name </th><th>Amount</th></tr></thead>
          <tbody>
            <tr><td>Rent</td><td>1,200.00</td></tr>
            <tr><td>Coffee</td><td> 4.50 </td></tr>
          </tbody>
        </table>
        """
    )
    assert result.headers == ["Name", "Amount"]
    assert result.row_count == 2
    assert result.rows == [
        {"Name": "Rent", "Amount": "1,200.00"},
        {"Name": "Coffee", "Amount": "4.50"},
    ]


def test_first_row_is_header_when_no_header_section() -> None:
    result = parse_table(
        "<table>"
        "<tr><th>Date</th><th>Balance</th></tr>"
        "<tr><td>2024-01-01</td><td>10</td></tr>"
        "<tr><td>2024-01-02</td><td>12</td></tr>"
        "</table>"
    )
    assert result.headers == ["Date", "Balance"]
    assert result.rows == [
        {"Date": "2024-01-01", "Balance": "10"},
        {"Date": "2024-01-02", "Balance": "12"},
    ]
    assert result.row_count == len(result.rows) == 2


def test_extra_cells_and_empty_headers_use_synthetic_names() -> None:
    result = parse_table(
        "<table><thead><tr><th>Name</th><th></th></tr></thead>"
        "<tbody><tr><td>a</td><td>b</td><td>c</td></tr></tbody></table>"
    )
    assert result.rows == [{"Name": "a", "column_1": "b", "column_2": "c"}]


def test_no_headers_at_all_falls_back_for_every_cell() -> None:
    result = parse_table("<table><tr></tr><tr><td>x</td><td>y</td></tr></table>")
    assert result.headers == []
    assert result.rows == [{"column_0": "x", "column_1": "y"}]


def test_rows_without_cells_are_skipped() -> None:
    result = parse_table(
        "<table><thead><tr><th>A</th></tr></thead>"
        "<tbody><tr></tr><tr><td>1</td></tr><tr>  </tr></tbody></table>"
    )
    assert result.rows == [{"A": "1"}]
    assert result.row_count == 1


def test_duplicate_header_names_keep_the_later_cell() -> None:
    result = parse_table(
        "<table><thead><tr><th>Amount</th><th>Amount</th></tr></thead>"
        "<tbody><tr><td>debit</td><td>credit</td></tr></tbody></table>"
    )
    assert result.headers == ["Amount", "Amount"]
    assert result.rows == [{"Amount": "credit"}]


def test_root_can_wrap_the_table() -> None:
    result = parse_table(
        '<div id="accounts"><table><thead><tr><th>Acct</th></tr></thead>'
        "<tbody><tr><td>Checking</td></tr></tbody></table></div>"
    )
    assert result.rows == [{"Acct": "Checking"}]


def test_empty_markup_yields_empty_result() -> None:
    result = parse_table("")
    assert result == TableResult()
    assert result.row_count == 0


def test_to_json_uses_row_count_key() -> None:
    payload = json.loads(TableResult(headers=["A"], rows=[{"A": "1"}]).to_json())
    assert payload == {"headers": ["A"], "rows": [{"A": "1"}], "rowCount": 1}


def test_header_row_inside_browser_inserted_tbody_is_not_data() -> None:
    html = (
        "<table><tbody>"
        "<tr><th>Name</th><th>Amount</th></tr>"
        "<tr><td>Rent</td><td>1</td></tr>"
        "<tr><td>Tea</td><td>2</td></tr>"
        "</tbody></table>"
    )
    result = parse_table(html)
    assert result.headers == ["Name", "Amount"]
    assert result.rows == [
        {"Name": "Rent", "Amount": "1"},
        {"Name": "Tea", "Amount": "2"},
    ]
    assert result.row_count == 2


class TablePage:
    def __init__(self, elements: dict) -> None:
        self.elements = elements

    def query_selector(self, selector: str):
        return self.elements.get(selector)


def test_extractor_reads_outer_html_of_root() -> None:
    html = "<table><tr><th>K</th></tr><tr><td>v</td></tr></table>"
    page = TablePage({"#ledger": FakeElement(html=html)})
    result = TableExtractor().extract(page, "#ledger")
    assert result.rows == [{"K": "v"}]


def test_extractor_fails_when_root_missing() -> None:
    with pytest.raises(ElementNotFoundError, match="#missing"):
        TableExtractor().extract(TablePage({}), "#missing")
