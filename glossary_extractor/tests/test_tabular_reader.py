"""Tests for glossary_extractor.core.tabular_reader module."""

import importlib.util
import json
from unittest.mock import patch

import pandas as pd
import pytest

from glossary_extractor.core.errors import TabularParseError
from glossary_extractor.core.tabular_reader import (
    read_delimited,
    read_json_rows,
    read_tabular,
)


# =============================================================================
# Delimited text
# =============================================================================


class TestReadDelimited:
    """Tests for CSV/TSV parsing."""

    def test_csv_rows(self, customer_csv):
        rows = read_delimited(customer_csv)

        assert len(rows) == 4
        assert rows[0]["customer_id"] == "CUST-000123"
        assert rows[0]["email"] == "ana@example.com"

    def test_empty_cell_is_empty_string(self, customer_csv):
        rows = read_delimited(customer_csv)
        assert rows[2]["balance"] == ""

    def test_tsv(self):
        data = b"name\tage\nAna\t31\nBen\t42\n"
        rows = read_delimited(data, "\t")
        assert rows == [{"name": "Ana", "age": "31"}, {"name": "Ben", "age": "42"}]

    def test_bom_and_header_whitespace_stripped(self):
        data = "\ufeff name , city\nAna,Paris\n".encode("utf-8")
        rows = read_delimited(data)
        assert list(rows[0].keys()) == ["name", "city"]

    def test_values_are_trimmed(self):
        rows = read_delimited(b"a,b\n  x  ,y\n")
        assert rows[0]["a"] == "x"

    def test_blank_lines_skipped(self):
        rows = read_delimited(b"a,b\n1,2\n\n3,4\n")
        assert len(rows) == 2

    def test_long_row_cut_to_header(self):
        rows = read_tabular(b"a,b\n1,2\n3,4,5\n6,7\n", "x.csv")

        assert rows == [
            {"a": "1", "b": "2"},
            {"a": "3", "b": "4"},
            {"a": "6", "b": "7"},
        ]

    def test_short_row_missing_cells(self):
        rows = read_delimited(b"a,b,c\n1,2,3\n4\n")

        assert len(rows) == 2
        assert rows[1]["a"] == "4"
        assert rows[1]["c"] in (None, "")


# =============================================================================
# JSON
# =============================================================================


class TestReadJsonRows:
    """Tests for JSON row parsing."""

    def test_array(self):
        data = json.dumps([{"a": 1}, {"a": 2}]).encode()
        assert read_json_rows(data) == [{"a": 1}, {"a": 2}]

    def test_rows_field(self):
        data = json.dumps({"rows": [{"a": 1}]}).encode()
        assert read_json_rows(data) == [{"a": 1}]

    def test_data_field(self):
        data = json.dumps({"data": [{"b": "x"}]}).encode()
        assert read_json_rows(data) == [{"b": "x"}]

    def test_object_without_rows_is_empty(self):
        assert read_json_rows(b'{"meta": 1}') == []

    def test_scalar_rejected(self):
        with pytest.raises(ValueError):
            read_json_rows(b"42")

    def test_non_object_row_rejected(self):
        with pytest.raises(ValueError, match="row 1"):
            read_json_rows(b'[{"a": 1}, 2]')


# =============================================================================
# read_tabular dispatch
# =============================================================================


class TestReadTabular:
    """Tests for format selection and error wrapping."""

    def test_csv_by_extension(self, customer_csv):
        rows = read_tabular(customer_csv, "customers.csv")
        assert len(rows) == 4

    def test_tsv_by_mimetype(self):
        rows = read_tabular(b"a\tb\n1\t2\n", "export", "text/tab-separated-values")
        assert rows == [{"a": "1", "b": "2"}]

    def test_json_by_extension(self):
        rows = read_tabular(b'[{"id": "A1"}]', "rows.json")
        assert rows == [{"id": "A1"}]

    def test_xlsx(self, xlsx_factory, customer_rows):
        data = xlsx_factory(customer_rows)

        rows = read_tabular(data, "customers.xlsx")

        assert len(rows) == 4
        assert rows[1]["email"] == "ben@example.com"
        assert rows[2]["balance"] in (None, "")

    def test_xls_goes_to_spreadsheet_reader(self):
        frame = pd.DataFrame([{"id": "A1", "amount": 5}])
        with patch("glossary_extractor.core.tabular_reader.pd.read_excel", return_value=frame) as read_excel:
            rows = read_tabular(b"\xd0\xcf\x11\xe0legacy", "ledger.xls")

        assert rows == [{"id": "A1", "amount": 5}]
        assert read_excel.call_args.kwargs["sheet_name"] == 0

    def test_legacy_workbook_engine_installed(self):
        assert importlib.util.find_spec("xlrd") is not None

    def test_invalid_json_raises(self):
        with pytest.raises(TabularParseError, match="Failed to parse tabular data"):
            read_tabular(b"{not json", "rows.json")

    def test_invalid_workbook_raises(self):
        with pytest.raises(TabularParseError):
            read_tabular(b"definitely not a workbook", "book.xlsx")

    def test_error_chains_cause(self):
        with pytest.raises(TabularParseError) as exc_info:
            read_tabular(b"[1, 2]", "rows.json")
        assert isinstance(exc_info.value.__cause__, ValueError)
