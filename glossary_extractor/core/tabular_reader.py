"""Row parsing for tabular uploads (CSV, TSV, JSON, spreadsheets).

Every reader returns a list of dicts keyed by header; missing cells are
None. Any failure is raised as TabularParseError so the file processor can
fall back to plain-text handling.
"""

import io
import json
import logging
import math
from pathlib import PurePath
from typing import Any

import pandas as pd

from glossary_extractor.core.errors import TabularParseError

logger = logging.getLogger(__name__)


def _clean_cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, str):
        return value.strip()
    return value


def _frame_to_rows(frame: pd.DataFrame) -> list[dict[str, Any]]:
    frame.columns = [str(c).lstrip("\ufeff").strip() for c in frame.columns]
    frame = frame.astype(object).where(pd.notna(frame), None)
    return [
        {key: _clean_cell(value) for key, value in record.items()}
        for record in frame.to_dict(orient="records")
    ]


def read_delimited(data: bytes, delimiter: str = ",") -> list[dict[str, Any]]:
    """Parse CSV/TSV bytes with the first row as header.

    Short rows get None for the missing cells; rows with more fields than
    the header are cut to the header width.
    """
    options = {
        "sep": delimiter,
        "skip_blank_lines": True,
        "encoding": "utf-8-sig",
        "engine": "python",
    }
    width = len(pd.read_csv(io.BytesIO(data), nrows=0, **options).columns)
    overlong: list[int] = []

    def _fit_to_header(fields: list[str]) -> list[str]:
        overlong.append(len(fields))
        return fields[:width]

    frame = pd.read_csv(
        io.BytesIO(data),
        dtype=str,
        keep_default_na=False,
        skipinitialspace=True,
        index_col=False,
        on_bad_lines=_fit_to_header,
        **options,
    )
    if overlong:
        logger.warning(
            "Truncated %d row(s) with more than %d fields (widest: %d)",
            len(overlong), width, max(overlong),
        )
    return _frame_to_rows(frame)


def read_json_rows(data: bytes) -> list[dict[str, Any]]:
    """Parse a JSON array, or the ``rows``/``data`` field of an object."""
    payload = json.loads(data.decode("utf-8-sig"))
    if isinstance(payload, dict):
        payload = payload.get("rows") or payload.get("data") or []
    if not isinstance(payload, list):
        raise ValueError("expected a list of rows")
    for index, row in enumerate(payload):
        if not isinstance(row, dict):
            raise ValueError(f"row {index} is not an object")
    return payload


def read_spreadsheet(data: bytes) -> list[dict[str, Any]]:
    """Read the first sheet of a workbook.

    pandas picks the engine from the file signature: openpyxl for .xlsx,
    xlrd for legacy .xls.
    """
    frame = pd.read_excel(io.BytesIO(data), sheet_name=0, dtype=object)
    return _frame_to_rows(frame)


def _reader_for(filename: str, mimetype: str) -> str:
    suffix = PurePath(filename.lower()).suffix
    if suffix in (".csv", ".tsv", ".json"):
        return suffix.lstrip(".")
    if suffix in (".xlsx", ".xls"):
        return "excel"

    mime = (mimetype or "").lower()
    if "tab-separated" in mime:
        return "tsv"
    if "csv" in mime:
        return "csv"
    if "json" in mime:
        return "json"
    return "excel"


def read_tabular(data: bytes, filename: str, mimetype: str = "") -> list[dict[str, Any]]:
    """Parse rows from a tabular file.

    Args:
        data: Raw file bytes.
        filename: Original filename; its extension picks the format.
        mimetype: Declared media type, used when the extension is unknown.

    Returns:
        Rows as dicts keyed by column name.

    Raises:
        TabularParseError: If the bytes cannot be parsed as the chosen format.
    """
    reader = _reader_for(filename, mimetype)
    logger.debug("Reading %s as %s", filename, reader)

    try:
        if reader == "csv":
            return read_delimited(data, ",")
        if reader == "tsv":
            return read_delimited(data, "\t")
        if reader == "json":
            return read_json_rows(data)
        return read_spreadsheet(data)
    except Exception as e:
        raise TabularParseError(f"Failed to parse tabular data: {e}") from e
