"""Typed CSV reports: filename detection and row parsing.

Report files follow ``<entity>__<report type>__YYYY-MM-DD.csv`` where the
report type is one of compliance_report, customer_data_report,
transaction_report or risk_assessment_report (case-insensitive). Any other
filename is not a report and goes through glossary extraction only.
"""

import logging
import re

from glossary_extractor.core.errors import InputRejectedError, TabularParseError
from glossary_extractor.core.tabular_reader import read_delimited
from glossary_extractor.pydantic_models.report_models import (
    REPORT_KEYS,
    REPORT_ROW_MODELS,
    ReportFile,
    ReportKind,
    ReportRow,
)

logger = logging.getLogger(__name__)

REPORT_FILENAME = re.compile(
    r"^(.*?)__(compliance_report|customer_data_report|transaction_report|risk_assessment_report)"
    r"__(\d{4}-\d{2}-\d{2})\.csv$",
    re.IGNORECASE,
)

_KIND_BY_TYPE = {
    "compliance_report": ReportKind.COMPLIANCE,
    "customer_data_report": ReportKind.CUSTOMERS,
    "transaction_report": ReportKind.TRANSACTIONS,
    "risk_assessment_report": ReportKind.RISK,
}


def detect_report_file(filename: str | None) -> ReportFile | None:
    """Parse a report filename; None when the name does not follow the pattern."""
    match = REPORT_FILENAME.match((filename or "").strip())
    if match is None:
        return None
    entity_code, report_type, period = match.groups()
    return ReportFile(
        kind=_KIND_BY_TYPE[report_type.lower()],
        entity_code=entity_code,
        period=period,
    )


def parse_report_rows(data: bytes, report: ReportFile, source_file: str) -> list[ReportRow]:
    """Rows of a report file as typed models.

    Rows without an entity take the entity code from the filename. Rows of
    upserted kinds without their key are skipped.

    Raises:
        TabularParseError: If the CSV cannot be parsed.
        InputRejectedError: If the file has no data rows.
    """
    try:
        records = read_delimited(data)
    except Exception as e:
        raise TabularParseError(f"Failed to parse report CSV: {e}") from e
    if not records:
        raise InputRejectedError("Report CSV has no rows")

    row_model = REPORT_ROW_MODELS[report.kind]
    key = REPORT_KEYS[report.kind]
    rows: list[ReportRow] = []
    skipped = 0
    for record in records:
        row = row_model.model_validate({**record, "source_file": source_file})
        if not row.entity:
            row = row.model_copy(update={"entity": report.entity_code})
        if key and not getattr(row, key):
            skipped += 1
            continue
        rows.append(row)

    if skipped:
        logger.warning("Skipped %d %s row(s) without %s", skipped, report.kind.value, key)
    return rows
