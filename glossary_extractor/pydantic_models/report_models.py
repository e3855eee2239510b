"""Pydantic models for typed CSV reports.

A report file is recognised by its name,
``<entity>__<report type>__YYYY-MM-DD.csv``, and each of its rows is loaded
into the table of its kind. Cells are kept as trimmed text except amounts
and scores, which become numbers or None.
"""

import math
from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReportKind(str, Enum):
    COMPLIANCE = "compliance"
    CUSTOMERS = "customers"
    TRANSACTIONS = "transactions"
    RISK = "risk"


class ReportFile(BaseModel):
    """What a report filename says about its contents."""

    model_config = ConfigDict(frozen=True)

    kind: ReportKind
    entity_code: str
    period: str


def to_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def to_number(value) -> float | None:
    """Finite float, or None for blanks and anything unparseable."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class ReportRow(BaseModel):
    """Fields every report row carries."""

    model_config = ConfigDict(extra="ignore")

    entity: str = ""
    source_file: str = ""
    report_date: str = Field(default="", validate_default=True)

    @field_validator("*", mode="before")
    @classmethod
    def _text_cells(cls, value, info):
        if info.field_name in cls.numeric_fields():
            return to_number(value)
        return to_text(value)

    @field_validator("report_date")
    @classmethod
    def _default_report_date(cls, value: str) -> str:
        return value or date.today().isoformat()

    @classmethod
    def numeric_fields(cls) -> frozenset[str]:
        return frozenset()


class ComplianceReportRow(ReportRow):
    """A compliance issue. Appended; the issue id is optional."""

    issue_id: str = ""
    issue_type: str = ""
    description: str = ""
    status: str = ""
    severity: str = ""


class CustomerReportRow(ReportRow):
    """Upserted on customer_id."""

    customer_id: str = ""
    name: str = ""
    account_number: str = ""
    status: str = ""


class TransactionReportRow(ReportRow):
    """Upserted on transaction_id."""

    transaction_id: str = ""
    amount: float | None = None
    date: str = ""
    status: str = ""

    @classmethod
    def numeric_fields(cls) -> frozenset[str]:
        return frozenset({"amount"})


class RiskReportRow(ReportRow):
    """Upserted on risk_id."""

    risk_id: str = ""
    risk_type: str = ""
    score: float | None = None
    mitigation: str = ""

    @classmethod
    def numeric_fields(cls) -> frozenset[str]:
        return frozenset({"score"})


REPORT_ROW_MODELS: dict[ReportKind, type[ReportRow]] = {
    ReportKind.COMPLIANCE: ComplianceReportRow,
    ReportKind.CUSTOMERS: CustomerReportRow,
    ReportKind.TRANSACTIONS: TransactionReportRow,
    ReportKind.RISK: RiskReportRow,
}

# Upsert key per kind; compliance rows have none and are appended.
REPORT_KEYS: dict[ReportKind, str | None] = {
    ReportKind.COMPLIANCE: None,
    ReportKind.CUSTOMERS: "customer_id",
    ReportKind.TRANSACTIONS: "transaction_id",
    ReportKind.RISK: "risk_id",
}
