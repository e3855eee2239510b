"""Pydantic models for the glossary extraction pipeline.

Modules:
- glossary_models: column profiles, glossary terms, policy rules, model
  response schemas, extraction results, usage totals and upload records
- chat_models: chat sessions, stored messages, roles and intents
- report_models: typed CSV report files and their rows
"""

from glossary_extractor.pydantic_models.glossary_models import (
    # Enums
    DataType,
    ExtractionMode,
    ProcessingStatus,
    # Column profiling
    ColumnStatistics,
    ColumnProfile,
    FileMetadata,
    # Extraction output
    GlossaryTerm,
    PolicyRule,
    # Model responses
    ExtractionMetadata,
    TermExtractionResponse,
    RuleExtractionResponse,
    # Processing records
    ProcessedFile,
    ExtractionResult,
    ExtractionRequest,
    StoredFile,
    FileStatusRecord,
    UsageTotals,
    RunUsage,
)
from glossary_extractor.pydantic_models.chat_models import (
    ChatRole,
    ChatIntent,
    ChatSession,
    ChatMessage,
)
from glossary_extractor.pydantic_models.report_models import (
    ReportKind,
    ReportFile,
    ReportRow,
    ComplianceReportRow,
    CustomerReportRow,
    TransactionReportRow,
    RiskReportRow,
)

__all__ = [
    "DataType",
    "ExtractionMode",
    "ProcessingStatus",
    "ColumnStatistics",
    "ColumnProfile",
    "FileMetadata",
    "GlossaryTerm",
    "PolicyRule",
    "ExtractionMetadata",
    "TermExtractionResponse",
    "RuleExtractionResponse",
    "ProcessedFile",
    "ExtractionResult",
    "ExtractionRequest",
    "StoredFile",
    "FileStatusRecord",
    "UsageTotals",
    "RunUsage",
    "ChatRole",
    "ChatIntent",
    "ChatSession",
    "ChatMessage",
    "ReportKind",
    "ReportFile",
    "ReportRow",
    "ComplianceReportRow",
    "CustomerReportRow",
    "TransactionReportRow",
    "RiskReportRow",
]
