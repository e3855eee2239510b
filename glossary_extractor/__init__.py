"""Business Glossary Extraction Pipeline.

Turns uploaded files (CSV, TSV, JSON, XLSX, PDF, plain text) into business
glossary terms, and policy documents into policy rules, using a hosted LLM.
Typed CSV reports (compliance, customer, transaction, risk) are loaded into
their own tables, and a chat assistant answers from all of it.

Architecture:
    core/             - readers, profiling, extraction client, storage, logging, errors
    prompts/          - LLM prompt templates
    pydantic_models/  - Pydantic models for internal and output data
    orchestrator.py   - one file through the pipeline
    background.py     - fire-and-forget processing of stored uploads
    uploads.py        - upload intake, typed report loading
    chat.py           - intent-routed chat and stored chat sessions

Usage:
    from glossary_extractor import GlossaryExtractor, FileMetadata

    extractor = GlossaryExtractor()
    result = await extractor.extract_from_file(data, FileMetadata(...), "sales")

CLI:
    glossary-extract extract data/customers.csv --dataset-id crm
    glossary-extract ingest reports/BPI__compliance_report__2024-03-31.csv
"""

from glossary_extractor.orchestrator import GlossaryExtractor
from glossary_extractor.pydantic_models import (
    DataType,
    ExtractionMode,
    ColumnProfile,
    FileMetadata,
    GlossaryTerm,
    PolicyRule,
    ExtractionResult,
)

__all__ = [
    # Main entry point
    "GlossaryExtractor",
    # Models
    "DataType",
    "ExtractionMode",
    "ColumnProfile",
    "FileMetadata",
    "GlossaryTerm",
    "PolicyRule",
    "ExtractionResult",
]
