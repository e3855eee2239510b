"""Pydantic models for glossary extraction.

- Column profiling: DataType, ColumnStatistics, ColumnProfile
- Extraction output: GlossaryTerm, PolicyRule, ExtractionResult
- Model responses: TermExtractionResponse, RuleExtractionResponse
- Processing records: FileMetadata, StoredFile, ProcessingStatus, FileStatusRecord

The response models double as the JSON schema sent to the model, so field
descriptions are written for the model as much as for readers.
"""

import logging
from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.json_schema import SkipJsonSchema

from glossary_extractor.core.config import RequestLimits, TermDefaults

logger = logging.getLogger(__name__)


class DataType(str, Enum):
    """Semantic type detected for a column."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    EMAIL = "email"
    URL = "url"
    PHONE = "phone"
    ID = "id"
    UNKNOWN = "unknown"


class ExtractionMode(str, Enum):
    """How deep the model should dig. Only changes the prompt."""

    BASIC = "basic"
    COMPREHENSIVE = "comprehensive"


class ProcessingStatus(str, Enum):
    """Lifecycle of an uploaded file."""

    PENDING = "pending"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


# Column profiling

class ColumnStatistics(BaseModel):
    """Numeric summary of a column. Only set for number columns."""

    model_config = ConfigDict(frozen=True)

    min: float
    max: float
    avg: float


class ColumnProfile(BaseModel):
    """Per-column summary of a tabular file."""

    model_config = ConfigDict(frozen=True)

    name: str
    detected_type: DataType
    samples: list[str] = Field(default_factory=list)
    null_count: int = 0
    unique_count: int = 0
    statistics: ColumnStatistics | None = None


class FileMetadata(BaseModel):
    """What is known about a raw file besides its bytes."""

    filename: str
    mimetype: str = ""
    size: int
    dataset_id: str | None = None

    @property
    def is_pdf(self) -> bool:
        return self.filename.lower().endswith(".pdf") or "pdf" in self.mimetype.lower()


# Extraction output

class GlossaryTerm(BaseModel):
    """A business term with its definition and supporting evidence."""

    term: str = Field(description="Business term name, e.g. 'Customer Identifier'")
    definition: str = Field(description="Clear definition understandable by business users")
    source_columns: list[str] = Field(default_factory=list, description="Columns the term was derived from")
    data_types: list[str] = Field(default_factory=list, description="Observed data types")
    sample_values: list[str] = Field(default_factory=list, description="Example values")
    synonyms: list[str] = Field(default_factory=list, description="Alternative names")
    category: str | None = Field(default=None, description="e.g. 'Customer Data', 'Financial Metrics'")
    confidence: float = Field(default=TermDefaults.CONFIDENCE, description="0.0-1.0")

    # Linkage set by the background processor, never by the model
    source_file_id: SkipJsonSchema[str | None] = None
    source_filename: SkipJsonSchema[str | None] = None
    dataset_id: SkipJsonSchema[str | None] = None

    @field_validator("term")
    @classmethod
    def _strip_term(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("term must not be empty")
        return value

    @field_validator("source_columns", "data_types", "sample_values", "synonyms", mode="before")
    @classmethod
    def _coerce_list(cls, value):
        if value is None:
            return []
        if isinstance(value, (str, int, float)):
            return [str(value)]
        return [str(v) for v in value]

    @field_validator("confidence", mode="before")
    @classmethod
    def _default_confidence(cls, value):
        if value is None:
            return TermDefaults.CONFIDENCE
        return value

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return _clamp(value)

    @property
    def category_or_default(self) -> str:
        return self.category or TermDefaults.CATEGORY


class PolicyRule(BaseModel):
    """A rule extracted from a policy or compliance document."""

    rule_code: str | None = Field(default=None, description="Short code such as 'SEC-4.2', or null")
    rule_text: str = Field(description="Full text of the rule, 1-5 sentences")
    citations: list[str] = Field(default_factory=list, description="Referenced laws or codes")
    tags: list[str] = Field(default_factory=list, description="Keywords such as 'aml'")
    severity: str | None = Field(default=None, description="'low', 'medium', 'high' or null")
    effective_date: str | None = Field(default=None, description="YYYY-MM-DD or null")
    confidence: float | None = Field(default=None, description="0.0-1.0")

    @field_validator("rule_text")
    @classmethod
    def _strip_rule_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("rule_text must not be empty")
        return value

    @field_validator("citations", "tags", mode="before")
    @classmethod
    def _coerce_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(v) for v in value]

    @field_validator("effective_date")
    @classmethod
    def _iso_date(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            return date.fromisoformat(value.strip()).isoformat()
        except ValueError:
            return None

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float | None) -> float | None:
        return None if value is None else _clamp(value)


# Model responses

def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _drop_incomplete(items, kind: str, required: tuple[str, ...]):
    """Remove entries of a model answer that miss a required field.

    Runs before per-item validation, so the remaining entries survive.
    Non-list values are passed through for pydantic to reject.
    """
    if items is None:
        return []
    if not isinstance(items, list):
        return items

    kept = []
    for index, item in enumerate(items):
        if isinstance(item, BaseModel):
            kept.append(item)
            continue
        if not isinstance(item, dict):
            logger.warning("Dropped %s #%d: expected an object, got %s", kind, index, type(item).__name__)
            continue
        missing = [name for name in required if _blank(item.get(name))]
        if missing:
            logger.warning("Dropped %s #%d: empty %s", kind, index, ", ".join(missing))
            continue
        kept.append(item)
    return kept


class ExtractionMetadata(BaseModel):
    """Summary the model may attach to its answer."""

    total_terms_found: int | None = None
    processing_notes: list[str] = Field(default_factory=list)


class TermExtractionResponse(BaseModel):
    """Expected answer to a glossary prompt."""

    terms: list[GlossaryTerm] = Field(default_factory=list)
    metadata: ExtractionMetadata | None = None

    @field_validator("terms", mode="before")
    @classmethod
    def _drop_incomplete_terms(cls, value):
        return _drop_incomplete(value, "term", ("term", "definition"))


class RuleExtractionResponse(BaseModel):
    """Expected answer to a policy-rule prompt."""

    rules: list[PolicyRule] = Field(default_factory=list)

    @field_validator("rules", mode="before")
    @classmethod
    def _drop_empty_rules(cls, value):
        return _drop_incomplete(value, "rule", ("rule_text",))


# Usage accounting

class UsageTotals(BaseModel):
    """Token and cost totals for a group of model calls."""

    calls: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cost_usd: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class RunUsage(UsageTotals):
    """Totals for one extraction run, with a per-purpose breakdown."""

    by_purpose: dict[str, UsageTotals] = Field(default_factory=dict)


# Processing records

class ProcessedFile(BaseModel):
    """Output of the file processor: either columns or text, never both."""

    column_preview: list[ColumnProfile] = Field(default_factory=list)
    unstructured_text: str = ""
    warnings: list[str] = Field(default_factory=list)
    is_tabular: bool = False


class ExtractionResult(BaseModel):
    """Everything one extraction run produced."""

    terms: list[GlossaryTerm] = Field(default_factory=list)
    rules: list[PolicyRule] = Field(default_factory=list)
    column_preview: list[ColumnProfile] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    is_tabular: bool = False
    usage: RunUsage = Field(default_factory=RunUsage)

    @model_validator(mode="after")
    def _branch_invariant(self) -> "ExtractionResult":
        if self.is_tabular:
            if not self.column_preview:
                raise ValueError("tabular results must carry column profiles")
            if self.rules:
                raise ValueError("tabular results carry no policy rules")
        elif self.column_preview:
            raise ValueError("unstructured results carry no column profiles")
        return self


class ExtractionRequest(BaseModel):
    """Caller-supplied extraction parameters."""

    dataset_id: str = Field(min_length=1, max_length=RequestLimits.DATASET_ID_MAX_LENGTH)
    business_context: str | None = Field(default=None, max_length=RequestLimits.BUSINESS_CONTEXT_MAX_LENGTH)
    extraction_mode: ExtractionMode = ExtractionMode.COMPREHENSIVE


class StoredFile(BaseModel):
    """Row of the uploaded-files table."""

    id: str
    checksum: str
    filename: str
    mimetype: str
    size: int
    storage_path: str | None = None

    def to_metadata(self) -> FileMetadata:
        return FileMetadata(filename=self.filename, mimetype=self.mimetype, size=self.size)


class FileStatusRecord(BaseModel):
    """Processing status of an uploaded file, as seen by pollers."""

    status: ProcessingStatus
    extracted_terms: int = 0
    extracted_rules: int = 0
    error_message: str | None = None
    processed_at: str | None = None
    filename: str
    is_processing: bool = False
    usage: UsageTotals = Field(default_factory=UsageTotals)
