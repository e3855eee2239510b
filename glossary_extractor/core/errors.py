"""Structured error types for the glossary extraction pipeline.

Provides typed exceptions for:
- Input rejection (missing or oversized uploads)
- Tabular and document read failures
- Extraction-service failures (per attempt and exhausted)
- Storage and persistence failures
- Lookups of records the caller does not own

and a ProcessingError record used when a background run fails and the
failure has to be logged and written to the file's status.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorSeverity(Enum):
    """Severity levels for processing errors."""
    WARNING = "warning"   # Non-fatal, processing continued (e.g. tabular fallback)
    ERROR = "error"       # Fatal for this run, status marked failed
    CRITICAL = "critical" # Process-level failure


class ErrorCategory(Enum):
    """Categories of processing errors."""
    INPUT_REJECTED = "input_rejected"  # No file, oversized file, bad parameters
    TABULAR_PARSE = "tabular_parse"    # CSV/TSV/JSON/XLSX rows could not be parsed
    DOCUMENT_READ = "document_read"    # PDF/text extraction failed
    LLM_API = "llm_api"                # Extraction service exhausted its attempts
    LLM_PARSE = "llm_parse"            # Response was not the expected shape
    TIMEOUT = "timeout"                # A single attempt timed out
    STORAGE = "storage"                # Object store download/upload
    PERSISTENCE = "persistence"        # Relational store query
    NOT_FOUND = "not_found"            # Chat session missing or owned by another user
    UNKNOWN = "unknown"                # Unclassified errors


class GlossaryExtractionError(Exception):
    """Base class for all pipeline errors."""

    category: ErrorCategory = ErrorCategory.UNKNOWN


class InputRejectedError(GlossaryExtractionError):
    """Upload or request rejected before processing started."""

    category = ErrorCategory.INPUT_REJECTED


class FileTooLargeError(InputRejectedError):
    """File exceeds the configured size ceiling."""

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(f"File too large: {size} bytes (max: {max_size})")


class TabularParseError(GlossaryExtractionError):
    """Rows could not be parsed from a tabular file."""

    category = ErrorCategory.TABULAR_PARSE


class DocumentReadError(GlossaryExtractionError):
    """Plain text could not be extracted from a document."""

    category = ErrorCategory.DOCUMENT_READ


class ResponseShapeError(GlossaryExtractionError):
    """Model answer was not valid JSON of the requested shape."""

    category = ErrorCategory.LLM_PARSE

    def __init__(self, message: str, raw_response: str | None = None):
        self.raw_response = raw_response
        super().__init__(message)


class ExtractionServiceError(GlossaryExtractionError):
    """All attempts against the extraction service failed."""

    category = ErrorCategory.LLM_API

    def __init__(self, attempts: int, last_error: BaseException | None = None):
        self.attempts = attempts
        self.last_error = last_error
        detail = _describe(last_error) if last_error else "unknown error"
        super().__init__(f"Extraction service failed after {attempts} attempts: {detail}")


class StorageError(GlossaryExtractionError):
    """Object store download or upload failed."""

    category = ErrorCategory.STORAGE


class PersistenceError(GlossaryExtractionError):
    """Relational store query failed."""

    category = ErrorCategory.PERSISTENCE


class NotFoundError(GlossaryExtractionError):
    """Requested record does not exist for this caller."""

    category = ErrorCategory.NOT_FOUND


def _describe(error: BaseException) -> str:
    message = str(error)
    return message if message else type(error).__name__


@dataclass
class ProcessingError:
    """Structured record of a failed processing run."""

    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    file_id: str | None = None
    storage_path: str | None = None
    original_error: BaseException | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.severity.value.upper()}] {self.category.value}: {self.message}"]
        if self.file_id:
            parts.append(f"file_id={self.file_id}")
        if self.storage_path:
            parts.append(f"path={self.storage_path}")
        return " | ".join(parts)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "file_id": self.file_id,
            "storage_path": self.storage_path,
            "context": self.context,
        }


def processing_error_from_exception(
    error: BaseException,
    file_id: str | None = None,
    storage_path: str | None = None,
) -> ProcessingError:
    """Build a ProcessingError for an exception that ended a run."""
    if isinstance(error, GlossaryExtractionError):
        category = error.category
    elif isinstance(error, TimeoutError):
        category = ErrorCategory.TIMEOUT
    else:
        category = ErrorCategory.UNKNOWN

    context: dict[str, Any] = {"error_type": type(error).__name__}
    if isinstance(error, ExtractionServiceError):
        context["attempts"] = error.attempts

    return ProcessingError(
        category=category,
        severity=ErrorSeverity.ERROR,
        message=_describe(error),
        file_id=file_id,
        storage_path=storage_path,
        original_error=error,
        context=context,
    )


def tabular_fallback_warning(error: BaseException) -> str:
    """Warning text recorded when tabular parsing degrades to text."""
    return f"Tabular processing failed: {_describe(error)}. Falling back to text processing."
