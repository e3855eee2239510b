"""Tests for glossary_extractor.core.errors module.

Tests the error handling infrastructure:
- Typed exceptions and their categories
- ProcessingError record
- processing_error_from_exception() classification
- Fallback warning text
"""

from glossary_extractor.core.errors import (
    DocumentReadError,
    ErrorCategory,
    ErrorSeverity,
    ExtractionServiceError,
    FileTooLargeError,
    GlossaryExtractionError,
    InputRejectedError,
    PersistenceError,
    ProcessingError,
    ResponseShapeError,
    StorageError,
    TabularParseError,
    processing_error_from_exception,
    tabular_fallback_warning,
)


# =============================================================================
# ErrorCategory and ErrorSeverity tests
# =============================================================================


class TestErrorEnums:
    """Tests for error enums."""

    def test_all_categories_exist(self):
        """All error categories are defined."""
        assert ErrorCategory.INPUT_REJECTED
        assert ErrorCategory.TABULAR_PARSE
        assert ErrorCategory.DOCUMENT_READ
        assert ErrorCategory.LLM_API
        assert ErrorCategory.LLM_PARSE
        assert ErrorCategory.TIMEOUT
        assert ErrorCategory.STORAGE
        assert ErrorCategory.PERSISTENCE
        assert ErrorCategory.UNKNOWN

    def test_all_severities_exist(self):
        """All severity levels are defined."""
        assert ErrorSeverity.WARNING
        assert ErrorSeverity.ERROR
        assert ErrorSeverity.CRITICAL


# =============================================================================
# Exception tests
# =============================================================================


class TestExceptions:
    """Tests for the typed exceptions."""

    def test_hierarchy(self):
        for cls in (
            InputRejectedError,
            TabularParseError,
            DocumentReadError,
            ResponseShapeError,
            ExtractionServiceError,
            StorageError,
            PersistenceError,
        ):
            assert issubclass(cls, GlossaryExtractionError)
        assert issubclass(FileTooLargeError, InputRejectedError)

    def test_file_too_large(self):
        error = FileTooLargeError(60, 50)
        assert error.size == 60
        assert error.max_size == 50
        assert str(error) == "File too large: 60 bytes (max: 50)"
        assert error.category == ErrorCategory.INPUT_REJECTED

    def test_service_error_message(self):
        error = ExtractionServiceError(3, ConnectionError("quota exceeded"))
        assert str(error) == "Extraction service failed after 3 attempts: quota exceeded"
        assert error.attempts == 3

    def test_service_error_uses_type_name_for_blank_message(self):
        error = ExtractionServiceError(2, TimeoutError())
        assert str(error).endswith("TimeoutError")

    def test_service_error_without_cause(self):
        assert "unknown error" in str(ExtractionServiceError(1))

    def test_response_shape_keeps_raw(self):
        error = ResponseShapeError("bad", raw_response="[]")
        assert error.raw_response == "[]"
        assert error.category == ErrorCategory.LLM_PARSE


# =============================================================================
# ProcessingError tests
# =============================================================================


class TestProcessingError:
    """Tests for the ProcessingError record."""

    def test_str_representation(self):
        error = ProcessingError(
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.ERROR,
            message="Failed to download file",
            file_id="abc",
            storage_path="uploads/1_x.csv",
        )
        assert str(error) == (
            "[ERROR] storage: Failed to download file | file_id=abc | path=uploads/1_x.csv"
        )

    def test_to_dict(self):
        error = ProcessingError(
            category=ErrorCategory.TIMEOUT,
            severity=ErrorSeverity.WARNING,
            message="slow",
            context={"attempt": 2},
        )
        assert error.to_dict() == {
            "category": "timeout",
            "severity": "warning",
            "message": "slow",
            "file_id": None,
            "storage_path": None,
            "context": {"attempt": 2},
        }


class TestProcessingErrorFromException:
    """Tests for exception classification."""

    def test_typed_error_keeps_category(self):
        error = processing_error_from_exception(StorageError("gone"), file_id="f1")
        assert error.category == ErrorCategory.STORAGE
        assert error.severity == ErrorSeverity.ERROR
        assert error.message == "gone"
        assert error.file_id == "f1"

    def test_service_error_records_attempts(self):
        error = processing_error_from_exception(ExtractionServiceError(3, RuntimeError("x")))
        assert error.category == ErrorCategory.LLM_API
        assert error.context["attempts"] == 3

    def test_timeout(self):
        error = processing_error_from_exception(TimeoutError("too slow"))
        assert error.category == ErrorCategory.TIMEOUT

    def test_unknown(self):
        original = KeyError("k")
        error = processing_error_from_exception(original)
        assert error.category == ErrorCategory.UNKNOWN
        assert error.original_error is original
        assert error.context["error_type"] == "KeyError"


def test_tabular_fallback_warning():
    warning = tabular_fallback_warning(TabularParseError("bad header"))
    assert warning == "Tabular processing failed: bad header. Falling back to text processing."
