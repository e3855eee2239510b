"""Decides how an uploaded file is read: as rows or as text.

Tabular files are parsed into rows and profiled per column. Everything else,
and any tabular file whose rows cannot be parsed, is reduced to plain text.
"""

import logging

from glossary_extractor.core.column_profiler import profile_columns
from glossary_extractor.core.config import ProcessingConfig
from glossary_extractor.core.document_reader import read_unstructured
from glossary_extractor.core.errors import (
    FileTooLargeError,
    TabularParseError,
    tabular_fallback_warning,
)
from glossary_extractor.core.tabular_reader import read_tabular
from glossary_extractor.pydantic_models.glossary_models import FileMetadata, ProcessedFile

logger = logging.getLogger(__name__)


def looks_tabular(filename: str, mimetype: str = "") -> bool:
    """True for spreadsheet-like extensions or media types."""
    lower = filename.lower()
    mime = (mimetype or "").lower()
    return (
        any(lower.endswith(ext) for ext in ProcessingConfig.TABULAR_EXTENSIONS)
        or any(keyword in mime for keyword in ProcessingConfig.TABULAR_MIME_KEYWORDS)
    )


class FileProcessor:
    """Turns raw bytes into column profiles or document text.

    Limits default to ProcessingConfig and can be overridden per instance.
    """

    def __init__(
        self,
        max_file_size: int = ProcessingConfig.MAX_FILE_SIZE,
        max_text_length: int = ProcessingConfig.MAX_TEXT_LENGTH,
        max_rows: int = ProcessingConfig.MAX_ROWS_TO_ANALYZE,
        sample_count: int = ProcessingConfig.SAMPLE_VALUES_COUNT,
        type_sample_size: int = ProcessingConfig.TYPE_DETECTION_SAMPLE_SIZE,
    ):
        self.max_file_size = max_file_size
        self.max_text_length = max_text_length
        self.max_rows = max_rows
        self.sample_count = sample_count
        self.type_sample_size = type_sample_size

    def process_file(self, data: bytes, metadata: FileMetadata) -> ProcessedFile:
        """Read a file into either column profiles or plain text.

        Args:
            data: Raw file bytes.
            metadata: Filename, media type and declared size.

        Returns:
            ProcessedFile with exactly one of column_preview or
            unstructured_text populated, plus warnings.

        Raises:
            FileTooLargeError: If the declared size exceeds the ceiling.
            DocumentReadError: If text extraction fails.
        """
        if metadata.size > self.max_file_size:
            raise FileTooLargeError(metadata.size, self.max_file_size)

        if not looks_tabular(metadata.filename, metadata.mimetype):
            logger.info("Processing %s as unstructured data", metadata.filename)
            return self._as_text(data, metadata, [])

        logger.info("Processing %s as tabular data", metadata.filename)
        warnings: list[str] = []
        try:
            rows = read_tabular(data, metadata.filename, metadata.mimetype)
        except TabularParseError as e:
            logger.warning("Tabular parsing failed for %s: %s", metadata.filename, e)
            warnings.append(tabular_fallback_warning(e))
            return self._as_text(data, metadata, warnings)

        columns, profile_warnings = profile_columns(
            rows,
            sample_count=self.sample_count,
            max_rows=self.max_rows,
            type_sample_size=self.type_sample_size,
        )
        warnings.extend(profile_warnings)

        if not columns:
            warnings.append("Tabular file contained no rows. Falling back to text processing.")
            return self._as_text(data, metadata, warnings)

        return ProcessedFile(column_preview=columns, warnings=warnings, is_tabular=True)

    def _as_text(self, data: bytes, metadata: FileMetadata, warnings: list[str]) -> ProcessedFile:
        text = read_unstructured(data, metadata.filename, metadata.mimetype, self.max_text_length)
        return ProcessedFile(unstructured_text=text, warnings=warnings, is_tabular=False)
