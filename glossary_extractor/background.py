"""Background processing of uploaded files.

A run is fire-and-forget relative to the upload that triggered it: the
caller gets an asyncio.Task back and may await it or drop it. Callers that
want the outcome poll ``get_processing_status``.

Steps per file, strictly in order:
  mark processing → download → load metadata → extract → save terms
  → save rules → mark processed (with the run's token usage and cost)

Any failure is logged with file id and storage path and recorded as a
``failed`` status with the error message. Nothing is retried here.

Known limitations: the in-flight registry lives in process memory. There is
no durable queue, no cancellation and no crash recovery; a file left in
``processing`` by a dead process must be re-triggered by hand.
"""

import asyncio
import logging
import threading
from datetime import datetime, timezone

from glossary_extractor.core.config import (
    BUSINESS_CONTEXTS,
    DEFAULT_BUSINESS_CONTEXT,
    ProcessingConfig,
)
from glossary_extractor.core.errors import PersistenceError, processing_error_from_exception
from glossary_extractor.core.repository import SQLiteGlossaryRepository
from glossary_extractor.core.storage import ObjectStorage
from glossary_extractor.orchestrator import GlossaryExtractor
from glossary_extractor.pydantic_models.glossary_models import (
    ExtractionMode,
    FileMetadata,
    FileStatusRecord,
    GlossaryTerm,
    ProcessingStatus,
)

logger = logging.getLogger(__name__)


class InFlightRegistry:
    """Set of file ids currently being processed, safe for concurrent use."""

    def __init__(self):
        self._ids: set[str] = set()
        self._lock = threading.Lock()

    def try_acquire(self, file_id: str) -> bool:
        """Add ``file_id``; False if it was already in flight."""
        with self._lock:
            if file_id in self._ids:
                return False
            self._ids.add(file_id)
            return True

    def release(self, file_id: str) -> None:
        with self._lock:
            self._ids.discard(file_id)

    def __contains__(self, file_id: object) -> bool:
        with self._lock:
            return file_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)


def dataset_id_for_file(file_id: str) -> str:
    return f"file_{file_id}"


def infer_business_context(filename: str) -> str:
    """Map filename keywords to a business context label."""
    lower = filename.lower()
    for keywords, context in BUSINESS_CONTEXTS:
        if any(keyword in lower for keyword in keywords):
            return context
    return DEFAULT_BUSINESS_CONTEXT


def determine_extraction_mode(metadata: FileMetadata) -> ExtractionMode:
    """Comprehensive for large files, spreadsheets, CSVs and PDFs."""
    mime = metadata.mimetype.lower()
    name = metadata.filename.lower()
    if (
        metadata.size > ProcessingConfig.COMPREHENSIVE_SIZE_THRESHOLD
        or any(keyword in mime for keyword in ("excel", "csv", "spreadsheet"))
        or name.endswith((".xlsx", ".xls", ".csv"))
        or metadata.is_pdf
    ):
        return ExtractionMode.COMPREHENSIVE
    return ExtractionMode.BASIC


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class BackgroundGlossaryProcessor:
    """Runs extraction for stored uploads and records the outcome.

    Args:
        repository: Relational store for metadata, status, terms and rules.
        storage: Object store holding the raw uploads.
        extractor: Glossary extractor used for each run.
        in_flight: Registry of running file ids. Inject a shared instance
            when several processors must not overlap.
    """

    def __init__(
        self,
        repository: SQLiteGlossaryRepository,
        storage: ObjectStorage,
        extractor: GlossaryExtractor | None = None,
        in_flight: InFlightRegistry | None = None,
    ):
        self.repository = repository
        self.storage = storage
        self.extractor = extractor or GlossaryExtractor()
        self.in_flight = in_flight if in_flight is not None else InFlightRegistry()
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, file_id: str, storage_path: str) -> asyncio.Task:
        """Start ``process_file`` in the background and return its task.

        Must be called from a running event loop. The task is kept
        referenced until it finishes.
        """
        task = asyncio.create_task(self.process_file(file_id, storage_path), name=f"glossary-{file_id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Background task %s ended with an unhandled error: %s", task.get_name(), error)

    async def process_file(self, file_id: str, storage_path: str) -> None:
        """Process one stored upload end to end.

        Returns immediately (with a warning) when the file is already in
        flight. Errors are recorded on the file's status, not raised.
        """
        if not self.in_flight.try_acquire(file_id):
            logger.warning("File already being processed (file_id=%s)", file_id)
            return

        try:
            logger.info(
                "Starting background glossary processing (file_id=%s, path=%s)", file_id, storage_path
            )
            await self.repository.update_status(file_id, ProcessingStatus.PROCESSING)

            data = await self.storage.download(storage_path)
            stored = await self.repository.get_file_metadata(file_id)
            if stored is None:
                raise PersistenceError(f"File metadata not found for ID: {file_id}")
            metadata = stored.to_metadata()

            result = await self.extractor.extract_from_file(
                data,
                metadata,
                dataset_id_for_file(file_id),
                business_context=infer_business_context(metadata.filename),
                extraction_mode=determine_extraction_mode(metadata),
            )
            for warning in result.warnings:
                logger.warning("%s (file_id=%s)", warning, file_id)

            terms = self._link_terms(result.terms, file_id, metadata.filename)
            await self.repository.upsert_terms(terms)
            rules_inserted = await self.repository.insert_rules(result.rules, file_id, metadata.filename)

            await self.repository.update_status(
                file_id,
                ProcessingStatus.PROCESSED,
                extracted_terms=len(terms),
                extracted_rules=rules_inserted,
                processed_at=_utc_now(),
                usage=result.usage,
            )
            logger.info(
                "Glossary processing completed (file_id=%s, terms=%d, rules=%d, calls=%d, cost=$%.4f)",
                file_id, len(terms), rules_inserted, result.usage.calls, result.usage.cost_usd,
            )
        except Exception as e:
            failure = processing_error_from_exception(e, file_id=file_id, storage_path=storage_path)
            logger.error("Background glossary processing failed: %s", failure)
            await self._record_failure(file_id, failure.message)
        finally:
            self.in_flight.release(file_id)

    async def _record_failure(self, file_id: str, message: str) -> None:
        try:
            await self.repository.update_status(
                file_id,
                ProcessingStatus.FAILED,
                error_message=message,
                processed_at=_utc_now(),
            )
        except PersistenceError as e:
            logger.error("Failed to record failed status (file_id=%s): %s", file_id, e)

    @staticmethod
    def _link_terms(terms: list[GlossaryTerm], file_id: str, filename: str) -> list[GlossaryTerm]:
        dataset_id = dataset_id_for_file(file_id)
        return [
            term.model_copy(update={
                "source_file_id": file_id,
                "source_filename": filename,
                "dataset_id": dataset_id,
            })
            for term in terms
        ]

    async def get_processing_status(self, file_id: str) -> FileStatusRecord | None:
        """Stored status plus whether this process is working on the file."""
        record = await self.repository.get_status(file_id)
        if record is None:
            return None
        return record.model_copy(update={"is_processing": file_id in self.in_flight})

    async def get_extracted_terms(self, file_id: str) -> list[GlossaryTerm]:
        return await self.repository.get_terms(source_file_id=file_id)
