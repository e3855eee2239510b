"""Upload intake: validate, store, register and schedule processing.

The caller gets a receipt as soon as the raw file is stored and registered;
glossary extraction continues in the background. Files named like a typed
report (see ``report_ingest``) also have their rows loaded into the report
table of their kind before the receipt is returned.
"""

import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import PurePath

from glossary_extractor.background import BackgroundGlossaryProcessor
from glossary_extractor.core.config import ProcessingConfig, StorageConfig
from glossary_extractor.core.document_reader import PDFDocument, is_pdf
from glossary_extractor.core.errors import FileTooLargeError, InputRejectedError
from glossary_extractor.core.report_ingest import detect_report_file, parse_report_rows
from glossary_extractor.core.repository import SQLiteGlossaryRepository
from glossary_extractor.core.storage import ObjectStorage
from glossary_extractor.pydantic_models.report_models import ReportFile

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "upload.bin"
DEFAULT_MIMETYPE = "application/octet-stream"


def sha256_checksum(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def build_storage_path(filename: str, prefix: str = StorageConfig.UPLOAD_PREFIX) -> str:
    """``<prefix>/<epoch-ms>_<filename>``, keeping only the final path component."""
    safe_name = PurePath(filename.replace("\\", "/")).name or DEFAULT_FILENAME
    return f"{prefix}/{int(time.time() * 1000)}_{safe_name}"


def count_pdf_pages(data: bytes) -> int | None:
    """Page count for the uploaded_files row; None when the PDF cannot be opened."""
    try:
        with PDFDocument(data) as pdf:
            return pdf.page_count
    except Exception as e:
        logger.warning("Could not count PDF pages: %s", e)
        return None


@dataclass
class UploadReceipt:
    """What the uploader learns immediately."""

    file_id: str
    filename: str
    storage_path: str
    checksum: str
    size: int
    task: asyncio.Task
    report: ReportFile | None = None
    report_rows: int = 0

    def to_dict(self) -> dict:
        return {
            "file_id": self.file_id,
            "filename": self.filename,
            "storage_path": self.storage_path,
            "checksum": self.checksum,
            "size": self.size,
            "status": "pending",
            "report": (
                {**self.report.model_dump(mode="json"), "rows": self.report_rows}
                if self.report else None
            ),
        }


class UploadService:
    """Accepts uploads and hands them to the background processor.

    Args:
        repository: Relational store (uploaded_files).
        storage: Object store for the raw bytes.
        processor: Background processor that will extract the glossary.
        max_file_size: Size ceiling in bytes.
    """

    def __init__(
        self,
        repository: SQLiteGlossaryRepository,
        storage: ObjectStorage,
        processor: BackgroundGlossaryProcessor,
        max_file_size: int = ProcessingConfig.MAX_FILE_SIZE,
    ):
        self.repository = repository
        self.storage = storage
        self.processor = processor
        self.max_file_size = max_file_size

    async def accept_upload(
        self,
        data: bytes | None,
        filename: str | None,
        mimetype: str | None = None,
    ) -> UploadReceipt:
        """Store and register an upload, then schedule its processing.

        Raises:
            InputRejectedError: If no file content was provided, or a report
                file has no rows.
            TabularParseError: If a report file cannot be parsed.
            FileTooLargeError: If the file exceeds the size ceiling.
            StorageError: If the raw file cannot be stored.
            PersistenceError: If the upload cannot be registered.
        """
        if not data:
            raise InputRejectedError("No file uploaded")
        if len(data) > self.max_file_size:
            raise FileTooLargeError(len(data), self.max_file_size)

        filename = filename or DEFAULT_FILENAME
        mimetype = mimetype or DEFAULT_MIMETYPE
        checksum = sha256_checksum(data)
        storage_path = build_storage_path(filename)

        report = detect_report_file(filename)
        report_rows = parse_report_rows(data, report, storage_path) if report else []

        await self.storage.upload(storage_path, data, content_type=mimetype)

        inserted = 0
        if report:
            inserted = await self.repository.insert_report_rows(report.kind, report_rows)

        page_count = count_pdf_pages(data) if is_pdf(filename, mimetype) else None
        file_id = await self.repository.register_upload(
            checksum=checksum,
            filename=filename,
            mimetype=mimetype,
            size=len(data),
            storage_path=storage_path,
            page_count=page_count,
        )

        task = self.processor.schedule(file_id, storage_path)
        logger.info("Upload accepted: %s (file_id=%s, %d bytes)", filename, file_id, len(data))
        return UploadReceipt(
            file_id=file_id,
            filename=filename,
            storage_path=storage_path,
            checksum=checksum,
            size=len(data),
            task=task,
            report=report,
            report_rows=inserted,
        )
