"""Tests for glossary_extractor.background module.

Tests the background processor against an in-memory repository and a
temporary object store, with the extractor mocked:
- Success path: status transitions, linked terms, rules, counts
- Failure path: failed status with message, registry released
- Duplicate trigger skipped via the injected in-flight registry
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from glossary_extractor.background import (
    BackgroundGlossaryProcessor,
    InFlightRegistry,
    dataset_id_for_file,
    determine_extraction_mode,
    infer_business_context,
)
from glossary_extractor.core.errors import ExtractionServiceError, PersistenceError
from glossary_extractor.orchestrator import GlossaryExtractor
from glossary_extractor.pydantic_models.glossary_models import (
    ExtractionMode,
    ExtractionResult,
    FileMetadata,
    GlossaryTerm,
    PolicyRule,
    ProcessingStatus,
    RunUsage,
    UsageTotals,
)

STORAGE_PATH = "uploads/1700000000000_aml_policy.pdf"


@pytest.fixture
def extractor():
    extractor = MagicMock(spec=GlossaryExtractor)
    extractor.extract_from_file = AsyncMock(return_value=ExtractionResult(
        terms=[
            GlossaryTerm(term="Beneficial Owner", definition="Natural person who owns the customer"),
            GlossaryTerm(term="KYC", definition="Know your customer checks", category="Compliance"),
        ],
        rules=[PolicyRule(rule_code="AML-1", rule_text="Verify customers before onboarding.")],
        warnings=["something minor"],
    ))
    return extractor


@pytest_asyncio.fixture
async def stored_file(repository, storage):
    await storage.upload(STORAGE_PATH, b"%PDF-fake", "application/pdf")
    return await repository.register_upload(
        checksum="c1",
        filename="aml_policy.pdf",
        mimetype="application/pdf",
        size=9,
        storage_path=STORAGE_PATH,
    )


@pytest.fixture
def processor(repository, storage, extractor):
    return BackgroundGlossaryProcessor(repository, storage, extractor=extractor)


# =============================================================================
# Helpers
# =============================================================================


class TestInFlightRegistry:
    """Tests for the in-flight registry."""

    def test_acquire_release(self):
        registry = InFlightRegistry()

        assert registry.try_acquire("f1")
        assert not registry.try_acquire("f1")
        assert "f1" in registry
        assert len(registry) == 1

        registry.release("f1")
        assert "f1" not in registry
        assert registry.try_acquire("f1")

    def test_release_unknown_is_noop(self):
        InFlightRegistry().release("never-added")


class TestInferBusinessContext:
    """Tests for filename-based business context."""

    @pytest.mark.parametrize("filename,expected", [
        ("Customer_Master.xlsx", "Customer Management"),
        ("q3_revenue.csv", "Financial Data"),
        ("inventory.json", "Product Management"),
        ("orders_2024.csv", "Sales & Transactions"),
        ("staff_list.csv", "Human Resources"),
        ("campaign_results.csv", "Marketing"),
        ("kpi_metrics.csv", "Business Analytics"),
        ("aml_manual.pdf", "Policies & Compliance"),
        ("misc.txt", "General Business Data"),
    ])
    def test_mapping(self, filename, expected):
        assert infer_business_context(filename) == expected

    def test_first_match_wins(self):
        assert infer_business_context("customer_payments.csv") == "Customer Management"


class TestDetermineExtractionMode:
    """Tests for background extraction depth."""

    @pytest.mark.parametrize("filename,mimetype,size,expected", [
        ("notes.txt", "text/plain", 100, ExtractionMode.BASIC),
        ("notes.txt", "text/plain", 2 * 1024 * 1024, ExtractionMode.COMPREHENSIVE),
        ("data.csv", "text/plain", 100, ExtractionMode.COMPREHENSIVE),
        ("book.xlsx", "", 100, ExtractionMode.COMPREHENSIVE),
        ("blob", "application/vnd.ms-excel", 100, ExtractionMode.COMPREHENSIVE),
        ("manual.pdf", "application/pdf", 100, ExtractionMode.COMPREHENSIVE),
        ("rows.json", "application/json", 100, ExtractionMode.BASIC),
    ])
    def test_modes(self, filename, mimetype, size, expected):
        metadata = FileMetadata(filename=filename, mimetype=mimetype, size=size)
        assert determine_extraction_mode(metadata) == expected

    def test_dataset_id(self):
        assert dataset_id_for_file("abc") == "file_abc"


# =============================================================================
# process_file tests
# =============================================================================


class TestProcessFile:
    """Tests for a background run."""

    @pytest.mark.asyncio
    async def test_success_records_processed(self, processor, repository, stored_file):
        await processor.process_file(stored_file, STORAGE_PATH)

        record = await repository.get_status(stored_file)
        assert record.status == ProcessingStatus.PROCESSED
        assert record.extracted_terms == 2
        assert record.extracted_rules == 1
        assert record.processed_at is not None
        assert record.error_message is None

    @pytest.mark.asyncio
    async def test_extractor_called_with_derived_parameters(self, processor, extractor, stored_file):
        await processor.process_file(stored_file, STORAGE_PATH)

        args = extractor.extract_from_file.await_args
        data, metadata, dataset_id = args.args
        assert data == b"%PDF-fake"
        assert metadata.filename == "aml_policy.pdf"
        assert metadata.is_pdf
        assert dataset_id == f"file_{stored_file}"
        assert args.kwargs["business_context"] == "Policies & Compliance"
        assert args.kwargs["extraction_mode"] == ExtractionMode.COMPREHENSIVE

    @pytest.mark.asyncio
    async def test_terms_linked_to_file(self, processor, stored_file):
        await processor.process_file(stored_file, STORAGE_PATH)

        terms = await processor.get_extracted_terms(stored_file)

        assert {t.term for t in terms} == {"Beneficial Owner", "KYC"}
        for term in terms:
            assert term.source_file_id == stored_file
            assert term.source_filename == "aml_policy.pdf"
            assert term.dataset_id == f"file_{stored_file}"
        assert {t.category for t in terms} == {"General", "Compliance"}

    @pytest.mark.asyncio
    async def test_rules_saved(self, processor, repository, stored_file):
        await processor.process_file(stored_file, STORAGE_PATH)

        rules = await repository.get_rules(stored_file)

        assert [r.rule_code for r in rules] == ["AML-1"]

    @pytest.mark.asyncio
    async def test_run_usage_stored_on_status(self, processor, extractor, repository, stored_file):
        extractor.extract_from_file.return_value.usage = RunUsage(
            calls=2, prompt_tokens=900, completion_tokens=300, cost_usd=0.0021,
            by_purpose={"terms": UsageTotals(calls=1), "rules": UsageTotals(calls=1)},
        )

        await processor.process_file(stored_file, STORAGE_PATH)

        usage = (await processor.get_processing_status(stored_file)).usage
        assert usage.calls == 2
        assert usage.total_tokens == 1200
        assert usage.cost_usd == pytest.approx(0.0021)

    @pytest.mark.asyncio
    async def test_failed_run_keeps_zero_usage(self, processor, extractor, repository, stored_file):
        extractor.extract_from_file.side_effect = ExtractionServiceError(3, RuntimeError("down"))

        await processor.process_file(stored_file, STORAGE_PATH)

        assert (await repository.get_status(stored_file)).usage.calls == 0

    @pytest.mark.asyncio
    async def test_status_is_processing_during_extraction(self, processor, extractor, repository, stored_file):
        seen = {}

        async def extract(*args, **kwargs):
            seen["record"] = await processor.get_processing_status(stored_file)
            return ExtractionResult()

        extractor.extract_from_file.side_effect = extract

        await processor.process_file(stored_file, STORAGE_PATH)

        assert seen["record"].status == ProcessingStatus.PROCESSING
        assert seen["record"].is_processing
        final = await processor.get_processing_status(stored_file)
        assert final.status == ProcessingStatus.PROCESSED
        assert not final.is_processing

    @pytest.mark.asyncio
    async def test_extraction_failure_records_failed(self, processor, extractor, repository, stored_file):
        extractor.extract_from_file.side_effect = ExtractionServiceError(3, RuntimeError("quota exceeded"))

        await processor.process_file(stored_file, STORAGE_PATH)

        record = await repository.get_status(stored_file)
        assert record.status == ProcessingStatus.FAILED
        assert "failed after 3 attempts" in record.error_message
        assert stored_file not in processor.in_flight
        assert await repository.get_terms(source_file_id=stored_file) == []

    @pytest.mark.asyncio
    async def test_download_failure_records_failed(self, processor, extractor, repository, stored_file):
        await processor.process_file(stored_file, "uploads/missing.pdf")

        record = await repository.get_status(stored_file)
        assert record.status == ProcessingStatus.FAILED
        assert record.error_message.startswith("Failed to download file")
        extractor.extract_from_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_file_id_does_not_raise(self, processor, storage):
        await storage.upload("uploads/orphan.csv", b"a\n1\n")

        await processor.process_file("missing-id", "uploads/orphan.csv")

        assert "missing-id" not in processor.in_flight

    @pytest.mark.asyncio
    async def test_persistence_failure_after_extraction(self, processor, repository, stored_file):
        repository.upsert_terms = AsyncMock(side_effect=PersistenceError("Database insertion failed: locked"))

        await processor.process_file(stored_file, STORAGE_PATH)

        record = await repository.get_status(stored_file)
        assert record.status == ProcessingStatus.FAILED
        assert record.error_message == "Database insertion failed: locked"

    @pytest.mark.asyncio
    async def test_duplicate_trigger_skipped(self, repository, storage, extractor, stored_file):
        registry = MagicMock(spec=InFlightRegistry)
        registry.try_acquire.return_value = False
        processor = BackgroundGlossaryProcessor(repository, storage, extractor=extractor, in_flight=registry)

        await processor.process_file(stored_file, STORAGE_PATH)

        extractor.extract_from_file.assert_not_awaited()
        registry.release.assert_not_called()
        record = await repository.get_status(stored_file)
        assert record.status == ProcessingStatus.PENDING

    @pytest.mark.asyncio
    async def test_registry_released_after_success(self, repository, storage, extractor, stored_file):
        registry = MagicMock(spec=InFlightRegistry)
        registry.try_acquire.return_value = True
        processor = BackgroundGlossaryProcessor(repository, storage, extractor=extractor, in_flight=registry)

        await processor.process_file(stored_file, STORAGE_PATH)

        registry.try_acquire.assert_called_once_with(stored_file)
        registry.release.assert_called_once_with(stored_file)

    @pytest.mark.asyncio
    async def test_concurrent_triggers_run_once(self, processor, extractor, stored_file):
        release = asyncio.Event()

        async def extract(*args, **kwargs):
            await release.wait()
            return ExtractionResult()

        extractor.extract_from_file.side_effect = extract

        first = asyncio.create_task(processor.process_file(stored_file, STORAGE_PATH))
        await asyncio.sleep(0)
        await processor.process_file(stored_file, STORAGE_PATH)
        release.set()
        await first

        assert extractor.extract_from_file.await_count == 1


# =============================================================================
# schedule tests
# =============================================================================


class TestSchedule:
    """Tests for fire-and-forget scheduling."""

    @pytest.mark.asyncio
    async def test_schedule_returns_awaitable_task(self, processor, repository, stored_file):
        task = processor.schedule(stored_file, STORAGE_PATH)

        assert isinstance(task, asyncio.Task)
        assert task.get_name() == f"glossary-{stored_file}"
        await task

        record = await repository.get_status(stored_file)
        assert record.status == ProcessingStatus.PROCESSED
        assert task not in processor._tasks

    @pytest.mark.asyncio
    async def test_status_unknown_file(self, processor):
        assert await processor.get_processing_status("missing") is None
