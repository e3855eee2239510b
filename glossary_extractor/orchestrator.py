"""Glossary extractor: runs one file through the extraction pipeline.

Flow:
  FileProcessor (columns or text) → glossary prompt → ExtractionClient
  → deduplicate terms → [PDF only] policy prompt → rules

Each step is strictly sequential. A term extraction failure ends the run;
a policy rule extraction failure degrades to the heuristic splitter with a
warning.

Every model call of a run is billed to a fresh run id; the usage of the
run is returned on the result.
"""

import logging
from uuid import uuid4

from glossary_extractor.core.config import ProcessingConfig
from glossary_extractor.core.errors import ExtractionServiceError
from glossary_extractor.core.file_processor import FileProcessor
from glossary_extractor.core.llm_client import ExtractionClient
from glossary_extractor.core.policy_rules import cap_rules, fallback_extract_policy_rules
from glossary_extractor.core.term_dedup import deduplicate_terms
from glossary_extractor.core.usage_tracker import UsageTracker
from glossary_extractor.prompts import build_glossary_prompt, build_policy_prompt
from glossary_extractor.pydantic_models.glossary_models import (
    ExtractionMode,
    ExtractionRequest,
    ExtractionResult,
    FileMetadata,
    PolicyRule,
    RunUsage,
)

logger = logging.getLogger(__name__)


class GlossaryExtractor:
    """Turns raw file bytes into glossary terms (and policy rules for PDFs).

    Args:
        client: Extraction client used for both terms and rules. The
            default client carries its own UsageTracker.
        file_processor: Reader for tabular and unstructured input.
        max_policy_rules: Cap on rules kept per document.
    """

    def __init__(
        self,
        client: ExtractionClient | None = None,
        file_processor: FileProcessor | None = None,
        max_policy_rules: int = ProcessingConfig.MAX_POLICY_RULES,
    ):
        self.client = client or ExtractionClient(usage_tracker=UsageTracker())
        self.file_processor = file_processor or FileProcessor()
        self.max_policy_rules = max_policy_rules

    async def extract_from_file(
        self,
        data: bytes,
        metadata: FileMetadata,
        dataset_id: str,
        business_context: str | None = None,
        extraction_mode: ExtractionMode = ExtractionMode.COMPREHENSIVE,
    ) -> ExtractionResult:
        """Extract terms (and, for PDFs, policy rules) from one file.

        Args:
            data: Raw file bytes.
            metadata: Filename, media type and size.
            dataset_id: Dataset the terms belong to (1-100 characters).
            business_context: Optional context passed to the prompt.
            extraction_mode: Prompt depth.

        Returns:
            ExtractionResult with deduplicated terms and the run's usage.

        Raises:
            pydantic.ValidationError: If the request parameters are invalid.
            FileTooLargeError: If the file exceeds the size ceiling.
            DocumentReadError: If document text cannot be extracted.
            ExtractionServiceError: If term extraction exhausts its attempts.
        """
        request = ExtractionRequest(
            dataset_id=dataset_id,
            business_context=business_context,
            extraction_mode=extraction_mode,
        )

        run_id = uuid4().hex
        try:
            result = await self._run(data, metadata, request, run_id)
        finally:
            usage = self._pop_usage(run_id)
        result.usage = usage
        if usage.calls:
            logger.info(
                "Run used %d calls, %d tokens, $%.4f",
                usage.calls, usage.total_tokens, usage.cost_usd,
            )
        return result

    def _pop_usage(self, run_id: str) -> RunUsage:
        tracker = getattr(self.client, "usage_tracker", None)
        if isinstance(tracker, UsageTracker):
            return tracker.pop_run(run_id)
        return RunUsage()

    async def _run(
        self,
        data: bytes,
        metadata: FileMetadata,
        request: ExtractionRequest,
        run_id: str,
    ) -> ExtractionResult:
        processed = self.file_processor.process_file(data, metadata)
        warnings = list(processed.warnings)

        prompt = build_glossary_prompt(
            processed.column_preview,
            processed.unstructured_text,
            request.dataset_id,
            request.business_context,
            request.extraction_mode,
        )

        logger.info(
            "Extracting terms from %s (%s, mode=%s)",
            metadata.filename,
            "tabular" if processed.is_tabular else "unstructured",
            request.extraction_mode.value,
        )
        response = await self.client.extract_terms(prompt, run_id=run_id)
        terms = deduplicate_terms(response.terms)
        logger.info("Extracted %d terms (%d before dedup)", len(terms), len(response.terms))

        rules: list[PolicyRule] = []
        if not processed.is_tabular and metadata.is_pdf:
            rules = await self._extract_rules(processed.unstructured_text, warnings, run_id)

        return ExtractionResult(
            terms=terms,
            rules=rules,
            column_preview=processed.column_preview,
            warnings=warnings,
            is_tabular=processed.is_tabular,
        )

    async def _extract_rules(self, text: str, warnings: list[str], run_id: str) -> list[PolicyRule]:
        try:
            response = await self.client.extract_rules(
                build_policy_prompt(text, self.max_policy_rules), run_id=run_id
            )
            rules = response.rules
        except ExtractionServiceError as e:
            logger.warning("Policy rule extraction failed, using heuristic splitter: %s", e)
            warnings.append(f"Policy rule extraction failed: {e}. Used heuristic rule splitting.")
            rules = fallback_extract_policy_rules(text, self.max_policy_rules)

        rules = cap_rules(rules, self.max_policy_rules)
        logger.info("Extracted %d policy rules", len(rules))
        return rules
