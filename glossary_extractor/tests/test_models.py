"""Tests for glossary_extractor.pydantic_models.glossary_models."""

import pytest
from pydantic import ValidationError

from glossary_extractor.pydantic_models.glossary_models import (
    ColumnProfile,
    DataType,
    ExtractionMode,
    ExtractionRequest,
    ExtractionResult,
    FileMetadata,
    GlossaryTerm,
    PolicyRule,
    RuleExtractionResponse,
    RunUsage,
    StoredFile,
    TermExtractionResponse,
    UsageTotals,
)


# =============================================================================
# GlossaryTerm tests
# =============================================================================


class TestGlossaryTerm:
    """Tests for term validation and coercion."""

    def test_term_trimmed(self):
        assert GlossaryTerm(term="  Order ", definition="d").term == "Order"

    def test_blank_term_rejected(self):
        with pytest.raises(ValidationError):
            GlossaryTerm(term="   ", definition="d")

    def test_definition_required(self):
        with pytest.raises(ValidationError):
            GlossaryTerm(term="Order")

    def test_list_coercion(self):
        term = GlossaryTerm(term="Order", definition="d", source_columns="order_id", sample_values=[1, 2.5])
        assert term.source_columns == ["order_id"]
        assert term.sample_values == ["1", "2.5"]

    def test_null_lists_become_empty(self):
        assert GlossaryTerm(term="Order", definition="d", synonyms=None).synonyms == []

    def test_confidence_default_and_clamp(self):
        assert GlossaryTerm(term="A", definition="d").confidence == 0.6
        assert GlossaryTerm(term="A", definition="d", confidence=None).confidence == 0.6
        assert GlossaryTerm(term="A", definition="d", confidence=1.7).confidence == 1.0
        assert GlossaryTerm(term="A", definition="d", confidence=-0.2).confidence == 0.0

    def test_category_default(self):
        assert GlossaryTerm(term="A", definition="d").category_or_default == "General"
        assert GlossaryTerm(term="A", definition="d", category="Sales").category_or_default == "Sales"


class TestPolicyRule:
    """Tests for rule validation."""

    def test_effective_date_normalized(self):
        assert PolicyRule(rule_text="x", effective_date=" 2024-03-01 ").effective_date == "2024-03-01"

    def test_bad_effective_date_dropped(self):
        assert PolicyRule(rule_text="x", effective_date="next year").effective_date is None

    def test_string_tags_wrapped(self):
        assert PolicyRule(rule_text="x", tags="aml").tags == ["aml"]

    def test_blank_rule_text_rejected(self):
        with pytest.raises(ValidationError):
            PolicyRule(rule_text=" ")

    def test_confidence_optional(self):
        assert PolicyRule(rule_text="x").confidence is None
        assert PolicyRule(rule_text="x", confidence=3).confidence == 1.0


# =============================================================================
# Model responses
# =============================================================================


class TestExtractionResponses:
    """Tests for dropping incomplete entries from model answers."""

    def test_blank_rule_dropped(self):
        response = RuleExtractionResponse.model_validate({"rules": [
            {"rule_code": "A-1", "rule_text": ""},
            {"rule_code": "A-2", "rule_text": "Keep records for five years."},
        ]})
        assert [r.rule_code for r in response.rules] == ["A-2"]

    @pytest.mark.parametrize("entry", [
        {"term": "Balance", "definition": None},
        {"term": "Balance"},
        {"term": "  ", "definition": "Money held"},
        "Balance",
    ])
    def test_incomplete_term_dropped(self, entry):
        response = TermExtractionResponse.model_validate({"terms": [
            entry,
            {"term": "Customer", "definition": "Party holding an account"},
        ]})
        assert [t.term for t in response.terms] == ["Customer"]

    def test_drop_is_logged(self, caplog):
        with caplog.at_level("WARNING"):
            RuleExtractionResponse.model_validate({"rules": [{"rule_text": None}]})
        assert "Dropped rule #0: empty rule_text" in caplog.text

    def test_null_list_is_empty(self):
        assert TermExtractionResponse.model_validate({"terms": None}).terms == []

    def test_non_list_still_rejected(self):
        with pytest.raises(ValidationError):
            TermExtractionResponse.model_validate({"terms": "none"})

    def test_other_field_errors_still_rejected(self):
        with pytest.raises(ValidationError):
            TermExtractionResponse.model_validate({"terms": [
                {"term": "A", "definition": "B", "confidence": "high"},
            ]})


# =============================================================================
# Results and requests
# =============================================================================


class TestExtractionResult:
    """Tests for the branch invariant."""

    def _column(self):
        return ColumnProfile(name="a", detected_type=DataType.STRING)

    def test_tabular_with_columns(self):
        result = ExtractionResult(column_preview=[self._column()], is_tabular=True)
        assert result.is_tabular

    def test_tabular_without_columns_rejected(self):
        with pytest.raises(ValidationError):
            ExtractionResult(is_tabular=True)

    def test_tabular_with_rules_rejected(self):
        with pytest.raises(ValidationError):
            ExtractionResult(
                column_preview=[self._column()],
                rules=[PolicyRule(rule_text="x")],
                is_tabular=True,
            )

    def test_unstructured_with_columns_rejected(self):
        with pytest.raises(ValidationError):
            ExtractionResult(column_preview=[self._column()])


class TestExtractionRequest:
    """Tests for request validation."""

    def test_defaults(self):
        request = ExtractionRequest(dataset_id="crm")
        assert request.extraction_mode == ExtractionMode.COMPREHENSIVE
        assert request.business_context is None

    def test_mode_from_string(self):
        assert ExtractionRequest(dataset_id="crm", extraction_mode="basic").extraction_mode == ExtractionMode.BASIC

    @pytest.mark.parametrize("kwargs", [
        {"dataset_id": ""},
        {"dataset_id": "x" * 101},
        {"dataset_id": "crm", "business_context": "x" * 1001},
        {"dataset_id": "crm", "extraction_mode": "deep"},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValidationError):
            ExtractionRequest(**kwargs)


class TestFileRecords:
    """Tests for file metadata helpers."""

    @pytest.mark.parametrize("filename,mimetype,expected", [
        ("a.pdf", "", True),
        ("A.PDF", "", True),
        ("blob", "application/pdf", True),
        ("a.csv", "text/csv", False),
    ])
    def test_is_pdf(self, filename, mimetype, expected):
        assert FileMetadata(filename=filename, mimetype=mimetype, size=1).is_pdf is expected

    def test_stored_file_to_metadata(self):
        stored = StoredFile(id="f1", checksum="c", filename="a.csv", mimetype="text/csv", size=10)
        metadata = stored.to_metadata()
        assert metadata == FileMetadata(filename="a.csv", mimetype="text/csv", size=10)


class TestUsageModels:
    """Tests for usage totals carried on results and status records."""

    def test_total_tokens(self):
        assert UsageTotals(prompt_tokens=120, completion_tokens=30).total_tokens == 150

    def test_result_usage_defaults_empty(self):
        usage = ExtractionResult().usage
        assert isinstance(usage, RunUsage)
        assert usage.calls == 0
        assert usage.by_purpose == {}
