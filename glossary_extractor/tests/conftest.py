"""Pytest configuration and shared fixtures.

Provides reusable test fixtures for:
- Mock litellm completions
- Sample rows, terms and rules
- In-memory repository and temporary object storage
- Small CSV, XLSX and PDF payloads
"""

import io
import json
from unittest.mock import AsyncMock, MagicMock, patch

import fitz
import pandas as pd
import pytest
import pytest_asyncio

from glossary_extractor.core.repository import SQLiteGlossaryRepository
from glossary_extractor.core.storage import LocalObjectStorage
from glossary_extractor.pydantic_models.glossary_models import GlossaryTerm, PolicyRule


# =============================================================================
# Mock LLM
# =============================================================================


def make_completion(content: str, prompt_tokens: int = 100, completion_tokens: int = 50):
    """Build an object shaped like a litellm ModelResponse."""
    return MagicMock(
        choices=[MagicMock(message=MagicMock(content=content))],
        usage=MagicMock(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


@pytest.fixture
def completion_factory():
    """Factory for mock completions from a dict or raw string."""
    def _create(payload):
        content = payload if isinstance(payload, str) else json.dumps(payload)
        return make_completion(content)
    return _create


@pytest.fixture
def mock_acompletion():
    """Patch litellm.acompletion as seen by the extraction client."""
    with patch("glossary_extractor.core.llm_client.acompletion", new_callable=AsyncMock) as mock:
        mock.return_value = make_completion('{"terms": []}')
        yield mock


# =============================================================================
# Sample data
# =============================================================================


@pytest.fixture
def customer_rows():
    return [
        {"customer_id": "CUST-000123", "email": "ana@example.com", "balance": "100.5", "active": "yes"},
        {"customer_id": "CUST-000124", "email": "ben@example.com", "balance": "250", "active": "no"},
        {"customer_id": "CUST-000125", "email": "cy@example.org", "balance": "", "active": "yes"},
        {"customer_id": "CUST-000126", "email": "dee@example.com", "balance": "75", "active": "yes"},
    ]


@pytest.fixture
def customer_csv(customer_rows) -> bytes:
    header = ",".join(customer_rows[0].keys())
    lines = [header] + [",".join(row.values()) for row in customer_rows]
    return ("\n".join(lines) + "\n").encode("utf-8")


@pytest.fixture
def sample_terms():
    return [
        GlossaryTerm(
            term="Customer Identifier",
            definition="Unique identifier assigned to each customer account",
            source_columns=["customer_id"],
            data_types=["id"],
            sample_values=["CUST-000123"],
            category="Customer Data",
            confidence=0.9,
        ),
        GlossaryTerm(
            term="Account Balance",
            definition="Current monetary balance held in the customer account",
            source_columns=["balance"],
            data_types=["number"],
            confidence=0.8,
        ),
    ]


@pytest.fixture
def sample_rules():
    return [
        PolicyRule(
            rule_code="AML-1.1",
            rule_text="Customer identity must be verified before account opening.",
            citations=["AMLA Sec. 9"],
            tags=["aml", "kyc"],
            severity="high",
            effective_date="2024-01-01",
            confidence=0.9,
        ),
        PolicyRule(
            rule_code=None,
            rule_text="Transaction records are retained for five years.",
            tags=["retention"],
        ),
    ]


# =============================================================================
# Binary payloads
# =============================================================================


def build_pdf(*pages: str) -> bytes:
    """Create a PDF with one page per text argument (no text → blank page)."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def build_xlsx(rows: list[dict]) -> bytes:
    buffer = io.BytesIO()
    pd.DataFrame(rows).to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


@pytest.fixture
def policy_pdf() -> bytes:
    return build_pdf("Anti-Money Laundering Policy. Customers must be verified before onboarding.")


# =============================================================================
# Collaborators
# =============================================================================


@pytest_asyncio.fixture
async def repository():
    repo = SQLiteGlossaryRepository(":memory:")
    await repo.ensure_schema()
    yield repo
    repo.close()


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(root=tmp_path / "objects", bucket="reports")


@pytest.fixture
def pdf_factory():
    return build_pdf


@pytest.fixture
def xlsx_factory():
    return build_xlsx
