"""Centralized configuration for the glossary extraction pipeline.

All limits, thresholds, and configuration constants are documented here.
Each constant includes:
- What it controls
- Where it is used
- What changing it affects

Values that differ between deployments (model, storage location, database
path) are read from the environment once, at import time. A .env file in
the working directory is loaded first; variables already set win.
"""

import os
from typing import Final

from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv(usecwd=True))


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back to ``default``."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


# =============================================================================
# LLM Provider Configuration
# =============================================================================
#
# The model identifier is passed straight to litellm, so the provider is
# selected by its prefix:
#   - "gemini/..." (default): Google AI Studio, uses GEMINI_API_KEY
#   - "openrouter/...": OpenRouter gateway, uses OPENROUTER_API_KEY
#   - "azure/...": Azure OpenAI, uses AZURE_API_KEY (+ AZURE_API_BASE)
#   - anything else: OpenAI, uses OPENAI_API_KEY
#
# =============================================================================

DEFAULT_MODEL: Final[str] = "gemini/gemini-2.0-flash"
"""Fallback model when GLOSSARY_LLM_MODEL is not set."""

LLM_MODEL: Final[str] = os.environ.get("GLOSSARY_LLM_MODEL", DEFAULT_MODEL)
"""Model used for term, rule and chat calls. Set via GLOSSARY_LLM_MODEL."""

API_KEY_ENV_VARS: Final[dict[str, str]] = {
    "gemini": "GEMINI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "azure": "AZURE_API_KEY",
    "openai": "OPENAI_API_KEY",
}


def api_key_env_var(model: str = LLM_MODEL) -> str:
    """Return the environment variable holding the API key for ``model``.

    Args:
        model: litellm model identifier (e.g., "gemini/gemini-2.0-flash").

    Returns:
        Environment variable name, defaulting to OPENAI_API_KEY for
        unprefixed model names.
    """
    provider = model.split("/", 1)[0] if "/" in model else "openai"
    return API_KEY_ENV_VARS.get(provider, API_KEY_ENV_VARS["openai"])


# LLM Call Configuration

class AIConfig:
    """Parameters for calls to the hosted extraction model.

    Retry policy: up to MAX_ATTEMPTS attempts, each bounded by
    REQUEST_TIMEOUT_MS. Between attempts the client waits
    RETRY_DELAY_MS * 2**(attempt - 1), i.e. 1s then 2s with the defaults.

    Used by: llm_client.py
    """

    MODEL: Final[str] = LLM_MODEL

    MAX_ATTEMPTS: Final[int] = _env_int("GLOSSARY_MAX_ATTEMPTS", 3)
    """Attempts per prompt before the extraction run fails."""

    RETRY_DELAY_MS: Final[int] = _env_int("GLOSSARY_RETRY_DELAY_MS", 1000)
    """Base backoff delay. Doubles after every failed attempt."""

    REQUEST_TIMEOUT_MS: Final[int] = _env_int("GLOSSARY_REQUEST_TIMEOUT_MS", 30_000)
    """Per-attempt timeout. A timed-out attempt is retried, not fatal."""

    TEMPERATURE: Final[float] = 0.1
    """Low temperature keeps term extraction close to deterministic."""

    CHAT_TEMPERATURE: Final[float] = 0.3
    """Chat answers are allowed slightly more variation than extraction."""


# File Processing Configuration

class ProcessingConfig:
    """Limits applied while reading and profiling uploaded files.

    Used by: file_processor.py, column_profiler.py, type_detector.py,
    document_reader.py, uploads.py
    """

    MAX_FILE_SIZE: Final[int] = _env_int("GLOSSARY_MAX_FILE_SIZE", 50 * 1024 * 1024)
    """Files above this many bytes are rejected before any parsing."""

    MAX_TEXT_LENGTH: Final[int] = _env_int("GLOSSARY_MAX_TEXT_LENGTH", 100_000)
    """Maximum characters of document text embedded in a prompt.

    Truncation prefers the last sentence boundary beyond
    TRUNCATION_SENTENCE_RATIO of this length.
    """

    TRUNCATION_SENTENCE_RATIO: Final[float] = 0.8

    MAX_ROWS_TO_ANALYZE: Final[int] = _env_int("GLOSSARY_MAX_ROWS_TO_ANALYZE", 1000)
    """Rows inspected per tabular file. Larger files produce a warning."""

    SAMPLE_VALUES_COUNT: Final[int] = _env_int("GLOSSARY_SAMPLE_VALUES_COUNT", 8)
    """Distinct sample values kept per column profile."""

    TYPE_DETECTION_SAMPLE_SIZE: Final[int] = _env_int("GLOSSARY_TYPE_DETECTION_SAMPLE_SIZE", 100)
    """Non-empty values handed to the type detector per column."""

    TYPE_DETECTION_MAX_VALUES: Final[int] = 50
    """The detector itself scores at most this many values."""

    TYPE_MATCH_THRESHOLD: Final[float] = 0.6
    """Share of the sample the winning type must reach, else "string"."""

    MIN_DATE_LENGTH: Final[int] = 6
    """Date candidates must be strictly longer than this many characters."""

    PROMPT_SAMPLE_VALUES: Final[int] = 5
    """Sample values per column rendered into the prompt."""

    MAX_POLICY_RULES: Final[int] = 200
    """Cap on policy rules kept per document."""

    MIN_FALLBACK_RULE_LENGTH: Final[int] = 20
    """Heuristic rule splitter drops paragraphs shorter than this."""

    TABULAR_EXTENSIONS: Final[tuple[str, ...]] = (".csv", ".xlsx", ".xls", ".tsv", ".json")

    TABULAR_MIME_KEYWORDS: Final[tuple[str, ...]] = ("csv", "excel", "sheet", "tab-separated", "json")
    """Media-type substrings that mark a file as tabular."""

    COMPREHENSIVE_SIZE_THRESHOLD: Final[int] = 1024 * 1024
    """Background runs switch to comprehensive mode above this size."""


# Term Defaults

class TermDefaults:
    """Fallbacks for fields the model may leave out."""

    CATEGORY: Final[str] = "General"
    """Category label stored when a term has none."""

    CONFIDENCE: Final[float] = 0.6
    """Confidence assumed when the model omits it."""


# Persistence Configuration

class DatabaseConfig:
    """Relational store settings.

    Used by: repository.py, cli.py
    """

    PATH: Final[str] = os.environ.get("GLOSSARY_DB_PATH", "glossary.db")
    """SQLite database file."""

    MAX_BATCH_SIZE: Final[int] = 100
    """Terms written per batch inside the upsert transaction."""

    CONNECTION_TIMEOUT_MS: Final[int] = 5000
    """How long a connection waits on a locked database."""


class StorageConfig:
    """Object store settings.

    Used by: storage.py, uploads.py, cli.py
    """

    ROOT: Final[str] = os.environ.get("GLOSSARY_STORAGE_ROOT", "storage")
    """Directory that holds the buckets of the local object store."""

    BUCKET: Final[str] = os.environ.get("GLOSSARY_STORAGE_BUCKET", "reports")

    UPLOAD_PREFIX: Final[str] = "uploads"


# Request Validation

class RequestLimits:
    """Bounds on caller-supplied extraction parameters."""

    DATASET_ID_MAX_LENGTH: Final[int] = 100
    BUSINESS_CONTEXT_MAX_LENGTH: Final[int] = 1000


class ChatConfig:
    """Context retrieval limits, session and routing settings for chat.

    Used by: chat.py
    """

    MAX_CONTEXT_TERMS: Final[int] = 10
    MAX_CONTEXT_RULES: Final[int] = 5

    MIN_KEYWORD_LENGTH: Final[int] = 3
    """Words shorter than this are ignored when searching the glossary."""

    MAX_HISTORY_MESSAGES: Final[int] = 10
    """Earlier turns forwarded with a question, stored sessions included."""

    MAX_SESSIONS_LISTED: Final[int] = 20
    DEFAULT_SESSION_TITLE: Final[str] = "New Chat"
    MAX_TITLE_LENGTH: Final[int] = 50

    MAX_ISSUES_IN_CONTEXT: Final[int] = 50
    RECENT_ACTIVITY_DAYS: Final[int] = 7


BUSINESS_CONTEXTS: Final[tuple[tuple[tuple[str, ...], str], ...]] = (
    (("customer", "client", "user"), "Customer Management"),
    (("financial", "finance", "revenue", "payment"), "Financial Data"),
    (("product", "inventory", "catalog"), "Product Management"),
    (("sales", "order", "transaction"), "Sales & Transactions"),
    (("employee", "staff", "hr"), "Human Resources"),
    (("marketing", "campaign", "lead"), "Marketing"),
    (("report", "analytics", "metrics"), "Business Analytics"),
    (("policy", "guideline", "manual", "procedure"), "Policies & Compliance"),
)
"""Filename keywords mapped to a business context, checked in order.

Used by: background.py:infer_business_context()
"""

DEFAULT_BUSINESS_CONTEXT: Final[str] = "General Business Data"
