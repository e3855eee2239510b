"""Core utilities for the glossary extraction pipeline.

Readers, profiling, the extraction client and the storage collaborators
live in their own modules and are imported from there; this package
re-exports only the dependency-free pieces.
"""

from glossary_extractor.core.config import (
    LLM_MODEL,
    DEFAULT_MODEL,
    API_KEY_ENV_VARS,
    api_key_env_var,
    AIConfig,
    ProcessingConfig,
    TermDefaults,
    DatabaseConfig,
    StorageConfig,
    RequestLimits,
    ChatConfig,
)
from glossary_extractor.core.errors import (
    ErrorSeverity,
    ErrorCategory,
    GlossaryExtractionError,
    InputRejectedError,
    FileTooLargeError,
    TabularParseError,
    DocumentReadError,
    ResponseShapeError,
    ExtractionServiceError,
    StorageError,
    PersistenceError,
    NotFoundError,
    ProcessingError,
    processing_error_from_exception,
)
from glossary_extractor.core.pipeline_logger import PipelineLogger, get_logger, reset_logger
from glossary_extractor.core.usage_tracker import UsageTracker, CallUsage, estimate_cost

__all__ = [
    # Configuration
    "LLM_MODEL",
    "DEFAULT_MODEL",
    "API_KEY_ENV_VARS",
    "api_key_env_var",
    "AIConfig",
    "ProcessingConfig",
    "TermDefaults",
    "DatabaseConfig",
    "StorageConfig",
    "RequestLimits",
    "ChatConfig",
    # Errors
    "ErrorSeverity",
    "ErrorCategory",
    "GlossaryExtractionError",
    "InputRejectedError",
    "FileTooLargeError",
    "TabularParseError",
    "DocumentReadError",
    "ResponseShapeError",
    "ExtractionServiceError",
    "StorageError",
    "PersistenceError",
    "NotFoundError",
    "ProcessingError",
    "processing_error_from_exception",
    # Logging
    "PipelineLogger",
    "get_logger",
    "reset_logger",
    # Usage tracking
    "UsageTracker",
    "CallUsage",
    "estimate_cost",
]
