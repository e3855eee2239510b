"""Semantic type detection for sampled column values.

Each value is offered to an ordered list of recognizers; the first one that
accepts it scores a point for its type. The order is load-bearing: a value
such as "555-123-4567" matches both the phone and the number-like patterns
and is counted as phone because phone is tested first. Likewise a purely
numeric string of six or more digits is counted as id, not number.
"""

import re
import warnings
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import pandas as pd

from glossary_extractor.core.config import ProcessingConfig
from glossary_extractor.pydantic_models.glossary_models import DataType


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
URL_PATTERN = re.compile(r"^https?://.+", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]{7,}$", re.ASCII)
ID_PATTERN = re.compile(r"^[A-Z0-9\-_]{6,}$", re.IGNORECASE | re.ASCII)
NUMBER_PATTERN = re.compile(r"^\s*-?\d+(\.\d+)?\s*$", re.ASCII)
BOOLEAN_PATTERN = re.compile(r"^(true|false|yes|no|y|n|0|1)$", re.IGNORECASE)


def looks_like_date(value: str) -> bool:
    """True when ``value`` parses as a calendar date and is long enough."""
    if len(value) <= ProcessingConfig.MIN_DATE_LENGTH:
        return False
    with warnings.catch_warnings():
        # pandas warns when it has to guess a format per element
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(value, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return False
    return not pd.isna(parsed)


@dataclass(frozen=True)
class TypeRecognizer:
    """Predicate that claims a value for one data type."""

    data_type: DataType
    matches: Callable[[str], bool]

    def detect(self, value: str) -> DataType | None:
        return self.data_type if self.matches(value) else None


def _regex(data_type: DataType, pattern: re.Pattern) -> TypeRecognizer:
    return TypeRecognizer(data_type, lambda value: pattern.search(value) is not None)


RECOGNIZERS: tuple[TypeRecognizer, ...] = (
    _regex(DataType.EMAIL, EMAIL_PATTERN),
    _regex(DataType.URL, URL_PATTERN),
    _regex(DataType.PHONE, PHONE_PATTERN),
    _regex(DataType.ID, ID_PATTERN),
    _regex(DataType.NUMBER, NUMBER_PATTERN),
    _regex(DataType.BOOLEAN, BOOLEAN_PATTERN),
    TypeRecognizer(DataType.DATE, looks_like_date),
)
"""Recognizers in priority order. Date parsing is the most expensive, so last."""

SCORE_ORDER: tuple[DataType, ...] = (
    DataType.EMAIL,
    DataType.URL,
    DataType.PHONE,
    DataType.ID,
    DataType.NUMBER,
    DataType.DATE,
    DataType.BOOLEAN,
)
"""Tie-break order when two types reach the same score."""


def classify_value(value: str, recognizers: Sequence[TypeRecognizer] = RECOGNIZERS) -> DataType | None:
    """Return the type of the first recognizer accepting ``value``, if any."""
    trimmed = value.strip()
    for recognizer in recognizers:
        detected = recognizer.detect(trimmed)
        if detected is not None:
            return detected
    return None


def detect_data_type(
    values: Sequence[str],
    recognizers: Sequence[TypeRecognizer] = RECOGNIZERS,
) -> DataType:
    """Classify a sample of non-empty strings into one DataType.

    Args:
        values: Non-empty stringified cell values.
        recognizers: Ordered recognizers (override in tests only).

    Returns:
        UNKNOWN for an empty sample, STRING when no type reaches the match
        threshold, otherwise the best-scoring type.
    """
    if not values:
        return DataType.UNKNOWN

    sample = list(values[: ProcessingConfig.TYPE_DETECTION_MAX_VALUES])
    scores = {data_type: 0 for data_type in SCORE_ORDER}

    for value in sample:
        detected = classify_value(value, recognizers)
        if detected is not None:
            scores[detected] += 1

    max_score = max(scores.values())
    if max_score < len(sample) * ProcessingConfig.TYPE_MATCH_THRESHOLD:
        return DataType.STRING

    for data_type in SCORE_ORDER:
        if scores[data_type] == max_score:
            return data_type
    return DataType.STRING
