"""Per-column profiling of tabular rows.

Turns parsed rows into ColumnProfile objects the prompt builder can render:
detected type, distinct samples, null/unique counts and, for numeric
columns, min/max/average.
"""

import math
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

from glossary_extractor.core.config import ProcessingConfig
from glossary_extractor.core.type_detector import detect_data_type
from glossary_extractor.pydantic_models.glossary_models import (
    ColumnProfile,
    ColumnStatistics,
    DataType,
)


def stringify_cell(value: Any) -> str:
    """Render a raw cell the way it would read in the source file."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def parse_number(value: str) -> float | None:
    """Parse a finite number, or return None."""
    try:
        number = float(value)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def calculate_statistics(values: Sequence[str], data_type: DataType) -> ColumnStatistics | None:
    """Min/max/avg over the values that parse as numbers.

    Only computed for NUMBER columns; returns None otherwise or when no
    value parses.
    """
    if data_type != DataType.NUMBER or not values:
        return None

    numbers = [n for n in (parse_number(v) for v in values) if n is not None]
    if not numbers:
        return None

    return ColumnStatistics(
        min=min(numbers),
        max=max(numbers),
        avg=sum(numbers) / len(numbers),
    )


def profile_columns(
    rows: Sequence[Mapping[str, Any]],
    sample_count: int = ProcessingConfig.SAMPLE_VALUES_COUNT,
    max_rows: int = ProcessingConfig.MAX_ROWS_TO_ANALYZE,
    type_sample_size: int = ProcessingConfig.TYPE_DETECTION_SAMPLE_SIZE,
) -> tuple[list[ColumnProfile], list[str]]:
    """Profile every column named in the first row.

    Args:
        rows: Parsed rows, each mapping column name to raw value.
        sample_count: Distinct sample values kept per column.
        max_rows: Only this many leading rows are inspected.
        type_sample_size: Non-empty values handed to the type detector.

    Returns:
        (profiles, warnings). Warnings mention the analyzed and total row
        counts when the input was larger than ``max_rows``.
    """
    if not rows:
        return [], []

    warnings: list[str] = []
    if len(rows) > max_rows:
        warnings.append(f"Large dataset: analyzed first {max_rows} rows of {len(rows)}")

    columns = list(rows[0].keys())
    analysis_rows = rows[:max_rows]

    profiles = []
    for name in columns:
        raw_values = [row.get(name) for row in analysis_rows]
        rendered = [stringify_cell(v) for v in raw_values]
        values = [v for v in rendered if v.strip()]

        null_count = sum(1 for raw, text in zip(raw_values, rendered) if raw is None or text == "")
        unique_values = list(dict.fromkeys(values))

        detected_type = detect_data_type(values[:type_sample_size])

        profiles.append(ColumnProfile(
            name=str(name).strip(),
            detected_type=detected_type,
            samples=unique_values[:sample_count],
            null_count=null_count,
            unique_count=len(unique_values),
            statistics=calculate_statistics(values, detected_type),
        ))

    return profiles, warnings
