"""Glossary extraction prompt.

One prompt builder serves both kinds of input: column profiles from a
tabular file, or plain text from a document. The ground rules and context
lines are shared; the analysis section differs.
"""

from collections.abc import Sequence
from decimal import Decimal

from glossary_extractor.core.config import ProcessingConfig
from glossary_extractor.pydantic_models.glossary_models import ColumnProfile, ExtractionMode

GLOSSARY_GROUND_RULES = """You are an expert data ontology assistant specialized in creating business glossaries.
Your task is to extract meaningful business terms and create clear, actionable definitions.

CRITICAL RULES:
- Focus on business-relevant terms, not technical implementation details
- Definitions should be clear to business users, not just data analysts
- Avoid circular definitions (don't define a term using itself)
- Expand acronyms and abbreviations when possible
- Merge similar terms to avoid duplication
- Assign realistic confidence scores (0.0-1.0)
- Categorize terms logically (e.g., 'Customer Data', 'Financial Metrics', 'Operational KPIs')"""

COMPREHENSIVE_INSTRUCTIONS = (
    "COMPREHENSIVE MODE: Extract detailed terms including derived concepts, "
    "relationships, and business rules."
)

BASIC_INSTRUCTIONS = "BASIC MODE: Focus on primary entities and key business concepts only."

TABULAR_EXAMPLES = """Examples of good terms:
- Column 'cust_id' → Term: 'Customer Identifier', Definition: 'Unique identifier assigned to each customer account'
- Pattern in 'order_status' → Term: 'Order Status', Definition: 'Current processing stage of a customer order'
- High cardinality in 'product_sku' → Term: 'Stock Keeping Unit', Definition: 'Unique code identifying individual products in inventory'"""

DOCUMENT_INSTRUCTIONS = """DOCUMENT ANALYSIS:
Extract business terms, definitions, acronyms, and domain-specific concepts from the following document.
Look for:
- Explicitly defined terms and their definitions
- Business processes and their components
- Metrics, KPIs, and measurements
- Domain-specific jargon and acronyms
- Code lists and categorical values"""


def format_number(value: float) -> str:
    """Render a statistic in plain decimal notation, integral floats without '.0'."""
    if float(value).is_integer():
        return str(int(value))
    return format(Decimal(repr(float(value))), "f")


def format_column(column: ColumnProfile) -> str:
    """Render one column as a bullet with counts and samples."""
    stats = ""
    if column.statistics:
        s = column.statistics
        stats = f" (range: {format_number(s.min)}-{format_number(s.max)}, avg: {s.avg:.2f})"

    samples = ", ".join(f'"{v}"' for v in column.samples[: ProcessingConfig.PROMPT_SAMPLE_VALUES])
    return "\n".join([
        f"• {column.name} ({column.detected_type.value}{stats})",
        f"  - Unique values: {column.unique_count}, Null count: {column.null_count}",
        f"  - Sample values: {samples}",
    ])


def build_glossary_prompt(
    column_preview: Sequence[ColumnProfile],
    unstructured_text: str,
    dataset_id: str,
    business_context: str | None = None,
    extraction_mode: ExtractionMode = ExtractionMode.COMPREHENSIVE,
) -> str:
    """Build the glossary extraction prompt.

    Args:
        column_preview: Column profiles. When non-empty the tabular branch is
            used and ``unstructured_text`` is ignored.
        unstructured_text: Already truncated document text.
        dataset_id: Dataset identifier, rendered verbatim.
        business_context: Optional free-text context, rendered verbatim.
        extraction_mode: Depth of extraction, rendered verbatim.

    Returns:
        Prompt text.
    """
    mode = ExtractionMode(extraction_mode)

    lines = [
        GLOSSARY_GROUND_RULES,
        "",
        f"Dataset Context: {dataset_id}",
    ]
    if business_context:
        lines.append(f"Business Context: {business_context}")
    lines.extend([f"Extraction Mode: {mode.value}", ""])

    if column_preview:
        lines.extend([
            "TABULAR DATA ANALYSIS:",
            f"Found {len(column_preview)} columns. Extract business terms from column names, "
            "data patterns, and relationships.",
            "",
            "Column Details:",
            *(format_column(column) for column in column_preview),
            "",
            COMPREHENSIVE_INSTRUCTIONS if mode == ExtractionMode.COMPREHENSIVE else BASIC_INSTRUCTIONS,
            "",
            TABULAR_EXAMPLES,
        ])
    else:
        lines.extend([
            DOCUMENT_INSTRUCTIONS,
            "",
            "Document Content:",
            "---",
            unstructured_text,
            "---",
        ])

    return "\n".join(lines)
