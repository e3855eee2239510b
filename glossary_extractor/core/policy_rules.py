"""Post-processing and heuristic fallback for policy rules.

When the model cannot deliver rules, documents are still split into
bullet or numbered paragraphs so the run keeps something reviewable.
"""

import re
from collections.abc import Iterable

from glossary_extractor.core.config import ProcessingConfig, TermDefaults
from glossary_extractor.pydantic_models.glossary_models import PolicyRule

LIST_ITEM_PATTERN = re.compile(r"^(\*|-|•|\d+[.)])\s+")
_WHITESPACE = re.compile(r"\s+")


def cap_rules(rules: Iterable[PolicyRule], max_rules: int = ProcessingConfig.MAX_POLICY_RULES) -> list[PolicyRule]:
    """Keep at most ``max_rules`` rules, in order."""
    return list(rules)[:max_rules]


def split_paragraphs(text: str) -> list[str]:
    """Group lines into paragraphs, starting a new one at each list item."""
    chunks: list[str] = []
    current = ""
    for line in (raw.strip() for raw in text.splitlines()):
        if not line:
            continue
        if LIST_ITEM_PATTERN.match(line) and current:
            chunks.append(current.strip())
            current = line
        else:
            current = f"{current} {line}" if current else line
    if current:
        chunks.append(current.strip())
    return chunks


def fallback_extract_policy_rules(
    text: str,
    max_rules: int = ProcessingConfig.MAX_POLICY_RULES,
    min_length: int = ProcessingConfig.MIN_FALLBACK_RULE_LENGTH,
) -> list[PolicyRule]:
    """Heuristic rule extraction without the model.

    Paragraphs shorter than ``min_length`` or without a period are dropped.
    Survivors are numbered R-001, R-002, ... with the default confidence.
    """
    paragraphs = (_WHITESPACE.sub(" ", chunk).strip() for chunk in split_paragraphs(text))
    kept = [p for p in paragraphs if len(p) >= min_length and "." in p][:max_rules]
    return [
        PolicyRule(
            rule_code=f"R-{i:03d}",
            rule_text=paragraph,
            confidence=TermDefaults.CONFIDENCE,
        )
        for i, paragraph in enumerate(kept, start=1)
    ]
