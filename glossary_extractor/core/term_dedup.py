"""Merges glossary terms that differ only in casing or surrounding whitespace.

The model is asked not to repeat itself but regularly does, e.g. "Customer ID"
and " customer id ". Duplicates are folded into one record:

- definition: the longer one (ties keep the first seen)
- list fields: order-preserving union
- category: first non-empty value
- confidence: maximum
- linkage fields: first non-empty value
"""

from collections.abc import Iterable, Sequence

from glossary_extractor.pydantic_models.glossary_models import GlossaryTerm

_LIST_FIELDS = ("source_columns", "data_types", "sample_values", "synonyms")
_LINKAGE_FIELDS = ("source_file_id", "source_filename", "dataset_id")


def normalize_term_name(name: str) -> str:
    return name.strip().lower()


def _union(first: Iterable[str], second: Iterable[str]) -> list[str]:
    # dict keeps insertion order
    return list(dict.fromkeys([*first, *second]))


def merge_terms(existing: GlossaryTerm, incoming: GlossaryTerm) -> GlossaryTerm:
    """Fold ``incoming`` into ``existing``; ``existing`` is the first-seen side."""
    updates: dict = {
        "definition": (
            incoming.definition
            if len(incoming.definition) > len(existing.definition)
            else existing.definition
        ),
        "category": existing.category or incoming.category,
        "confidence": max(existing.confidence, incoming.confidence),
    }
    for name in _LIST_FIELDS:
        updates[name] = _union(getattr(existing, name), getattr(incoming, name))
    for name in _LINKAGE_FIELDS:
        updates[name] = getattr(existing, name) or getattr(incoming, name)
    return existing.model_copy(update=updates)


def deduplicate_terms(terms: Sequence[GlossaryTerm]) -> list[GlossaryTerm]:
    """Return one term per case-insensitive name, highest confidence first.

    Sorting is stable, so terms with equal confidence keep first-seen order.
    Running the function on its own output returns it unchanged.
    """
    merged: dict[str, GlossaryTerm] = {}
    for term in terms:
        key = normalize_term_name(term.term)
        if key in merged:
            merged[key] = merge_terms(merged[key], term)
        else:
            merged[key] = term

    return sorted(merged.values(), key=lambda t: t.confidence, reverse=True)
