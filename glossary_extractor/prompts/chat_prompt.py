"""Chat prompts: answers from stored glossary terms and rules, session titles."""

from collections.abc import Sequence

from glossary_extractor.pydantic_models.glossary_models import GlossaryTerm, PolicyRule

CHAT_SYSTEM_PROMPT = """You are a data governance assistant for business users.

Answer questions about the organisation's data glossary and policies.
Use the glossary terms and policy rules below as your primary source. If they
do not cover the question, say so and answer from general knowledge, making
clear which parts are not backed by the glossary.
Keep answers short and concrete. Quote rule codes when you rely on a rule."""


def format_term(term: GlossaryTerm) -> str:
    line = f"- {term.term} [{term.category_or_default}]: {term.definition}"
    if term.synonyms:
        line += f" (synonyms: {', '.join(term.synonyms)})"
    return line


def format_rule(rule: PolicyRule) -> str:
    code = rule.rule_code or "uncoded"
    severity = f" ({rule.severity})" if rule.severity else ""
    return f"- {code}{severity}: {rule.rule_text}"


def build_chat_messages(
    message: str,
    terms: Sequence[GlossaryTerm],
    rules: Sequence[PolicyRule] = (),
    history: Sequence[dict[str, str]] = (),
) -> list[dict[str, str]]:
    """Assemble the message list for a chat completion.

    Args:
        message: The user's question.
        terms: Retrieved glossary terms.
        rules: Retrieved policy rules.
        history: Earlier turns as role/content dicts, oldest first.

    Returns:
        Messages ready for the completion call.
    """
    term_lines = [format_term(t) for t in terms] or ["- none found"]
    rule_lines = [format_rule(r) for r in rules] or ["- none found"]
    context = ["Glossary terms:", *term_lines, "", "Policy rules:", *rule_lines]

    system = f"{CHAT_SYSTEM_PROMPT}\n\n" + "\n".join(context)
    return [
        {"role": "system", "content": system},
        *history,
        {"role": "user", "content": message},
    ]


TITLE_PROMPT = (
    "Generate a concise, descriptive title (max 6 words) for this chat conversation. "
    'Reply with the title only. First message: "{message}"'
)


def build_title_messages(first_message: str) -> list[dict[str, str]]:
    """Single-message request for a session title."""
    return [{"role": "user", "content": TITLE_PROMPT.format(message=first_message)}]
