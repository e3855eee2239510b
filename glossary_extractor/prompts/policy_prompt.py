"""Policy rule extraction prompt for compliance/policy documents."""

from glossary_extractor.core.config import ProcessingConfig

POLICY_RULES_PROMPT = """You are a policy extraction expert. Extract structured rules from the following compliance/policy text.

For each rule:
- rule_code: A short unique code (e.g., "SEC-4.2") if present; otherwise null.
- rule_text: The full text of the rule (1-5 sentences max).
- citations: Array of any referenced laws/codes (e.g., ["BSP Circular 123", "PD 456"]); empty array if none.
- tags: Array of keywords/categories (e.g., ["data_privacy", "aml"]); empty array if none.
- severity: "low", "medium", "high", or null.
- effective_date: YYYY-MM-DD if mentioned; otherwise null.
- confidence: 0.0 to 1.0 score of extraction accuracy.

Return a JSON object of the form {{"rules": [...]}}. No other text.
Limit to {max_rules} rules max."""


def build_policy_prompt(text: str, max_rules: int = ProcessingConfig.MAX_POLICY_RULES) -> str:
    """Build the policy rule prompt for already truncated document text."""
    return "\n".join([
        POLICY_RULES_PROMPT.format(max_rules=max_rules),
        "",
        "Text:",
        "---",
        text,
        "---",
    ])
