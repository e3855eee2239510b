"""Prompt templates for the extraction service.

Each module contains the fixed instructions and the builder for one kind
of call: glossary terms, policy rules, chat answers and session titles.
"""

from glossary_extractor.prompts.glossary_prompt import build_glossary_prompt
from glossary_extractor.prompts.policy_prompt import POLICY_RULES_PROMPT, build_policy_prompt
from glossary_extractor.prompts.chat_prompt import (
    CHAT_SYSTEM_PROMPT,
    TITLE_PROMPT,
    build_chat_messages,
    build_title_messages,
)

__all__ = [
    # Glossary
    "build_glossary_prompt",
    # Policy rules
    "POLICY_RULES_PROMPT",
    "build_policy_prompt",
    # Chat
    "CHAT_SYSTEM_PROMPT",
    "build_chat_messages",
    "TITLE_PROMPT",
    "build_title_messages",
]
