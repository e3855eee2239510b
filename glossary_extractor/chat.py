"""Chat over the stored glossary, compliance reports and chat sessions.

``respond`` routes a message by intent before the model is involved:
  compliance  issue lookup by COMP-<n> (with resolution steps when asked
              how to resolve it), duplicate-issue summary
  glossary    best matching stored term
  resolution  the general resolution workflow
  dashboard   issue counts from compliance reports
Anything left goes to ``answer``, which retrieves glossary terms and policy
rules that mention words of the question and asks the model. When the
model is unavailable the reply is a fixed help message.

Sessions keep the conversation: every turn is stored, earlier turns are
sent as history, and the first message names the session.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

from glossary_extractor.core.chat_intents import (
    FALLBACK_REPLY,
    NO_TERM_FOUND,
    IssueStats,
    asks_for_resolution,
    classify_intent,
    clean_title,
    fallback_title,
    find_issue,
    find_issue_id,
    render_dashboard,
    render_duplicate_summary,
    render_general_workflow,
    render_issue,
    render_resolution,
    render_term,
)
from glossary_extractor.core.config import ChatConfig
from glossary_extractor.core.errors import ExtractionServiceError, InputRejectedError, NotFoundError
from glossary_extractor.core.llm_client import ExtractionClient
from glossary_extractor.core.repository import SQLiteGlossaryRepository
from glossary_extractor.prompts import build_chat_messages, build_title_messages
from glossary_extractor.pydantic_models.chat_models import ChatIntent, ChatMessage, ChatRole, ChatSession
from glossary_extractor.pydantic_models.glossary_models import GlossaryTerm, PolicyRule

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset({
    "the", "and", "for", "what", "which", "who", "how", "does", "did", "are",
    "was", "were", "is", "this", "that", "these", "those", "with", "about",
    "from", "into", "our", "your", "can", "you", "mean", "means", "define",
    "explain", "tell", "please", "term", "terms", "meaning", "definition",
    "glossary",
})

_WORD = re.compile(r"[\w\-]+")


def extract_keywords(message: str, min_length: int = ChatConfig.MIN_KEYWORD_LENGTH) -> list[str]:
    """Distinct lowercase words worth searching for, in message order."""
    words = (w.lower().strip("-_") for w in _WORD.findall(message))
    keywords = [w for w in words if len(w) >= min_length and w not in STOP_WORDS]
    return list(dict.fromkeys(keywords))


@dataclass
class ChatReply:
    """Answer plus the context it was built from."""

    answer: str
    terms: list[GlossaryTerm] = field(default_factory=list)
    rules: list[PolicyRule] = field(default_factory=list)
    intent: ChatIntent = ChatIntent.GENERAL
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "answer": self.answer,
            "intent": self.intent.value,
            "terms": [t.term for t in self.terms],
            "rules": [r.rule_code or r.rule_text[:60] for r in self.rules],
            "metadata": self.metadata,
        }


@dataclass
class ChatExchange:
    """Both stored turns of one session message."""

    user_message: ChatMessage
    assistant_message: ChatMessage
    reply: ChatReply
    title: str | None = None

    def to_dict(self) -> dict:
        return {
            "user_message": self.user_message.model_dump(mode="json"),
            "assistant_message": self.assistant_message.model_dump(mode="json"),
            "reply": self.reply.to_dict(),
            "title": self.title,
        }


def _require_message(message: str | None) -> str:
    if not message or not message.strip():
        raise InputRejectedError("Message is required")
    return message.strip()


class GlossaryChat:
    """Answers questions with glossary, policy and compliance context.

    Args:
        repository: Store searched for context and holding sessions.
        client: Client used for free-text completions and titles.
    """

    def __init__(self, repository: SQLiteGlossaryRepository, client: ExtractionClient | None = None):
        self.repository = repository
        self.client = client or ExtractionClient()

    async def answer(
        self,
        message: str,
        dataset_id: str | None = None,
        history: Sequence[dict[str, str]] | None = None,
    ) -> ChatReply:
        """Answer ``message`` with the model.

        Args:
            message: The user's question.
            dataset_id: Restrict glossary context to one dataset.
            history: Earlier turns (role/content dicts), oldest first. Only
                the most recent turns are forwarded.

        Raises:
            InputRejectedError: If the message is blank.
            ExtractionServiceError: If the model call exhausts its attempts.
        """
        message = _require_message(message)

        keywords = extract_keywords(message)
        terms = await self.repository.search_terms(
            keywords, dataset_id=dataset_id, limit=ChatConfig.MAX_CONTEXT_TERMS
        )
        rules = await self.repository.search_rules(keywords, limit=ChatConfig.MAX_CONTEXT_RULES)
        logger.info(
            "Chat context: %d terms, %d rules (keywords=%s)", len(terms), len(rules), keywords
        )

        recent_history = list(history or [])[-ChatConfig.MAX_HISTORY_MESSAGES:]
        messages = build_chat_messages(message, terms, rules, recent_history)
        answer = await self.client.complete_text(messages, purpose="chat")
        return ChatReply(answer=answer, terms=terms, rules=rules)

    async def respond(
        self,
        message: str,
        dataset_id: str | None = None,
        history: Sequence[dict[str, str]] | None = None,
    ) -> ChatReply:
        """Route ``message`` by intent; the model answers what no handler covers.

        Raises:
            InputRejectedError: If the message is blank.
        """
        message = _require_message(message)
        intent = classify_intent(message)
        logger.debug("Chat intent: %s", intent.value)

        handlers = {
            ChatIntent.COMPLIANCE: self._compliance_reply,
            ChatIntent.GLOSSARY: self._glossary_reply,
            ChatIntent.RESOLUTION: self._resolution_reply,
            ChatIntent.DASHBOARD: self._dashboard_reply,
        }
        handler = handlers.get(intent)
        if handler is not None:
            reply = await handler(message, dataset_id)
            if reply is not None:
                reply.intent = intent
                return reply

        try:
            reply = await self.answer(message, dataset_id=dataset_id, history=history)
        except ExtractionServiceError as e:
            logger.warning("Chat model unavailable, sending help message: %s", e)
            reply = ChatReply(answer=FALLBACK_REPLY, metadata={"fallback": True})
        reply.intent = intent
        return reply

    async def _compliance_reply(self, message: str, dataset_id: str | None) -> ChatReply | None:
        issues = await self.repository.get_compliance_issues(limit=ChatConfig.MAX_ISSUES_IN_CONTEXT)

        issue_id = find_issue_id(message)
        if issue_id:
            issue = find_issue(issues, issue_id)
            if issue is not None and asks_for_resolution(message):
                return ChatReply(
                    answer=render_resolution(issue),
                    metadata={"issue_id": issue.issue_id, "action": "resolution"},
                )
            if issue is not None:
                return ChatReply(answer=render_issue(issue), metadata={"issue_id": issue.issue_id})

        if "duplicate" in message.lower():
            duplicates = [i for i in issues if "duplicate" in i.issue_type.lower()]
            return ChatReply(
                answer=render_duplicate_summary(duplicates),
                metadata={"issue_ids": [i.issue_id for i in duplicates]},
            )
        return None

    async def _glossary_reply(self, message: str, dataset_id: str | None) -> ChatReply:
        terms = await self.repository.search_terms(extract_keywords(message), dataset_id=dataset_id, limit=5)
        if not terms:
            return ChatReply(answer=NO_TERM_FOUND)
        best = terms[0]
        return ChatReply(answer=render_term(best), terms=[best], metadata={"term": best.term})

    async def _resolution_reply(self, message: str, dataset_id: str | None) -> ChatReply:
        return ChatReply(answer=render_general_workflow())

    async def _dashboard_reply(self, message: str, dataset_id: str | None) -> ChatReply:
        issues = await self.repository.get_compliance_issues(limit=ChatConfig.MAX_ISSUES_IN_CONTEXT)
        recent = await self.repository.count_recent_uploads(ChatConfig.RECENT_ACTIVITY_DAYS)
        stats = IssueStats.from_issues(issues, recent_activity=recent)
        return ChatReply(answer=render_dashboard(stats), metadata=asdict(stats))

    # Sessions

    async def create_session(self, user_id: str, title: str | None = None) -> ChatSession:
        title = (title or "").strip() or ChatConfig.DEFAULT_SESSION_TITLE
        return await self.repository.create_chat_session(user_id, title)

    async def list_sessions(self, user_id: str) -> list[ChatSession]:
        return await self.repository.list_chat_sessions(user_id, limit=ChatConfig.MAX_SESSIONS_LISTED)

    async def _require_session(self, session_id: str, user_id: str) -> ChatSession:
        session = await self.repository.get_chat_session(session_id, user_id)
        if session is None:
            raise NotFoundError("Session not found")
        return session

    async def get_messages(self, session_id: str, user_id: str) -> list[ChatMessage]:
        """Messages of a session the user owns, oldest first.

        Raises:
            NotFoundError: If the session does not exist for this user.
        """
        await self._require_session(session_id, user_id)
        return await self.repository.get_chat_messages(session_id)

    async def rename_session(self, session_id: str, user_id: str, title: str | None) -> ChatSession:
        if not title or not title.strip():
            raise InputRejectedError("Title is required")
        session = await self.repository.rename_chat_session(session_id, user_id, title.strip())
        if session is None:
            raise NotFoundError("Session not found")
        return session

    async def delete_session(self, session_id: str, user_id: str) -> None:
        if not await self.repository.delete_chat_session(session_id, user_id):
            raise NotFoundError("Session not found")
        logger.info("Deleted chat session %s (user=%s)", session_id, user_id)

    async def send_message(
        self,
        session_id: str,
        user_id: str,
        message: str,
        dataset_id: str | None = None,
    ) -> ChatExchange:
        """Store a user message, answer it and store the answer.

        The first message of a session also sets its title.

        Raises:
            InputRejectedError: If the message is blank.
            NotFoundError: If the session does not exist for this user.
        """
        message = _require_message(message)
        await self._require_session(session_id, user_id)

        earlier = await self.repository.get_chat_messages(session_id)
        user_message = await self.repository.add_chat_message(session_id, user_id, ChatRole.USER, message)

        reply = await self.respond(message, dataset_id=dataset_id, history=[m.as_turn() for m in earlier])
        assistant_message = await self.repository.add_chat_message(
            session_id, user_id, ChatRole.ASSISTANT, reply.answer
        )
        await self.repository.touch_chat_session(session_id)

        title = None
        if not earlier:
            title = await self.generate_title(message)
            await self.repository.rename_chat_session(session_id, user_id, title)

        return ChatExchange(
            user_message=user_message,
            assistant_message=assistant_message,
            reply=reply,
            title=title,
        )

    async def generate_title(self, first_message: str) -> str:
        """Short session title from the model, or a keyword-based one."""
        try:
            raw = await self.client.complete_text(build_title_messages(first_message), purpose="chat_title")
        except ExtractionServiceError as e:
            logger.warning("Title generation failed: %s", e)
            raw = ""
        return clean_title(raw) or fallback_title(first_message)
