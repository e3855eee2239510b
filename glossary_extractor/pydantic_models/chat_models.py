"""Pydantic models for chat sessions and routed chat replies."""

from enum import Enum

from pydantic import BaseModel


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatIntent(str, Enum):
    """What a chat message is asking about, checked in this order."""

    COMPLIANCE = "compliance"
    GLOSSARY = "glossary"
    RESOLUTION = "resolution"
    DASHBOARD = "dashboard"
    GENERAL = "general"


class ChatSession(BaseModel):
    """A titled conversation owned by one user."""

    id: str
    user_id: str
    title: str
    created_at: str
    updated_at: str


class ChatMessage(BaseModel):
    """One stored turn of a chat session."""

    id: str
    session_id: str
    user_id: str
    role: ChatRole
    content: str
    timestamp: str

    def as_turn(self) -> dict[str, str]:
        """Role/content dict for the completion message list."""
        return {"role": self.role.value, "content": self.content}
