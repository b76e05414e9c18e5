"""Conversation and usage data models."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

SYSTEM = "system"
USER = "user"
ASSISTANT = "assistant"

ROLES = (SYSTEM, USER, ASSISTANT)


@dataclass
class ConversationTurn:
    """Represents a single turn in a conversation."""

    role: str  # "system", "user", "assistant"
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationTurn":
        """Build a turn from a stored ``{role, content}`` mapping."""
        return cls(role=str(data.get("role", USER)), content=str(data.get("content", "")))


@dataclass
class UsageRecord:
    """Per-user daily usage counter."""

    user_id: str
    daily_count: int = 0
    last_reset_date: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "dailyCount": self.daily_count,
            "lastResetDate": self.last_reset_date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageRecord":
        return cls(
            user_id=str(data["userId"]),
            daily_count=int(data.get("dailyCount") or 0),
            last_reset_date=str(data.get("lastResetDate") or ""),
        )


@dataclass
class IncomingMessage:
    """An inbound chat message as seen by the trigger gate."""

    user_id: str
    channel_id: str
    content: str
    self_id: str

    @property
    def is_private(self) -> bool:
        """Private chats use the sender's id as the channel id."""
        return self.channel_id == self.user_id

    @classmethod
    def from_session(cls, session: Any) -> "IncomingMessage":
        return cls(
            user_id=str(session.user_id),
            channel_id=str(session.channel_id),
            content=session.content or "",
            self_id=str(session.self_id),
        )


def describe(turn: ConversationTurn, width: Optional[int] = 40) -> str:
    """Short printable form of a turn, used in debug logging."""
    text = turn.content if width is None else turn.content[:width]
    return f"{turn.role}: {text}"
