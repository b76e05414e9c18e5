"""Per-user conversation context storage."""

import logging
import time
from typing import List, Sequence

from ..models.turn import SYSTEM, USER, ConversationTurn
from .storage import CONTEXT_TABLE, Database

logger = logging.getLogger(__name__)


class ContextStore:
    """Stores each user's rolling conversation history."""

    def __init__(self, database: Database):
        self.database = database

    async def load(self, user_id: str) -> List[ConversationTurn]:
        """Return the stored turns, or an empty list for a new user."""
        records = await self.database.get(CONTEXT_TABLE, {"userId": user_id})
        if not records:
            return []
        return [ConversationTurn.from_dict(turn) for turn in records[0].get("context") or []]

    async def save(self, user_id: str, turns: Sequence[ConversationTurn]) -> None:
        """Replace the stored turns, creating the record if needed."""
        context = [turn.to_dict() for turn in turns]
        now = _now_ms()
        updated = await self.database.set(
            CONTEXT_TABLE, {"userId": user_id}, {"context": context, "updatedAt": now}
        )
        if updated == 0:
            await self.database.create(
                CONTEXT_TABLE, {"userId": user_id, "context": context, "updatedAt": now}
            )
        logger.debug(f"Saved {len(context)} turns for user {user_id}")

    async def clear(self, user_id: str) -> None:
        """Empty the user's context, keeping the record."""
        await self.database.set(
            CONTEXT_TABLE, {"userId": user_id}, {"context": [], "updatedAt": _now_ms()}
        )
        logger.info(f"Cleared conversation context for user {user_id}")


def trim_context(turns: List[ConversationTurn], max_length: int) -> List[ConversationTurn]:
    """Drop the oldest exchanges until ``turns`` fits ``max_length``.

    An exchange is a user turn together with the replies that follow it, up
    to the next user turn. A user turn left unanswered by a failed call is an
    exchange of its own, so eviction never leaves a reply at the front. The
    system turn (when present at index 0) and the newest exchange always
    survive. Works in place and returns ``turns``.
    """
    start = 1 if turns and turns[0].role == SYSTEM else 0
    while len(turns) > max_length:
        end = start + 1
        while end < len(turns) and turns[end].role != USER:
            end += 1
        if end >= len(turns):
            break
        del turns[start:end]
    return turns


def apply_system_prompt(turns: List[ConversationTurn], prompt: str) -> List[ConversationTurn]:
    """Make index 0 the system turn carrying ``prompt``.

    The stored system turn is overwritten rather than duplicated, so prompt
    changes reach existing conversations on their next turn.
    """
    if turns and turns[0].role == SYSTEM:
        turns[0].content = prompt
    else:
        turns.insert(0, ConversationTurn(role=SYSTEM, content=prompt))
    return turns


def _now_ms() -> int:
    return int(time.time() * 1000)
