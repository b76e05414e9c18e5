"""Test fixtures for the chat model plugin tests."""

import asyncio
from typing import Any, List, Optional

from chat_model.config import ChatModelConfig
from chat_model.models.turn import ConversationTurn


def create_test_config(**options: Any) -> ChatModelConfig:
    """Create a config from camelCase options with a test API key."""
    options.setdefault("apiKey", "test-api-key")
    return ChatModelConfig.from_mapping(options)


def turns(*pairs) -> List[ConversationTurn]:
    """Build turns from (role, content) tuples."""
    return [ConversationTurn(role=role, content=content) for role, content in pairs]


class FakeAdapter:
    """Adapter double that records calls and replies from a script."""

    def __init__(
        self,
        replies: Optional[List[Any]] = None,
        delay: float = 0,
    ):
        self.replies = list(replies or [])
        self.delay = delay
        self.calls: List[List[ConversationTurn]] = []
        self.caller_ids: List[str] = []
        self.disposed = False

    async def generate_response(self, turns, caller_id=""):
        self.calls.append([ConversationTurn(t.role, t.content) for t in turns])
        self.caller_ids.append(caller_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.replies.pop(0) if self.replies else f"reply {len(self.calls)}"
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def dispose(self):
        self.disposed = True


class FakeSession:
    """Host session double collecting sent messages."""

    def __init__(
        self,
        content: str,
        user_id: str = "user-1",
        channel_id: Optional[str] = None,
        self_id: str = "bot",
    ):
        self.content = content
        self.user_id = user_id
        self.channel_id = channel_id if channel_id is not None else user_id
        self.self_id = self_id
        self.sent: List[str] = []
        self.handled = False

    async def send(self, text: str) -> None:
        self.sent.append(text)


def make_next(result: Any = None):
    """Create a middleware continuation returning ``result``."""

    async def _next():
        _next.called = True
        return result

    _next.called = False
    return _next
