"""Data models for the chat model plugin."""

from .turn import ASSISTANT, SYSTEM, USER, ConversationTurn, IncomingMessage, UsageRecord

__all__ = [
    "ConversationTurn",
    "IncomingMessage",
    "UsageRecord",
    "SYSTEM",
    "USER",
    "ASSISTANT",
]
