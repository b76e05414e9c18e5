"""Core components of the chat model plugin."""

from .handler import MessageHandler
from .trigger import TriggerGate

__all__ = ["MessageHandler", "TriggerGate"]
