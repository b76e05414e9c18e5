"""Decides whether an inbound message is routed to the model."""

import logging
import random
from typing import Optional

from ..config import ChatModelConfig
from ..models.turn import IncomingMessage

logger = logging.getLogger(__name__)


class TriggerGate:
    """Filters inbound messages before they reach the model.

    Structural checks run first; the random draw only happens for messages
    that would otherwise be accepted.
    """

    def __init__(self, config: ChatModelConfig, rng: Optional[random.Random] = None):
        self.config = config
        self.rng = rng or random.Random()

    def should_ignore(self, message: IncomingMessage) -> bool:
        """Reject the bot's own messages and disabled channel kinds."""
        if message.user_id == message.self_id:
            return True
        if message.is_private:
            return not self.config.trigger_private
        return not self.config.trigger_group

    def extract_content(self, message: IncomingMessage) -> Optional[str]:
        """Return the prompt text, or None when the prefix is missing or nothing is left."""
        content = message.content or ""
        prefix = self.config.trigger_prefix
        if prefix:
            if not content.startswith(prefix):
                return None
            content = content[len(prefix) :]
        content = content.strip()
        return content or None

    def passes_ratio(self) -> bool:
        ratio = self.config.trigger_ratio
        if ratio >= 100:
            return True
        return self.rng.random() * 100 < ratio

    def evaluate(self, message: IncomingMessage) -> Optional[str]:
        """Return the content to send to the model, or None to skip the message."""
        if self.should_ignore(message):
            return None

        content = self.extract_content(message)
        if content is None:
            return None

        if not self.passes_ratio():
            logger.debug("Skipping message based on trigger ratio")
            return None

        return content
