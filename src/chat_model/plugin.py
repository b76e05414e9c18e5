"""Host integration: middleware, commands and lifecycle."""

import logging
import random
from typing import Any, Awaitable, Callable, Optional

from .adapters.registry import AdapterRegistry, create_adapter
from .config import ChatModelConfig
from .core.handler import MessageHandler
from .core.trigger import TriggerGate
from .models.turn import IncomingMessage
from .services.context_store import ContextStore
from .services.storage import Database
from .services.usage import UsageLimiter

logger = logging.getLogger(__name__)

PLUGIN_NAME = "chat-model"
CLEAR_COMMAND = "clear-context"

LIMIT_REACHED_REPLY = "Daily conversation limit reached, please come back tomorrow"
THINKING_REPLY = "Thinking..."
CONTEXT_CLEARED_REPLY = "Conversation context cleared"
PROCESSING_ERROR_REPLY = "Error while processing message: {error}"

Next = Callable[[], Awaitable[Any]]


class ChatModelPlugin:
    """Answers messages no other handler consumed with a language model.

    The host calls :meth:`middleware` for every inbound message, exposes
    :meth:`clear_context` as a user command and calls :meth:`dispose` on
    shutdown. Sessions need ``user_id``, ``channel_id``, ``self_id``,
    ``content`` and an async ``send(text)``.
    """

    def __init__(
        self,
        config: ChatModelConfig,
        database: Database,
        adapter: Optional[Any] = None,
        registry: Optional[AdapterRegistry] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.database = database
        self.adapter = adapter if adapter is not None else create_adapter(config, registry)
        self.context_store = ContextStore(database)
        self.usage_limiter = UsageLimiter(database)
        self.trigger = TriggerGate(config, rng=rng)
        self.handler = MessageHandler(config, self.adapter, self.context_store)
        logger.info(f"Chat model plugin started with model type: {config.model_type}")

    async def middleware(self, session: Any, next: Next) -> Any:
        """Handle a message after every other handler has had a chance at it."""
        handled = await next()
        if handled:
            return handled

        content = self.trigger.evaluate(IncomingMessage.from_session(session))
        if content is None:
            return None

        user_id = str(session.user_id)
        limit = self.config.usage_limit
        if limit.enabled and not await self.usage_limiter.is_allowed(
            user_id, limit.max_messages_per_user
        ):
            logger.info(f"User {user_id} reached the daily limit")
            await session.send(LIMIT_REACHED_REPLY)
            session.handled = True
            return None

        try:
            if self.config.show_thinking_message:
                await session.send(THINKING_REPLY)

            reply = await self.handler.handle(user_id, content)
            if not reply:
                logger.warning("Model returned no usable reply")
                return None

            await session.send(reply)

            if limit.enabled:
                await self.usage_limiter.record_use(user_id)

            session.handled = True
        except Exception as e:
            logger.error(f"Error while processing message: {e}", exc_info=True)
            await session.send(PROCESSING_ERROR_REPLY.format(error=e))
            session.handled = True

        return None

    async def clear_context(self, session: Any) -> str:
        """The clear-context command."""
        await self.handler.clear(str(session.user_id))
        return CONTEXT_CLEARED_REPLY

    async def dispose(self) -> None:
        await self.adapter.dispose()
        logger.info("Chat model plugin unloaded")
