"""Message handling: context window, model call and persistence."""

import asyncio
import logging
from typing import Any

from ..adapters.base import ResponseTimeoutError
from ..config import ChatModelConfig
from ..models.turn import ASSISTANT, USER, ConversationTurn, describe
from ..services.context_store import ContextStore, apply_system_prompt, trim_context

logger = logging.getLogger(__name__)

ERROR_REPLY = "Sorry, an error occurred while generating a reply: {error}"
TIMEOUT_REPLY_ERROR = "Response timed out"


class MessageHandler:
    """Runs one conversational turn for a user."""

    def __init__(self, config: ChatModelConfig, adapter: Any, context_store: ContextStore):
        self.config = config
        self.adapter = adapter
        self.context_store = context_store

    async def handle(self, user_id: str, content: str) -> str:
        """Generate a reply to ``content`` and store the updated context.

        Failures never propagate: they come back as an apology string and the
        stored context stays as it was, unless ``persist_failed_turns`` is set.
        """
        try:
            turns = await self.context_store.load(user_id)
            turns.append(ConversationTurn(role=USER, content=content))
            # Leave room for the reply so the stored context stays within the cap.
            trim_context(turns, self.config.max_context_length - 1)
            apply_system_prompt(turns, self.config.system_prompt)
            logger.debug(f"Context for {user_id}: {[describe(turn) for turn in turns]}")
        except Exception as e:
            logger.error(f"Failed to load context for {user_id}: {e}", exc_info=True)
            return ERROR_REPLY.format(error=e)

        try:
            reply = await self._generate(turns, user_id)
        except Exception as e:
            logger.error(f"Failed to generate reply: {type(e).__name__}: {e}")
            if self.config.persist_failed_turns:
                await self._save_quietly(user_id, turns)
            return ERROR_REPLY.format(error=e)

        turns.append(ConversationTurn(role=ASSISTANT, content=reply))
        try:
            await self.context_store.save(user_id, turns)
        except Exception as e:
            logger.error(f"Failed to save context for {user_id}: {e}", exc_info=True)
            return ERROR_REPLY.format(error=e)

        return reply

    async def _generate(self, turns, user_id: str) -> str:
        """Call the adapter, giving up after ``response_timeout`` seconds.

        The pending request is cancelled on timeout; the provider may still
        finish processing (and bill) it on its side.
        """
        try:
            return await asyncio.wait_for(
                self.adapter.generate_response(list(turns), user_id),
                timeout=self.config.response_timeout,
            )
        except asyncio.TimeoutError as e:
            raise ResponseTimeoutError(TIMEOUT_REPLY_ERROR) from e

    async def _save_quietly(self, user_id: str, turns) -> None:
        try:
            await self.context_store.save(user_id, turns)
        except Exception as e:
            logger.error(f"Failed to save context for {user_id}: {e}")

    async def clear(self, user_id: str) -> None:
        await self.context_store.clear(user_id)
