"""Message listener for SupportGuard.

Receives every message update from aiogram and runs it through the
moderation engine. aiogram dispatches handlers as concurrent tasks, so
per-user ordering is enforced inside the engine, not here.
"""

from __future__ import annotations

from aiogram import Router
from aiogram.types import Message

from supportguard.datatypes.moderation_datatypes import ModerationResult
from supportguard.messaging.telegram_platform import to_inbound_message
from supportguard.moderation.moderation_engine import ModerationEngine, preview_text
from supportguard.util.logger import get_logger

logger = get_logger("message_listener")


class MessageListener:
    """Router owner responsible for handling new group messages."""

    def __init__(self, engine: ModerationEngine) -> None:
        """
        Initialize the listener.

        Parameters
        ----------
        engine:
            Moderation engine that decides what to do with each message.
        """
        self._engine = engine
        self.router = Router(name="message_listener")
        self.router.message.register(self.on_message)
        logger.info("[MESSAGE LISTENER] Message listener loaded")

    async def on_message(self, message: Message) -> ModerationResult | None:
        """
        Handle a new message.

        Messages without a sender are skipped. Any exception raised while
        moderating is logged and swallowed so one bad update never stops
        polling.
        """
        inbound = to_inbound_message(message)
        if inbound is None:
            logger.debug("[MESSAGE LISTENER] Message %s has no sender, skipping", message.message_id)
            return None

        logger.debug(
            "[MESSAGE LISTENER] Received message %s from %s in chat %s: %s",
            inbound.message_id,
            inbound.sender.display_name,
            inbound.chat_id,
            preview_text(inbound.content) if inbound.content else "<no text>",
        )

        try:
            result = await self._engine.handle(inbound)
        except Exception:
            logger.exception(
                "[MESSAGE LISTENER] Error processing message %s from %s",
                inbound.message_id,
                inbound.sender.id,
            )
            return None

        logger.debug("[MESSAGE LISTENER] Message %s: %s (%s)", inbound.message_id, result.outcome, result.reason)
        return result


def setup(engine: ModerationEngine) -> Router:
    """Create the listener and return its router for inclusion in the dispatcher."""
    return MessageListener(engine).router
