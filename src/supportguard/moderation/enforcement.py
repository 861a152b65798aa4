"""
Execution of enforcement actions against the messaging platform.

Every action returns an ``ActionResult`` instead of raising, so the engine
decides per branch whether a failed step stops the remaining ones. Failures
are logged here, once, with the affected chat and user.
"""

from __future__ import annotations

from typing import Tuple

from supportguard.datatypes.errors import ActionError
from supportguard.datatypes.moderation_datatypes import (
    ActionResult,
    MemberRole,
    SenderInfo,
    StoryInfo,
)
from supportguard.messaging.base import PlatformClient
from supportguard.util.logger import get_logger

logger = get_logger("enforcement")


def format_text_notification(sender: SenderInfo, content: str) -> str:
    """Audit message for a sender removed because of their text."""
    return f"Deleted and banned user: {sender.display_name}\nMessage:\n\n{content}"


def format_story_notification(sender: SenderInfo, story: StoryInfo) -> str:
    """Audit message for a sender removed because of a shared story."""
    details = f'Shared story from @{story.chat_username or "unknown"}: "{story.chat_title or "No Title"}"'
    return f"Deleted story or media post from user: {sender.display_name}\nDetails:\n{details}"


class EnforcementExecutor:
    """Wrap ``PlatformClient`` calls into logged ``ActionResult``s."""

    def __init__(self, platform: PlatformClient) -> None:
        self._platform = platform

    async def delete(self, chat_id: int, message_id: int) -> ActionResult:
        try:
            await self._platform.delete_message(chat_id, message_id)
        except ActionError as exc:
            logger.error("[ENFORCE] Failed to delete message %s in chat %s: %s", message_id, chat_id, exc)
            return ActionResult("delete", ok=False, error=str(exc))
        logger.info("[ENFORCE] Deleted message %s in chat %s", message_id, chat_id)
        return ActionResult("delete", ok=True)

    async def notify(self, chat_id: int, text: str) -> ActionResult:
        try:
            await self._platform.send_message(chat_id, text)
        except ActionError as exc:
            logger.error("[ENFORCE] Failed to notify audit chat %s: %s", chat_id, exc)
            return ActionResult("notify", ok=False, error=str(exc))
        logger.info("[ENFORCE] Notified audit chat %s", chat_id)
        return ActionResult("notify", ok=True)

    async def ban(self, chat_id: int, sender: SenderInfo) -> ActionResult:
        try:
            await self._platform.ban_user(chat_id, sender.id)
        except ActionError as exc:
            logger.error(
                "[ENFORCE] Failed to ban %s (ID: %s) in chat %s: %s",
                sender.display_name, sender.id, chat_id, exc,
            )
            return ActionResult("ban", ok=False, error=str(exc))
        logger.info("[ENFORCE] Banned %s (ID: %s) in chat %s", sender.display_name, sender.id, chat_id)
        return ActionResult("ban", ok=True)

    async def role(self, chat_id: int, user_id: int) -> Tuple[MemberRole | None, ActionResult]:
        """Look up a member's role; the role is None when the lookup failed."""
        try:
            role = await self._platform.get_member_role(chat_id, user_id)
        except ActionError as exc:
            logger.error("[ENFORCE] Failed to look up role of %s in chat %s: %s", user_id, chat_id, exc)
            return None, ActionResult("role_lookup", ok=False, error=str(exc))
        return role, ActionResult("role_lookup", ok=True)
