"""Telegram implementation of the platform action surface, built on aiogram."""

from __future__ import annotations

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import Message

from supportguard.datatypes.errors import ActionError
from supportguard.datatypes.moderation_datatypes import (
    InboundMessage,
    MemberRole,
    SenderInfo,
    StoryInfo,
)
from supportguard.util.logger import get_logger

logger = get_logger("telegram_platform")


class TelegramPlatform:
    """
    Enforcement actions executed through an aiogram ``Bot``.

    aiogram errors are re-raised as ``ActionError`` so callers only deal with
    one failure type.

    Args:
        bot: Authenticated aiogram bot.
    """

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    @property
    def bot(self) -> Bot:
        return self._bot

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        try:
            await self._bot.delete_message(chat_id=chat_id, message_id=message_id)
        except TelegramAPIError as exc:
            raise ActionError("delete", str(exc)) from exc

    async def ban_user(self, chat_id: int, user_id: int) -> None:
        try:
            await self._bot.ban_chat_member(chat_id=chat_id, user_id=user_id)
        except TelegramAPIError as exc:
            raise ActionError("ban", str(exc)) from exc

    async def send_message(self, chat_id: int, text: str) -> None:
        try:
            await self._bot.send_message(chat_id=chat_id, text=text)
        except TelegramAPIError as exc:
            raise ActionError("notify", str(exc)) from exc

    async def get_member_role(self, chat_id: int, user_id: int) -> MemberRole:
        try:
            member = await self._bot.get_chat_member(chat_id=chat_id, user_id=user_id)
        except TelegramAPIError as exc:
            raise ActionError("role_lookup", str(exc)) from exc
        # ChatMemberStatus is a str enum; .value gives the raw status
        status = getattr(member.status, "value", member.status)
        return MemberRole.parse(status)


def to_inbound_message(message: Message) -> InboundMessage | None:
    """Convert an aiogram message to the engine's platform-neutral shape.

    Returns None for messages without a sender (e.g. channel posts).
    """
    user = message.from_user
    if user is None:
        return None

    story = None
    if message.story is not None:
        story_chat = message.story.chat
        story = StoryInfo(
            chat_username=getattr(story_chat, "username", None),
            chat_title=getattr(story_chat, "title", None),
        )

    return InboundMessage(
        chat_id=message.chat.id,
        message_id=message.message_id,
        sender=SenderInfo(id=user.id, username=user.username, first_name=user.first_name),
        text=message.text,
        caption=message.caption,
        story=story,
    )
