"""The action surface the moderation engine needs from a messaging platform."""

from __future__ import annotations

from typing import Protocol

from supportguard.datatypes.moderation_datatypes import MemberRole


class PlatformClient(Protocol):
    """Platform operations used for enforcement. Every method raises ``ActionError`` on failure."""

    async def delete_message(self, chat_id: int, message_id: int) -> None: ...

    async def ban_user(self, chat_id: int, user_id: int) -> None: ...

    async def send_message(self, chat_id: int, text: str) -> None: ...

    async def get_member_role(self, chat_id: int, user_id: int) -> MemberRole: ...
