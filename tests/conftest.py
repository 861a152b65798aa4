"""
Pytest configuration and fixtures for SupportGuard tests.
"""

import sys
from pathlib import Path
from typing import Dict, List, Sequence, Set, Tuple

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from supportguard.datatypes.errors import ActionError  # noqa: E402
from supportguard.datatypes.moderation_datatypes import (  # noqa: E402
    InboundMessage,
    MemberRole,
    SenderInfo,
    StoryInfo,
)


class FakePlatform:
    """In-memory PlatformClient recording every call in order."""

    def __init__(self) -> None:
        self.calls: List[Tuple] = []
        self.roles: Dict[int, MemberRole] = {}
        self.failing: Set[str] = set()

    def _maybe_fail(self, action: str) -> None:
        if action in self.failing:
            raise ActionError(action, "simulated failure")

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        self.calls.append(("delete", chat_id, message_id))
        self._maybe_fail("delete")

    async def ban_user(self, chat_id: int, user_id: int) -> None:
        self.calls.append(("ban", chat_id, user_id))
        self._maybe_fail("ban")

    async def send_message(self, chat_id: int, text: str) -> None:
        self.calls.append(("notify", chat_id, text))
        self._maybe_fail("notify")

    async def get_member_role(self, chat_id: int, user_id: int) -> MemberRole:
        self.calls.append(("role_lookup", chat_id, user_id))
        self._maybe_fail("role_lookup")
        return self.roles.get(user_id, MemberRole.MEMBER)

    @property
    def actions(self) -> List[str]:
        """Names of enforcement calls, role lookups excluded."""
        return [call[0] for call in self.calls if call[0] != "role_lookup"]


class ScriptedClassifier:
    """Classifier returning scripted replies; exceptions in the script are raised."""

    def __init__(self, replies: Sequence = ("normal",)) -> None:
        self.replies = list(replies)
        self.requests: List[Tuple[List[str], str | None]] = []

    async def classify(self, messages: Sequence[str], display_name: str | None = None) -> str:
        self.requests.append((list(messages), display_name))
        reply = self.replies[min(len(self.requests), len(self.replies)) - 1]
        if isinstance(reply, BaseException):
            raise reply
        return reply


SUPPORT_CHAT = -1001
AUDIT_CHAT = -2002
OWNER_ID = 1


def make_message(
    text: str | None = "hello",
    *,
    user_id: int = 42,
    username: str | None = "alice",
    first_name: str | None = "Alice",
    chat_id: int = SUPPORT_CHAT,
    message_id: int = 100,
    caption: str | None = None,
    story: StoryInfo | None = None,
) -> InboundMessage:
    return InboundMessage(
        chat_id=chat_id,
        message_id=message_id,
        sender=SenderInfo(id=user_id, username=username, first_name=first_name),
        text=text,
        caption=caption,
        story=story,
    )


@pytest.fixture()
def platform() -> FakePlatform:
    return FakePlatform()
