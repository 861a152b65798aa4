"""
Core data structures for the moderation pipeline.

Records are keyed only by the platform user
and chat identifiers, with no links between them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List


class Verdict(Enum):
    """Binary classification outcome for a sender's recent messages."""

    DELETE = "delete"
    NORMAL = "normal"

    def __str__(self) -> str:
        return self.value


class MemberRole(Enum):
    """Group membership status as reported by the platform."""

    OWNER = "owner"
    CREATOR = "creator"
    ADMINISTRATOR = "administrator"
    MEMBER = "member"
    RESTRICTED = "restricted"
    LEFT = "left"
    KICKED = "kicked"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str | None) -> "MemberRole":
        """Map a raw platform status string onto a role, defaulting to UNKNOWN."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_privileged(self) -> bool:
        """True for roles that are never moderated."""
        return self in (MemberRole.OWNER, MemberRole.CREATOR, MemberRole.ADMINISTRATOR)


class RoleCheckTiming(Enum):
    """When the text branch looks up the sender's role."""

    BEFORE = "before"
    AFTER_VERDICT = "after_verdict"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str | None, default: "RoleCheckTiming | None" = None) -> "RoleCheckTiming":
        """Parse a config value, accepting ``after-verdict`` and ``after_verdict`` alike."""
        if value is None:
            return default or cls.AFTER_VERDICT
        normalized = str(value).strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            return default or cls.AFTER_VERDICT


class ModerationOutcome(Enum):
    """Terminal outcome of handling one inbound message."""

    NO_ACTION = "no_action"
    MEDIA_ENFORCEMENT = "media_enforcement"
    TEXT_ENFORCEMENT = "text_enforcement"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True, frozen=True)
class UserMessageRecord:
    """One stored text or caption from a sender.

    Attributes:
        content: The message text or caption.
        timestamp: When the message was recorded.
    """
    content: str
    timestamp: datetime


@dataclass(slots=True, frozen=True)
class SenderInfo:
    """The author of an inbound message."""
    id: int
    username: str | None = None
    first_name: str | None = None

    @property
    def display_name(self) -> str:
        """Username if set, else first name, else the numeric id."""
        return self.username or self.first_name or str(self.id)


@dataclass(slots=True, frozen=True)
class StoryInfo:
    """Metadata of a shared story attached to a message."""
    chat_username: str | None = None
    chat_title: str | None = None


@dataclass(slots=True, frozen=True)
class InboundMessage:
    """Platform-neutral view of an inbound group message.

    Attributes:
        chat_id: Chat the message was posted in.
        message_id: Platform message identifier within the chat.
        sender: The author.
        text: Message text, if any.
        caption: Media caption, if any.
        story: Present when the message shares a story or status post.
    """
    chat_id: int
    message_id: int
    sender: SenderInfo
    text: str | None = None
    caption: str | None = None
    story: StoryInfo | None = None

    @property
    def content(self) -> str | None:
        """Caption takes precedence over text; empty strings count as missing."""
        return self.caption or self.text or None


@dataclass(slots=True)
class ActionResult:
    """Outcome of one platform action.

    Attributes:
        action: ``delete``, ``notify``, ``ban`` or ``role_lookup``.
        ok: Whether the action succeeded.
        error: Failure description when ``ok`` is False.
    """
    action: str
    ok: bool
    error: str | None = None


@dataclass(slots=True)
class ModerationResult:
    """What the engine decided for one inbound message and which actions it attempted."""
    outcome: ModerationOutcome
    reason: str
    verdict: Verdict | None = None
    actions: List[ActionResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """True when every attempted action succeeded."""
        return all(action.ok for action in self.actions)
