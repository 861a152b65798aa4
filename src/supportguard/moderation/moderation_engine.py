"""
Moderation decision pipeline for a single support group.

Each inbound message is evaluated on its own; the only state carried between
messages is the per-user history. The order of checks is:

1. Identity bypass: the owner and whitelisted users are never moderated.
2. Story branch: a shared story from a non-admin is deleted, reported to the
   audit chat and its sender banned, as a strict chain where a failed step
   stops the rest.
3. Text branch: captionless media and messages outside the support chat are
   ignored. Otherwise the sender's prior messages plus the current one are
   classified and, on a ``delete`` verdict, the message is deleted, the audit
   chat notified (best effort) and the sender banned.

Classification failures fail open: the message stays and nobody is banned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import FrozenSet

from supportguard.ai.retry_policy import Classifier, classify_with_retry
from supportguard.datatypes.errors import ClassificationExhausted
from supportguard.datatypes.moderation_datatypes import (
    InboundMessage,
    ModerationOutcome,
    ModerationResult,
    RoleCheckTiming,
    StoryInfo,
    Verdict,
)
from supportguard.history.history_store import HistorySource
from supportguard.messaging.base import PlatformClient
from supportguard.moderation.enforcement import (
    EnforcementExecutor,
    format_story_notification,
    format_text_notification,
)
from supportguard.util.logger import get_logger

logger = get_logger("moderation_engine")

PREVIEW_CHARS = 50


def preview_text(text: str) -> str:
    """First ``PREVIEW_CHARS`` characters of ``text`` for log lines."""
    return text if len(text) <= PREVIEW_CHARS else text[:PREVIEW_CHARS] + "..."


@dataclass(frozen=True)
class EngineConfig:
    """Deployment-specific knobs of the moderation engine.

    Attributes:
        owner_id: Sender that is never moderated.
        support_chat_id: The only chat whose text messages are classified.
        audit_chat_id: Chat receiving enforcement notifications.
        bypass_whitelist: Further senders that are never moderated.
        role_check_timing: Whether admins are filtered before classifying or
            only once a ``delete`` verdict is in.
        batch_size: Messages sent to the classifier, current one included.
        max_attempts: Classification attempts before giving up.
    """
    owner_id: int
    support_chat_id: int
    audit_chat_id: int
    bypass_whitelist: FrozenSet[int] = field(default_factory=frozenset)
    role_check_timing: RoleCheckTiming = RoleCheckTiming.AFTER_VERDICT
    batch_size: int = 10
    max_attempts: int = 3


class ModerationEngine:
    """
    Decide and enforce moderation for inbound messages.

    Args:
        config: Engine configuration.
        history: Per-user history backend.
        classifier: Object with an async ``classify(messages, display_name)``.
        platform: Platform action surface used for role lookups and enforcement.
    """

    def __init__(
        self,
        config: EngineConfig,
        history: HistorySource,
        classifier: Classifier,
        platform: PlatformClient,
    ) -> None:
        self._config = config
        self._history = history
        self._classifier = classifier
        self._executor = EnforcementExecutor(platform)

    @property
    def config(self) -> EngineConfig:
        return self._config

    async def handle(self, message: InboundMessage) -> ModerationResult:
        """Run one inbound message through the pipeline and report what happened."""
        sender = message.sender

        if sender.id == self._config.owner_id:
            logger.info("[ENGINE] Message from owner (%s), skipping moderation.", sender.display_name)
            return ModerationResult(ModerationOutcome.NO_ACTION, "owner")

        if sender.id in self._config.bypass_whitelist:
            logger.info("[ENGINE] Message from whitelisted user (%s), skipping moderation.", sender.display_name)
            return ModerationResult(ModerationOutcome.NO_ACTION, "whitelisted")

        if message.story is not None:
            return await self._handle_story(message, message.story)

        return await self._handle_text(message)

    # --------------------------
    # Story branch
    # --------------------------
    async def _handle_story(self, message: InboundMessage, story: StoryInfo) -> ModerationResult:
        sender = message.sender
        logger.info("[ENGINE] Message from %s (ID: %s) shares a story.", sender.display_name, sender.id)

        role, lookup = await self._executor.role(message.chat_id, sender.id)
        if not lookup.ok:
            return ModerationResult(ModerationOutcome.NO_ACTION, "role_lookup_failed")
        if role is not None and role.is_privileged:
            logger.info("[ENGINE] Story from %s (%s), skipping.", role, sender.display_name)
            return ModerationResult(ModerationOutcome.NO_ACTION, "admin")

        result = ModerationResult(ModerationOutcome.MEDIA_ENFORCEMENT, "story")

        deleted = await self._executor.delete(message.chat_id, message.message_id)
        result.actions.append(deleted)
        if not deleted.ok:
            return result

        notified = await self._executor.notify(
            self._config.audit_chat_id, format_story_notification(sender, story)
        )
        result.actions.append(notified)
        if not notified.ok:
            return result

        result.actions.append(await self._executor.ban(message.chat_id, sender))
        return result

    # --------------------------
    # Text branch
    # --------------------------
    async def _handle_text(self, message: InboundMessage) -> ModerationResult:
        sender = message.sender
        content = message.content

        if not content:
            logger.debug("[ENGINE] Non-text or captionless message from %s, ignoring.", sender.display_name)
            return ModerationResult(ModerationOutcome.NO_ACTION, "no_text")

        if message.chat_id != self._config.support_chat_id:
            logger.debug("[ENGINE] Message from an untracked chat (%s) ignored.", message.chat_id)
            return ModerationResult(ModerationOutcome.NO_ACTION, "outside_support_chat")

        logger.info("[ENGINE] New message from %s: %s", sender.display_name, preview_text(content))

        if self._config.role_check_timing is RoleCheckTiming.BEFORE:
            bypass = await self._privileged_bypass(message)
            if bypass is not None:
                return bypass

        async with self._history.user_lock(sender.id):
            batch = self._history.recent(sender.id, self._config.batch_size - 1)
            batch.append(content)
            self._history.record(sender.id, content, datetime.now(timezone.utc))

            try:
                verdict = await classify_with_retry(
                    self._classifier,
                    batch,
                    sender.display_name,
                    self._config.max_attempts,
                )
            except ClassificationExhausted as exc:
                logger.error(
                    "[ENGINE] Could not classify messages from %s after %d attempts; leaving message in place.",
                    sender.display_name,
                    exc.attempts,
                )
                return ModerationResult(ModerationOutcome.NO_ACTION, "classification_failed")

            logger.info(
                "[ENGINE] User %s classified as %s from %d message(s)", sender.display_name, verdict, len(batch)
            )
            if verdict is Verdict.NORMAL:
                return ModerationResult(ModerationOutcome.NO_ACTION, "normal", verdict)

            if self._config.role_check_timing is RoleCheckTiming.AFTER_VERDICT:
                bypass = await self._privileged_bypass(message)
                if bypass is not None:
                    bypass.verdict = verdict
                    return bypass

            return await self._enforce_text(message, content, verdict)

    async def _privileged_bypass(self, message: InboundMessage) -> ModerationResult | None:
        """Return a no-action result when the sender is an admin or the lookup failed."""
        role, lookup = await self._executor.role(message.chat_id, message.sender.id)
        if not lookup.ok:
            return ModerationResult(ModerationOutcome.NO_ACTION, "role_lookup_failed")
        if role is not None and role.is_privileged:
            logger.info("[ENGINE] Message is from %s %s, skipping moderation.", role, message.sender.display_name)
            return ModerationResult(ModerationOutcome.NO_ACTION, "admin")
        return None

    async def _enforce_text(self, message: InboundMessage, content: str, verdict: Verdict) -> ModerationResult:
        sender = message.sender
        result = ModerationResult(ModerationOutcome.TEXT_ENFORCEMENT, "delete_verdict", verdict)

        deleted = await self._executor.delete(message.chat_id, message.message_id)
        result.actions.append(deleted)
        if not deleted.ok:
            return result

        # Notification is best effort; the ban goes ahead either way
        result.actions.append(
            await self._executor.notify(self._config.audit_chat_id, format_text_notification(sender, content))
        )
        result.actions.append(await self._executor.ban(message.chat_id, sender))
        return result
