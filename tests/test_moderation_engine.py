"""Tests for moderation_engine module."""

import asyncio

import pytest

from conftest import AUDIT_CHAT, OWNER_ID, SUPPORT_CHAT, FakePlatform, ScriptedClassifier, make_message
from supportguard.datatypes.errors import ProviderError
from supportguard.datatypes.moderation_datatypes import (
    MemberRole,
    ModerationOutcome,
    RoleCheckTiming,
    StoryInfo,
    Verdict,
)
from supportguard.history.history_store import HistoryStore
from supportguard.moderation.moderation_engine import EngineConfig, ModerationEngine

WHITELISTED_ID = 77


def make_engine(
    platform: FakePlatform,
    classifier: ScriptedClassifier | None = None,
    history: HistoryStore | None = None,
    **overrides,
) -> ModerationEngine:
    config = EngineConfig(
        owner_id=OWNER_ID,
        support_chat_id=SUPPORT_CHAT,
        audit_chat_id=AUDIT_CHAT,
        bypass_whitelist=frozenset({WHITELISTED_ID}),
        **overrides,
    )
    return ModerationEngine(
        config,
        history=history if history is not None else HistoryStore(),
        classifier=classifier if classifier is not None else ScriptedClassifier(["normal"]),
        platform=platform,
    )


STORY = StoryInfo(chat_username="promo_channel", chat_title="Free money")


class TestIdentityBypass:
    """Owner and whitelisted senders are never moderated."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id, reason", [(OWNER_ID, "owner"), (WHITELISTED_ID, "whitelisted")])
    @pytest.mark.parametrize(
        "message_kwargs",
        [
            {"text": "LEVERAGE 10x, DM me for signals"},
            {"text": None, "story": STORY},
        ],
    )
    async def test_no_platform_calls(self, platform, user_id, reason, message_kwargs):
        classifier = ScriptedClassifier(["delete"])
        engine = make_engine(platform, classifier)

        result = await engine.handle(make_message(user_id=user_id, **message_kwargs))

        assert result.outcome is ModerationOutcome.NO_ACTION
        assert result.reason == reason
        assert platform.calls == []
        assert classifier.requests == []


class TestStoryBranch:
    """Shared stories go straight to enforcement."""

    @pytest.mark.asyncio
    async def test_non_admin_story_is_deleted_reported_and_banned(self, platform):
        classifier = ScriptedClassifier(["normal"])
        engine = make_engine(platform, classifier)

        result = await engine.handle(make_message(text=None, story=STORY, message_id=555))

        assert result.outcome is ModerationOutcome.MEDIA_ENFORCEMENT
        assert platform.actions == ["delete", "notify", "ban"]
        assert platform.calls[1] == ("delete", SUPPORT_CHAT, 555)
        notify = platform.calls[2]
        assert notify[1] == AUDIT_CHAT
        assert notify[2] == (
            "Deleted story or media post from user: alice\nDetails:\n"
            'Shared story from @promo_channel: "Free money"'
        )
        assert platform.calls[3] == ("ban", SUPPORT_CHAT, 42)
        assert classifier.requests == []

    @pytest.mark.asyncio
    async def test_story_enforced_outside_support_chat(self, platform):
        engine = make_engine(platform)

        result = await engine.handle(make_message(text=None, story=STORY, chat_id=-999))

        assert result.outcome is ModerationOutcome.MEDIA_ENFORCEMENT
        assert platform.actions == ["delete", "notify", "ban"]

    @pytest.mark.asyncio
    async def test_story_metadata_defaults(self, platform):
        engine = make_engine(platform)

        await engine.handle(make_message(text=None, username=None, first_name="Eve", story=StoryInfo()))

        text = platform.calls[2][2]
        assert text.startswith("Deleted story or media post from user: Eve")
        assert 'Shared story from @unknown: "No Title"' in text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [MemberRole.ADMINISTRATOR, MemberRole.CREATOR, MemberRole.OWNER])
    async def test_privileged_story_is_ignored(self, platform, role):
        platform.roles[42] = role
        engine = make_engine(platform)

        result = await engine.handle(make_message(text=None, story=STORY))

        assert result.outcome is ModerationOutcome.NO_ACTION
        assert result.reason == "admin"
        assert platform.actions == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "failing, expected",
        [
            ("delete", ["delete"]),
            ("notify", ["delete", "notify"]),
            ("ban", ["delete", "notify", "ban"]),
        ],
    )
    async def test_failed_step_stops_chain(self, platform, failing, expected):
        platform.failing.add(failing)
        engine = make_engine(platform)

        result = await engine.handle(make_message(text=None, story=STORY))

        assert platform.actions == expected
        assert [a.action for a in result.actions] == expected
        assert result.actions[-1].ok is False
        assert not result.succeeded

    @pytest.mark.asyncio
    async def test_role_lookup_failure_fails_open(self, platform):
        platform.failing.add("role_lookup")
        engine = make_engine(platform)

        result = await engine.handle(make_message(text=None, story=STORY))

        assert result.outcome is ModerationOutcome.NO_ACTION
        assert result.reason == "role_lookup_failed"
        assert platform.actions == []


class TestTextBranchGuards:
    """Messages the text branch never classifies."""

    @pytest.mark.asyncio
    async def test_captionless_media_ignored(self, platform):
        classifier = ScriptedClassifier(["delete"])
        engine = make_engine(platform, classifier)

        result = await engine.handle(make_message(text=None, caption=None))

        assert result.reason == "no_text"
        assert platform.calls == []
        assert classifier.requests == []

    @pytest.mark.asyncio
    async def test_other_chat_ignored_before_classification(self, platform):
        classifier = ScriptedClassifier(["delete"])
        history = HistoryStore()
        engine = make_engine(platform, classifier, history)

        result = await engine.handle(
            make_message("Guaranteed profits with 20x leverage, DM me now!", chat_id=-5555)
        )

        assert result.outcome is ModerationOutcome.NO_ACTION
        assert result.reason == "outside_support_chat"
        assert platform.calls == []
        assert classifier.requests == []
        assert history.recent(42) == []

    @pytest.mark.asyncio
    async def test_caption_is_classified(self, platform):
        classifier = ScriptedClassifier(["normal"])
        engine = make_engine(platform, classifier)

        await engine.handle(make_message(text=None, caption="photo of my error screen"))

        assert classifier.requests == [(["photo of my error screen"], "alice")]


class TestTextBranchClassification:
    """Batch building, history recording and verdict handling."""

    @pytest.mark.asyncio
    async def test_normal_verdict_takes_no_action_but_records(self, platform):
        history = HistoryStore()
        engine = make_engine(platform, ScriptedClassifier(["normal"]), history)

        result = await engine.handle(make_message("How do I stake NEAR?"))

        assert result.outcome is ModerationOutcome.NO_ACTION
        assert result.reason == "normal"
        assert result.verdict is Verdict.NORMAL
        assert platform.calls == []
        assert history.recent(42) == ["How do I stake NEAR?"]

    @pytest.mark.asyncio
    async def test_batch_is_nine_prior_plus_current(self, platform):
        history = HistoryStore()
        for i in range(15):
            history.record(42, f"old {i}")
        classifier = ScriptedClassifier(["normal"])
        engine = make_engine(platform, classifier, history)

        await engine.handle(make_message("current"))

        batch, display_name = classifier.requests[0]
        assert batch == [f"old {i}" for i in range(6, 15)] + ["current"]
        assert display_name == "alice"

    @pytest.mark.asyncio
    async def test_classification_failure_fails_open_and_still_records(self, platform):
        history = HistoryStore()
        classifier = ScriptedClassifier([ProviderError("down")])
        engine = make_engine(platform, classifier, history)

        result = await engine.handle(make_message("DM me for signals"))

        assert result.outcome is ModerationOutcome.NO_ACTION
        assert result.reason == "classification_failed"
        assert len(classifier.requests) == 3
        assert platform.calls == []
        assert history.recent(42) == ["DM me for signals"]

    @pytest.mark.asyncio
    async def test_max_attempts_is_configurable(self, platform):
        classifier = ScriptedClassifier(["???"])
        engine = make_engine(platform, classifier, max_attempts=2)

        await engine.handle(make_message("hmm"))

        assert len(classifier.requests) == 2

    @pytest.mark.asyncio
    async def test_end_to_end_promoter_after_nine_questions(self, platform):
        """Nine legitimate questions then a promotion: deleted, reported once, banned."""
        history = HistoryStore()
        questions = [f"How do I fix wallet issue number {i}?" for i in range(9)]
        promo = "Trade with 10x leverage for guaranteed profit, DM me to join"
        classifier = ScriptedClassifier(["normal"] * 9 + ["delete"])
        engine = make_engine(platform, classifier, history)

        for index, question in enumerate(questions):
            result = await engine.handle(make_message(question, message_id=index))
            assert result.outcome is ModerationOutcome.NO_ACTION

        result = await engine.handle(make_message(promo, message_id=99))

        assert result.outcome is ModerationOutcome.TEXT_ENFORCEMENT
        assert result.verdict is Verdict.DELETE
        assert classifier.requests[-1] == (questions + [promo], "alice")
        assert platform.actions == ["delete", "notify", "ban"]
        assert ("delete", SUPPORT_CHAT, 99) in platform.calls
        assert ("ban", SUPPORT_CHAT, 42) in platform.calls
        notifications = [call for call in platform.calls if call[0] == "notify"]
        assert len(notifications) == 1
        assert notifications[0][1] == AUDIT_CHAT
        assert promo in notifications[0][2]
        assert "alice" in notifications[0][2]
        assert notifications[0][2] == f"Deleted and banned user: alice\nMessage:\n\n{promo}"


class TestTextEnforcementOrdering:
    """Failure handling inside the text enforcement sequence."""

    @pytest.mark.asyncio
    async def test_notify_failure_does_not_block_ban(self, platform):
        platform.failing.add("notify")
        engine = make_engine(platform, ScriptedClassifier(["delete"]))

        result = await engine.handle(make_message("spam"))

        assert platform.actions == ["delete", "notify", "ban"]
        assert [a.ok for a in result.actions] == [True, False, True]

    @pytest.mark.asyncio
    async def test_delete_failure_stops_notify_and_ban(self, platform):
        platform.failing.add("delete")
        engine = make_engine(platform, ScriptedClassifier(["delete"]))

        result = await engine.handle(make_message("spam"))

        assert platform.actions == ["delete"]
        assert result.outcome is ModerationOutcome.TEXT_ENFORCEMENT
        assert not result.succeeded


class TestRoleCheckTiming:
    """Admins bypass enforcement under either role check timing."""

    @pytest.mark.asyncio
    async def test_after_verdict_classifies_then_skips_admin(self, platform):
        platform.roles[42] = MemberRole.ADMINISTRATOR
        classifier = ScriptedClassifier(["delete"])
        engine = make_engine(platform, classifier, role_check_timing=RoleCheckTiming.AFTER_VERDICT)

        result = await engine.handle(make_message("spam-looking admin announcement"))

        assert len(classifier.requests) == 1
        assert result.reason == "admin"
        assert result.verdict is Verdict.DELETE
        assert platform.actions == []

    @pytest.mark.asyncio
    async def test_after_verdict_skips_lookup_for_normal(self, platform):
        engine = make_engine(platform, ScriptedClassifier(["normal"]))

        await engine.handle(make_message("hello"))

        assert platform.calls == []

    @pytest.mark.asyncio
    async def test_before_skips_classification_for_admin(self, platform):
        platform.roles[42] = MemberRole.CREATOR
        classifier = ScriptedClassifier(["delete"])
        history = HistoryStore()
        engine = make_engine(platform, classifier, history, role_check_timing=RoleCheckTiming.BEFORE)

        result = await engine.handle(make_message("announcement"))

        assert result.reason == "admin"
        assert classifier.requests == []
        assert history.recent(42) == []
        assert platform.actions == []

    @pytest.mark.asyncio
    async def test_before_still_enforces_members(self, platform):
        engine = make_engine(platform, ScriptedClassifier(["delete"]), role_check_timing=RoleCheckTiming.BEFORE)

        result = await engine.handle(make_message("spam"))

        assert result.outcome is ModerationOutcome.TEXT_ENFORCEMENT
        assert [call[0] for call in platform.calls] == ["role_lookup", "delete", "notify", "ban"]

    @pytest.mark.asyncio
    async def test_role_lookup_failure_prevents_enforcement(self, platform):
        platform.failing.add("role_lookup")
        engine = make_engine(platform, ScriptedClassifier(["delete"]))

        result = await engine.handle(make_message("spam"))

        assert result.reason == "role_lookup_failed"
        assert platform.actions == []


class TestConcurrency:
    """Concurrent messages from one user are serialized."""

    @pytest.mark.asyncio
    async def test_concurrent_messages_from_same_user(self, platform):
        history = HistoryStore()
        seen_batches = []

        class SlowClassifier:
            async def classify(self, messages, display_name=None):
                seen_batches.append(list(messages))
                await asyncio.sleep(0.001)
                return "normal"

        engine = make_engine(platform, SlowClassifier(), history)

        await asyncio.gather(*(engine.handle(make_message(f"m{i}", message_id=i)) for i in range(30)))

        recorded = history.recent(42, 20)
        assert len(recorded) == 20
        assert len(set(recorded)) == 20
        assert recorded == [f"m{i}" for i in range(10, 30)]
        for index, batch in enumerate(seen_batches):
            assert batch == [f"m{i}" for i in range(max(0, index - 9), index + 1)]
