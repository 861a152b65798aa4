"""Bounded retry around the classifier with verdict normalization."""

from __future__ import annotations

from typing import Protocol, Sequence

from supportguard.datatypes.errors import ClassificationExhausted, ProviderError
from supportguard.datatypes.moderation_datatypes import Verdict
from supportguard.util.logger import get_logger

logger = get_logger("retry_policy")


class Classifier(Protocol):
    async def classify(self, messages: Sequence[str], display_name: str | None = None) -> str: ...


def normalize_verdict(raw: str) -> Verdict | None:
    """Map a raw model reply onto a verdict by substring, ``delete`` taking precedence.

    Returns None when the reply mentions neither token.
    """
    text = raw.lower()
    if Verdict.DELETE.value in text:
        return Verdict.DELETE
    if Verdict.NORMAL.value in text:
        return Verdict.NORMAL
    return None


async def classify_with_retry(
    classifier: Classifier,
    messages: Sequence[str],
    display_name: str | None = None,
    max_attempts: int = 3,
) -> Verdict:
    """Classify ``messages``, retrying immediately on provider errors or unusable replies.

    Attempts run one after another with no delay. The first usable verdict is
    returned without consuming further attempts.

    Raises:
        ClassificationExhausted: after ``max_attempts`` failed or unusable attempts.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_response: str | None = None
    for attempt in range(1, max_attempts + 1):
        logger.info("[RETRY] Attempt %d/%d: analyzing %d message(s)", attempt, max_attempts, len(messages))
        try:
            raw = await classifier.classify(messages, display_name)
        except ProviderError as exc:
            logger.warning("[RETRY] Attempt %d/%d failed: %s", attempt, max_attempts, exc)
            last_response = None
            continue

        last_response = raw
        verdict = normalize_verdict(raw)
        if verdict is not None:
            logger.info("[RETRY] Classified as %s on attempt %d", verdict, attempt)
            return verdict

        logger.warning("[RETRY] Unexpected result %r on attempt %d, retrying", raw, attempt)

    raise ClassificationExhausted(max_attempts, last_response)
