"""
Exception types raised across the moderation pipeline.

Only ``ConfigError`` is fatal. The others are recovered at a defined layer:
``ProviderError`` by the retry policy, ``ClassificationExhausted`` by the
moderation engine, and ``ActionError`` by the enforcement executor.
"""

from __future__ import annotations


class ConfigError(Exception):
    """A required setting is missing or malformed at startup."""


class ProviderError(Exception):
    """The classification provider call failed (network, auth, quota, timeout or empty reply)."""


class ClassificationExhausted(Exception):
    """Every classification attempt failed or returned an unusable verdict.

    Attributes:
        attempts: Number of attempts that were consumed.
        last_response: Raw text of the last attempt, or None if that attempt raised.
    """

    def __init__(self, attempts: int, last_response: str | None = None) -> None:
        super().__init__(f"Failed to classify messages after {attempts} attempts")
        self.attempts = attempts
        self.last_response = last_response


class ActionError(Exception):
    """A platform action (delete, ban, notify, role lookup) failed.

    Attributes:
        action: Name of the action that failed.
    """

    def __init__(self, action: str, message: str) -> None:
        super().__init__(f"{action} failed: {message}")
        self.action = action
