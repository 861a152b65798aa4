"""Secrets and chat identities read from the process environment.

Every required key may also be given under the name used by earlier
deployments (e.g. ``TELEGRAM_BOT_TOKEN`` for ``BOT_TOKEN``); the primary name wins.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Mapping

from dotenv import load_dotenv

from supportguard.datatypes.errors import ConfigError
from supportguard.util.logger import get_logger

logger = get_logger("env_settings")


# primary name -> legacy alias
REQUIRED_KEYS: dict[str, str | None] = {
    "BOT_TOKEN": "TELEGRAM_BOT_TOKEN",
    "CLASSIFIER_API_KEY": "OPENAI_API_KEY",
    "SUPPORT_CHAT_ID": "SUPPORT_GROUP_CHAT_ID",
    "AUDIT_CHAT_ID": "DELETED_GROUP_CHAT_ID",
    "OWNER_USER_ID": None,
}


def _lookup(environ: Mapping[str, str], key: str) -> str | None:
    value = environ.get(key)
    if not value or not value.strip():
        alias = REQUIRED_KEYS.get(key)
        value = environ.get(alias) if alias else None
    if value is None or not value.strip():
        return None
    return value.strip()


def _parse_int(key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a valid integer, got {value!r}") from exc


def parse_whitelist(raw: str | None) -> FrozenSet[int]:
    """Parse a comma separated list of user ids, dropping malformed entries."""
    if not raw:
        return frozenset()

    ids = set()
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.add(int(part))
        except ValueError:
            logger.debug("[ENV] Ignoring malformed whitelist entry %r", part)
    return frozenset(ids)


@dataclass(frozen=True)
class BotSettings:
    """Validated startup settings.

    Attributes:
        bot_token: Telegram bot token.
        classifier_api_key: API key of the classification provider.
        support_chat_id: The only chat whose text messages are moderated.
        audit_chat_id: Chat receiving moderation notifications.
        owner_user_id: Sender that is never moderated.
        whitelist_user_ids: Further senders that are never moderated.
        classifier_base_url: Optional OpenAI-compatible endpoint override.
    """
    bot_token: str
    classifier_api_key: str
    support_chat_id: int
    audit_chat_id: int
    owner_user_id: int
    whitelist_user_ids: FrozenSet[int] = field(default_factory=frozenset)
    classifier_base_url: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "BotSettings":
        """Build settings from ``environ`` (defaults to ``os.environ``).

        Raises:
            ConfigError: if required keys are missing or an id is not an integer.
        """
        environ = os.environ if environ is None else environ

        values = {key: _lookup(environ, key) for key in REQUIRED_KEYS}
        missing = [key for key, value in values.items() if value is None]
        if missing:
            raise ConfigError(f"Missing required environment values: {', '.join(missing)}")

        base_url = (environ.get("CLASSIFIER_BASE_URL") or "").strip() or None

        return cls(
            bot_token=values["BOT_TOKEN"],  # type: ignore[arg-type]
            classifier_api_key=values["CLASSIFIER_API_KEY"],  # type: ignore[arg-type]
            support_chat_id=_parse_int("SUPPORT_CHAT_ID", values["SUPPORT_CHAT_ID"]),  # type: ignore[arg-type]
            audit_chat_id=_parse_int("AUDIT_CHAT_ID", values["AUDIT_CHAT_ID"]),  # type: ignore[arg-type]
            owner_user_id=_parse_int("OWNER_USER_ID", values["OWNER_USER_ID"]),  # type: ignore[arg-type]
            whitelist_user_ids=parse_whitelist(environ.get("WHITELIST_USER_IDS")),
            classifier_base_url=base_url,
        )


def load_settings(env_file: Path | None = None) -> BotSettings:
    """Load ``env_file`` into the environment (without overriding) and validate it."""
    if env_file is not None:
        load_dotenv(dotenv_path=env_file, override=False)
    settings = BotSettings.from_env()
    logger.info(
        "[ENV] Loaded settings: support chat %s, audit chat %s, %d whitelisted user(s)",
        settings.support_chat_id,
        settings.audit_chat_id,
        len(settings.whitelist_user_ids),
    )
    return settings
