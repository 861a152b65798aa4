from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from supportguard.configuration.ai_settings import AISettings
from supportguard.datatypes.moderation_datatypes import RoleCheckTiming
from supportguard.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_COMMUNITY_NAME = "NEARMobile Wallet"
DEFAULT_COMMUNITY_TOPICS = "the NEARMobile wallet, NEAR, and the NPRO token"


class AppConfig:
    """File-lock based accessor around the YAML tuning file.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    typed shortcuts for the moderation, history and AI sections. A missing or
    malformed file behaves like an empty one, so every shortcut has a default.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.warning("[APP CONFIGURATION] Config file %s not found, using defaults.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            if data is not None:
                logger.error("[APP CONFIGURATION] Config %s is not a mapping, ignoring it.", self.config_path)
            return {}
        return data

    def _section(self, name: str) -> Dict[str, Any]:
        value = self._data.get(name, {})
        return value if isinstance(value, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file, replace the in-memory cache and return it."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping. Callers should not mutate it."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def ai_settings(self) -> AISettings:
        return AISettings(self._section("ai_settings"))

    @property
    def role_check_timing(self) -> RoleCheckTiming:
        return RoleCheckTiming.parse(self._section("moderation").get("role_check_timing"))

    @property
    def history_capacity(self) -> int:
        return _positive_int(self._section("moderation").get("history_capacity"), 20)

    @property
    def batch_size(self) -> int:
        return _positive_int(self._section("moderation").get("batch_size"), 10)

    @property
    def community_name(self) -> str:
        return str(self._section("moderation").get("community_name") or DEFAULT_COMMUNITY_NAME)

    @property
    def community_topics(self) -> str:
        return str(self._section("moderation").get("community_topics") or DEFAULT_COMMUNITY_TOPICS)

    @property
    def history_idle_ttl_seconds(self) -> float:
        """Seconds of inactivity after which a user's history is dropped. 0 disables pruning."""
        try:
            return max(0.0, float(self._section("history").get("idle_ttl_seconds", 0)))
        except (TypeError, ValueError):
            return 0.0

    @property
    def history_prune_interval_seconds(self) -> float:
        try:
            value = float(self._section("history").get("prune_interval_seconds", 600.0))
        except (TypeError, ValueError):
            return 600.0
        return value if value > 0 else 600.0


def _positive_int(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
