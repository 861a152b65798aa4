from typing import Any, Dict

DEFAULT_MODEL_NAME = "gpt-3.5-turbo"
DEFAULT_REQUEST_TIMEOUT = 20.0
DEFAULT_MAX_ATTEMPTS = 3


class AISettings:
    """Helper exposing typed accessors for the ``ai_settings`` block of the app config.

    Unknown keys stay reachable through `get` and `as_dict`.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        """Return the underlying mapping."""
        return self.data

    @property
    def model_name(self) -> str:
        val = self.data.get("model_name")
        return str(val) if val else DEFAULT_MODEL_NAME

    @property
    def base_url(self) -> str | None:
        val = self.data.get("base_url")
        return str(val) if val else None

    @property
    def request_timeout_seconds(self) -> float:
        try:
            val = float(self.data.get("request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT))
        except (TypeError, ValueError):
            return DEFAULT_REQUEST_TIMEOUT
        return val if val > 0 else DEFAULT_REQUEST_TIMEOUT

    @property
    def max_attempts(self) -> int:
        try:
            val = int(self.data.get("max_attempts", DEFAULT_MAX_ATTEMPTS))
        except (TypeError, ValueError):
            return DEFAULT_MAX_ATTEMPTS
        return max(1, val)

    @property
    def system_prompt(self) -> str:
        return str(self.data.get("system_prompt") or "")
