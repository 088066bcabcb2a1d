import os
from typing import Any, Dict


class AISettings:
    """Helper exposing typed accessors for the language-model backend.

    This class provides a minimal, explicit API (`get`, `as_dict`, and
    convenience properties) over the ``ai_settings`` mapping of the YAML file.
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
    def base_url(self) -> str | None:
        val = self.data.get("base_url") or os.getenv("OPENAI_BASE_URL")
        return str(val) if val else None

    @property
    def api_key(self) -> str:
        # The OpenAI client refuses an empty key even for local backends
        return str(self.data.get("api_key") or os.getenv("OPENAI_API_KEY") or "not-needed")

    @property
    def model_name(self) -> str:
        return str(self.data.get("model_name") or "gpt-4o-mini")

    @property
    def request_timeout(self) -> float:
        return float(self.data.get("request_timeout", 30.0))

    @property
    def system_prompt(self) -> str:
        return str(self.data.get("system_prompt") or "")
