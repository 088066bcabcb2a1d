import os
from typing import Any, Dict

from eticket.util.logger import get_logger

logger = get_logger("ticket_settings")

TARGET_POLICIES = ("require", "author")
_TRUE_STRINGS = ("true", "yes", "on", "1")
_FALSE_STRINGS = ("false", "no", "off", "0")


class TicketSettings:
    """Typed accessors for the ``tickets`` section of the configuration."""

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    @property
    def owner_id(self) -> int:
        """Fixed owner identity. ``ETICKET_OWNER_ID`` overrides the YAML value."""
        raw = os.getenv("ETICKET_OWNER_ID") or self.data.get("owner_id") or 0
        try:
            return int(raw)
        except (TypeError, ValueError):
            return 0

    @property
    def channel_prefix(self) -> str:
        return str(self.data.get("channel_prefix") or "ticket-")

    @property
    def history_limit(self) -> int:
        return max(1, int(self.data.get("history_limit", 10)))

    @property
    def grace_delay_seconds(self) -> float:
        return float(self.data.get("grace_delay_seconds", 5.0))

    @property
    def opening_delay_seconds(self) -> float:
        return float(self.data.get("opening_delay_seconds", 1.5))

    @property
    def mute_hours(self) -> int:
        return int(self.data.get("mute_hours", 24))

    @property
    def platform_timeout(self) -> float:
        return float(self.data.get("platform_timeout", 10.0))

    @property
    def staff_visibility(self) -> bool:
        return self._flag("staff_visibility", True)

    @property
    def target_policy(self) -> str:
        """How a sanction without ``targetUserId`` is handled.

        ``require`` drops the action, ``author`` sanctions the message author.
        Unknown values fall back to ``require``.
        """
        value = str(self.data.get("target_policy", "require")).lower()
        return value if value in TARGET_POLICIES else "require"

    @property
    def log_channel_name(self) -> str:
        return str(self.data.get("log_channel_name") or "eticket-logs")

    def _flag(self, key: str, default: bool) -> bool:
        """Boolean option that also accepts quoted YAML strings such as ``"false"``."""
        value = self.data.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if text in _TRUE_STRINGS:
                return True
            if text in _FALSE_STRINGS:
                return False
        elif isinstance(value, int):
            return value != 0
        logger.warning("[TICKET SETTINGS] Invalid value %r for %s; using %s", value, key, default)
        return default
