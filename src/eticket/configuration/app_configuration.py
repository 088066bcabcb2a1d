from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from eticket.configuration.ai_settings import AISettings
from eticket.configuration.ticket_settings import TicketSettings
from eticket.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    the ``ai_settings`` and ``tickets`` sections through typed wrappers.
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
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            logger.error("[APP CONFIGURATION] Config %s is not a mapping; using defaults.", self.config_path)
            return {}
        return data

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    def _section(self, key: str) -> Dict[str, Any]:
        section = self._data.get(key, {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def ai_settings(self) -> AISettings:
        return AISettings(self._section("ai_settings"))

    @property
    def ticket_settings(self) -> TicketSettings:
        return TicketSettings(self._section("tickets"))

    @property
    def system_prompt_template(self) -> str:
        """Return the configured system prompt (or empty string)."""
        return self.ai_settings.system_prompt

    @property
    def database_path(self) -> Path:
        return Path(str(self._data.get("database_path") or "./data/eticket.db")).resolve()


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
