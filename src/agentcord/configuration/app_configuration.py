from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict, List
import yaml

from agentcord.configuration.ai_settings import AISettings
from agentcord.configuration.persona import PersonaSettings
from agentcord.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_COMMAND_PREFIX = "agentic"
DEFAULT_DATABASE_PATH = Path("./data/agentcord.db")


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The file is read once on construction; there is no runtime reload. A missing
    or unreadable file yields an empty mapping, so every accessor falls back to
    its default.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = self.load_from_disk()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                # Acquire a shared lock for reading
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)

                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.warning("[APP CONFIGURATION] Config file %s not found, using defaults.", self.config_path)
            return {}
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            if data is not None:
                logger.error("[APP CONFIGURATION] Config %s is not a mapping, ignoring it.", self.config_path)
            return {}
        return data

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key, {})
        return value if isinstance(value, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    @property
    def data(self) -> Dict[str, Any]:
        """Return the cached configuration mapping. Callers should not mutate it."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def command_prefix(self) -> str:
        """Text a message must start with (case-insensitive) to address the bot."""
        value = str(self._data.get("command_prefix") or "").strip()
        return value or DEFAULT_COMMAND_PREFIX

    @property
    def allow_mention_trigger(self) -> bool:
        """Whether an @mention of the bot also addresses it."""
        return bool(self._data.get("allow_mention_trigger", True))

    @property
    def persona(self) -> PersonaSettings:
        return PersonaSettings.from_mapping(self._section("persona"))

    @property
    def ai_settings(self) -> AISettings:
        """Return the AI endpoint settings wrapped in an AISettings helper."""
        return AISettings(self._section("ai_settings"))

    @property
    def database_path(self) -> Path:
        value = self._section("database").get("path")
        return Path(str(value)) if value else DEFAULT_DATABASE_PATH

    @property
    def content_filter_patterns(self) -> List[str]:
        """Regular expressions checked against messages in guilds with the filter enabled."""
        patterns = self._section("content_filter").get("patterns") or []
        if not isinstance(patterns, list):
            logger.warning("[APP CONFIGURATION] content_filter.patterns must be a list, ignoring it.")
            return []
        return [str(p) for p in patterns if p]


def load_app_config(config_path: Path = CONFIG_PATH) -> AppConfig:
    """Load the application configuration from ``config_path``."""
    config = AppConfig(config_path)
    logger.debug("[APP CONFIGURATION] Loaded %d top-level keys from %s", len(config.data), config_path)
    return config
