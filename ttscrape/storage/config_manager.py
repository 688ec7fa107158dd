"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ttscrape.exceptions import ConfigurationError
from ttscrape.models.config import ScrapeConfig

log = logging.getLogger(__name__)

# Environment variables checked, in order, for an msToken
TOKEN_ENV_VARS = ("ms_token", "MS_TOKEN")


def token_from_env() -> str:
    """Returns the msToken set in the environment, or an empty string."""
    for name in TOKEN_ENV_VARS:
        if value := os.getenv(name, "").strip():
            return value
    return ""


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> ScrapeConfig:
        """
        Loads configuration from the INI file, applies the environment token and
        CLI overrides, and validates it.

        A missing file is not an error: defaults are used instead.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated ScrapeConfig object.

        Raises:
            ConfigurationError: If the config file is invalid or validation fails.
        """
        config_from_file: dict[str, Any] = {}
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path)
            except configparser.Error as e:
                raise ConfigurationError(
                    f"Error parsing configuration file: {e}"
                ) from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
            config_from_file = self._get_config_as_dict()
        else:
            log.debug(f"No config file at '{self.config_file_path}', using defaults.")

        if env_token := token_from_env():
            tokens = config_from_file.get("ms_tokens", [])
            if env_token not in tokens:
                config_from_file["ms_tokens"] = [env_token, *tokens]

        if cli_options:
            config_from_file.update(cli_options)

        try:
            config_dir = self.config_file_path.parent
            return ScrapeConfig(**config_from_file, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save.
        """
        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}

        defaults = ScrapeConfig.model_construct()
        for key in sorted(ScrapeConfig.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))
            config["DEFAULT"][key] = self._to_ini_value(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    @staticmethod
    def _to_ini_value(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, list):
            return ",".join(map(str, value))
        return "" if value is None else str(value)

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        try:
            return {
                "ms_tokens": [
                    t.strip()
                    for t in section.get("ms_tokens", "").split(",")
                    if t.strip()
                ],
                "num_sessions": section.getint("num_sessions", 1),
                "max_concurrency": section.getint("max_concurrency", 10),
                "video_count": section.getint("video_count", 5),
                "sound_limit": section.getint("sound_limit", 10),
                "headless": section.getboolean("headless", True),
                "browser_free": section.getboolean("browser_free", False),
                "browser": section.get("browser", "chromium"),
                "proxy": section.get("proxy", ""),
                "base_url": section.get("base_url", "https://www.tiktok.com"),
                "sleep_after": section.getfloat("sleep_after", 3.0),
                "session_timeout": section.getfloat("session_timeout", 120.0),
                "navigation_timeout": section.getfloat("navigation_timeout", 30.0),
                "request_timeout": section.getfloat("request_timeout", 30.0),
            }
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = ScrapeConfig.model_construct()
        needs_saving = False

        config_section = self._parser["DEFAULT"]

        for key in sorted(ScrapeConfig.get_ini_keys()):
            if key not in config_section:
                config_section[key] = self._to_ini_value(getattr(defaults, key))
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
