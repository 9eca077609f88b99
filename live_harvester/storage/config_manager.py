"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from live_harvester.exceptions import ConfigurationError
from live_harvester.models.config import HarvestConfig

log = logging.getLogger(__name__)

# Defaults written for keys that have no model default.
DEFAULT_SETTINGS: dict[str, Any] = {
    "result_path": "result",
    "download_path": "download",
    "merge_path": "merge",
    "decrypt_script": "./decrypt.sh",
}

_FLOAT_KEYS = ("update_duration", "fetch_timeout")
_INT_KEYS = ("max_segment_num", "target_duration")


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> HarvestConfig:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated HarvestConfig object.

        Raises:
            ConfigurationError: If the config file is missing, invalid, or validation
            fails.
        """
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'live-harvester init' first."
            )

        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        if self._migrate_if_needed():
            log.info(
                "[yellow]Configuration file was updated with new default values."
                "[/yellow]"
            )

        try:
            config_from_file = self._get_config_as_dict()
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

        # Override with CLI options
        if cli_options:
            config_from_file.update(cli_options)

        try:
            return HarvestConfig(**config_from_file)
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

        for key in sorted(HarvestConfig.get_ini_keys()):
            value = settings.get(key, self._default_for(key))
            if value is not None:
                config["DEFAULT"][key] = str(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    @staticmethod
    def _default_for(key: str) -> Any:
        if key in DEFAULT_SETTINGS:
            return DEFAULT_SETTINGS[key]
        field = HarvestConfig.model_fields[key]
        if field.default_factory is not None:
            return field.default_factory()
        if field.is_required():
            return ""
        return field.default

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        data: dict[str, Any] = {
            key: section.get(key)
            for key in HarvestConfig.get_ini_keys()
            if section.get(key) is not None
        }
        for key in _INT_KEYS:
            if key in data:
                data[key] = section.getint(key)
        for key in _FLOAT_KEYS:
            if key in data:
                data[key] = section.getfloat(key)
        if not data.get("proxy"):
            data.pop("proxy", None)
        return data

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        needs_saving = False
        config_section = self._parser["DEFAULT"]

        for key in sorted(HarvestConfig.get_ini_keys()):
            if key in config_section:
                continue
            default_value = self._default_for(key)
            if default_value is None or HarvestConfig.model_fields[key].is_required():
                # Secrets and required paths are never invented.
                continue
            config_section[key] = str(default_value)
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
