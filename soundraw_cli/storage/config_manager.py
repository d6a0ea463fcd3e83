"""
Manages loading and saving of the INI configuration file holding the Soundraw
credential record and the local application settings.
"""

import configparser
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from soundraw_cli.exceptions import ConfigurationError
from soundraw_cli.models.config import AppSettings, SoundrawConfig

log = logging.getLogger(__name__)

CREDENTIAL_KEYS = ("token", "api_base_url", "created_at")
SETTINGS_KEYS = tuple(AppSettings.model_fields)


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path

    def _read(self) -> configparser.ConfigParser:
        parser = configparser.ConfigParser(interpolation=None)
        if not self.config_file_path.is_file():
            return parser
        try:
            parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e
        return parser

    def _write(self, parser: configparser.ConfigParser) -> None:
        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                parser.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def save_credentials(self, token: str, api_base_url: str) -> SoundrawConfig:
        """
        Validates and stores a new credential record, overwriting any existing one.
        Local settings in the same file are preserved.

        Raises:
            ConfigurationError: If the token or base URL is invalid.
        """
        try:
            config = SoundrawConfig(
                token=token,
                api_base_url=api_base_url,
                created_at=datetime.now(timezone.utc),
            )
        except ValidationError as e:
            raise ConfigurationError(_first_error(e)) from e

        parser = self._read()
        section = parser["DEFAULT"]
        section["token"] = config.token
        section["api_base_url"] = config.api_base_url
        section["created_at"] = config.created_at.isoformat()
        self._write(parser)
        log.debug(f"Saved credentials to {self.config_file_path}")
        return config

    def get_credentials(self) -> SoundrawConfig | None:
        """Returns the stored credential record, or None if it is incomplete."""
        section = self._read()["DEFAULT"]
        token = section.get("token", "").strip()
        api_base_url = section.get("api_base_url", "").strip()
        if not token or not api_base_url:
            return None
        return _parse_credentials(section)

    def require_credentials(self) -> SoundrawConfig:
        """
        Like get_credentials but raises when the token or base URL is missing.
        """
        section = self._read()["DEFAULT"]
        if not section.get("token", "").strip():
            raise ConfigurationError(
                "No API token found. Please set up your token first."
            )
        if not section.get("api_base_url", "").strip():
            raise ConfigurationError(
                "No API base URL found. Please set up your configuration first."
            )
        return _parse_credentials(section)

    def delete_credentials(self) -> None:
        """Removes the credential record, keeping local settings."""
        parser = self._read()
        section = parser["DEFAULT"]
        removed = False
        for key in CREDENTIAL_KEYS:
            if key in section:
                del section[key]
                removed = True
        if removed:
            self._write(parser)
            log.debug("Deleted stored credentials.")

    def has_valid_config(self) -> bool:
        try:
            return self.get_credentials() is not None
        except ConfigurationError:
            return False

    def load_settings(self, overrides: dict[str, Any] | None = None) -> AppSettings:
        """
        Loads local settings, applying non-None overrides from the command line.
        """
        section = self._read()["DEFAULT"]
        values: dict[str, Any] = {
            key: section[key] for key in SETTINGS_KEYS if section.get(key)
        }
        if overrides:
            values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return AppSettings(**values)
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed:\n{e}"
            ) from e

    def save_setting(self, key: str, value: str) -> AppSettings:
        """Validates and persists a single local setting."""
        if key not in SETTINGS_KEYS:
            raise ConfigurationError(
                f"Unknown setting '{key}'. Valid keys: {', '.join(SETTINGS_KEYS)}."
            )
        settings = self.load_settings({key: value})
        parser = self._read()
        parser["DEFAULT"][key] = str(getattr(settings, key))
        self._write(parser)
        return settings

    def get_config_as_dict(self) -> dict[str, str]:
        return dict(self._read()["DEFAULT"])


def _first_error(error: ValidationError) -> str:
    errors = error.errors()
    if not errors:
        return str(error)
    return str(errors[0].get("msg", error)).removeprefix("Value error, ")


def _parse_credentials(section: configparser.SectionProxy) -> SoundrawConfig:
    values: dict[str, Any] = {
        "token": section.get("token", "").strip(),
        "api_base_url": section.get("api_base_url", "").strip(),
    }
    if section.get("created_at"):
        values["created_at"] = section["created_at"]
    try:
        return SoundrawConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(
            f"Stored configuration is invalid: {_first_error(e)} "
            "Run 'soundraw-cli setup' again."
        ) from e
