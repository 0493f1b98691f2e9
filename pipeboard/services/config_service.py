import os
import logging
import threading
from pathlib import Path

from dotenv import dotenv_values, set_key
from pydantic import ValidationError

from ..models.config import DOTENV_KEYS, GitLabConfig, StoredConfig
from .errors import ConfigError

logger = logging.getLogger(__name__)


class ConfigService:
    """Reads and writes the GitLab connection settings.

    Two stores are kept in sync: a structured JSON file (authoritative) and a
    legacy flat .env file. Resolution order is defaults, then .env, then the
    JSON file, where only values that are actually set override.
    """

    def __init__(self, config_path: str = ".gitlab-config.json", dotenv_path: str = ".env"):
        self.config_path = Path(config_path)
        self.dotenv_path = Path(dotenv_path)
        # Serializes read-modify-write within this process only; separate
        # processes still race with last-writer-wins.
        self._lock = threading.Lock()

    def resolve(self) -> GitLabConfig:
        config = GitLabConfig()
        config = config.overlay(self._read_dotenv())
        config = config.overlay(self._read_json())
        return config

    def update(self, field: str, value: str) -> GitLabConfig:
        """Set one field in both stores and return the resulting config."""
        if field not in DOTENV_KEYS:
            raise ValueError(f"Unknown config field: {field}")

        with self._lock:
            config = self.resolve().model_copy(update={field: value})
            # Re-validate so blank values become "unset" again
            try:
                config = GitLabConfig.model_validate(config.model_dump())
            except ValidationError as e:
                raise ValueError(f"Invalid value for {field}: {e.errors()[0]['msg']}") from e

            try:
                self._write_dotenv(DOTENV_KEYS[field], value)
            except OSError as e:
                logger.warning(f"Failed to update {self.dotenv_path}: {e}")

            self._write_json(config)

        logger.info(f"Updated GitLab config field '{field}'")
        return config

    def _read_dotenv(self) -> StoredConfig:
        if not self.dotenv_path.is_file():
            return StoredConfig()
        try:
            values = dotenv_values(self.dotenv_path)
        except OSError as e:
            logger.warning(f"Could not read {self.dotenv_path}: {e}")
            return StoredConfig()
        known = {field: values.get(key) for field, key in DOTENV_KEYS.items()}
        try:
            return StoredConfig(**known)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid settings in {self.dotenv_path}: {e}")
            return StoredConfig()

    def _read_json(self) -> StoredConfig:
        if not self.config_path.exists():
            return StoredConfig()
        try:
            content = self.config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Could not read {self.config_path}: {e}") from e
        if not content.strip():
            return StoredConfig()
        try:
            return StoredConfig.model_validate_json(content)
        except ValidationError as e:
            raise ConfigError(f"Malformed config file {self.config_path}: {e}") from e

    def _write_dotenv(self, key: str, value: str):
        self.dotenv_path.touch(exist_ok=True)
        # Unquoted KEY=value keeps the file readable by older tooling
        set_key(str(self.dotenv_path), key, value or "", quote_mode="never")

    def _write_json(self, config: GitLabConfig):
        directory = self.config_path.parent
        try:
            if str(directory) not in ("", "."):
                os.makedirs(directory, exist_ok=True)
            self.config_path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write {self.config_path}: {e}")
            raise ConfigError(f"Could not write {self.config_path}: {e}") from e
