# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Configuration management for the ingest pipeline.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "ttn_db.sqlite"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
JOURNAL_MODES = ("DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF")


@dataclass
class Config:
    """Ingest configuration container."""

    # Database settings
    db_path: str = DEFAULT_DB_PATH
    journal_mode: str = "WAL"
    busy_timeout_ms: int = 5000

    # Ingest settings
    max_consecutive_read_errors: int = 0  # 0 = never give up on the input stream

    # Logging settings
    log_level: str = "INFO"
    debug: bool = False

    # Config file path
    config_path: Optional[Path] = None

    def __post_init__(self):
        """Load file and environment overrides after creation."""
        if self.config_path is not None:
            self.config_path = Path(self.config_path).expanduser()
            if self.config_path.exists():
                self.load_from_file()
            else:
                logger.warning(f"Config file not found: {self.config_path}")

        self.load_from_env()

    def load_from_file(self):
        """Load configuration from YAML file."""
        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load config file {self.config_path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {self.config_path}: top level is not a mapping")
            return

        # Database settings
        database = data.get("database") or {}
        self.db_path = str(database.get("path", self.db_path))
        self.journal_mode = database.get("journal_mode", self.journal_mode)
        self.busy_timeout_ms = database.get("busy_timeout_ms", self.busy_timeout_ms)

        # Ingest settings
        ingest = data.get("ingest") or {}
        self.max_consecutive_read_errors = ingest.get(
            "max_consecutive_read_errors", self.max_consecutive_read_errors
        )

        # Logging settings
        logging_section = data.get("logging") or {}
        self.log_level = logging_section.get("level", self.log_level)

    def load_from_env(self):
        """Load configuration from environment variables."""
        if env_db := os.environ.get("TTN_INGEST_DB"):
            self.db_path = env_db

        if env_level := os.environ.get("TTN_INGEST_LOG_LEVEL"):
            self.log_level = env_level

        if os.environ.get("TTN_INGEST_DEBUG"):
            self.debug = True

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else str(self.log_level).upper()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            k: v for k, v in self.__dict__.items()
            if not k.startswith("_") and k != "config_path"
        }

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigError: Listing every invalid value
        """
        errors = []

        if not self.db_path:
            errors.append("db_path must not be empty")

        if str(self.journal_mode).upper() not in JOURNAL_MODES:
            errors.append(f"journal_mode must be one of {', '.join(JOURNAL_MODES)}")

        if not isinstance(self.busy_timeout_ms, int) or self.busy_timeout_ms < 0:
            errors.append("busy_timeout_ms must be a non-negative integer")

        if not isinstance(self.max_consecutive_read_errors, int) or self.max_consecutive_read_errors < 0:
            errors.append("max_consecutive_read_errors must be a non-negative integer")

        if self.effective_log_level not in LOG_LEVELS:
            errors.append(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        if errors:
            raise ConfigError("; ".join(errors))
