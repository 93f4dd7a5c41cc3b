"""
Configuration management for cipherstore.

This module provides configuration utilities for controlling behavior
of the secure store, including development/production modes, the cipher
salt and the default database location.
"""

import os
import sys
from copy import deepcopy
from pathlib import Path

import structlog
import yaml


logger = structlog.get_logger(__name__)

DEV_ONLY_SALT = "dev-only-cipherstore-salt-do-not-use-in-production"


def _deep_merge(target: dict, source: dict) -> None:
    """Merge ``source`` into ``target``, descending into nested sections."""
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value


class CipherStoreConfig:
    """
    Configuration for the secure store.

    This class provides access to configuration settings, including
    environment-specific behaviors and encryption settings.
    """

    # Default configuration values
    _default_config: dict[str, object] = {
        "mode": "DEV",  # DEV or PROD
        "encryption": {
            "salt": None,
            "key_iterations": 10000,
        },
        "database": {
            "path": ":memory:",
        },
        "logging": {
            "level": "INFO",
            "json": False,
        },
    }

    # Instance configuration values, loaded from file or environment
    _config: dict[str, object] = {}

    # Flag indicating if the configuration has been initialized
    _initialized: bool = False

    @classmethod
    def initialize(cls, config_path: str | None = None) -> None:
        """
        Initialize the configuration.

        Args:
            config_path: Optional path to a YAML configuration file
        """
        cls._config = deepcopy(cls._default_config)

        if config_path:
            cls._load_from_file(config_path)

        # Environment always wins over the file
        cls._load_from_env()

        cls._initialized = True

    @classmethod
    def _load_from_file(cls, config_path: str) -> None:
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file
        """
        path = Path(config_path)
        if not path.exists():
            logger.critical("config_file_not_found", path=config_path)
            sys.exit(1)

        try:
            with open(path, "r") as f:
                file_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.critical("config_file_unreadable", path=config_path, error=str(e))
            sys.exit(1)

        if file_config:
            _deep_merge(cls._config, file_config)

    @classmethod
    def _load_from_env(cls) -> None:
        """Load configuration from environment variables."""
        env_mode = os.environ.get("CIPHERSTORE_MODE")
        if env_mode in ("DEV", "PROD"):
            cls._config["mode"] = env_mode

        env_salt = os.environ.get("CIPHERSTORE_SALT")
        if env_salt:
            cls._config["encryption"]["salt"] = env_salt

        env_iterations = os.environ.get("CIPHERSTORE_KEY_ITERATIONS")
        if env_iterations and env_iterations.isdigit():
            cls._config["encryption"]["key_iterations"] = int(env_iterations)

        env_db_path = os.environ.get("CIPHERSTORE_DB_PATH")
        if env_db_path:
            cls._config["database"]["path"] = env_db_path

        env_log_level = os.environ.get("CIPHERSTORE_LOG_LEVEL")
        if env_log_level:
            cls._config["logging"]["level"] = env_log_level.upper()

    @classmethod
    def _ensure_initialized(cls) -> None:
        """Ensure the configuration is initialized."""
        if not cls._initialized:
            cls.initialize()

    @classmethod
    def get(cls, key: str, default: object = None) -> object:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve, dotted for nested sections
            default: Default value to return if key is not found

        Returns:
            The configuration value, or default if not found
        """
        cls._ensure_initialized()

        if "." in key:
            value = cls._config
            for part in key.split("."):
                if isinstance(value, dict) and part in value:
                    value = value[part]
                else:
                    return default
            return value

        return cls._config.get(key, default)

    @classmethod
    def is_dev_mode(cls) -> bool:
        """
        Check if the system is in development mode.

        Returns:
            True if in development mode, False otherwise
        """
        return cls.get("mode") == "DEV"

    @classmethod
    def get_salt(cls) -> str:
        """
        Get the cipher salt.

        In development mode a fixed dev-only salt is used when none is
        configured. In production a missing salt is fatal.

        Returns:
            The salt as a string
        """
        salt = cls.get("encryption.salt")
        if salt:
            return str(salt)

        if cls.is_dev_mode():
            return DEV_ONLY_SALT

        logger.critical("cipher_salt_missing", mode=cls.get("mode"))
        sys.exit(1)

    @classmethod
    def get_key_iterations(cls) -> int:
        """Number of PBKDF2 iterations used to stretch a key seed."""
        return int(cls.get("encryption.key_iterations", 10000))

    @classmethod
    def get_database_path(cls) -> str:
        """
        Get the database path.

        Returns:
            Filesystem path of the SQLite database, or ``:memory:``
        """
        return str(cls.get("database.path", ":memory:"))

    @classmethod
    def load_from_secrets_file(cls, file_path: str) -> None:
        """
        Load configuration from a secrets file.

        Sections in the secrets file are merged over the current
        configuration, so a secrets file only needs to carry the values
        it overrides (typically ``encryption.salt``).

        Args:
            file_path: Path to the secrets file
        """
        path = Path(file_path)
        if not path.exists():
            logger.warning("secrets_file_not_found", path=file_path)
            return

        cls._ensure_initialized()

        try:
            with open(path, "r") as f:
                secrets = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.critical("secrets_file_unreadable", path=file_path, error=str(e))
            sys.exit(1)

        if secrets:
            _deep_merge(cls._config, secrets)

        logger.info("secrets_file_loaded", path=file_path)
