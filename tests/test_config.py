"""
Tests for the CipherStoreConfig class.
"""

import os
import tempfile
from pathlib import Path

import pytest
import yaml

from cipherstore.config import DEV_ONLY_SALT, CipherStoreConfig


class TestCipherStoreConfig:
    """Tests for the CipherStoreConfig class."""

    def _write_yaml(self, data: dict) -> str:
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump(data, f)
            return f.name

    def test_default_config(self) -> None:
        """Test the default configuration values."""
        # Get a configuration value to trigger initialization
        assert CipherStoreConfig.get("mode") == "DEV"

        assert CipherStoreConfig.get("encryption.salt") is None
        assert CipherStoreConfig.get("encryption.key_iterations") == 10000
        assert CipherStoreConfig.get("database.path") == ":memory:"
        assert CipherStoreConfig.get("missing.key", "fallback") == "fallback"

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test overriding configuration with environment variables."""
        monkeypatch.setenv("CIPHERSTORE_MODE", "PROD")
        monkeypatch.setenv("CIPHERSTORE_SALT", "env-salt")
        monkeypatch.setenv("CIPHERSTORE_KEY_ITERATIONS", "2500")
        monkeypatch.setenv("CIPHERSTORE_DB_PATH", "/tmp/store.db")
        monkeypatch.setenv("CIPHERSTORE_LOG_LEVEL", "debug")

        CipherStoreConfig.initialize()

        assert CipherStoreConfig.get("mode") == "PROD"
        assert CipherStoreConfig.get_salt() == "env-salt"
        assert CipherStoreConfig.get_key_iterations() == 2500
        assert CipherStoreConfig.get_database_path() == "/tmp/store.db"
        assert CipherStoreConfig.get("logging.level") == "DEBUG"

    def test_file_config(self) -> None:
        """Test loading configuration from a file."""
        config_path = self._write_yaml({
            "mode": "PROD",
            "encryption": {"salt": "file-salt"},
            "database": {"path": "data/secure.db"},
        })

        try:
            CipherStoreConfig.initialize(config_path)

            assert CipherStoreConfig.get("mode") == "PROD"
            assert CipherStoreConfig.get_salt() == "file-salt"
            assert CipherStoreConfig.get_database_path() == "data/secure.db"

            # Sections are merged, so unset values keep their defaults
            assert CipherStoreConfig.get_key_iterations() == 10000
        finally:
            Path(config_path).unlink()

    def test_environment_overrides_file(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that environment variables override file configuration."""
        config_path = self._write_yaml({"mode": "DEV", "encryption": {"salt": "file-salt"}})

        try:
            monkeypatch.setenv("CIPHERSTORE_SALT", "env-salt")
            CipherStoreConfig.initialize(config_path)

            assert CipherStoreConfig.get_salt() == "env-salt"
            assert CipherStoreConfig.is_dev_mode() is True
        finally:
            Path(config_path).unlink()

    def test_missing_config_file_is_fatal(self) -> None:
        """Test fail-stop on a missing configuration file."""
        with pytest.raises(SystemExit) as excinfo:
            CipherStoreConfig.initialize("/nonexistent/cipherstore.yaml")

        assert excinfo.value.code == 1

    def test_salt_by_mode(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the salt fallback in development and its absence in production."""
        CipherStoreConfig.initialize()
        assert CipherStoreConfig.get_salt() == DEV_ONLY_SALT

        monkeypatch.setenv("CIPHERSTORE_MODE", "PROD")
        CipherStoreConfig.initialize()
        with pytest.raises(SystemExit):
            CipherStoreConfig.get_salt()

    def test_secrets_file(self) -> None:
        """Test merging a secrets file over the current configuration."""
        secrets_path = self._write_yaml({"encryption": {"salt": "secret-salt"}})

        try:
            CipherStoreConfig.initialize()
            CipherStoreConfig.load_from_secrets_file(secrets_path)

            assert CipherStoreConfig.get_salt() == "secret-salt"
            assert CipherStoreConfig.get_key_iterations() == 10000
        finally:
            Path(secrets_path).unlink()

        # A missing secrets file is only a warning
        CipherStoreConfig.load_from_secrets_file(os.path.join(tempfile.gettempdir(), "absent.yaml"))
        assert CipherStoreConfig.get_salt() == "secret-salt"
