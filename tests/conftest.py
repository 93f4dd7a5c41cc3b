"""
Pytest configuration for cipherstore tests.
"""

import os
from typing import Generator

import pytest
import pytest_asyncio

from cipherstore.config import CipherStoreConfig
from cipherstore.encryption import CryptoService
from cipherstore.models.resolver import registry
from cipherstore.secure_store import SecureStore


@pytest.fixture(autouse=True)
def clean_config(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """
    Reset configuration and the secure field registry around each test.

    CIPHERSTORE_* variables from the outer environment are removed so
    every test starts from the built-in defaults.
    """
    for key in list(os.environ):
        if key.startswith("CIPHERSTORE_"):
            monkeypatch.delenv(key)

    CipherStoreConfig._config = {}
    CipherStoreConfig._initialized = False
    registry.clear()

    yield

    CipherStoreConfig._config = {}
    CipherStoreConfig._initialized = False
    registry.clear()


@pytest.fixture
def crypto() -> CryptoService:
    """Cipher service with a low iteration count to keep tests fast."""
    return CryptoService("unit-test-salt", key_iterations=1000)


@pytest_asyncio.fixture
async def store(crypto: CryptoService):
    """In-memory secure store; tests create the tables they need."""
    secure_store: SecureStore[int] = SecureStore.open(":memory:", crypto=crypto)

    yield secure_store

    await secure_store.close()
