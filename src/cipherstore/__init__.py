"""
cipherstore - transparent field-level encryption for model objects.

This package encrypts the sensitive string fields of pydantic models before
they are written to a row store and decrypts them after they are read back,
using a key seed supplied with every operation.
"""

from .config import CipherStoreConfig
from .db import PersistenceBackend, SQLiteBackend
from .encryption import CryptoService, Direction
from .errors import CipherStoreError, CryptoError, InvalidIdentifierError, NullObjectError
from .log import configure_logging
from .models import Identifiable, Secure, SecureModel, SecureStr, register_secure_fields
from .secure_store import SecureStore

__version__ = "0.1.0"

__all__ = [
    "CipherStoreConfig",
    "CipherStoreError",
    "CryptoError",
    "CryptoService",
    "Direction",
    "Identifiable",
    "InvalidIdentifierError",
    "NullObjectError",
    "PersistenceBackend",
    "SQLiteBackend",
    "Secure",
    "SecureModel",
    "SecureStore",
    "SecureStr",
    "configure_logging",
    "register_secure_fields",
]
