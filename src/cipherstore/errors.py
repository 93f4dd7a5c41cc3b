"""Exception types raised by cipherstore."""


class CipherStoreError(Exception):
    """Base class for all cipherstore errors."""


class NullObjectError(CipherStoreError, ValueError):
    """A ``None`` object was passed where a model instance is required."""


class CryptoError(CipherStoreError):
    """Ciphertext could not be decoded (truncated, not base64, bad length)."""


class InvalidIdentifierError(CipherStoreError, ValueError):
    """A model type name cannot be used as an SQL table identifier."""
