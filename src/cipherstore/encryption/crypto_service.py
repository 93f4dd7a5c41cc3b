"""
Symmetric cipher for sensitive string fields.

This module provides the deterministic string cipher used by the secure
store. A per-operation key seed is stretched with PBKDF2 against a fixed
salt into an AES-256 key and IV; values are encrypted with AES-CBC and
carried as base64 text so they fit in ordinary string columns.
"""

import base64
import binascii
from functools import lru_cache

import structlog
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..config import CipherStoreConfig
from ..errors import CryptoError


logger = structlog.get_logger(__name__)

KEY_SIZE = 32  # AES-256
IV_SIZE = 16
BLOCK_SIZE = algorithms.AES.block_size  # bits


@lru_cache(maxsize=256)
def _derive_key_material(seed: str, salt: bytes, iterations: int) -> tuple[bytes, bytes]:
    """
    Derive an AES key and IV from a key seed.

    Args:
        seed: Caller-supplied key seed
        salt: Fixed salt of the cipher service
        iterations: PBKDF2 iteration count

    Returns:
        Tuple of (key, iv)
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE + IV_SIZE,
        salt=salt,
        iterations=iterations,
    )
    material = kdf.derive(seed.encode("utf-8"))
    return material[:KEY_SIZE], material[KEY_SIZE:]


class CryptoService:
    """
    Deterministic string cipher keyed by a per-operation seed.

    The service is stateless beyond its salt and iteration count and can
    be shared by any number of stores. For a given salt, the same
    ``(plaintext, seed)`` pair always produces the same ciphertext, and
    only the same seed turns it back into the plaintext.
    """

    def __init__(self, salt: str, key_iterations: int = 10000) -> None:
        """
        Initialize the cipher service.

        Args:
            salt: Fixed salt mixed into every key derivation
            key_iterations: PBKDF2 iteration count
        """
        if not salt:
            raise ValueError("salt must be a non-empty string")
        if key_iterations < 1:
            raise ValueError("key_iterations must be positive")

        self._salt = salt.encode("utf-8")
        self.key_iterations = key_iterations

    @classmethod
    def from_config(cls) -> "CryptoService":
        """Build a service from the salt and iteration count in configuration."""
        return cls(
            CipherStoreConfig.get_salt(),
            key_iterations=CipherStoreConfig.get_key_iterations(),
        )

    @staticmethod
    def _check_seed(seed: str) -> None:
        if seed is None:
            raise ValueError("key seed cannot be None")

    def _cipher(self, seed: str) -> Cipher:
        key, iv = _derive_key_material(seed, self._salt, self.key_iterations)
        return Cipher(algorithms.AES(key), modes.CBC(iv))

    def encrypt(self, plaintext: str | None, seed: str) -> str | None:
        """
        Encrypt a string value.

        Args:
            plaintext: The value to encrypt; ``None`` is returned unchanged
            seed: Key seed for this value

        Returns:
            Base64 ciphertext, or ``None`` for a ``None`` input
        """
        self._check_seed(seed)
        if plaintext is None:
            return None

        padder = padding.PKCS7(BLOCK_SIZE).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = self._cipher(seed).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        return base64.b64encode(ciphertext).decode("ascii")

    def decrypt(self, ciphertext: str | None, seed: str) -> str | None:
        """
        Decrypt a string value.

        Decrypting with a seed other than the one used to encrypt does not
        raise; it yields unreadable text. Ciphertext that is structurally
        invalid raises :class:`CryptoError`.

        Args:
            ciphertext: Base64 ciphertext; ``None`` is returned unchanged
            seed: Key seed used when the value was encrypted

        Returns:
            The plaintext, or ``None`` for a ``None`` input

        Raises:
            CryptoError: If the ciphertext is not valid base64 or its
                length is not a whole number of cipher blocks
        """
        self._check_seed(seed)
        if ciphertext is None:
            return None

        try:
            raw = base64.b64decode(ciphertext.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as e:
            logger.warning("ciphertext_not_decodable", error=str(e))
            raise CryptoError(f"Ciphertext is not valid base64: {e}") from e

        if not raw or len(raw) % (BLOCK_SIZE // 8):
            logger.warning("ciphertext_bad_length", length=len(raw))
            raise CryptoError(
                f"Ciphertext length {len(raw)} is not a positive multiple of "
                f"{BLOCK_SIZE // 8} bytes"
            )

        decryptor = self._cipher(seed).decryptor()
        padded = decryptor.update(raw) + decryptor.finalize()

        unpadder = padding.PKCS7(BLOCK_SIZE).unpadder()
        try:
            data = unpadder.update(padded) + unpadder.finalize()
        except ValueError:
            # Wrong seed: hand back the raw block contents
            logger.debug("ciphertext_padding_mismatch", length=len(raw))
            data = padded

        return data.decode("utf-8", errors="replace")
