"""
Field-level transform between plaintext and ciphertext.

These helpers apply the cipher to the sensitive fields of model objects
in place. Callers that must keep their own object untouched should pass
a copy.
"""

from collections.abc import Iterable, Sequence
from enum import Enum

from pydantic import BaseModel

from ..models.resolver import resolve_secure_fields
from .crypto_service import CryptoService


class Direction(str, Enum):
    """Which way a transform runs."""

    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"


def apply_transform(
    obj: object,
    fields: Iterable[str],
    seed: str,
    direction: Direction,
    crypto: CryptoService,
) -> None:
    """
    Encrypt or decrypt the given fields of an object in place.

    Every new value is computed before any is assigned, so when the
    cipher raises the object keeps its previous state.

    Args:
        obj: The object to transform
        fields: Names of the string fields to transform
        seed: Key seed for this operation
        direction: Whether to encrypt or decrypt
        crypto: Cipher service to use
    """
    if obj is None:
        return

    op = crypto.encrypt if Direction(direction) is Direction.ENCRYPT else crypto.decrypt
    updates = {name: op(getattr(obj, name), seed) for name in fields}

    for name, value in updates.items():
        setattr(obj, name, value)


def apply_transform_list(
    objs: Iterable[object],
    fields: Iterable[str],
    seed: str,
    direction: Direction,
    crypto: CryptoService,
) -> None:
    """Apply :func:`apply_transform` to every element of ``objs``."""
    fields = tuple(fields)
    for obj in objs:
        apply_transform(obj, fields, seed, direction, crypto)


def encrypt_model(obj: BaseModel, seed: str, crypto: CryptoService) -> BaseModel:
    """Encrypt the sensitive fields of ``obj`` in place and return it."""
    apply_transform(obj, resolve_secure_fields(type(obj)), seed, Direction.ENCRYPT, crypto)
    return obj


def decrypt_model(obj: BaseModel, seed: str, crypto: CryptoService) -> BaseModel:
    """Decrypt the sensitive fields of ``obj`` in place and return it."""
    apply_transform(obj, resolve_secure_fields(type(obj)), seed, Direction.DECRYPT, crypto)
    return obj


def decrypt_models(objs: Sequence[BaseModel], seed: str, crypto: CryptoService) -> Sequence[BaseModel]:
    """Decrypt every model in ``objs`` in place and return the sequence."""
    for obj in objs:
        decrypt_model(obj, seed, crypto)
    return objs
