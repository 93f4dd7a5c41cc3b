"""
Encryption utilities for cipherstore.

This module provides the string cipher and the helpers that apply it to
the sensitive fields of model objects.
"""

from .crypto_service import CryptoService
from .field_transform import (
    Direction,
    apply_transform,
    apply_transform_list,
    decrypt_model,
    decrypt_models,
    encrypt_model,
)

__all__ = [
    "CryptoService",
    "Direction",
    "apply_transform",
    "apply_transform_list",
    "decrypt_model",
    "decrypt_models",
    "encrypt_model",
]
