"""
Base model interfaces for cipherstore.

This module provides the model base class, the sensitive field marker and
the per-type resolver that finds marked fields.
"""

from .resolver import SecureFieldRegistry, register_secure_fields, resolve_secure_fields
from .secure_model import Identifiable, Secure, SecureModel, SecureStr

__all__ = [
    "Identifiable",
    "Secure",
    "SecureFieldRegistry",
    "SecureModel",
    "SecureStr",
    "register_secure_fields",
    "resolve_secure_fields",
]
