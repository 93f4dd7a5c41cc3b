"""
Base model interfaces for cipherstore.

This module provides the marker used to flag sensitive string fields and
the base class for models stored through the secure store.
"""

from typing import Annotated, Generic, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ConfigDict


K = TypeVar("K")
K_co = TypeVar("K_co", covariant=True)


class Secure:
    """
    Marker for string fields that must never be persisted in plaintext.

    Place an instance in the field's ``Annotated`` metadata::

        class Patient(SecureModel[int]):
            id: int
            name: str
            diagnosis: Annotated[str, Secure()]

    The marker is static type metadata; it only takes effect on fields
    declared as ``str`` or ``str | None``.
    """

    def __repr__(self) -> str:
        return "Secure()"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Secure)

    def __hash__(self) -> int:
        return hash(Secure)


SecureStr = Annotated[str, Secure()]
"""Shorthand for a sensitive ``str`` field."""


@runtime_checkable
class Identifiable(Protocol[K_co]):
    """Anything with an ``id`` attribute usable as a lookup key."""

    @property
    def id(self) -> K_co: ...


class SecureModel(BaseModel, Generic[K]):
    """
    Base class for models persisted through the secure store.

    Subclasses declare an ``id`` field of their key type plus any other
    columns. Instances are mutable so the store can swap sensitive values
    between plaintext and ciphertext.
    """

    model_config = ConfigDict(validate_assignment=False, extra="ignore")

    id: K
