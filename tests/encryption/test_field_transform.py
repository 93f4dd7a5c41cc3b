"""
Tests for the field transform helpers.
"""

from typing import Annotated

import pytest

from cipherstore.encryption import (
    CryptoService,
    Direction,
    apply_transform,
    apply_transform_list,
    decrypt_model,
    decrypt_models,
    encrypt_model,
)
from cipherstore.errors import CryptoError
from cipherstore.models import Secure, SecureModel, SecureStr


class Patient(SecureModel[int]):
    """Model with two sensitive fields and two plain ones."""

    id: int
    name: str
    diagnosis: SecureStr
    insurer: Annotated[str | None, Secure()] = None
    visits: int = 0


def _patient(**overrides: object) -> Patient:
    data = {"id": 1, "name": "bob", "diagnosis": "alpha", "insurer": "acme", "visits": 3}
    data.update(overrides)
    return Patient(**data)


def test_apply_transform_round_trip(crypto: CryptoService) -> None:
    """Test that encrypt then decrypt restores every field."""
    patient = _patient()
    original = patient.model_dump()

    apply_transform(patient, ("diagnosis", "insurer"), "k1", Direction.ENCRYPT, crypto)
    assert patient.diagnosis != "alpha"
    assert patient.insurer != "acme"

    apply_transform(patient, ("diagnosis", "insurer"), "k1", Direction.DECRYPT, crypto)
    assert patient.model_dump() == original


def test_only_listed_fields_change(crypto: CryptoService) -> None:
    """Test that fields outside the list are never touched."""
    patient = _patient()

    encrypt_model(patient, "k1", crypto)

    assert patient.id == 1
    assert patient.name == "bob"
    assert patient.visits == 3
    assert patient.diagnosis == crypto.encrypt("alpha", "k1")
    assert patient.insurer == crypto.encrypt("acme", "k1")


def test_none_fields_stay_none(crypto: CryptoService) -> None:
    """Test that an unset optional sensitive field survives both directions."""
    patient = _patient(insurer=None)

    encrypt_model(patient, "k1", crypto)
    assert patient.insurer is None

    decrypt_model(patient, "k1", crypto)
    assert patient.insurer is None
    assert patient.diagnosis == "alpha"


def test_wrong_seed_garbles_only_sensitive_fields(crypto: CryptoService) -> None:
    """Test decrypting with the wrong seed."""
    patient = encrypt_model(_patient(), "k1", crypto)

    decrypt_model(patient, "k2", crypto)

    assert patient.diagnosis != "alpha"
    assert patient.name == "bob"


def test_failed_decrypt_leaves_object_unchanged(crypto: CryptoService) -> None:
    """Test that a CryptoError does not leave a half-transformed object."""
    ciphertext = crypto.encrypt("alpha", "k1")
    patient = _patient(diagnosis=ciphertext, insurer="%%% not ciphertext %%%")

    with pytest.raises(CryptoError):
        decrypt_model(patient, "k1", crypto)

    assert patient.diagnosis == ciphertext
    assert patient.insurer == "%%% not ciphertext %%%"


def test_apply_transform_none_object(crypto: CryptoService) -> None:
    """Test that a None object is ignored."""
    apply_transform(None, ("diagnosis",), "k1", Direction.ENCRYPT, crypto)


def test_list_variants(crypto: CryptoService) -> None:
    """Test transforming a sequence of objects."""
    patients = [_patient(id=i, diagnosis=f"d{i}") for i in range(5)]

    apply_transform_list(patients, ("diagnosis",), "k1", Direction.ENCRYPT, crypto)
    assert all(p.diagnosis != f"d{p.id}" for p in patients)

    result = decrypt_models(patients, "k1", crypto)
    assert result is patients
    assert [p.diagnosis for p in patients] == [f"d{i}" for i in range(5)]
