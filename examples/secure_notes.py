"""
Example of storing models with encrypted fields.

This example demonstrates how to define a model with sensitive fields,
store it through the secure store and read it back with the right and the
wrong key seed.
"""

import asyncio
import os
from typing import Annotated

from cipherstore import Secure, SecureModel, SecureStore, SecureStr, configure_logging
from cipherstore.config import CipherStoreConfig


# Define a model with encrypted fields
class Note(SecureModel[int]):
    """
    Note with encrypted content.

    ``title`` is stored as written; ``body`` and ``author_email`` are only
    ever stored as ciphertext.
    """

    id: int
    title: str
    body: SecureStr
    author_email: Annotated[str | None, Secure()] = None


async def main() -> None:
    """Example usage of the secure store."""
    os.environ.setdefault("CIPHERSTORE_MODE", "DEV")
    os.environ.setdefault("CIPHERSTORE_SALT", "example-salt-for-demonstration")
    CipherStoreConfig.initialize()
    configure_logging()

    async with SecureStore.open(":memory:") as store:
        await store.create_tables(Note)

        note = Note(id=1, title="groceries", body="eggs, milk", author_email="me@example.com")
        await store.secure_insert(note, "my passphrase")

        # What actually sits in the table
        raw = await store.backend.get(Note, 1)
        print("\nStored row:")
        print(raw.model_dump_json(indent=2))

        # Read back with the same seed
        print("\nRead with the right seed:")
        print((await store.secure_get(Note, 1, "my passphrase")).model_dump_json(indent=2))

        # A different seed yields garbage in the sensitive fields only
        print("\nRead with a wrong seed:")
        print((await store.secure_get(Note, 1, "not my passphrase")).model_dump_json(indent=2))

        print(f"\nNotes stored: {await store.secure_get_count(Note)}")


if __name__ == "__main__":
    asyncio.run(main())
