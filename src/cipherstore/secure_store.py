# secure_store.py — transparent field encryption over a row store

"""
This module defines the secure store, the public CRUD and query surface of
cipherstore.

Sensitive string fields are encrypted with a caller-supplied key seed before
every write and decrypted after every read. The key seed is never stored:
reading a value back requires the same seed that was used to write it.

The store does no I/O itself. It orchestrates the field transform around
calls into a persistence backend, running every mutation inside a
transaction provided by that backend.
"""

from typing import Any, Generic, TypeVar

import structlog
from pydantic import BaseModel

from .config import CipherStoreConfig
from .db.backend import PersistenceBackend, table_name_for
from .db.sqlite import SQLiteBackend
from .encryption.crypto_service import CryptoService
from .encryption.field_transform import decrypt_model, decrypt_models, encrypt_model
from .errors import NullObjectError
from .models.secure_model import K


T = TypeVar("T", bound=BaseModel)
S = TypeVar("S", bound="SecureStore")

logger = structlog.get_logger(__name__)


class SecureStore(Generic[K]):
    """
    Secure store over a persistence backend.

    ``K`` is the key type of the stored models' ``id`` field. The store
    owns the backend and closes it exactly once.

    Insert and update work on a private copy of the caller's object, so
    the caller keeps seeing plaintext after the call returns.
    """

    def __init__(
        self,
        backend: PersistenceBackend,
        crypto: CryptoService | str | None = None,
    ) -> None:
        """
        Initialize the secure store.

        Args:
            backend: Persistence backend to drive
            crypto: A cipher service, or a salt to build one from. Defaults
                to a service built from configuration.
        """
        if backend is None:
            raise ValueError("backend cannot be None")

        if crypto is None:
            crypto = CryptoService.from_config()
        elif isinstance(crypto, str):
            crypto = CryptoService(crypto, key_iterations=CipherStoreConfig.get_key_iterations())

        self.backend = backend
        self.crypto = crypto
        self._closed = False

    @classmethod
    def open(
        cls: type[S],
        path: str | None = None,
        crypto: CryptoService | str | None = None,
    ) -> S:
        """
        Open a secure store over a SQLite database.

        Args:
            path: Database path, defaults to ``database.path`` from config
            crypto: Cipher service or salt, as for the constructor

        Returns:
            A new secure store
        """
        path = path or CipherStoreConfig.get_database_path()
        store = cls(SQLiteBackend(path), crypto)
        logger.info("secure_store_opened", path=path)
        return store

    async def create_tables(self, *model_classes: type[BaseModel]) -> None:
        """Create the backing tables for the given model types."""
        for model_cls in model_classes:
            await self.backend.create_table(model_cls)

    async def secure_insert(self, obj: T, key_seed: str) -> int:
        """
        Insert an object, encrypting its sensitive fields first.

        Args:
            obj: The object to insert
            key_seed: Encryption key seed; the same seed is needed to read
                the object back

        Returns:
            Number of rows affected

        Raises:
            NullObjectError: If ``obj`` is None
        """
        if obj is None:
            raise NullObjectError("obj cannot be null")

        record = encrypt_model(obj.model_copy(deep=True), key_seed, self.crypto)
        result = await self.backend.run_in_transaction(lambda tx: tx.insert(record))

        logger.debug("secure_insert", table=type(obj).__name__, rows=result)
        return result

    async def secure_update(self, obj: T, key_seed: str) -> int:
        """
        Update an object's row, encrypting its sensitive fields first.

        Args:
            obj: The object to update, matched on its ``id``
            key_seed: Encryption key seed

        Returns:
            Number of rows affected

        Raises:
            NullObjectError: If ``obj`` is None
        """
        if obj is None:
            raise NullObjectError("obj cannot be null")

        record = encrypt_model(obj.model_copy(deep=True), key_seed, self.crypto)
        result = await self.backend.run_in_transaction(lambda tx: tx.update(record))

        logger.debug("secure_update", table=type(obj).__name__, rows=result)
        return result

    async def secure_delete(self, model_cls: type[T], id: K) -> int:
        """
        Delete the row of ``model_cls`` with the given id.

        Returns:
            Number of rows affected, 0 when no row matched
        """
        sql = f'DELETE FROM {table_name_for(model_cls)} WHERE "id" = ?'
        result = await self.backend.run_in_transaction(lambda tx: tx.execute(sql, id))

        logger.debug("secure_delete", table=model_cls.__name__, rows=result)
        return result

    async def secure_get(self, model_cls: type[T], id: K, key_seed: str) -> T | None:
        """
        Get an object by id and decrypt its sensitive fields.

        Args:
            model_cls: The model type to fetch
            id: Id of the object
            key_seed: The seed used when the object was written

        Returns:
            The decrypted object, or None if no row matched
        """
        item = await self.backend.get(model_cls, id)
        if item is None:
            logger.debug("secure_get_miss", table=model_cls.__name__)
            return None

        return decrypt_model(item, key_seed, self.crypto)

    async def secure_get_all(self, model_cls: type[T], key_seed: str) -> list[T]:
        """
        Get every object of a type, decrypting each one.

        Returns:
            The decrypted objects, possibly empty
        """
        items = await self.backend.get_all_with_children(model_cls) or []
        decrypt_models(items, key_seed, self.crypto)

        logger.debug("secure_get_all", table=model_cls.__name__, count=len(items))
        return items

    async def secure_get_count(self, model_cls: type[T]) -> int:
        """Number of rows in the table of ``model_cls``."""
        count = await self.backend.execute_scalar(
            f"SELECT COUNT(*) FROM {table_name_for(model_cls)}"
        )
        return int(count or 0)

    async def secure_query(
        self, model_cls: type[T], query: str, key_seed: str, *args: Any
    ) -> list[T]:
        """
        Run a raw parameterised query and decrypt every returned object.

        Only parameters travel through ``args``; the query text is passed
        to the backend as written.

        Args:
            model_cls: The model type each row is built into
            query: SQL query text with ``?`` placeholders
            key_seed: The seed used when the objects were written
            *args: Query parameters

        Returns:
            The decrypted objects
        """
        items = await self.backend.query(model_cls, query, *args) or []
        decrypt_models(items, key_seed, self.crypto)

        logger.debug("secure_query", table=model_cls.__name__, count=len(items))
        return items

    async def close(self) -> None:
        """Release the backend. Calling close again does nothing."""
        if self._closed:
            return
        self._closed = True
        await self.backend.close()
        logger.info("secure_store_closed")

    async def __aenter__(self: S) -> S:
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        await self.close()
