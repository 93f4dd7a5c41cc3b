"""
Persistence collaborator contract.

The secure store does no I/O of its own. It drives an object that
implements :class:`PersistenceBackend`, and inside transactions a
:class:`Transaction` handle supplied by that backend.
"""

import re
from collections.abc import Callable
from typing import Any, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel

from ..errors import InvalidIdentifierError


T = TypeVar("T", bound=BaseModel)
R = TypeVar("R")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_identifier(name: str) -> str:
    """
    Validate and quote an SQL identifier.

    Args:
        name: Table or column name

    Returns:
        The name wrapped in double quotes

    Raises:
        InvalidIdentifierError: If the name is not a plain identifier
    """
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise InvalidIdentifierError(f"'{name}' is not a valid SQL identifier")
    return f'"{name}"'


def table_name_for(model_cls: type) -> str:
    """
    Table name of a model type.

    The table is named after the class, verbatim. There is no override.

    Returns:
        The quoted table identifier
    """
    return quote_identifier(model_cls.__name__)


class Transaction(Protocol):
    """Synchronous handle passed to a transaction body."""

    def insert(self, obj: BaseModel) -> int: ...

    def update(self, obj: BaseModel) -> int: ...

    def execute(self, sql: str, *args: Any) -> int: ...


@runtime_checkable
class PersistenceBackend(Protocol):
    """Asynchronous row store consumed by the secure store."""

    async def run_in_transaction(self, fn: Callable[[Transaction], R]) -> R: ...

    async def execute(self, sql: str, *args: Any) -> int: ...

    async def execute_scalar(self, sql: str, *args: Any) -> Any: ...

    async def query(self, model_cls: type[T], sql: str, *args: Any) -> list[T]: ...

    async def get(self, model_cls: type[T], pk: Any) -> T | None: ...

    async def get_all_with_children(self, model_cls: type[T]) -> list[T]: ...

    async def create_table(self, model_cls: type[BaseModel]) -> None: ...

    async def close(self) -> None: ...
