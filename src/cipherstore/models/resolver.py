"""
Sensitive field resolution.

Works out, once per model type, which fields carry the ``Secure`` marker
and are string typed. Results are kept in a process-wide registry so the
store never re-scans type metadata on the hot path.
"""

import threading
import types
from typing import Annotated, Union, get_args, get_origin

import structlog
from pydantic import BaseModel
from pydantic.fields import FieldInfo

from .secure_model import Secure


logger = structlog.get_logger(__name__)


def _union_members(annotation: object) -> tuple[object, ...] | None:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        return get_args(annotation)
    return None


def _strip_annotated(annotation: object) -> tuple[object, tuple[object, ...]]:
    """Split ``Annotated[X, m...]`` into ``(X, (m, ...))``."""
    if get_origin(annotation) is Annotated:
        base, *extras = get_args(annotation)
        return base, tuple(extras)
    return annotation, ()


def _inspect_field(field: FieldInfo) -> tuple[bool, bool]:
    """
    Inspect a pydantic field.

    Returns:
        Tuple of (is string typed, carries the Secure marker)
    """
    metadata = list(field.metadata)
    annotation, extras = _strip_annotated(field.annotation)
    metadata.extend(extras)

    members = _union_members(annotation)
    if members is None:
        is_string = annotation is str
    else:
        non_null = []
        for member in members:
            if member is type(None):
                continue
            base, extras = _strip_annotated(member)
            metadata.extend(extras)
            non_null.append(base)
        is_string = len(non_null) == 1 and non_null[0] is str

    return is_string, any(isinstance(m, Secure) for m in metadata)


def is_string_field(model_cls: type[BaseModel], name: str) -> bool:
    """Check whether ``name`` is declared as ``str`` or ``str | None``."""
    field = model_cls.model_fields.get(name)
    if field is None:
        return False
    return _inspect_field(field)[0]


def scan_secure_fields(model_cls: type[BaseModel]) -> tuple[str, ...]:
    """
    Scan a model type for sensitive string fields.

    Args:
        model_cls: The model class to scan

    Returns:
        Field names in declaration order
    """
    selected: list[str] = []
    for name, field in model_cls.model_fields.items():
        is_string, is_secure = _inspect_field(field)
        if is_secure and is_string:
            selected.append(name)
        elif is_secure:
            logger.warning(
                "secure_marker_ignored",
                model=model_cls.__name__,
                field=name,
                reason="not a string field",
            )
    return tuple(selected)


class SecureFieldRegistry:
    """
    Per-type cache of sensitive field names.

    A type's entry is filled either by explicit registration at startup
    or, on first lookup, by scanning its ``Secure`` markers.
    """

    def __init__(self) -> None:
        self._fields: dict[type, tuple[str, ...]] = {}
        self._lock = threading.Lock()

    def register(self, model_cls: type[BaseModel], *names: str) -> tuple[str, ...]:
        """
        Declare a type's sensitive fields explicitly.

        Args:
            model_cls: The model class
            *names: Field names to encrypt

        Returns:
            The registered field names

        Raises:
            ValueError: If a name is not a string field of the model
        """
        for name in names:
            if name not in model_cls.model_fields:
                raise ValueError(f"{model_cls.__name__} has no field named '{name}'")
            if not is_string_field(model_cls, name):
                raise ValueError(
                    f"{model_cls.__name__}.{name} is not a string field and cannot be encrypted"
                )

        # Keep declaration order regardless of argument order
        ordered = tuple(n for n in model_cls.model_fields if n in set(names))
        with self._lock:
            self._fields[model_cls] = ordered
        return ordered

    def resolve(self, model_cls: type[BaseModel]) -> tuple[str, ...]:
        """
        Get the sensitive fields of a model type.

        Args:
            model_cls: The model class

        Returns:
            Field names in declaration order
        """
        fields = self._fields.get(model_cls)
        if fields is not None:
            return fields

        fields = scan_secure_fields(model_cls)
        with self._lock:
            fields = self._fields.setdefault(model_cls, fields)
        logger.debug("secure_fields_resolved", model=model_cls.__name__, fields=list(fields))
        return fields

    def clear(self) -> None:
        """Drop every cached entry."""
        with self._lock:
            self._fields.clear()


registry = SecureFieldRegistry()


def resolve_secure_fields(model_cls: type[BaseModel]) -> tuple[str, ...]:
    """Sensitive field names of ``model_cls`` from the default registry."""
    return registry.resolve(model_cls)


def register_secure_fields(model_cls: type[BaseModel], *names: str) -> tuple[str, ...]:
    """Explicitly register sensitive fields in the default registry."""
    return registry.register(model_cls, *names)
