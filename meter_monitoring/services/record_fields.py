"""Field accessors for records of arbitrary shape.

Records are looked up by field name only. The accessor table for a record type
is built once from whatever metadata the type carries: pydantic model fields,
dataclass fields, SQLAlchemy mapper columns or plain class annotations.
Mappings and unannotated objects are resolved against a sample record.
"""

from __future__ import annotations

import dataclasses
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Union

from pydantic import BaseModel
from sqlalchemy.inspection import inspect as sa_inspect

from meter_monitoring.core.errors import FieldNotFoundError

_MISSING = object()


@dataclass(frozen=True)
class FieldAccessor:
    name: str
    python_type: Any = None
    from_mapping: bool = False
    owner: type | None = None

    def get(self, record: Any) -> Any:
        if self.from_mapping:
            value = record.get(self.name, _MISSING) if isinstance(record, Mapping) else _MISSING
        else:
            value = getattr(record, self.name, _MISSING)
        if value is _MISSING:
            raise FieldNotFoundError(self.name, self.owner or type(record))
        return value


def _unwrap_annotation(annotation: Any) -> Any:
    if annotation is None or isinstance(annotation, str):
        return None
    origin = typing.get_origin(annotation)
    if origin is typing.Annotated:
        return _unwrap_annotation(typing.get_args(annotation)[0])
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return _unwrap_annotation(args[0])
        return None
    if origin is not None:
        # Containers and literals have no scalar ordering.
        return None
    if isinstance(annotation, type):
        return annotation
    return None


def _type_hints(record_type: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(record_type)
    except Exception:
        return dict(getattr(record_type, "__annotations__", {}) or {})


def _sqlalchemy_columns(record_type: type) -> dict[str, Any] | None:
    mapper = sa_inspect(record_type, raiseerr=False)
    if mapper is None or not hasattr(mapper, "column_attrs"):
        return None
    fields: dict[str, Any] = {}
    for attr in mapper.column_attrs:
        try:
            python_type = attr.columns[0].type.python_type
        except Exception:
            python_type = None
        fields[attr.key] = python_type
    return fields


@lru_cache(maxsize=256)
def declared_fields(record_type: type) -> dict[str, Any] | None:
    """Return ``{field name: python type}`` for a record type, or None when unknown."""
    if isinstance(record_type, type) and issubclass(record_type, BaseModel):
        return {name: _unwrap_annotation(info.annotation) for name, info in record_type.model_fields.items()}
    if dataclasses.is_dataclass(record_type):
        hints = _type_hints(record_type)
        return {f.name: _unwrap_annotation(hints.get(f.name, f.type)) for f in dataclasses.fields(record_type)}
    columns = _sqlalchemy_columns(record_type)
    if columns is not None:
        return columns
    if typing.is_typeddict(record_type):
        return {name: _unwrap_annotation(hint) for name, hint in _type_hints(record_type).items()}
    if isinstance(record_type, type) and issubclass(record_type, Mapping):
        return None
    hints = _type_hints(record_type)
    if not hints:
        return None
    return {name: _unwrap_annotation(hint) for name, hint in hints.items() if not name.startswith("_")}


def _normalized_name(name: str) -> str:
    return str(name or "").replace("_", "").strip().lower()


def match_field_name(member: str, names) -> str | None:
    names = list(names)
    if member in names:
        return member
    wanted = _normalized_name(member)
    if not wanted:
        return None
    matches = [name for name in names if _normalized_name(name) == wanted]
    if len(matches) == 1:
        return matches[0]
    return None


def _sample_field_names(sample: Any) -> list[str]:
    if isinstance(sample, Mapping):
        return [str(key) for key in sample.keys()]
    names = [name for name in getattr(sample, "__dict__", {}) if not name.startswith("_")]
    for name in dir(type(sample)):
        if name.startswith("_") or name in names:
            continue
        if isinstance(getattr(type(sample), name, None), property):
            names.append(name)
    return names


def resolve_field(member: str, record_type: type | None = None, sample: Any = None) -> FieldAccessor:
    """Resolve a descriptor member to a field accessor.

    The exact attribute name wins; otherwise a single case- and
    underscore-insensitive match is accepted (``cityName`` -> ``city_name``).
    """
    owner = record_type if record_type is not None else (type(sample) if sample is not None else None)
    from_mapping = isinstance(sample, Mapping) if record_type is None else (
        typing.is_typeddict(record_type)
        or (isinstance(record_type, type) and issubclass(record_type, Mapping))
    )

    fields = declared_fields(owner) if owner is not None else None
    if fields is not None:
        name = match_field_name(member, fields.keys())
        if name is None and sample is not None and not from_mapping:
            # Properties and other computed attributes are not part of declared fields.
            name = match_field_name(member, _sample_field_names(sample))
            if name is not None:
                return FieldAccessor(name=name, python_type=None, owner=owner)
        if name is None:
            raise FieldNotFoundError(member, owner)
        return FieldAccessor(name=name, python_type=fields.get(name), from_mapping=from_mapping, owner=owner)

    if sample is None:
        raise FieldNotFoundError(member, owner)
    name = match_field_name(member, _sample_field_names(sample))
    if name is None:
        raise FieldNotFoundError(member, owner)
    return FieldAccessor(name=name, python_type=None, from_mapping=from_mapping, owner=owner)
