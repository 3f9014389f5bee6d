"""
Object-mode mapping tables.

Each target type gets one ObjectMapping, built on first use and cached:
a list of fields, each naming the row column it reads from and the
ValueType used to coerce the cell. Dataclass fields declare overrides with
``column()``::

    @dataclass
    class User:
        id: int = column('Id')
        name: str = column('Name')
        settings: dict = column('Settings', ValueType.JSON, default_factory=dict)

Plain classes are mapped from their annotations, templates without
annotations from their instance attributes. Without an explicit
ValueType the annotation decides (int, float, str/bytes, dict/list, binary
IO); anything else maps as STRING, which assigns the driver value unchanged
(dates, Decimals and bools arrive as the driver produced them).
"""
import copy
import dataclasses
import io
import logging
import types
import typing
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import cachetools
from resultset.cache import Cache
from resultset.columns import TableSchema
from resultset.types import ValueType

logger = logging.getLogger(__name__)

T = TypeVar('T')

_METADATA_KEY = 'resultset'
_NO_DEFAULT = object()

_ANNOTATION_TYPES: dict[Any, ValueType] = {
    int: ValueType.INTEGER,
    float: ValueType.FLOAT,
    str: ValueType.STRING,
    bytes: ValueType.STRING,
    dict: ValueType.JSON,
    list: ValueType.JSON,
    typing.BinaryIO: ValueType.STREAM,
    typing.IO: ValueType.STREAM,
    io.BytesIO: ValueType.STREAM,
}


def column(row_name: str | None = None, value_type: ValueType | None = None, *,
           default: Any = dataclasses.MISSING,
           default_factory: Any = dataclasses.MISSING) -> Any:
    """Declare the row column and value type for a dataclass field.

    ``row_name`` defaults to the field name; ``value_type`` defaults to
    the type implied by the annotation.
    """
    if default is dataclasses.MISSING and default_factory is dataclasses.MISSING:
        default = None
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata={_METADATA_KEY: (row_name, value_type)},
        )


def _value_type_for(annotation: Any) -> ValueType:
    origin = typing.get_origin(annotation)
    if origin in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return _value_type_for(args[0])
        return ValueType.STRING
    if origin is not None:
        annotation = origin
    return _ANNOTATION_TYPES.get(annotation, ValueType.STRING)


@dataclass(frozen=True)
class FieldMapping:
    """One declared field: target attribute, source column, coercion."""
    attr: str
    row_name: str
    value_type: ValueType
    default: Any = _NO_DEFAULT
    default_factory: Callable[[], Any] | None = None

    def default_value(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        if self.default is _NO_DEFAULT:
            return None
        return self.default


class ObjectMapping:
    """Row-name to attribute table for one target type.
    """

    def __init__(self, target: type, fields: list[FieldMapping]) -> None:
        self.target = target
        self.fields = fields

    def __repr__(self) -> str:
        return f'ObjectMapping({self.target.__name__}, {[f.row_name for f in self.fields]!r})'

    def resolve(self, schema: TableSchema) -> list[tuple[int, FieldMapping]]:
        """Pair each field with the position of its column.

        Fields whose row name has no column are left out.
        """
        resolved = []
        for fm in self.fields:
            index = schema.index_of(fm.row_name)
            if index is not None:
                resolved.append((index, fm))
        return resolved

    def blank(self) -> Any:
        """Create an instance without running its constructor.

        Every declared field starts at its default, or None.
        """
        obj = self.target.__new__(self.target)
        for fm in self.fields:
            object.__setattr__(obj, fm.attr, fm.default_value())
        return obj

    @staticmethod
    def populate(obj: T, values: list[tuple[str, Any]]) -> T:
        """Assign (attribute, value) pairs directly, bypassing __setattr__ hooks."""
        for attr, value in values:
            object.__setattr__(obj, attr, value)
        return obj


def _dataclass_fields(cls: type, hints: dict[str, Any]) -> list[FieldMapping]:
    fields = []
    for f in dataclasses.fields(cls):
        row_name, value_type = f.metadata.get(_METADATA_KEY, (None, None))
        fields.append(FieldMapping(
            attr=f.name,
            row_name=row_name or f.name,
            value_type=value_type or _value_type_for(hints.get(f.name, f.type)),
            default=f.default if f.default is not dataclasses.MISSING else _NO_DEFAULT,
            default_factory=f.default_factory if f.default_factory is not dataclasses.MISSING else None,
            ))
    return fields


def _annotated_fields(cls: type, hints: dict[str, Any]) -> list[FieldMapping]:
    fields = []
    for attr, annotation in hints.items():
        if attr.startswith('_') or typing.get_origin(annotation) is typing.ClassVar:
            continue
        fields.append(FieldMapping(
            attr=attr,
            row_name=attr,
            value_type=_value_type_for(annotation),
            default=getattr(cls, attr, _NO_DEFAULT),
            ))
    return fields


def _mapping_cache() -> cachetools.LRUCache:
    return Cache.get_instance().get_cache('object_mappings', maxsize=256)


def mapping_for(cls: type) -> ObjectMapping:
    """Return the cached mapping table for ``cls``.
    """
    cache = _mapping_cache()
    mapping = cache.get(cls)
    if mapping is not None:
        return mapping

    try:
        hints = typing.get_type_hints(cls)
    except (NameError, TypeError):
        hints = dict(getattr(cls, '__annotations__', {}))

    if dataclasses.is_dataclass(cls):
        fields = _dataclass_fields(cls, hints)
    else:
        fields = _annotated_fields(cls, hints)

    mapping = ObjectMapping(cls, fields)
    cache[cls] = mapping
    logger.debug(f'Built {mapping!r}')
    return mapping


def mapping_for_template(template: Any) -> ObjectMapping:
    """Mapping for a template instance.

    Uses the class declarations when present, otherwise the instance's
    own attributes, typed by their current values (None maps as STRING).
    """
    mapping = mapping_for(type(template))
    if mapping.fields:
        return mapping
    fields = [FieldMapping(attr=name, row_name=name, value_type=_value_type_for(type(value)))
              for name, value in vars(template).items() if not name.startswith('_')]
    return ObjectMapping(type(template), fields)


def clone_template(template: T) -> T:
    """Shallow copy of a template; the template itself is never modified."""
    return copy.copy(template)
