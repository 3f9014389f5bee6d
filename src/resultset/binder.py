"""
Field binder: turns raw row tuples into the active output shape.

Destinations in bound mode are plain one-argument callables. Helpers are
provided for the usual targets:

- Slot: a standalone variable (``slot.value``)
- item_setter(mapping, key): one entry of a dict
- attr_setter(obj, name): one attribute of an object
"""
import logging
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from typing import Any

from resultset.columns import TableSchema
from resultset.exceptions import BindingError
from resultset.mapping import ObjectMapping, clone_template, mapping_for
from resultset.mapping import mapping_for_template
from resultset.types import RowFormat, ValueType, coerce

logger = logging.getLogger(__name__)

Setter = Callable[[Any], None]


class Slot:
    """Mutable holder for one bound column value.
    """

    def __init__(self, value: Any = None) -> None:
        self.value = value

    def __call__(self, value: Any) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f'Slot({self.value!r})'


def item_setter(mapping: MutableMapping, key: Any) -> Setter:
    """Setter writing into ``mapping[key]``."""
    def write(value: Any) -> None:
        mapping[key] = value
    return write


def attr_setter(obj: Any, name: str) -> Setter:
    """Setter assigning ``obj.name``."""
    def write(value: Any) -> None:
        setattr(obj, name, value)
    return write


@dataclass(frozen=True)
class Binding:
    """One registered column destination."""
    selector: int | str
    write: Setter
    value_type: ValueType


class FieldBinder:
    """Materializes rows for one result in the selected RowFormat.

    The schema is supplied lazily so that column introspection only runs
    when a mode needs it.
    """

    def __init__(self, schema: Callable[[], TableSchema]) -> None:
        self._schema = schema
        self.row_format = RowFormat.ASSOCIATIVE
        self.bindings: list[Binding] = []
        self._object_type: type | None = None
        self._template: Any = None
        self._resolved_mapping: tuple[ObjectMapping, list] | None = None

    def bind(self, selector: int | str, destination: Setter,
             value_type: ValueType = ValueType.STRING) -> None:
        """Register a destination for a column.

        The column is not checked here; an unknown selector fails at the
        next fetch.
        """
        if not callable(destination):
            raise BindingError(f'Destination for column {selector!r} is not callable')
        self.bindings.append(Binding(selector, destination, value_type))

    def clear_bindings(self) -> None:
        self.bindings = []

    def set_object_type(self, cls: type) -> None:
        self._object_type = cls
        self._template = None
        self._resolved_mapping = None

    def set_template(self, template: Any) -> None:
        if isinstance(template, type):
            raise BindingError('Object template must be an instance, not a class')
        self._template = template
        self._object_type = None
        self._resolved_mapping = None

    def materialize(self, raw: tuple, row_format: RowFormat | None = None) -> Any:
        """Shape one raw row according to ``row_format`` (default: the active mode).
        """
        row_format = row_format or self.row_format
        if row_format is RowFormat.ASSOCIATIVE:
            return dict(zip(self._schema().names(), raw))
        if row_format is RowFormat.NUMERIC:
            return tuple(raw)
        if row_format is RowFormat.BOUND:
            return self._refresh_bindings(raw)
        return self._build_object(raw)

    def _refresh_bindings(self, raw: tuple) -> bool:
        if not self.bindings:
            raise BindingError('No columns are bound')
        schema = self._schema()
        values = []
        for binding in self.bindings:
            index = schema.index_of(binding.selector)
            if index is None:
                raise BindingError(f'Bound column {binding.selector!r} does not exist in the result')
            values.append(coerce(raw[index], binding.value_type, binding.selector))
        for binding, value in zip(self.bindings, values):
            binding.write(value)
        return True

    def _object_mapping(self) -> tuple[ObjectMapping, list]:
        if self._resolved_mapping is None:
            if self._template is not None:
                mapping = mapping_for_template(self._template)
            elif self._object_type is not None:
                mapping = mapping_for(self._object_type)
            else:
                raise BindingError('No object type or template set for object mode')
            self._resolved_mapping = (mapping, mapping.resolve(self._schema()))
        return self._resolved_mapping

    def _build_object(self, raw: tuple) -> Any:
        mapping, resolved = self._object_mapping()
        values = self.object_values(raw, resolved)
        if self._template is not None:
            obj = clone_template(self._template)
        else:
            obj = mapping.blank()
        return ObjectMapping.populate(obj, values)

    def build_object(self, cls: type, raw: tuple) -> Any:
        """Materialize ``raw`` as ``cls`` without touching the configured target."""
        mapping = mapping_for(cls)
        values = self.object_values(raw, mapping.resolve(self._schema()))
        return ObjectMapping.populate(mapping.blank(), values)

    def fill_object(self, obj: Any, raw: tuple) -> Any:
        """Populate an existing object from ``raw``."""
        mapping = mapping_for_template(obj)
        values = self.object_values(raw, mapping.resolve(self._schema()))
        return ObjectMapping.populate(obj, values)

    @staticmethod
    def object_values(raw: tuple, resolved: list) -> list[tuple[str, Any]]:
        return [(fm.attr, coerce(raw[index], fm.value_type, fm.row_name))
                for index, fm in resolved]
