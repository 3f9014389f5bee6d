"""
Column metadata for query results.
"""
import logging
from collections.abc import Iterator, Sequence
from dataclasses import asdict, dataclass, field
from typing import Any, Self

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnDescriptor:
    """Immutable snapshot of one result column.

    - name: column name (or alias) as reported by the driver
    - declared_type: declared database type name, when the driver exposes it
    - table: originating table name, when the driver exposes it
    - length: internal byte length
    - precision/scale: numeric precision and scale
    - nullable: whether the column allows NULL, when known
    - flags: driver flags (e.g. ``not_null``)
    """
    name: str
    declared_type: str | None = None
    table: str | None = None
    length: int | None = None
    precision: int | None = None
    scale: int | None = None
    nullable: bool | None = None
    flags: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_cursor_description(cls, item: Sequence[Any], **extras: Any) -> Self:
        """Create a descriptor from one DB-API ``cursor.description`` item.

        DB-API items are ``(name, type_code, display_size, internal_size,
        precision, scale, null_ok)``; short items (sqlite3 fills only the
        name) are padded with None. ``extras`` override or add fields, e.g.
        ``declared_type`` and ``table`` resolved by a dialect strategy.
        """
        values = list(item) + [None] * (7 - len(item))
        name, _, _, internal_size, precision, scale, null_ok = values[:7]
        nullable = None if null_ok is None else bool(null_ok)
        flags = ('not_null',) if nullable is False else ()
        info = {
            'name': str(name),
            'length': internal_size,
            'precision': precision,
            'scale': scale,
            'nullable': nullable,
            'flags': flags,
            }
        info.update(extras)
        return cls(**info)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization.
        """
        info = asdict(self)
        info['flags'] = list(self.flags)
        return info


class TableSchema(Sequence[ColumnDescriptor]):
    """Ordered column descriptors of one result.

    Indexable by position; name lookups are case-sensitive and return the
    first matching column. Duplicate names (e.g. the same column name from
    two joined tables) are not disambiguated.
    """

    def __init__(self, columns: Sequence[ColumnDescriptor] = ()) -> None:
        self._columns = tuple(columns)

    def __getitem__(self, index):
        return self._columns[index]

    def __len__(self) -> int:
        return len(self._columns)

    def __iter__(self) -> Iterator[ColumnDescriptor]:
        return iter(self._columns)

    def __repr__(self) -> str:
        return f'TableSchema({self.names()!r})'

    def get(self, selector: int | str) -> ColumnDescriptor | None:
        """Look up a column by ordinal or by name; None if not found.
        """
        index = self.index_of(selector)
        if index is None:
            return None
        return self._columns[index]

    def index_of(self, selector: int | str) -> int | None:
        """Resolve an ordinal or a name to a column position; None if not found.
        """
        if isinstance(selector, bool):
            return None
        if isinstance(selector, int):
            if 0 <= selector < len(self._columns):
                return selector
            return None
        for i, col in enumerate(self._columns):
            if col.name == selector:
                return i
        return None

    def names(self) -> list[str]:
        """Column names in schema order.
        """
        return [col.name for col in self._columns]

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Column metadata dictionaries indexed by name (first match wins).
        """
        info: dict[str, dict[str, Any]] = {}
        for col in self._columns:
            info.setdefault(col.name, col.to_dict())
        return info
