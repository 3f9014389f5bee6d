"""
Row cursor over one query result.

A ResultSet keeps two independent positions over its handle:

- the explicit position, moved by ``seek()`` and ``fetch_row()``
- the iteration position, moved by ``rewind()``/``advance()`` and by
  iterating the result

Neither ever moves the other. Every read re-seeks the handle to the
position it needs, so interleaving the two is safe on buffered results.
Streaming results only allow reads at the next unread row.
"""
import logging
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any, Self

from resultset.binder import FieldBinder, Setter
from resultset.columns import ColumnDescriptor, TableSchema
from resultset.exceptions import BindingError, DatabaseError, EndOfResults
from resultset.exceptions import driver_errors
from resultset.handle import ResultHandle
from resultset.types import BufferingMode, RowFormat, ValueType

if TYPE_CHECKING:
    from resultset.connection import Connection

logger = logging.getLogger(__name__)

_NOT_CAPTURED = object()


class ResultSet:
    """Rows produced by one execution.

    The output shape of each row is chosen with ``set_row_format()``:
    a dict per row (default), a tuple per row, an object per row, or
    bound destinations refreshed on every fetch.

    Examples
        result = cn.query('select id, name from users')
        for row in result:
            ...
        result.seek(2)
        row = result.fetch_row()
    """

    def __init__(self, handle: ResultHandle, connection: 'Connection | None' = None,
                 on_close: Callable[['ResultSet'], None] | None = None) -> None:
        self._handle = handle
        self._connection = connection
        self._on_close = on_close
        self._position = 0
        self._iter_position = 0
        self._schema: TableSchema | None = None
        self._binder = FieldBinder(lambda: self.schema)
        self._insert_id: Any = _NOT_CAPTURED
        self._insert_id_error: DatabaseError | None = None

    def __repr__(self) -> str:
        state = 'closed' if self.closed else f'position={self._position}'
        return f'ResultSet({self._handle.buffering.value}, rows={self._handle.row_count}, {state})'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._handle.closed

    @property
    def buffering(self) -> BufferingMode:
        return self._handle.buffering

    def close(self) -> None:
        """Release the handle. Every later operation raises BindingError.
        """
        if self.closed:
            return
        self._handle.close()
        logger.debug('Result set closed')
        if self._on_close is not None:
            self._on_close(self)

    def _check_open(self) -> None:
        if self.closed:
            raise BindingError('Result set is closed')

    def _require_columns(self) -> None:
        self._check_open()
        if not self._handle.has_columns:
            raise BindingError('The statement did not produce a result set')

    # Row counts

    @property
    def row_count(self) -> int | None:
        """Number of rows; None for a streaming result not yet exhausted.
        """
        self._check_open()
        return self._handle.row_count

    @property
    def affected_rows(self) -> int:
        """Rows affected by a data-modifying statement, as reported by the driver."""
        return self._handle.affected_rows

    def __len__(self) -> int:
        count = self.row_count
        if count is None:
            raise TypeError('Row count of a streaming result is unknown until it is exhausted')
        return count

    def has_row(self, index: int) -> bool:
        count = self.row_count
        return index >= 0 and (count is None or index < count)

    # Column metadata

    @property
    def schema(self) -> TableSchema:
        """Column descriptors, read once from the handle and cached.
        """
        self._check_open()
        if self._schema is None:
            columns = []
            with driver_errors():
                while (col := self._handle.describe_column(len(columns))) is not None:
                    columns.append(col)
            self._schema = TableSchema(columns)
            logger.debug(f'Loaded {len(columns)} column descriptors')
        return self._schema

    def describe_column(self, selector: int | str) -> ColumnDescriptor | None:
        """Describe a column by ordinal or name; None if not found.

        Name lookups are case-sensitive and return the first match.
        """
        return self.schema.get(selector)

    def column_names(self) -> list[str]:
        return self.schema.names()

    def column_count(self) -> int:
        return len(self.schema)

    # Output mode

    @property
    def row_format(self) -> RowFormat:
        return self._binder.row_format

    def set_row_format(self, row_format: RowFormat) -> None:
        """Select the output mode used by the next fetches.
        """
        self._binder.row_format = RowFormat(row_format)

    def bind_column(self, selector: int | str, destination: Setter,
                    value_type: ValueType = ValueType.STRING) -> None:
        """Bind a column to a destination and switch to bound mode.

        ``destination`` is called with the coerced value on every fetch,
        in registration order. An unknown column is reported by the next
        fetch, not here.
        """
        self._check_open()
        self._binder.bind(selector, destination, value_type)
        self._binder.row_format = RowFormat.BOUND

    def clear_bindings(self) -> None:
        self._binder.clear_bindings()
        if self._binder.row_format is RowFormat.BOUND:
            self._binder.row_format = RowFormat.ASSOCIATIVE

    def set_object_type(self, cls: type) -> None:
        """Materialize rows as blank ``cls`` instances and switch to object mode."""
        self._binder.set_object_type(cls)
        self._binder.row_format = RowFormat.OBJECT

    def set_template(self, template: Any) -> None:
        """Materialize rows as copies of ``template`` and switch to object mode.

        The template itself is never modified.
        """
        self._binder.set_template(template)
        self._binder.row_format = RowFormat.OBJECT

    # Explicit cursor

    def _read(self, index: int) -> tuple:
        """Position the handle at ``index`` and read that row."""
        self._require_columns()
        count = self._handle.row_count
        if index < 0 or (count is not None and index >= count):
            raise EndOfResults(f'Reached end of result set at row {index}')
        self._handle.seek(index)
        raw = self._handle.fetch_raw_row()
        if raw is None:
            raise EndOfResults(f'Reached end of result set at row {index}')
        return raw

    @property
    def position(self) -> int:
        """Explicit cursor position (the row the next fetch_row returns)."""
        return self._position

    def seek(self, index: int) -> None:
        """Move the explicit cursor to ``index``.

        Raises EndOfResults past the last row, DriverError if the handle
        cannot seek (streaming results).
        """
        self._require_columns()
        count = self._handle.row_count
        if index < 0 or (count is not None and index >= count):
            raise EndOfResults(f'Cannot seek to row {index}: past end of result set')
        self._handle.seek(index)
        self._position = index

    def fetch_row(self) -> Any:
        """Return the row at the explicit cursor and advance it.

        Raises EndOfResults once every row has been fetched. In bound mode
        destinations are refreshed and True is returned.

        The cursor moves before the row is shaped, so a row that fails with
        BindingError or DecodeError is still consumed.
        """
        raw = self._read(self._position)
        self._position += 1
        return self._binder.materialize(raw)

    def fetch_all_rows(self) -> list[Any]:
        """Materialize every row, index-ordered.

        Walks the iteration cursor from 0 and leaves it exhausted; the
        explicit cursor is untouched. Every cell, large blobs included, is
        held in memory at once: prefer ``fetch_row()`` for large results.
        """
        return list(self)

    def get_objects(self, cls: type) -> list[Any]:
        """Fetch the remaining rows from the explicit cursor as ``cls`` instances.

        The configured output mode is not changed. Same memory caveat as
        ``fetch_all_rows()``.
        """
        objects = []
        while True:
            try:
                raw = self._read(self._position)
            except EndOfResults:
                return objects
            self._position += 1
            objects.append(self._binder.build_object(cls, raw))

    def load_into(self, obj: Any) -> Any:
        """Populate an existing object from the row at the explicit cursor.

        Columns without a matching attribute are ignored. The cursor does
        not advance.
        """
        raw = self._read(self._position)
        return self._binder.fill_object(obj, raw)

    def __getitem__(self, index: int) -> Any:
        """Random access by row index; neither cursor moves."""
        return self._binder.materialize(self._read(index))

    # Iteration cursor

    def rewind(self) -> None:
        self._check_open()
        self._iter_position = 0

    def valid(self) -> bool:
        count = self.row_count
        return count is None or self._iter_position < count

    def current(self) -> Any:
        return self._binder.materialize(self._read(self._iter_position))

    def key(self) -> int:
        return self._iter_position

    def advance(self) -> None:
        self._iter_position += 1

    def __iter__(self) -> Iterator[Any]:
        self.rewind()
        while self.valid():
            try:
                row = self.current()
            except EndOfResults:
                return
            yield row
            self.advance()

    # Insert identity

    def capture_insert_id(self) -> None:
        """Read the connection's last insert id now and keep it.

        A failure is stored and raised later by ``insert_id()``.
        """
        if self._connection is None:
            self._insert_id_error = BindingError('Result set has no connection')
            return
        try:
            self._insert_id = self._connection.last_insert_id()
            self._insert_id_error = None
        except DatabaseError as exc:
            logger.debug(f'Deferred insert id failure: {exc}')
            self._insert_id = None
            self._insert_id_error = exc

    def insert_id(self) -> Any:
        """Identity generated by this execution.

        Returns the value captured at execution time when capture was
        requested (raising its deferred error, if any); otherwise asks the
        connection now, which reflects its most recent statement.
        """
        if self._insert_id_error is not None:
            raise self._insert_id_error
        if self._insert_id is not _NOT_CAPTURED:
            return self._insert_id
        if self._connection is None:
            raise BindingError('Result set has no connection')
        return self._connection.last_insert_id()
