"""
Result handles over DB-API cursors.

A result handle is the driver-owned side of one query execution: it hands
out raw row tuples, moves its read position, reports a row count when one is
known, and describes its columns one at a time. The row cursor in
``resultset.result`` is built on top of this contract and never touches the
DB-API cursor directly.

Two handles exist, chosen once at execution time:

- BufferedResultHandle reads every row client-side at creation and supports
  arbitrary seeks.
- StreamingResultHandle reads rows on demand and only moves forward. Its row
  count is unknown (None) until the stream is exhausted.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any

from resultset.columns import ColumnDescriptor
from resultset.exceptions import DriverError, driver_errors
from resultset.types import BufferingMode

logger = logging.getLogger(__name__)

DescribeFunc = Callable[[int, Sequence[Any]], ColumnDescriptor]


def _default_describe(index: int, item: Sequence[Any]) -> ColumnDescriptor:
    return ColumnDescriptor.from_cursor_description(item)


class ResultHandle(ABC):
    """Driver-side cursor over zero or more rows.
    """

    buffering: BufferingMode

    def __init__(self, description: Sequence[Sequence[Any]] | None,
                 describe: DescribeFunc | None = None,
                 rowcount: int = -1) -> None:
        self.description = list(description) if description is not None else None
        self.affected_rows = rowcount
        self._describe = describe or _default_describe
        self.closed = False

    @property
    def has_columns(self) -> bool:
        """Whether the execution produced a result set at all."""
        return self.description is not None

    @property
    @abstractmethod
    def row_count(self) -> int | None:
        """Number of rows, or None while unknown."""

    @abstractmethod
    def fetch_raw_row(self) -> tuple | None:
        """Return the row at the read position and advance it.

        Returns None once no rows remain.
        """

    @abstractmethod
    def seek(self, index: int) -> None:
        """Move the read position to ``index``.

        Raises DriverError when the handle cannot move there.
        """

    def describe_column(self, index: int) -> ColumnDescriptor | None:
        """Describe column ``index``; None once past the last column.
        """
        if self.description is None or not 0 <= index < len(self.description):
            return None
        return self._describe(index, self.description[index])

    def close(self) -> None:
        """Release the handle. Idempotent."""
        self.closed = True


class BufferedResultHandle(ResultHandle):
    """Client-side buffered result; every row is read at creation.
    """

    buffering = BufferingMode.BUFFERED

    def __init__(self, cursor: Any, describe: DescribeFunc | None = None) -> None:
        super().__init__(cursor.description, describe, cursor.rowcount)
        with driver_errors():
            self._rows = [tuple(row) for row in cursor.fetchall()] if self.has_columns else []
        self._index = 0
        # kept open until close(): some drivers read column metadata from it
        self._cursor = cursor
        logger.debug(f'Buffered {len(self._rows)} rows')

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def fetch_raw_row(self) -> tuple | None:
        if self._index >= len(self._rows):
            return None
        row = self._rows[self._index]
        self._index += 1
        return row

    def seek(self, index: int) -> None:
        if not 0 <= index <= len(self._rows):
            raise DriverError(None, f'Seek to row {index} outside buffered result of {len(self._rows)} rows')
        self._index = index

    def close(self) -> None:
        if not self.closed:
            with driver_errors():
                self._cursor.close()
        self._rows = []
        self._index = 0
        super().close()


class StreamingResultHandle(ResultHandle):
    """Forward-only result read from the driver on demand.

    Seeking is only possible to the next unread row, which is what a
    sequential fetch asks for.
    """

    buffering = BufferingMode.STREAMING

    def __init__(self, cursor: Any, describe: DescribeFunc | None = None) -> None:
        super().__init__(cursor.description, describe, cursor.rowcount)
        self._cursor = cursor
        self._index = 0
        self._exhausted = not self.has_columns

    @property
    def row_count(self) -> int | None:
        if self._exhausted:
            return self._index
        return None

    def fetch_raw_row(self) -> tuple | None:
        if self._exhausted:
            return None
        with driver_errors():
            row = self._cursor.fetchone()
        if row is None:
            self._exhausted = True
            logger.debug(f'Stream exhausted after {self._index} rows')
            return None
        self._index += 1
        return tuple(row)

    def seek(self, index: int) -> None:
        if index != self._index:
            raise DriverError(None, f'Cannot seek to row {index}: streaming result is positioned at row {self._index}')

    def close(self) -> None:
        if not self.closed:
            with driver_errors():
                self._cursor.close()
        super().close()
