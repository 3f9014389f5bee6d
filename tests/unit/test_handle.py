import sqlite3
from unittest import mock

import pytest
from resultset.columns import ColumnDescriptor
from resultset.exceptions import DriverError, QueryError
from resultset.handle import BufferedResultHandle, StreamingResultHandle
from resultset.types import BufferingMode


def test_buffered_handle(fake_cursor):
    cursor = fake_cursor(['Id'], [(1,), (2,)])
    handle = BufferedResultHandle(cursor)

    assert handle.buffering is BufferingMode.BUFFERED
    assert handle.row_count == 2
    assert handle.fetch_raw_row() == (1,)
    handle.seek(0)
    assert handle.fetch_raw_row() == (1,)
    assert handle.fetch_raw_row() == (2,)
    assert handle.fetch_raw_row() is None
    with pytest.raises(DriverError):
        handle.seek(5)

    handle.close()
    assert handle.closed
    assert cursor.closed


def test_describe_column_walk(fake_cursor):
    """Test describe_column returns None once past the last column"""
    handle = BufferedResultHandle(fake_cursor(['Id', 'Name'], []))

    assert handle.describe_column(1).name == 'Name'
    assert handle.describe_column(2) is None
    assert handle.describe_column(-1) is None


def test_custom_describe(fake_cursor):
    def describe(index, item):
        return ColumnDescriptor.from_cursor_description(item, table='users')

    handle = BufferedResultHandle(fake_cursor(['Id'], []), describe)
    assert handle.describe_column(0).table == 'users'


def test_streaming_handle(fake_cursor):
    handle = StreamingResultHandle(fake_cursor(['Id'], [(1,), (2,)]))

    assert handle.buffering is BufferingMode.STREAMING
    assert handle.row_count is None
    handle.seek(0)
    assert handle.fetch_raw_row() == (1,)
    with pytest.raises(DriverError):
        handle.seek(0)
    assert handle.fetch_raw_row() == (2,)
    assert handle.fetch_raw_row() is None
    assert handle.row_count == 2


def test_streaming_without_columns(fake_cursor):
    handle = StreamingResultHandle(fake_cursor(None, [], rowcount=3))

    assert handle.row_count == 0
    assert handle.affected_rows == 3
    assert handle.fetch_raw_row() is None


def test_driver_failure_while_fetching(fake_cursor):
    cursor = fake_cursor(['Id'], [])
    cursor.fetchone = mock.Mock(side_effect=sqlite3.OperationalError('interrupted'))
    handle = StreamingResultHandle(cursor)

    with pytest.raises(DriverError) as exc_info:
        handle.fetch_raw_row()
    assert not isinstance(exc_info.value, QueryError)
