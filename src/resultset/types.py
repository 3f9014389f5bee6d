"""
Value types, row formats, and fetch-time coercion.

This module provides:
- ValueType: the declared type of a bound column or mapped field
- RowFormat: the output mode of a result set
- BufferingMode: how a result handle holds its rows
- coerce: convert a driver cell into a declared ValueType
- SQLite converters for date/datetime columns
"""
import datetime
import enum
import io
import json
import logging
import sqlite3
from typing import Any

import dateutil.parser
from resultset.exceptions import BindingError, DecodeError

logger = logging.getLogger(__name__)


class ValueType(enum.Enum):
    """Declared type of a column destination.
    """
    INTEGER = 'integer'
    FLOAT = 'float'
    STRING = 'string'  # driver value as-is
    JSON = 'json'
    STREAM = 'stream'


class RowFormat(enum.Enum):
    """Output mode of a result set.
    """
    ASSOCIATIVE = 'associative'
    NUMERIC = 'numeric'
    OBJECT = 'object'
    BOUND = 'bound'


class BufferingMode(enum.Enum):
    """Whether rows are held client-side or streamed from the server.

    Fixed when the result handle is created.
    """
    BUFFERED = 'buffered'
    STREAMING = 'streaming'


def _to_integer(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, bytes | bytearray | memoryview):
        value = bytes(value).decode()
    return int(value)


def _to_float(value: Any) -> float:
    if isinstance(value, bytes | bytearray | memoryview):
        value = bytes(value).decode()
    return float(value)


def _to_string(value: Any) -> Any:
    if isinstance(value, bytearray | memoryview):
        return bytes(value)
    return value


def _to_json(value: Any) -> Any:
    if isinstance(value, dict | list):
        return value
    if isinstance(value, bytes | bytearray | memoryview):
        value = bytes(value).decode()
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise DecodeError(f'Invalid JSON value: {exc}') from exc


def _to_stream(value: Any) -> io.BytesIO:
    if isinstance(value, str):
        return io.BytesIO(value.encode())
    return io.BytesIO(bytes(value))


_COERCERS = {
    ValueType.INTEGER: _to_integer,
    ValueType.FLOAT: _to_float,
    ValueType.STRING: _to_string,
    ValueType.JSON: _to_json,
    ValueType.STREAM: _to_stream,
}


def coerce(value: Any, value_type: ValueType, column: str | int | None = None) -> Any:
    """Convert a raw driver cell to ``value_type``.

    SQL NULL (``None``) is returned unchanged. STRING keeps the driver's
    value (dates, Decimals, bools included); only bytearray and memoryview
    cells become bytes. Conversion failures raise BindingError; JSON decode
    failures raise DecodeError.
    """
    if value is None:
        return None
    try:
        return _COERCERS[value_type](value)
    except DecodeError as exc:
        raise DecodeError(f'Column {column!r}: {exc}') from exc.__cause__
    except (TypeError, ValueError) as exc:
        raise BindingError(
            f'Column {column!r}: cannot convert {type(value).__name__} to {value_type.name}'
        ) from exc


# SQLite converters - database values to Python

def convert_date(val: bytes) -> datetime.date:
    """Convert ISO 8601 date string to date object."""
    return dateutil.parser.isoparse(val.decode()).date()


def convert_datetime(val: bytes) -> datetime.datetime:
    """Convert ISO 8601 datetime string to datetime object."""
    return dateutil.parser.isoparse(val.decode())


def register_sqlite_converters() -> None:
    """Register date/datetime converters for declared SQLite column types."""
    sqlite3.register_converter('date', convert_date)
    sqlite3.register_converter('datetime', convert_datetime)
