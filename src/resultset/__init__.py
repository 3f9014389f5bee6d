"""
Result materialization for DB-API connections (SQLite and PostgreSQL).

All query operations can be called either as:
- Module functions: rs.select(cn, sql, *args)
- Connection methods: cn.select(sql, *args)

Rows are read through a ResultSet, which offers an explicit cursor
(``seek``/``fetch_row``), an iteration cursor, and four output modes:
associative dicts, numeric tuples, mapped objects, and bound destinations.
"""
__version__ = '0.1.0'

from typing import Any

from resultset.binder import Slot, attr_setter, item_setter
from resultset.columns import ColumnDescriptor, TableSchema
from resultset.connection import Connection, connect
from resultset.exceptions import BindingError, ConfigurationError
from resultset.exceptions import ConnectionFailure, DatabaseError, DbConnectionError
from resultset.exceptions import DecodeError, DriverError, EndOfResults
from resultset.exceptions import IntegrityError, MissingEnvError
from resultset.exceptions import MissingUnixSocketError, OperationalError
from resultset.exceptions import ProgrammingError, QueryError, TransactionError
from resultset.mapping import column
from resultset.options import DatabaseOptions, credentials_from_env
from resultset.result import ResultSet
from resultset.statement import Statement
from resultset.transaction import Transaction as transaction
from resultset.types import BufferingMode, RowFormat, ValueType


def execute(cn: Connection, sql: str, *args: Any) -> int:
    """Execute a SQL statement and return affected row count.
    """
    return cn.execute(sql, *args)


delete = execute
insert = execute
update = execute


def query(cn: Connection, sql: str, *args: Any, **kwargs: Any) -> ResultSet:
    """Execute a statement and return its ResultSet.
    """
    return cn.query(sql, *args, **kwargs)


def select(cn: Connection, sql: str, *args: Any, **kwargs: Any) -> Any:
    """Execute a query and return rows through the configured data loader.
    """
    return cn.select(sql, *args, **kwargs)


def select_row(cn: Connection, sql: str, *args: Any) -> Any:
    """Execute a query and return a single row.

    Raises QueryError if the query returns zero or multiple rows.
    """
    return cn.select_row(sql, *args)


def select_row_or_none(cn: Connection, sql: str, *args: Any) -> Any | None:
    """Execute a query and return a single row or None if no rows found.
    """
    return cn.select_row_or_none(sql, *args)


def select_scalar(cn: Connection, sql: str, *args: Any) -> Any:
    """Execute a query and return a single scalar value.

    Raises QueryError if the query returns zero or multiple rows.
    """
    return cn.select_scalar(sql, *args)


def select_objects(cn: Connection, cls: type, sql: str, *args: Any) -> list[Any]:
    """Execute a query and return every row as a ``cls`` instance.
    """
    return cn.select_objects(cls, sql, *args)


__all__ = [
    'BindingError',
    'BufferingMode',
    'ColumnDescriptor',
    'ConfigurationError',
    'Connection',
    'ConnectionFailure',
    'DatabaseError',
    'DatabaseOptions',
    'DbConnectionError',
    'DecodeError',
    'DriverError',
    'EndOfResults',
    'IntegrityError',
    'MissingEnvError',
    'MissingUnixSocketError',
    'OperationalError',
    'ProgrammingError',
    'QueryError',
    'ResultSet',
    'RowFormat',
    'Slot',
    'Statement',
    'TableSchema',
    'TransactionError',
    'ValueType',
    'attr_setter',
    'column',
    'connect',
    'credentials_from_env',
    'delete',
    'execute',
    'insert',
    'item_setter',
    'query',
    'select',
    'select_objects',
    'select_row',
    'select_row_or_none',
    'select_scalar',
    'transaction',
    'update',
]
