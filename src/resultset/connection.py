"""
Database connection handling with SQLAlchemy.

This module provides:
1. The `connect()` function for creating new database connections
2. The `Connection` class, which runs statements on the DB-API connection
   underneath a SQLAlchemy connection and hands back ResultSet objects
3. Engine creation and management through a thread-safe registry

Connections run in autocommit mode; explicit transactions are opened with
`begin()` or the `Transaction` context manager.
"""
import atexit
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import fields
from functools import wraps
from typing import TYPE_CHECKING, Any, Self

import sqlalchemy as sa
from resultset.exceptions import BindingError, ConnectionFailure, QueryError
from resultset.exceptions import TransactionError, driver_errors, translate
from resultset.handle import BufferedResultHandle, StreamingResultHandle
from resultset.options import DatabaseOptions
from resultset.result import ResultSet
from resultset.strategy import DatabaseStrategy, get_strategy
from resultset.types import BufferingMode
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from libb import attrdict, load_options

if TYPE_CHECKING:
    from resultset.statement import Statement
    from resultset.transaction import Transaction

__all__ = [
    'Connection',
    'connect',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def get_engine_for_options(options: DatabaseOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.

    Engines never pool: every connection is opened and closed for real.
    """
    strategy = get_strategy(options.drivername)
    url = strategy.build_connection_url(options)

    with _engine_registry_lock:
        if url in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[url]

        engine_kwargs: dict[str, Any] = {'echo': False, 'poolclass': NullPool}
        engine_kwargs.update(strategy.get_engine_kwargs(options))

        engine = engine_factory(url, **engine_kwargs)
        _engine_registry[url] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in list(_engine_registry.values()):
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


def dumpsql(func):
    """Decorator for logging SQL queries, parameters, and timing."""
    @wraps(func)
    def wrapper(self, sql: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{sql}\nargs: {args}')
        try:
            return func(self, sql, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{sql}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            self.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


def _normalize_args(args: tuple) -> tuple | dict:
    """Accept parameters either spread out or as one list/tuple/dict."""
    if len(args) == 1 and isinstance(args[0], list | tuple | dict):
        return args[0] if isinstance(args[0], dict) else tuple(args[0])
    return tuple(args)


class Connection:
    """Wraps a SQLAlchemy connection and executes statements on its driver connection.

    Tracks query counts and execution time, supports the context manager
    protocol, and creates ResultSet objects for every execution.

    A streaming result keeps the connection busy: the next query on this
    connection closes it first.
    """

    def __init__(self, sa_connection: sa.engine.Connection, options: DatabaseOptions) -> None:
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine
        self.options = options
        self.driver_connection = sa_connection.connection.driver_connection
        self.strategy: DatabaseStrategy = get_strategy(options.drivername)
        self.calls = 0
        self.time = 0
        self.in_transaction = False
        self._active_stream: ResultSet | None = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __repr__(self) -> str:
        state = 'closed' if self.closed else 'open'
        return f'Connection({self.dialect}, {state}, calls={self.calls})'

    @property
    def dialect(self) -> str:
        """Return the dialect name ('postgresql' or 'sqlite')."""
        return self.strategy.dialect_name

    @property
    def closed(self) -> bool:
        return self.sa_connection.closed

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def _check_open(self) -> None:
        if self.closed:
            raise ConnectionFailure('Connection has been closed', code=0)

    def close(self) -> None:
        """Close any open streaming result, roll back an unfinished transaction, and close.
        """
        if self.closed:
            return
        self._close_active_stream()
        if self.in_transaction:
            logger.warning('Closing connection with an open transaction; rolling back')
            self.rollback()
        self.sa_connection.close()
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s '
                     f'(avg: {self.time/max(1, self.calls):.3f}s per query)')

    def _close_active_stream(self) -> None:
        if self._active_stream is not None:
            logger.debug('Closing previous streaming result before reusing the connection')
            self._active_stream.close()
            self._active_stream = None

    def _release_stream(self, result: ResultSet) -> None:
        if self._active_stream is result:
            self._active_stream = None

    @dumpsql
    def query(self, sql: str, *args: Any, buffering: BufferingMode | str | None = None,
              capture_insert_id: bool = False, prepared: bool = False) -> ResultSet:
        """Execute a statement and return its ResultSet.

        Args:
            sql: SQL in the driver's paramstyle
            args: Parameters, spread out or as one list/tuple/dict
            buffering: BufferingMode for this execution (default from options)
            capture_insert_id: Read the last insert id immediately; a
                failure is deferred to ResultSet.insert_id()
            prepared: Ask the driver to prepare the statement server-side
        """
        self._check_open()
        buffering = BufferingMode(buffering or self.options.buffering)
        self._close_active_stream()

        with driver_errors(QueryError):
            cursor = self.strategy.open_cursor(self.driver_connection, buffering)
            try:
                self.strategy.execute(cursor, sql, _normalize_args(args), prepared)

                def describe(index, item):
                    return self.strategy.describe_column(self, cursor, index, item)

                if buffering is BufferingMode.STREAMING:
                    handle = StreamingResultHandle(cursor, describe)
                else:
                    handle = BufferedResultHandle(cursor, describe)
            except Exception:
                cursor.close()
                raise

        result = ResultSet(handle, self, on_close=self._release_stream)
        if capture_insert_id:
            result.capture_insert_id()
        if buffering is BufferingMode.STREAMING:
            self._active_stream = result
        return result

    def execute(self, sql: str, *args: Any) -> int:
        """Execute a SQL statement and return the affected row count.
        """
        with self.query(sql, *args, buffering=BufferingMode.BUFFERED) as result:
            return result.affected_rows

    def prepare(self, sql: str) -> 'Statement':
        """Create a reusable prepared statement.
        """
        from resultset.statement import Statement
        self._check_open()
        return Statement(self, sql)

    def last_insert_id(self) -> Any:
        """Identity generated by the most recent insert on this connection.
        """
        self._check_open()
        with driver_errors():
            return self.strategy.last_insert_id(self.driver_connection)

    # Transactions

    def begin(self) -> None:
        """Start an explicit transaction.
        """
        self._check_open()
        if self.in_transaction:
            raise TransactionError('A transaction is already active on this connection')
        with driver_errors(TransactionError):
            self.strategy.begin(self.driver_connection)
        self.in_transaction = True
        logger.debug(f'Started transaction for connection {id(self)}')

    def commit(self) -> None:
        """Commit the active transaction.
        """
        if not self.in_transaction:
            raise TransactionError('No active transaction to commit')
        try:
            with driver_errors(TransactionError):
                self.strategy.commit(self.driver_connection)
        finally:
            self.in_transaction = False
        logger.debug(f'Committed transaction for connection {id(self)}')

    def rollback(self) -> None:
        """Roll back the active transaction.
        """
        if not self.in_transaction:
            raise TransactionError('No active transaction to roll back')
        try:
            with driver_errors(TransactionError):
                self.strategy.rollback(self.driver_connection)
        finally:
            self.in_transaction = False
        logger.debug(f'Rolled back transaction for connection {id(self)}')

    def transaction(self) -> 'Transaction':
        """Context manager running its block in a transaction."""
        from resultset.transaction import Transaction
        return Transaction(self)

    # Convenience selects

    def select(self, sql: str, *args: Any, **kwargs: Any) -> Any:
        """Execute a query and pass its rows through the configured data loader.
        """
        with self.query(sql, *args, buffering=BufferingMode.BUFFERED) as result:
            rows = result.fetch_all_rows()
            data = self.options.data_loader(rows, result.schema, **kwargs)
        logger.debug(f'Select query returned {len(rows)} rows')
        return data

    def _select_rows(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        with self.query(sql, *args, buffering=BufferingMode.BUFFERED) as result:
            return result.fetch_all_rows()

    def select_row(self, sql: str, *args: Any) -> attrdict:
        """Execute a query and return its single row as an attribute dictionary.

        Raises QueryError if the query returns zero or multiple rows.
        """
        rows = self._select_rows(sql, *args)
        if len(rows) != 1:
            raise QueryError(None, f'Expected one row, got {len(rows)}')
        return attrdict(rows[0])

    def select_row_or_none(self, sql: str, *args: Any) -> attrdict | None:
        """Execute a query and return a single row or None if no rows found.
        """
        rows = self._select_rows(sql, *args)
        if len(rows) == 1:
            return attrdict(rows[0])
        return None

    def select_scalar(self, sql: str, *args: Any) -> Any:
        """Execute a query and return the first value of its single row.

        Raises QueryError if the query returns zero or multiple rows.
        """
        row = self.select_row(sql, *args)
        if not row:
            raise BindingError('Query returned no columns')
        return next(iter(row.values()))

    def select_objects(self, cls: type, sql: str, *args: Any) -> list[Any]:
        """Execute a query and materialize every row as a ``cls`` instance.
        """
        with self.query(sql, *args, buffering=BufferingMode.BUFFERED) as result:
            return result.get_objects(cls)


def configure_connection(sa_connection: sa.engine.Connection, strategy: DatabaseStrategy) -> None:
    """Configure a freshly opened connection with dialect-specific settings.
    """
    with driver_errors(ConnectionFailure):
        strategy.configure_connection(sa_connection.connection.driver_connection)


@load_options(cls=DatabaseOptions)
def connect(options: DatabaseOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> Connection:
    """Connect to a database using SQLAlchemy for connection management

    Args:
        options: Can be:
                - DatabaseOptions object
                - String path to configuration
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        Connection object

    Raises
        ConnectionFailure: the driver could not connect
    """
    if isinstance(options, DatabaseOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=DatabaseOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    engine = get_engine_for_options(options)
    strategy = get_strategy(options.drivername)

    try:
        sa_connection = engine.connect()
    except sa.exc.DBAPIError as exc:
        logger.error(f'Could not connect to {options.drivername} database {options.database}')
        raise translate(exc.orig, ConnectionFailure) from exc

    configure_connection(sa_connection, strategy)
    logger.debug(f'Connected to {options.drivername} database {options.database}')

    return Connection(sa_connection, options)
