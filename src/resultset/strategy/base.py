"""
Base strategy interface for driver-specific operations.

Each dialect strategy wraps the handful of places where the DB-API drivers
differ: connection URLs, connection setup, cursor creation for each
buffering mode, last-insert-id lookup, explicit transaction control, and
column metadata beyond what ``cursor.description`` carries. Everything else
in the package talks to the driver only through these methods.
"""
from abc import ABC, abstractmethod
from collections.abc import Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from resultset.columns import ColumnDescriptor
from resultset.exceptions import ConfigurationError
from resultset.types import BufferingMode

if TYPE_CHECKING:
    from resultset.connection import Connection
    from resultset.options import DatabaseOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for driver-specific operations.
    """

    @contextmanager
    def _cursor(self, raw_conn: Any, sql: str, params: tuple | None = None):
        """Context manager for cursor lifecycle.
        """
        cursor = raw_conn.cursor()
        try:
            cursor.execute(sql, params or ())
            yield cursor
        finally:
            cursor.close()

    def _select_scalar_raw(self, raw_conn: Any, sql: str, params: tuple | None = None) -> Any:
        """Execute SQL and return the first column of the first row, or None.
        """
        with self._cursor(raw_conn, sql, params) as cursor:
            row = cursor.fetchone()
            return row[0] if row else None

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'postgresql', 'sqlite')."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL for this dialect.
        """

    @abstractmethod
    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect.
        """

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Raises
            ConfigurationError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ConfigurationError(f'field {field} cannot be None or 0')

    @abstractmethod
    def configure_connection(self, raw_conn: Any) -> None:
        """Apply dialect settings to a freshly opened DB-API connection.
        """

    @abstractmethod
    def open_cursor(self, raw_conn: Any, buffering: BufferingMode) -> Any:
        """Create a cursor suitable for the given buffering mode.
        """

    def execute(self, cursor: Any, sql: str, params: tuple | dict,
                prepared: bool = False) -> None:
        """Run ``sql`` on ``cursor``.

        ``params`` is a tuple for positional placeholders or a dict for
        named ones. ``prepared`` marks statements executed repeatedly
        through a Statement; drivers without server-side preparation
        ignore it.
        """
        if params:
            cursor.execute(sql, params)
        else:
            cursor.execute(sql)

    @abstractmethod
    def last_insert_id(self, raw_conn: Any) -> Any:
        """Return the identity generated by the most recent insert on the connection.
        """

    @abstractmethod
    def begin(self, raw_conn: Any) -> None:
        """Start an explicit transaction."""

    def commit(self, raw_conn: Any) -> None:
        """Commit the explicit transaction and return to autocommit."""
        try:
            raw_conn.commit()
        finally:
            self.enable_autocommit(raw_conn)

    def rollback(self, raw_conn: Any) -> None:
        """Roll back the explicit transaction and return to autocommit."""
        try:
            raw_conn.rollback()
        finally:
            self.enable_autocommit(raw_conn)

    @abstractmethod
    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode on a raw database connection.
        """

    def describe_column(self, cn: 'Connection', cursor: Any, index: int,
                        item: Sequence[Any]) -> ColumnDescriptor:
        """Build a ColumnDescriptor for one description item.

        The default uses only what DB-API exposes. Strategies override this
        to add the declared type and originating table.
        """
        return ColumnDescriptor.from_cursor_description(item)
