"""
SQLite-specific strategy implementation.

SQLite is always client-side: both buffering modes use a plain cursor, the
streaming handle simply reads it lazily. ``cursor.description`` carries only
column names, so declared types and tables are reported as unknown.
"""
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

from resultset.strategy.base import DatabaseStrategy, register_strategy
from resultset.types import BufferingMode, register_sqlite_converters

if TYPE_CHECKING:
    from resultset.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL for SQLite."""
        return f'sqlite:///{options.database}'

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        return {
            'connect_args': {
                'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
            }
        }

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']

    def configure_connection(self, raw_conn: Any) -> None:
        """Configure connection settings for SQLite.
        """
        register_sqlite_converters()
        raw_conn.execute('PRAGMA foreign_keys = ON')
        raw_conn.row_factory = None
        self.enable_autocommit(raw_conn)

    def open_cursor(self, raw_conn: Any, buffering: BufferingMode) -> Any:
        return raw_conn.cursor()

    def last_insert_id(self, raw_conn: Any) -> int:
        return self._select_scalar_raw(raw_conn, 'select last_insert_rowid()')

    def begin(self, raw_conn: Any) -> None:
        """Issue an explicit BEGIN; the connection runs in autocommit otherwise.
        """
        raw_conn.execute('BEGIN')

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = None
