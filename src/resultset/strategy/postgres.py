"""
PostgreSQL-specific strategy implementation.

Streaming results use psycopg server-side (named) cursors declared WITH HOLD
so they survive the autocommit mode the connection normally runs in.
Column metadata is enriched with the type name from psycopg's type registry
and the originating table resolved from the result's table OIDs.
"""
import itertools
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from resultset.cache import cacheable_strategy
from resultset.columns import ColumnDescriptor
from resultset.strategy.base import DatabaseStrategy, register_strategy
from resultset.types import BufferingMode

if TYPE_CHECKING:
    from resultset.connection import Connection
    from resultset.options import DatabaseOptions

logger = logging.getLogger(__name__)

_cursor_names = itertools.count(1)


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL for PostgreSQL.

        A hostname that is an absolute path is passed as a unix socket
        directory.
        """
        query_parts = []
        if options.timeout:
            query_parts.append(f'connect_timeout={options.timeout}')
        if options.appname:
            query_parts.append(f'application_name={options.appname}')

        if options.hostname and options.hostname.startswith('/'):
            query_parts.append(f'host={options.hostname}')
            url = (f'postgresql+psycopg://{options.username}:{options.password}'
                   f'@/{options.database}')
        else:
            url = (f'postgresql+psycopg://{options.username}:{options.password}'
                   f'@{options.hostname}:{options.port}/{options.database}')

        if query_parts:
            url += '?' + '&'.join(query_parts)

        return url

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for PostgreSQL."""
        return {}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port']

    def configure_connection(self, raw_conn: Any) -> None:
        """Configure connection settings for PostgreSQL.
        """
        self.enable_autocommit(raw_conn)

    def open_cursor(self, raw_conn: Any, buffering: BufferingMode) -> Any:
        if buffering is BufferingMode.STREAMING:
            name = f'resultset_{next(_cursor_names)}'
            logger.debug(f'Opening server-side cursor {name}')
            return raw_conn.cursor(name=name, withhold=True)
        return raw_conn.cursor()

    def execute(self, cursor: Any, sql: str, params: tuple | dict,
                prepared: bool = False) -> None:
        """Run ``sql``; prepared statements ask psycopg to prepare server-side.

        Server-side cursors do not accept ``prepare``.
        """
        params = params or None
        if prepared and getattr(cursor, 'name', None) is None:
            cursor.execute(sql, params, prepare=True)
        else:
            cursor.execute(sql, params)

    def last_insert_id(self, raw_conn: Any) -> int:
        """Read ``lastval()``; inside a transaction the lookup runs in a savepoint.

        lastval() fails when no sequence was used in the session, and that
        failure must not abort the caller's transaction.
        """
        if raw_conn.autocommit:
            return self._select_scalar_raw(raw_conn, 'select lastval()')
        with raw_conn.transaction():
            return self._select_scalar_raw(raw_conn, 'select lastval()')

    def begin(self, raw_conn: Any) -> None:
        """Leave autocommit; psycopg opens the transaction on the next statement.
        """
        raw_conn.autocommit = False

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = True

    def describe_column(self, cn: 'Connection', cursor: Any, index: int,
                        item: Sequence[Any]) -> ColumnDescriptor:
        """Describe a column with its type name and originating table.
        """
        type_code = getattr(item, 'type_code', None)
        type_info = cn.driver_connection.adapters.types.get(type_code) if type_code else None
        declared_type = type_info.name if type_info is not None else None

        table = None
        pgresult = getattr(cursor, 'pgresult', None)
        if pgresult is not None and index < pgresult.nfields:
            table_oid = pgresult.ftable(index)
            if table_oid:
                table = self.get_table_name(cn, table_oid)

        return ColumnDescriptor.from_cursor_description(item, declared_type=declared_type, table=table)

    @cacheable_strategy('table_names', ttl=300, maxsize=200)
    def get_table_name(self, cn: 'Connection', table_oid: int) -> str | None:
        """Resolve a table OID to its name.
        """
        return self._select_scalar_raw(
            cn.driver_connection, 'select relname from pg_class where oid = %s', (table_oid,))
