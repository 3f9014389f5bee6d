"""
Transaction handling for database operations.
"""
import logging
from typing import TYPE_CHECKING, Any, Self

from resultset.result import ResultSet

if TYPE_CHECKING:
    from resultset.connection import Connection

logger = logging.getLogger(__name__)


class Transaction:
    """Context manager for running multiple commands in a transaction.

    Commits when the block exits normally and rolls back when it raises.
    Nesting on the same connection raises TransactionError.

    Examples
        with cn.transaction() as tx:
            tx.execute('insert into users (name) values (?)', 'alice')
            user_id = tx.connection.last_insert_id()
    """

    def __init__(self, connection: 'Connection') -> None:
        self.connection = connection

    def __enter__(self) -> Self:
        self.connection.begin()
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        if exc_type is not None:
            logger.warning(f'Rolling back transaction after {exc_type.__name__}: {exc_val}')
            self.connection.rollback()
        else:
            self.connection.commit()

    def execute(self, sql: str, *args: Any) -> int:
        """Execute a SQL statement inside the transaction."""
        return self.connection.execute(sql, *args)

    def query(self, sql: str, *args: Any, **kwargs: Any) -> ResultSet:
        return self.connection.query(sql, *args, **kwargs)

    def select(self, sql: str, *args: Any, **kwargs: Any) -> Any:
        """Execute a query and pass its rows through the data loader."""
        return self.connection.select(sql, *args, **kwargs)
