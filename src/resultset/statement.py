"""
Reusable prepared statements.

A Statement holds SQL and its bound parameters across executions. Each
``execute()`` closes the result of the previous execution before running
again, so one Statement owns at most one live ResultSet.
"""
import logging
from typing import TYPE_CHECKING, Any, Self

from resultset.exceptions import BindingError
from resultset.result import ResultSet
from resultset.types import BufferingMode

if TYPE_CHECKING:
    from resultset.connection import Connection

logger = logging.getLogger(__name__)


class Statement:
    """SQL prepared once and executed any number of times.

    ``bind_*`` calls append positional parameters in placeholder order.
    Arguments passed to ``execute()`` follow the bound ones.

    Examples
        stmt = cn.prepare('insert into users (name, age) values (?, ?)')
        stmt.bind_string('alice')
        stmt.bind_int('42')
        stmt.execute(capture_insert_id=True)
        user_id = stmt.insert_id()
    """

    def __init__(self, connection: 'Connection', sql: str) -> None:
        self.connection = connection
        self.sql = sql
        self.params: list[Any] = []
        self._result: ResultSet | None = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __repr__(self) -> str:
        return f'Statement({self.sql!r}, params={self.params!r})'

    def bind_value(self, value: Any) -> Self:
        """Append a parameter as-is."""
        self.params.append(value)
        return self

    def bind_int(self, value: Any) -> Self:
        """Append a parameter converted to int; None stays NULL."""
        if value is not None:
            try:
                value = int(value)
            except (TypeError, ValueError) as exc:
                raise BindingError(f'Parameter {len(self.params)}: cannot convert {value!r} to int') from exc
        return self.bind_value(value)

    def bind_string(self, value: Any) -> Self:
        """Append a parameter converted to str; bytes and None are kept."""
        if value is not None and not isinstance(value, bytes):
            value = str(value)
        return self.bind_value(value)

    def clear_params(self) -> None:
        self.params = []

    def execute(self, *args: Any, buffering: BufferingMode | str | None = None,
                capture_insert_id: bool = False) -> ResultSet:
        """Run the statement with the bound parameters followed by ``args``.

        The previous execution's result, if still open, is closed first.
        """
        self.close()
        params = tuple(self.params) + args
        self._result = self.connection.query(
            self.sql, params, buffering=buffering,
            capture_insert_id=capture_insert_id, prepared=True)
        return self._result

    @property
    def result(self) -> ResultSet:
        """Result of the most recent execution."""
        if self._result is None:
            raise BindingError('Statement has not been executed')
        return self._result

    def insert_id(self) -> Any:
        """Identity generated by the most recent execution."""
        return self.result.insert_id()

    def close(self) -> None:
        """Close the result of the last execution, if any."""
        if self._result is not None:
            self._result.close()
            self._result = None
