"""
Exception classes for result materialization and driver failures.
"""
import logging
import sqlite3
from contextlib import contextmanager

import psycopg

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_CODE = -1


class DatabaseError(Exception):
    """Base class for all resultset errors.
    """


class ConfigurationError(DatabaseError, ValueError):
    """Invalid or incomplete connection options.
    """


class MissingEnvError(ConfigurationError):
    """A required environment variable is not set.
    """


class MissingUnixSocketError(ConfigurationError):
    """The configured unix socket path does not exist.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing or maintaining a database connection.
    """

    def __init__(self, message: str, code: int = UNKNOWN_ERROR_CODE) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class BindingError(DatabaseError):
    """A column selector, destination, or value type could not be applied.
    """


class DecodeError(BindingError):
    """A cell could not be decoded into its bound value type.
    """


class EndOfResults(DatabaseError, IndexError):
    """Seek or fetch past the last row of a result.
    """


class DriverError(DatabaseError):
    """Failure surfaced from the underlying driver.

    Carries the driver's numeric error code (``-1`` when the driver
    reports none) and message. ``sqlstate`` is set when the driver
    provides one.
    """

    def __init__(self, code: int | None, message: str, sqlstate: str | None = None) -> None:
        self.code = UNKNOWN_ERROR_CODE if code is None else code
        self.message = message or 'Unknown exception occurred.'
        self.sqlstate = sqlstate
        super().__init__(f'Exception {self.code}: {self.message}')


class QueryError(DriverError):
    """Error in query syntax or execution.
    """


class TransactionError(DatabaseError):
    """Transaction misuse or a failed commit/rollback.
    """


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    ConnectionFailure,
    )

IntegrityError = (
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    sqlite3.ProgrammingError,
    )

OperationalError = (
    psycopg.OperationalError,
    sqlite3.OperationalError,
    )

DriverExceptions = (
    psycopg.Error,
    sqlite3.Error,
    )


def driver_error_code(exc: BaseException) -> tuple[int, str | None]:
    """Extract a numeric code and optional SQLSTATE from a driver exception.
    """
    code = getattr(exc, 'sqlite_errorcode', None)
    if code is not None:
        return int(code), None

    sqlstate = getattr(exc, 'sqlstate', None)
    if sqlstate:
        try:
            return int(sqlstate), sqlstate
        except ValueError:
            return UNKNOWN_ERROR_CODE, sqlstate

    return UNKNOWN_ERROR_CODE, None


def translate(exc: BaseException, kind: type[DatabaseError] = DriverError) -> DatabaseError:
    """Build a resultset error of ``kind`` from a driver exception.
    """
    code, sqlstate = driver_error_code(exc)
    message = str(exc).strip()
    if issubclass(kind, DriverError):
        return kind(code, message, sqlstate)
    if issubclass(kind, ConnectionFailure):
        return kind(message, code)
    return kind(f'Exception {code}: {message}')


@contextmanager
def driver_errors(kind: type[DatabaseError] = DriverError):
    """Translate DB-API exceptions raised inside the block into ``kind``.

    Errors that already belong to this package pass through unchanged.
    """
    try:
        yield
    except DatabaseError:
        raise
    except DriverExceptions as exc:
        logger.debug(f'Driver error translated to {kind.__name__}: {exc}')
        raise translate(exc, kind) from exc
