import sqlite3

import pytest
from resultset.exceptions import BindingError, ConfigurationError, ConnectionFailure
from resultset.exceptions import DatabaseError, DecodeError, DriverError
from resultset.exceptions import EndOfResults, QueryError, TransactionError
from resultset.exceptions import driver_errors, translate


def test_driver_error_format():
    assert str(DriverError(1064, 'syntax error')) == 'Exception 1064: syntax error'
    err = DriverError(None, '')
    assert err.code == -1
    assert str(err) == 'Exception -1: Unknown exception occurred.'


def test_hierarchy():
    assert issubclass(QueryError, DriverError)
    assert issubclass(DecodeError, BindingError)
    assert issubclass(EndOfResults, IndexError)
    assert issubclass(ConfigurationError, ValueError)
    for cls in (BindingError, DriverError, EndOfResults, ConnectionFailure, TransactionError):
        assert issubclass(cls, DatabaseError)


def test_translate_connection_failure():
    err = translate(sqlite3.OperationalError('unable to open database file'), ConnectionFailure)

    assert isinstance(err, ConnectionFailure)
    assert err.code == -1
    assert 'unable to open' in err.message


def test_driver_errors_translates_and_chains():
    original = sqlite3.IntegrityError('UNIQUE constraint failed: t.name')

    with pytest.raises(QueryError) as exc_info:
        with driver_errors(QueryError):
            raise original

    assert exc_info.value.__cause__ is original
    assert 'UNIQUE constraint failed' in exc_info.value.message


def test_driver_errors_passes_own_errors_through():
    with pytest.raises(EndOfResults):
        with driver_errors(QueryError):
            raise EndOfResults('done')


def test_driver_errors_ignores_other_exceptions():
    with pytest.raises(KeyError):
        with driver_errors():
            raise KeyError('x')
