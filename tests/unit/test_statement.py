from unittest import mock

import pytest
from resultset import BindingError, Statement


@pytest.fixture
def cn():
    connection = mock.Mock()
    connection.query.side_effect = lambda *args, **kwargs: mock.Mock(name='result')
    return connection


def test_typed_binds_and_execute(cn):
    """Test bound parameters precede execute arguments"""
    stmt = Statement(cn, 'insert into t (a, b, c) values (?, ?, ?)')
    stmt.bind_string(5).bind_int('42')

    stmt.execute('extra', capture_insert_id=True)

    cn.query.assert_called_once_with(
        'insert into t (a, b, c) values (?, ?, ?)', ('5', 42, 'extra'),
        buffering=None, capture_insert_id=True, prepared=True)


def test_bind_conversions():
    stmt = Statement(mock.Mock(), 'select ?')
    stmt.bind_int(None)
    stmt.bind_string(b'raw')
    stmt.bind_value(3.5)

    assert stmt.params == [None, b'raw', 3.5]
    with pytest.raises(BindingError):
        stmt.bind_int('abc')


def test_reexecute_closes_previous_result(cn):
    stmt = Statement(cn, 'select 1')

    first = stmt.execute()
    second = stmt.execute()

    first.close.assert_called_once()
    assert stmt.result is second


def test_result_before_execute():
    stmt = Statement(mock.Mock(), 'select 1')

    with pytest.raises(BindingError):
        stmt.result
    with pytest.raises(BindingError):
        stmt.insert_id()


def test_insert_id_and_close(cn):
    with Statement(cn, 'insert into t values (1)') as stmt:
        result = stmt.execute(capture_insert_id=True)
        result.insert_id.return_value = 9
        assert stmt.insert_id() == 9

    result.close.assert_called_once()
