import sqlite3
from unittest import mock

import pytest
import resultset as rs


def test_prepared_insert_captures_id(sqlite_conn):
    """Test insert ids captured per execution of a prepared statement"""
    with sqlite_conn.prepare('INSERT INTO test_table (name, value) VALUES (?, ?)') as stmt:
        stmt.bind_string('Dana').bind_int('40')
        stmt.execute(capture_insert_id=True)
        assert stmt.insert_id() == 4
        assert stmt.result.affected_rows == 1

        stmt.clear_params()
        stmt.execute('Eve', 50, capture_insert_id=True)
        assert stmt.insert_id() == 5

    assert rs.select_scalar(sqlite_conn, 'SELECT value FROM test_table WHERE name = ?', 'Dana') == 40


def test_prepared_select_reexecution(sqlite_conn):
    stmt = sqlite_conn.prepare('SELECT name FROM test_table WHERE value >= ? ORDER BY id')

    first = stmt.execute(20)
    assert [row['name'] for row in first] == ['Bob', 'Charlie']

    second = stmt.execute(30)
    assert first.closed
    assert second.fetch_all_rows() == [{'name': 'Charlie'}]
    stmt.close()
    assert second.closed


def test_query_capture_insert_id(sqlite_conn):
    result = sqlite_conn.query('INSERT INTO test_table (name, value) VALUES (?, ?)',
                               'Dana', 40, capture_insert_id=True)

    sqlite_conn.execute("INSERT INTO test_table (name, value) VALUES ('Eve', 50)")

    assert result.insert_id() == 4
    assert sqlite_conn.last_insert_id() == 5


def test_insert_id_failure_is_deferred(sqlite_conn):
    """Test a failing identity lookup surfaces only when the id is read"""
    failure = sqlite3.OperationalError('identity unavailable')
    with mock.patch.object(sqlite_conn.strategy, 'last_insert_id', side_effect=failure):
        result = sqlite_conn.query('INSERT INTO test_table (name, value) VALUES (?, ?)',
                                   'Dana', 40, capture_insert_id=True)

    assert result.affected_rows == 1
    with pytest.raises(rs.DriverError) as exc_info:
        result.insert_id()
    assert exc_info.value.__cause__ is failure
