import pytest
from resultset.exceptions import ConfigurationError, MissingEnvError
from resultset.exceptions import MissingUnixSocketError
from resultset.options import DatabaseOptions, credentials_from_env
from resultset.options import iterdict_data_loader, pandas_numpy_data_loader
from resultset.types import BufferingMode


def test_init_defaults():
    """Test default initialization"""
    options = DatabaseOptions(
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='testdb',
        port=1234,
        timeout=30
    )

    assert options.drivername == 'postgresql'
    assert options.appname is not None
    assert options.data_loader == pandas_numpy_data_loader
    assert options.buffering is BufferingMode.BUFFERED


def test_sqlite_options():
    options = DatabaseOptions(drivername='sqlite', database=':memory:',
                              buffering='streaming', data_loader=iterdict_data_loader)

    assert options.buffering is BufferingMode.STREAMING
    assert options.data_loader is iterdict_data_loader


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError):
        DatabaseOptions(drivername='invalid', database='testdb')

    with pytest.raises(ConfigurationError):
        DatabaseOptions(
            drivername='postgresql',
            hostname='testhost',
            username='testuser',
            password='testpass',
            database='testdb',
        )

    with pytest.raises(ConfigurationError):
        DatabaseOptions(drivername='sqlite')

    with pytest.raises(ValueError):
        DatabaseOptions(drivername='sqlite', database='x.db', buffering='sometimes')


def test_unix_socket_must_exist(tmp_path):
    kwargs = {'username': 'u', 'password': 'p', 'database': 'd', 'port': 5432}

    with pytest.raises(MissingUnixSocketError):
        DatabaseOptions(hostname=str(tmp_path / 'missing'), **kwargs)

    options = DatabaseOptions(hostname=str(tmp_path), **kwargs)
    assert options.hostname == str(tmp_path)


def test_credentials_from_env(monkeypatch):
    monkeypatch.setenv('DB_USER', 'alice')
    monkeypatch.setenv('DB_PASS', 'secret')

    assert credentials_from_env() == ('alice', 'secret')


def test_credentials_missing(monkeypatch):
    monkeypatch.setenv('APP_USER', 'alice')
    monkeypatch.delenv('APP_PASS', raising=False)

    with pytest.raises(MissingEnvError, match='APP_PASS'):
        credentials_from_env('APP_USER', 'APP_PASS')
