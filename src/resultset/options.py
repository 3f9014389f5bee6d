import logging
import os
import pathlib
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pandas as pd
import pyarrow as pa
from resultset.columns import TableSchema
from resultset.exceptions import ConfigurationError, MissingEnvError
from resultset.exceptions import MissingUnixSocketError
from resultset.strategy import get_available_dialects, get_strategy_class
from resultset.strategy import is_supported_dialect
from resultset.types import BufferingMode

from libb import ConfigOptions, scriptname

__all__ = [
    'DatabaseOptions',
    'credentials_from_env',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
    'iterdict_data_loader',
]

logger = logging.getLogger(__name__)


def credentials_from_env(user_var: str = 'DB_USER', password_var: str = 'DB_PASS') -> tuple[str, str]:
    """Read a username and password from environment variables.

    Raises MissingEnvError naming the first variable that is not set.
    """
    username = os.environ.get(user_var)
    if username is None:
        raise MissingEnvError(f'Unable to get environment variable {user_var} for username')
    password = os.environ.get(password_var)
    if password is None:
        raise MissingEnvError(f'Unable to get environment variable {password_var} for password')
    return username, password


def iterdict_data_loader(data, columns, **kwargs) -> list[dict]:
    """Minimal data loader.

    Accepts additional keyword arguments for compatibility with other data
    loaders, but doesn't use them.
    """
    if not data:
        return []
    return list(data)


def _empty_dataframe(columns: TableSchema) -> pd.DataFrame:
    """Create empty DataFrame with column metadata."""
    df = pd.DataFrame(columns=columns.names())
    df.attrs['column_types'] = columns.to_dict()
    return df


def pandas_numpy_data_loader(data, columns: TableSchema, **kwargs) -> pd.DataFrame:
    """Standard pandas DataFrame loader using NumPy.

    Always returns a DataFrame, with columns preserved for empty results.
    Column metadata is stored in DataFrame.attrs['column_types'].
    """
    if not data:
        return _empty_dataframe(columns)

    df = pd.DataFrame.from_records(list(data), columns=columns.names())
    df.attrs['column_types'] = columns.to_dict()
    return df


def pandas_pyarrow_data_loader(data, columns: TableSchema, **kwargs) -> pd.DataFrame:
    """PyArrow-based pandas DataFrame loader.

    Always returns a DataFrame, with columns preserved for empty results.
    """
    if not data:
        return _empty_dataframe(columns)

    column_names = columns.names()
    columns_data = [[row[col] for row in data] for col in column_names]
    df = pa.table(columns_data, names=column_names).to_pandas(types_mapper=pd.ArrowDtype)
    df.attrs['column_types'] = columns.to_dict()
    return df


@dataclass
class DatabaseOptions(ConfigOptions):
    """Options

    supported driver names: `postgresql`, `sqlite`

    - buffering: default buffering mode for queries (buffered or streaming)
    - data_loader: callable turning fetched rows and their schema into the
      value returned by ``select`` (default: pandas DataFrame)
    - hostname: for postgresql, an absolute path selects a unix socket
      directory, which must exist
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    data_loader: Callable[..., Any] | None = None
    buffering: BufferingMode | str = BufferingMode.BUFFERED

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ConfigurationError(f'drivername must be one of: {available}')
        self.appname = self.appname or scriptname() or 'python_console'
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)
        if self.drivername == 'postgresql' and self.hostname and self.hostname.startswith('/'):
            if not pathlib.Path(self.hostname).exists():
                raise MissingUnixSocketError(f'Unix socket path {self.hostname} does not exist')
        self.buffering = BufferingMode(self.buffering)
        if self.data_loader is None:
            self.data_loader = pandas_numpy_data_loader
