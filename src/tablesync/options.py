"""
Connection options and result loaders.
"""
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd
from tablesync.strategy import get_available_dialects, get_strategy_class
from tablesync.strategy import is_supported_dialect

from libb import ConfigOptions, scriptname

__all__ = [
    'DatabaseOptions',
    'pandas_data_loader',
    'iterdict_data_loader',
]


def iterdict_data_loader(data, columns, **kwargs) -> list[dict]:
    """Return rows as a plain list of dictionaries.

    Keyword arguments such as `table_name` are accepted and ignored.
    """
    return list(data) if data else []


def pandas_data_loader(data, columns: Sequence[str], **kwargs) -> pd.DataFrame:
    """Build a DataFrame from rows.

    An empty result still carries its column labels. A `table_name`
    keyword is kept in ``DataFrame.attrs``.
    """
    columns = list(columns)
    if data:
        df = pd.DataFrame.from_records(list(data), columns=columns)
    else:
        df = pd.DataFrame(columns=columns)
    if table_name := kwargs.get('table_name'):
        df.attrs['table_name'] = table_name
    return df


@dataclass
class DatabaseOptions(ConfigOptions):
    """Options

    supported driver names: `mysql` (default), `sqlite`

    `data_loader` turns the rows of `read()` into the returned object and
    defaults to `pandas_data_loader`. Pooling is off unless `use_pool` is
    set; `pool_max_connections`, `pool_max_idle_time` (seconds) and
    `pool_wait_timeout` (seconds) size the pool.
    """
    drivername: str = 'mysql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    check_connection: bool = True
    data_loader: Callable[..., Any] | None = None
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            raise ValueError(f'drivername must be one of: {get_available_dialects()}')
        get_strategy_class(self.drivername).validate_options(self)
        self.appname = self.appname or scriptname() or 'tablesync'
        self.data_loader = self.data_loader or pandas_data_loader
