"""
Database connection handling with SQLAlchemy.

This module provides:
1. The `connect()` function for creating new database connections
2. The `ConnectionWrapper` class, the execution and introspection
   collaborator used by the synchronizer, reflector and table operations
3. Engine creation and management through a thread-safe registry
4. The `check_connection` retry decorator for transient connection errors

Statements use SQLAlchemy named binds (`:key`). A semicolon separated batch
is split and run in order on the same connection; the result of the last
statement is returned. Each statement only receives the parameters it names.
"""
import atexit
import logging
import threading
import time
from collections.abc import Callable, Mapping
from functools import wraps
from typing import Any, Self, TypeVar

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from tablesync.exceptions import DbConnectionError, ExecutionError
from tablesync.exceptions import ValidationError, is_retryable_error, report
from tablesync.options import DatabaseOptions
from tablesync.sql import placeholder_names, render_query, split_statements
from tablesync.strategy import get_db_strategy, get_strategy

from libb import attrdict, load_options

__all__ = [
    'ConnectionWrapper',
    'connect',
    'check_connection',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)
query_logger = logging.getLogger('tablesync.queries')

T = TypeVar('T')
_engine_registry: dict[tuple, Engine] = {}
_engine_registry_lock = threading.RLock()


def check_connection(func: Callable[..., T] | None = None, *, max_retries: int = 3,
                     retry_delay: float = 1, retry_errors: type | tuple[type, ...] | None = None,
                     retry_backoff: float = 1.5,
                     sleep_func: Callable[[float], None] = time.sleep) -> Callable[..., T]:
    """Connection retry decorator with backoff.

    Retries the operation when it fails with a connection error whose message
    marks it as transient (see `is_retryable_error`). Other errors propagate
    on the first attempt.

    Supports both @check_connection and @check_connection() syntax.
    """
    def decorator(f: Callable[..., T]) -> Callable[..., T]:
        @wraps(f)
        def inner(*args: Any, **kwargs: Any) -> T:
            error_types = retry_errors if retry_errors is not None else DbConnectionError

            tries = 0
            delay = retry_delay
            while True:
                try:
                    return f(*args, **kwargs)
                except error_types as err:
                    if not is_retryable_error(err):
                        raise
                    tries += 1
                    if tries >= max_retries:
                        logger.error(f'Maximum retries ({max_retries}) exceeded: {err}')
                        raise
                    logger.warning(f'Connection error (attempt {tries}/{max_retries}): {err}')
                    sleep_func(delay)
                    delay *= retry_backoff

        return inner

    if func is None:
        return decorator
    return decorator(func)


def _pool_kwargs(use_pool: bool, pool_size: int, pool_recycle: int,
                 pool_timeout: int) -> dict[str, Any]:
    if not use_pool:
        return {'poolclass': NullPool}
    return {
        'pool_size': pool_size,
        'pool_recycle': pool_recycle,
        'pool_timeout': pool_timeout,
        'max_overflow': 10,
        'pool_pre_ping': True,
        'pool_reset_on_return': 'rollback',
    }


def get_engine_for_options(options: DatabaseOptions, use_pool: bool = False,
                           pool_size: int = 5, pool_recycle: int = 300,
                           pool_timeout: int = 30,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Return the shared engine for a set of options, creating it on first use.

    Engines are keyed by the options and the pool settings. Without pooling
    every `connect()` opens a fresh DBAPI connection.
    """
    key = (str(options), use_pool, pool_size, pool_recycle, pool_timeout)
    with _engine_registry_lock:
        engine = _engine_registry.get(key)
        if engine is not None:
            return engine
        strategy = get_strategy(options.drivername)
        engine_kwargs = {
            'echo': False,
            **strategy.get_engine_kwargs(options),
            **_pool_kwargs(use_pool, pool_size, pool_recycle, pool_timeout),
            **kwargs,
        }
        engine = engine_factory(strategy.build_connection_url(options), **engine_kwargs)
        _engine_registry[key] = engine
        logger.debug(f'New {options.drivername} engine (pooled: {use_pool})')
        return engine


def dispose_all_engines() -> None:
    """Dispose and forget every shared engine."""
    with _engine_registry_lock:
        while _engine_registry:
            _, engine = _engine_registry.popitem()
            engine.dispose()
    logger.debug('Disposed all engines')


atexit.register(dispose_all_engines)


class ConnectionWrapper:
    """Wraps a SQLAlchemy connection with the query methods the core needs.

    - execute(sql, params) - run a statement or batch, return affected row count
    - select(sql, params) - run a query, return rows as attribute dictionaries
    - select_scalar(sql, params) - first column of the first row
    - read(sql, params) - rows through the configured data loader (DataFrame by default)
    - get_columns(table, database) - live column names of a table

    Outside a `Transaction` each call commits on success and rolls back on
    failure. Driver errors surface as `ExecutionError`.
    """

    def __init__(self, sa_connection: sa.engine.Connection | None = None,
                 options: 'DatabaseOptions | None' = None) -> None:
        """Wrap an open SQLAlchemy connection (None for a detached wrapper).
        """
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine if sa_connection else None
        self.options = options
        self._dialect = sa_connection.dialect.name if sa_connection else None
        self.calls = 0
        self.time = 0
        self.in_transaction = False

    def __enter__(self) -> Self:
        """Use the connection as a context manager that closes it on exit.
        """
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        """Close on leaving the block.
        """
        self.close()
        logger.debug('Connection context closed')

    def addcall(self, elapsed: float) -> None:
        """Count a statement and its run time.
        """
        self.time += elapsed
        self.calls += 1

    @property
    def dialect(self) -> str:
        """Return the dialect name ('mysql' or 'sqlite')."""
        return self._dialect

    @property
    def database(self) -> str | None:
        """Return the database (schema) this connection is using."""
        return get_db_strategy(self).current_database(self)

    @property
    def _retry(self) -> bool:
        return self.options is None or self.options.check_connection

    @property
    def closed(self) -> bool:
        return self.sa_connection is None or self.sa_connection.closed

    def _connection(self) -> sa.engine.Connection:
        if self.closed and self.engine is not None:
            self.sa_connection = self.engine.connect()
            logger.debug(f'Reopened {self.dialect} connection')
        return self.sa_connection

    def commit(self) -> None:
        """Commit the open transaction, reconnecting first if closed.
        """
        self._connection().commit()

    def rollback(self) -> None:
        if not self.closed:
            self.sa_connection.rollback()

    def close(self) -> None:
        """Close the connection, committing pending work outside a transaction.
        """
        if self.closed:
            return
        if not self.in_transaction and self.sa_connection.in_transaction():
            self.sa_connection.commit()
        self.sa_connection.close()
        logger.debug(f'Closed {self.dialect} connection after {self.calls} statements in {self.time:.2f}s')

    @staticmethod
    def _bind(statement: str, params: Mapping[str, Any]) -> dict[str, Any]:
        """Pick the parameters a single statement refers to."""
        names = placeholder_names(statement)
        missing = [n for n in names if n not in params]
        if missing:
            raise report(ValidationError(f'No value bound for {missing} in: {statement}'), logger)
        return {n: params[n] for n in names}

    @check_connection
    def _run(self, sql: str, params: Mapping[str, Any] | None) -> sa.CursorResult | None:
        params = params or {}
        cn = self._connection()
        result = None
        for statement in split_statements(sql):
            bound = self._bind(statement, params)
            query_logger.debug(render_query(statement, bound))
            start = time.time()
            result = cn.execute(sa.text(statement), bound)
            self.addcall(time.time() - start)
        return result

    def _submit(self, sql: str, params: Mapping[str, Any] | None,
                consume: Callable[[sa.CursorResult | None], T]) -> T:
        """Run a batch, read its last result, and settle the implicit transaction.
        """
        run = self._run if self._retry else self._run.__wrapped__.__get__(self)
        try:
            value = consume(run(sql, params))
            if not self.in_transaction:
                self.commit()
            return value
        except sa.exc.SQLAlchemyError as err:
            if not self.in_transaction:
                self.rollback()
            raise report(ExecutionError(f'{err.__class__.__name__}: {err}'), logger) from err
        except Exception:
            if not self.in_transaction:
                self.rollback()
            raise

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> int:
        """Execute a statement or batch and return the affected row count of the last one.
        """
        def consume(result):
            return result.rowcount if result is not None else 0
        rowcount = self._submit(sql, params, consume)
        logger.debug(f'Executed query with {len(params) if params else 0} parameters')
        return rowcount

    def select(self, sql: str, params: Mapping[str, Any] | None = None) -> list[attrdict]:
        """Execute a query and return the rows of the last statement.
        """
        def consume(result):
            if result is None or not result.returns_rows:
                return []
            return [attrdict(row) for row in result.mappings()]
        rows = self._submit(sql, params, consume)
        logger.debug(f'Select query returned {len(rows)} rows')
        return rows

    def select_row_or_none(self, sql: str, params: Mapping[str, Any] | None = None) -> attrdict | None:
        """Execute a query and return the first row or None if no rows found.
        """
        rows = self.select(sql, params)
        return rows[0] if rows else None

    def select_scalar(self, sql: str, params: Mapping[str, Any] | None = None) -> Any:
        """Execute a query and return the first column of the first row, None if no rows.
        """
        row = self.select_row_or_none(sql, params)
        if row is None:
            return None
        return next(iter(row.values()))

    def read(self, sql: str, params: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        """Execute a query and return its rows through the configured data loader.
        """
        def consume(result):
            if result is None or not result.returns_rows:
                return [], []
            return [dict(row) for row in result.mappings()], list(result.keys())
        rows, columns = self._submit(sql, params, consume)
        loader = self.options.data_loader if self.options else None
        if loader is None:
            return rows
        return loader(rows, columns, **kwargs)

    def get_columns(self, table: str, database: str | None = None) -> list[str]:
        """Get the live column names of a table in ordinal position.
        """
        return get_db_strategy(self).get_columns(self, table, database)


@load_options(cls=DatabaseOptions)
def connect(options: DatabaseOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> ConnectionWrapper:
    """Open a wrapped connection.

    Args:
        options: `DatabaseOptions`, a dict of option values, or the name of
            an options entry in `config`
        config: Configuration object the options are looked up in
        **kw: Option overrides

    Returns
        ConnectionWrapper on a fresh SQLAlchemy connection
    """
    if not isinstance(options, DatabaseOptions):
        options = load_options(cls=DatabaseOptions)(lambda o, c: o)(options, config, **kw)

    engine = get_engine_for_options(options, use_pool=options.use_pool,
                                    pool_size=options.pool_max_connections,
                                    pool_recycle=options.pool_max_idle_time,
                                    pool_timeout=options.pool_wait_timeout)
    logger.debug(f'Connecting to {options.drivername} database {options.database}')
    return ConnectionWrapper(engine.connect(), options)
