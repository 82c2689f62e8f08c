"""
Table operations over an execution collaborator.

Every function takes the connection first, then the declared `Table`, a raw
condition (WHERE text without the keyword, may be None) and any number of
`Parameter`s. Condition text is passed to the database as is; only values
travel as bound parameters.

    rows = select(cn, users, 'user_name = :name', Parameter('name', 'ada', write=False))
    new_id = insert(cn, users, Parameter('user_name', 'ada'))
"""
import logging
from typing import Any

from tablesync.model import Table
from tablesync.params import Parameter, bind_params
from tablesync.sql_generation import build_count_sql, build_delete_sql
from tablesync.sql_generation import build_insert_sql, build_select_sql
from tablesync.sql_generation import build_update_sql
from tablesync.types import Executor

logger = logging.getLogger(__name__)


def execute(cn: Executor, sql: str, *params: Parameter) -> int:
    """Run arbitrary statement text with bound parameters.

    Returns
        Affected row count of the last statement
    """
    return cn.execute(sql, bind_params(params))


def select(cn: Executor, table: Table, condition: str | None = None, *params: Parameter,
           keys: str | list[str] = '*', limit: int | None = None) -> list[dict[str, Any]]:
    """Select rows from a table.

    Args:
        cn: Connection
        table: Declared table
        condition: Raw WHERE text, None for all rows
        params: Values for the condition placeholders
        keys: '*' or the column names to select
        limit: Maximum number of rows, all when None

    Returns
        list: Row dictionaries keyed by column name
    """
    sql = build_select_sql(table, condition, keys, cn.dialect, limit)
    return cn.select(sql, bind_params(params))


def select_row_or_none(cn: Executor, table: Table, condition: str | None = None,
                       *params: Parameter, keys: str | list[str] = '*') -> dict[str, Any] | None:
    """Select the first matching row, None if nothing matches.
    """
    rows = select(cn, table, condition, *params, keys=keys, limit=1)
    return rows[0] if rows else None


def read(cn: Executor, table: Table, condition: str | None = None, *params: Parameter,
         keys: str | list[str] = '*') -> Any:
    """Select rows through the connection's data loader.

    Returns
        pandas.DataFrame with the default loader
    """
    sql = build_select_sql(table, condition, keys, cn.dialect)
    return cn.read(sql, bind_params(params), table_name=table.name)


def count(cn: Executor, table: Table, condition: str | None = None, *params: Parameter) -> int:
    """Count the rows matching a condition."""
    return int(cn.select_scalar(build_count_sql(table, condition), bind_params(params)) or 0)


def insert(cn: Executor, table: Table, *params: Parameter) -> int | None:
    """Insert a row from the write parameters.

    Returns
        The generated identity, None when the database reports none
    """
    sql = build_insert_sql(table, params, cn.dialect)
    identity = cn.select_scalar(sql, bind_params(params))
    logger.debug(f'Inserted into {table.name}, identity {identity}')
    return int(identity) if identity is not None else None


def update(cn: Executor, table: Table, condition: str | None, *params: Parameter) -> int:
    """Update rows from the write parameters.

    Parameters with ``write=False`` are bound for `condition` only.

    Returns
        Affected row count
    """
    sql = build_update_sql(table, condition, params, cn.dialect)
    return cn.execute(sql, bind_params(params))


def delete(cn: Executor, table: Table, condition: str | None = None, *params: Parameter) -> int:
    """Delete the rows matching a condition.

    Returns
        Affected row count
    """
    return cn.execute(build_delete_sql(table, condition), bind_params(params))
