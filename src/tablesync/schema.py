"""
Schema synchronization between declared tables and the live database.

The synchronizer only adds and drops columns. It never changes the type or
constraints of a column that already exists under the same name, and it
keeps no state between calls: every `update_columns` introspects again.

Functions in this module handle:
- Diffing declared columns against live column names (`diff_columns`)
- Column presence checks and single ADD/DROP operations
- Creating missing tables (`create_tables`)
- Reconciling one table (`update_columns`) or a whole structure (`update_structure`)

Dropping columns destroys their data and only happens with ``delete=True``.
"""
import logging
from collections.abc import Iterable
from typing import NamedTuple

from tablesync.exceptions import DatabaseError, SynchronizationError, report
from tablesync.model import Column, Structure, Table
from tablesync.sql_generation import build_add_column_sql, build_create_sql
from tablesync.sql_generation import build_drop_column_sql
from tablesync.types import Executor

logger = logging.getLogger(__name__)


class ColumnDiff(NamedTuple):
    """Declared columns missing from the live table, and live columns not declared.

    `extra` is only filled when the diff was computed with ``delete=True``.
    """
    missing: list[Column]
    extra: list[str]

    def __bool__(self) -> bool:
        return bool(self.missing or self.extra)


def diff_columns(table: Table, live: Iterable[str], delete: bool = False) -> ColumnDiff:
    """Compare a declared table against live column names.

    Names match case-insensitively, as MySQL column names do.

    Args:
        table: Declared table
        live: Column names present in the database, in ordinal order
        delete: Also report live columns that are not declared

    Returns
        ColumnDiff of columns to add (declaration order) and to drop (live order)
    """
    live = list(live)
    live_names = {name.lower() for name in live}
    declared = {name.lower() for name in table.db_names}
    missing = [c for c in table if c.db_name.lower() not in live_names]
    extra = [name for name in live if name.lower() not in declared] if delete else []
    return ColumnDiff(missing, extra)


def get_live_columns(cn: Executor, table: Table) -> list[str]:
    """Introspect the live column names of a table.

    Scoped by the table's database name, the connection's active database
    when it has none.

    Raises
        SynchronizationError: introspection failed
    """
    try:
        return cn.get_columns(table.name, table.db_name)
    except DatabaseError as err:
        raise report(SynchronizationError(f'Could not read columns of {table}: {err}'), logger) from err


def column_exists(cn: Executor, table: Table, db_name: str) -> bool:
    """Check if a column exists in the live table."""
    return db_name.lower() in {name.lower() for name in get_live_columns(cn, table)}


def add_column(cn: Executor, table: Table, column: Column) -> str:
    """Add a declared column to the live table.

    Returns
        The executed statement
    """
    sql = build_add_column_sql(table, column, cn.dialect)
    cn.execute(sql)
    logger.info(f'Added column {column.db_name} to {table}')
    return sql


def drop_column(cn: Executor, table: Table, db_name: str) -> str:
    """Drop a column, and all its data, from the live table.

    Returns
        The executed statement
    """
    sql = build_drop_column_sql(table, db_name, cn.dialect)
    cn.execute(sql)
    logger.info(f'Dropped column {db_name} from {table}')
    return sql


def create_tables(cn: Executor, tables: Table | Iterable[Table]) -> str:
    """Run CREATE TABLE IF NOT EXISTS for every table.

    Returns
        The executed batch
    """
    sql = build_create_sql(tables, cn.dialect)
    if sql:
        cn.execute(sql)
    return sql


def update_columns(cn: Executor, table: Table, delete: bool = False) -> list[str]:
    """Bring the live table's columns in line with the declared ones.

    Missing declared columns are added. With ``delete=True`` live columns that
    are not declared are dropped.

    Raises
        SynchronizationError: introspection failed or the table does not exist

    Returns
        The executed statements, empty when the table is already in sync
    """
    live = get_live_columns(cn, table)
    if not live:
        raise report(SynchronizationError(f'Table {table} does not exist'), logger)
    diff = diff_columns(table, live, delete)
    if not diff:
        logger.debug(f'Table {table} is in sync')
        return []
    statements = [add_column(cn, table, c) for c in diff.missing]
    statements.extend(drop_column(cn, table, name) for name in diff.extra)
    return statements


def update_structure(cn: Executor, structure: Structure,
                     create_missing_tables: bool = False, delete: bool = False) -> list[str]:
    """Synchronize every table of a structure in declaration order.

    Args:
        cn: Connection
        structure: Declared structure
        create_missing_tables: First run the CREATE TABLE IF NOT EXISTS batch
        delete: Drop live columns that are not declared

    Returns
        The executed statements
    """
    statements = []
    if create_missing_tables:
        sql = create_tables(cn, structure)
        if sql:
            statements.append(sql)
    for table in structure:
        statements.extend(update_columns(cn, table, delete))
    return statements
