"""
SQL statement generation from the schema model and parameter lists.

Column names are quoted in DDL and DML alike. Values are never inlined:
each write parameter becomes a named placeholder (`:key`, see `bind_name()`)
and condition text is passed through untouched.
"""
import logging
from collections.abc import Iterable, Sequence

from tablesync.exceptions import ValidationError, report
from tablesync.model import Column, Table
from tablesync.params import Parameter, write_params
from tablesync.sql import bind_name
from tablesync.strategy import get_strategy

logger = logging.getLogger(__name__)


def _tables(tables: Table | Iterable[Table]) -> list[Table]:
    if isinstance(tables, Table):
        return [tables]
    return list(tables)


def _where(sql: str, condition: str | None) -> str:
    if condition and condition.strip():
        return f'{sql} WHERE {condition}'
    return sql


def build_create_table_sql(table: Table, dialect: str | None = None) -> str:
    """Generate CREATE TABLE IF NOT EXISTS for one table.

    Auto-increment columns are collected into a single trailing PRIMARY KEY
    clause. More than one is passed through as a composite key and left to
    the database to accept or reject.
    """
    strategy = get_strategy(dialect)
    parts = [strategy.column_definition(c) for c in table]
    keys = [strategy.quote_identifier(c.db_name) for c in table if c.auto_inc]
    if len(keys) > 1:
        logger.warning(f'Table {table.name} declares {len(keys)} auto-increment columns: {keys}')
    if keys:
        parts.append(f'PRIMARY KEY ({", ".join(keys)})')
    return f'CREATE TABLE IF NOT EXISTS {table.qualified_name()} ({", ".join(parts)})'


def build_create_sql(tables: Table | Iterable[Table], dialect: str | None = None) -> str:
    """Generate the CREATE TABLE batch for one or more tables.

    Args:
        tables: Table or iterable of tables (a Structure iterates its tables)
        dialect: Strategy name, MySQL when None

    Returns
        Semicolon separated statements, one per table
    """
    return ';\n'.join(build_create_table_sql(t, dialect) for t in _tables(tables))


def build_select_sql(table: Table, condition: str | None = None,
                     keys: str | Sequence[str] = '*', dialect: str | None = None,
                     limit: int | None = None) -> str:
    """Generate a SELECT statement.

    Args:
        table: Table to select from
        condition: Raw WHERE text (without the keyword), bound by `:name`
        keys: '*' or the column names to select
        dialect: Strategy name, MySQL when None
        limit: Maximum number of rows, no LIMIT clause when None

    Returns
        SQL query string
    """
    strategy = get_strategy(dialect)
    if isinstance(keys, str):
        select_clause = keys
    else:
        select_clause = ', '.join(strategy.quote_identifier(k) for k in keys) or '*'
    sql = _where(f'SELECT {select_clause} FROM {table.qualified_name()}', condition)
    if limit is not None:
        sql = f'{sql} LIMIT {int(limit)}'
    return sql


def build_count_sql(table: Table, condition: str | None = None) -> str:
    """Generate a SELECT COUNT(*) statement."""
    return _where(f'SELECT COUNT(*) FROM {table.qualified_name()}', condition)


def _require_writes(params: Iterable[Parameter], verb: str, table: Table) -> list[Parameter]:
    writes = write_params(params)
    if not writes:
        raise report(ValidationError(f'{verb} into {table.name} needs at least one write parameter'), logger)
    seen = set()
    unique = []
    for p in writes:
        if p.key not in seen:
            seen.add(p.key)
            unique.append(p)
    return unique


def build_insert_sql(table: Table, params: Iterable[Parameter],
                     dialect: str | None = None) -> str:
    """Generate an INSERT statement followed by the identity query.

    Only write parameters contribute columns; the column list and the value
    placeholders share their order.

    Raises
        ValidationError: no write parameters were given
    """
    strategy = get_strategy(dialect)
    writes = _require_writes(params, 'INSERT', table)
    columns = ', '.join(strategy.quote_identifier(p.key) for p in writes)
    placeholders = ', '.join(f':{bind_name(p.key)}' for p in writes)
    return (f'INSERT INTO {table.qualified_name()} ({columns}) VALUES ({placeholders});'
            f' {strategy.identity_sql()}')


def build_update_sql(table: Table, condition: str | None, params: Iterable[Parameter],
                     dialect: str | None = None) -> str:
    """Generate an UPDATE statement.

    Write parameters form the SET list; the others only bind placeholders
    in `condition`.

    Raises
        ValidationError: no write parameters were given
    """
    strategy = get_strategy(dialect)
    writes = _require_writes(params, 'UPDATE', table)
    assignments = ', '.join(f'{strategy.quote_identifier(p.key)} = :{bind_name(p.key)}'
                            for p in writes)
    return _where(f'UPDATE {table.qualified_name()} SET {assignments}', condition)


def build_delete_sql(table: Table, condition: str | None = None) -> str:
    """Generate a DELETE statement."""
    return _where(f'DELETE FROM {table.qualified_name()}', condition)


def build_add_column_sql(table: Table, column: Column, dialect: str | None = None) -> str:
    """Generate ALTER TABLE ... ADD for a declared column."""
    strategy = get_strategy(dialect)
    return f'ALTER TABLE {table.qualified_name()} ADD {strategy.add_column_definition(column)}'


def build_drop_column_sql(table: Table, db_name: str, dialect: str | None = None) -> str:
    """Generate ALTER TABLE ... DROP for a live column name."""
    strategy = get_strategy(dialect)
    column = strategy.quote_identifier(db_name)
    return f'ALTER TABLE {table.qualified_name()} {strategy.drop_column_keyword} {column}'
