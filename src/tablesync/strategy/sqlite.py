"""
SQLite-specific strategy implementation.

SQLite accepts the MySQL backtick quoting and free-form type names, so most
DDL is shared. Differences:
- Auto-increment columns become INTEGER with a table PRIMARY KEY (rowid alias)
- last_insert_rowid() identity retrieval
- pragma_table_info introspection, scoped by attached schema ('main' default)
- ALTER TABLE ... DROP COLUMN
"""
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

from tablesync.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from tablesync.model import Column
    from tablesync.options import DatabaseOptions
    from tablesync.types import Executor

logger = logging.getLogger(__name__)


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific statement text and introspection.
    """

    auto_inc_clause = ''
    drop_column_keyword = 'DROP COLUMN'

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL for SQLite."""
        return f'sqlite:///{options.database}'

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        return {
            'connect_args': {
                'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
            }
        }

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']

    def column_keyword(self, column: 'Column') -> str:
        """Auto-increment columns must be declared INTEGER to alias the rowid."""
        if column.auto_inc:
            return 'INTEGER'
        return super().column_keyword(column)

    def add_column_definition(self, column: 'Column') -> str:
        """SQLite cannot add an auto-increment column to an existing table."""
        if column.auto_inc:
            logger.warning(f'SQLite cannot add auto-increment column {column.db_name}, adding it as INTEGER')
        return f'{self.quote_identifier(column.db_name)} {self.column_keyword(column)}'

    def identity_sql(self) -> str:
        return 'SELECT last_insert_rowid()'

    def current_database(self, cn: 'Executor') -> str | None:
        return 'main'

    def get_columns(self, cn: 'Executor', table: str,
                    database: str | None = None) -> list[str]:
        """Get column names from pragma_table_info.
        """
        sql = 'SELECT name FROM pragma_table_info(:table, :schema) ORDER BY cid'
        rows = cn.select(sql, {'table': table, 'schema': database or self.current_database(cn)})
        return [row['name'] for row in rows]
