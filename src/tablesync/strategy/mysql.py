"""
MySQL-specific strategy implementation.

- Backtick quoted identifiers
- AUTO_INCREMENT columns
- LAST_INSERT_ID() identity retrieval
- information_schema.COLUMNS introspection
- VARCHAR/NVARCHAR need a length in DDL, DECIMAL a precision and scale
"""
import logging
from typing import TYPE_CHECKING, Any

from tablesync.strategy.base import DatabaseStrategy, register_strategy
from tablesync.types import ColumnType

if TYPE_CHECKING:
    from tablesync.model import Column
    from tablesync.options import DatabaseOptions
    from tablesync.types import Executor

logger = logging.getLogger(__name__)

DEFAULT_VARCHAR_LENGTH = 255
DEFAULT_DECIMAL_PRECISION = (38, 10)


@register_strategy('mysql')
class MySQLStrategy(DatabaseStrategy):
    """MySQL-specific statement text and introspection.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for MySQL."""
        return 'mysql'

    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL for MySQL (PyMySQL driver)."""
        port = f':{options.port}' if options.port else ''
        auth = options.username or ''
        if options.password:
            auth = f'{auth}:{options.password}'
        return f'mysql+pymysql://{auth}@{options.hostname}{port}/{options.database or ""}'

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for MySQL."""
        connect_args: dict[str, Any] = {'charset': 'utf8mb4'}
        if options.timeout:
            connect_args['connect_timeout'] = options.timeout
        return {'connect_args': connect_args}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for MySQL connections."""
        return ['hostname', 'username', 'database']

    def column_keyword(self, column: 'Column') -> str:
        """Append the default length to VARCHAR/NVARCHAR, precision to DECIMAL."""
        keyword = super().column_keyword(column)
        if column.col_type in {ColumnType.VARCHAR, ColumnType.NVARCHAR}:
            return f'{keyword}({DEFAULT_VARCHAR_LENGTH})'
        if column.col_type is ColumnType.DECIMAL:
            precision, scale = DEFAULT_DECIMAL_PRECISION
            return f'{keyword}({precision},{scale})'
        return keyword

    def identity_sql(self) -> str:
        return 'SELECT LAST_INSERT_ID()'

    def current_database(self, cn: 'Executor') -> str | None:
        return cn.select_scalar('SELECT DATABASE()')

    def get_columns(self, cn: 'Executor', table: str,
                    database: str | None = None) -> list[str]:
        """Get column names from information_schema.COLUMNS.
        """
        schema = database or self.current_database(cn)
        sql = """
SELECT COLUMN_NAME AS name FROM information_schema.COLUMNS
WHERE TABLE_SCHEMA = :schema AND TABLE_NAME = :table
ORDER BY ORDINAL_POSITION
"""
        rows = cn.select(sql, {'schema': schema, 'table': table})
        return [row['name'] for row in rows]
