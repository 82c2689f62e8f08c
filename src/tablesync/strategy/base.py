"""
Base strategy interface for dialect-specific SQL.

The strategy pattern keeps dialect differences (DDL keywords, auto-increment
syntax, identity retrieval, column introspection, connection URLs) out of
the core: statement generation and synchronization ask the strategy, and
any dialect works through this interface.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from tablesync.sql import quote_identifier as sql_quote_identifier
from tablesync.types import physical_keyword

if TYPE_CHECKING:
    from tablesync.model import Column
    from tablesync.options import DatabaseOptions
    from tablesync.types import Executor

# dialect name -> strategy class, filled by @register_strategy
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('mysql')
        class MySQLStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for dialect-specific statement text and introspection.
    """

    auto_inc_clause = ' NOT NULL AUTO_INCREMENT'
    drop_column_keyword = 'DROP'

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'mysql', 'sqlite')."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Return the SQLAlchemy URL for the options."""

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect.
        """
        return {}

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Option fields that must be set for this dialect."""

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Check that every required option is set.

        Raises
            ValueError: a required field is empty
        """
        missing = [name for name in cls.get_required_options() if not getattr(options, name)]
        if missing:
            raise ValueError(f"{options.drivername} connections need {', '.join(missing)}")

    def quote_identifier(self, identifier: str) -> str:
        """Quote a table or column name."""
        return sql_quote_identifier(identifier, self.dialect_name)

    def column_keyword(self, column: 'Column') -> str:
        """Return the DDL keyword for a column.

        Default implementation is the logical type's physical keyword.
        """
        return physical_keyword(column.col_type)

    def column_definition(self, column: 'Column') -> str:
        """Render `<name> <keyword>[ auto-increment clause]` for CREATE TABLE.
        """
        suffix = self.auto_inc_clause if column.auto_inc else ''
        return f'{self.quote_identifier(column.db_name)} {self.column_keyword(column)}{suffix}'

    def add_column_definition(self, column: 'Column') -> str:
        """Render the column part of ALTER TABLE ... ADD.
        """
        return self.column_definition(column)

    @abstractmethod
    def identity_sql(self) -> str:
        """Return the statement that reads the last generated identity value.
        """

    @abstractmethod
    def current_database(self, cn: 'Executor') -> str | None:
        """Return the database (schema) the connection is using.
        """

    @abstractmethod
    def get_columns(self, cn: 'Executor', table: str,
                    database: str | None = None) -> list[str]:
        """Get the ordered column names of a live table.

        Args:
            cn: Connection to query
            table: Physical table name (without database prefix)
            database: Database (schema) to look in, the active one when None

        Returns
            list: Column names in ordinal position, empty if the table is missing
        """
