"""
Database strategy factory for dialect-specific operations.
"""
from functools import lru_cache

from tablesync.exceptions import ValidationError
from tablesync.strategy.base import _STRATEGY_REGISTRY
from tablesync.strategy.base import DatabaseStrategy as DatabaseStrategy
from tablesync.strategy.base import register_strategy as register_strategy
from tablesync.strategy.mysql import MySQLStrategy as MySQLStrategy
from tablesync.strategy.sqlite import SQLiteStrategy as SQLiteStrategy

DEFAULT_DIALECT = 'mysql'


def _validate_dialect(dialect: str) -> None:
    """Raise ValidationError if dialect is not registered."""
    if dialect not in _STRATEGY_REGISTRY:
        available = list(_STRATEGY_REGISTRY.keys())
        raise ValidationError(f'Unsupported dialect: {dialect}. Available: {available}')


@lru_cache(maxsize=8)
def _get_strategy(dialect: str) -> DatabaseStrategy:
    """Get cached strategy instance for a dialect."""
    _validate_dialect(dialect)
    return _STRATEGY_REGISTRY[dialect]()


def get_strategy(dialect: str | None = None) -> DatabaseStrategy:
    """Get strategy instance for a dialect name, MySQL when None.
    """
    return _get_strategy(dialect or DEFAULT_DIALECT)


def get_db_strategy(cn) -> DatabaseStrategy:
    """Get database strategy for the connection."""
    return _get_strategy(cn.dialect)


def get_available_dialects() -> list[str]:
    """Return list of registered dialect names."""
    return list(_STRATEGY_REGISTRY.keys())


def is_supported_dialect(dialect: str) -> bool:
    """Check if a dialect is supported."""
    return dialect in _STRATEGY_REGISTRY


def get_strategy_class(dialect: str) -> type['DatabaseStrategy']:
    """Get the strategy class for a dialect without instantiating."""
    _validate_dialect(dialect)
    return _STRATEGY_REGISTRY[dialect]
