"""
Logical column types and native type resolution.

This module provides:
- ColumnType: the closed set of logical column types
- physical_keyword: DDL keyword for a logical type
- infer_column_type: resolve a native Python/NumPy type to a logical type
- EntityReference: capability required for values stored as ELEMENT
- Executor: the execution/introspection collaborator used by the core
"""
import datetime
import decimal
import enum
import logging
import types
import typing
from typing import Any, Protocol, runtime_checkable

import numpy as np

logger = logging.getLogger(__name__)


class ColumnType(enum.Enum):
    """Logical column types.

    Each member has a fixed DDL keyword (see `physical_keyword`) and a fixed
    save/load transform (see `tablesync.marshal`).
    """
    INT = enum.auto()
    UINT = enum.auto()
    TINYINT = enum.auto()
    BYTE = enum.auto()
    SMALLINT = enum.auto()
    USMALLINT = enum.auto()
    BIGINT = enum.auto()
    UBIGINT = enum.auto()
    VARCHAR = enum.auto()
    NVARCHAR = enum.auto()
    TEXT = enum.auto()
    TINYTEXT = enum.auto()
    MEDIUMTEXT = enum.auto()
    LONGTEXT = enum.auto()
    FLOAT = enum.auto()
    DOUBLE = enum.auto()
    DECIMAL = enum.auto()
    DATETIME = enum.auto()
    BOOLEAN = enum.auto()
    ENUM = enum.auto()
    OBJECT = enum.auto()
    ELEMENT = enum.auto()
    TIMESPAN = enum.auto()

    @property
    def is_integer(self) -> bool:
        return self in INTEGER_RANGES

    @property
    def is_numeric(self) -> bool:
        return self in NUMERIC_TYPES

    @property
    def is_text(self) -> bool:
        return self in TEXT_TYPES

    def __str__(self) -> str:
        return self.name


class Direction(enum.Enum):
    """Marshalling direction."""
    SAVE = 'save'
    LOAD = 'load'


# Inclusive bounds checked on both save and load
INTEGER_RANGES: dict[ColumnType, tuple[int, int]] = {
    ColumnType.TINYINT: (-2**7, 2**7 - 1),
    ColumnType.BYTE: (0, 2**8 - 1),
    ColumnType.SMALLINT: (-2**15, 2**15 - 1),
    ColumnType.USMALLINT: (0, 2**16 - 1),
    ColumnType.INT: (-2**31, 2**31 - 1),
    ColumnType.UINT: (0, 2**32 - 1),
    ColumnType.BIGINT: (-2**63, 2**63 - 1),
    ColumnType.UBIGINT: (0, 2**64 - 1),
}

NUMERIC_TYPES = frozenset(INTEGER_RANGES) | {
    ColumnType.FLOAT, ColumnType.DOUBLE, ColumnType.DECIMAL,
}

TEXT_TYPES = frozenset({
    ColumnType.VARCHAR, ColumnType.NVARCHAR, ColumnType.TEXT,
    ColumnType.TINYTEXT, ColumnType.MEDIUMTEXT, ColumnType.LONGTEXT,
})

# Unsigned types widen to the next signed keyword. The unsigned range is not
# enforced by the database; UBIGINT has no wider signed type and stays BIGINT.
_PHYSICAL_KEYWORDS: dict[ColumnType, str] = {
    ColumnType.ENUM: 'BIGINT',
    ColumnType.DATETIME: 'BIGINT',
    ColumnType.TIMESPAN: 'BIGINT',
    ColumnType.ELEMENT: 'BIGINT',
    ColumnType.OBJECT: 'MEDIUMTEXT',
    ColumnType.BYTE: 'SMALLINT',
    ColumnType.USMALLINT: 'INT',
    ColumnType.UINT: 'BIGINT',
    ColumnType.UBIGINT: 'BIGINT',
}


def physical_keyword(col_type: ColumnType) -> str:
    """Return the DDL keyword for a logical column type.
    """
    return _PHYSICAL_KEYWORDS.get(col_type, col_type.name)


@runtime_checkable
class EntityReference(Protocol):
    """A domain object that can be stored by its identity key.
    """

    def get_id(self) -> int:
        """Return the identity key of this entity."""


@runtime_checkable
class Executor(Protocol):
    """Execution and introspection capability consumed by the core.

    `tablesync.connection.ConnectionWrapper` is the shipped implementation;
    tests substitute a recording fake.
    """

    @property
    def dialect(self) -> str: ...

    @property
    def database(self) -> str | None: ...

    def execute(self, sql: str, params: dict[str, Any] | None = None) -> int: ...

    def select(self, sql: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]: ...

    def select_scalar(self, sql: str, params: dict[str, Any] | None = None) -> Any: ...

    def get_columns(self, table: str, database: str | None = None) -> list[str]: ...


NATIVE_TYPE_MAP: dict[type, ColumnType] = {
    np.int8: ColumnType.TINYINT,
    np.uint8: ColumnType.BYTE,
    np.int16: ColumnType.SMALLINT,
    np.uint16: ColumnType.USMALLINT,
    np.int32: ColumnType.INT,
    np.uint32: ColumnType.UINT,
    np.int64: ColumnType.BIGINT,
    np.uint64: ColumnType.UBIGINT,
    np.float32: ColumnType.FLOAT,
    np.float64: ColumnType.DOUBLE,
    np.bool_: ColumnType.BOOLEAN,
    bool: ColumnType.BOOLEAN,
    int: ColumnType.BIGINT,
    float: ColumnType.DOUBLE,
    str: ColumnType.TEXT,
    decimal.Decimal: ColumnType.DECIMAL,
    datetime.datetime: ColumnType.DATETIME,
    datetime.timedelta: ColumnType.TIMESPAN,
}


def unwrap_annotation(tp: Any) -> Any:
    """Strip `Annotated[...]` and `Optional[...]` wrappers from a type hint.
    """
    if typing.get_origin(tp) is typing.Annotated:
        tp = typing.get_args(tp)[0]
    if typing.get_origin(tp) in {typing.Union, types.UnionType}:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return unwrap_annotation(args[0])
    return tp


def is_entity_reference(tp: Any) -> bool:
    """Check if a type implements the `EntityReference` capability.
    """
    return isinstance(tp, type) and issubclass(tp, EntityReference)


def is_enum_type(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, enum.Enum)


def infer_column_type(tp: Any) -> ColumnType:
    """Resolve a native type to a logical column type.

    Priority:
    1. Types implementing EntityReference -> ELEMENT
    2. Enum subclasses -> ENUM
    3. NATIVE_TYPE_MAP, walking the MRO so subclasses resolve to their base
    4. Default to INT
    """
    tp = unwrap_annotation(tp)
    if is_entity_reference(tp):
        return ColumnType.ELEMENT
    if is_enum_type(tp):
        return ColumnType.ENUM
    for klass in getattr(tp, '__mro__', (tp,)):
        if klass in NATIVE_TYPE_MAP:
            return NATIVE_TYPE_MAP[klass]
    logger.debug(f'No column type mapping for {tp!r}, defaulting to INT')
    return ColumnType.INT


def infer_value_type(value: Any) -> ColumnType:
    """Resolve the logical column type of a native value.
    """
    if isinstance(value, EntityReference):
        return ColumnType.ELEMENT
    return infer_column_type(type(value))
