"""
Two-way conversion between native values and column values.

Save direction produces the value bound to a statement parameter; load
direction turns a value read from the database back into a native value.

    >>> marshal(12, ColumnType.TINYINT)
    (12, True)
    >>> marshal(300, ColumnType.TINYINT)
    (None, False)

`marshal()` never raises: failures are logged and reported as
``success=False``. `save_value()` and `load_value()` raise `MarshalError`.
"""
import datetime
import decimal
import enum
import functools
import logging
from collections.abc import Callable
from typing import Any

import numpy as np
import pandas as pd
from dateutil import parser as dateparser
from pydantic import TypeAdapter

from tablesync.exceptions import MarshalError, report
from tablesync.types import INTEGER_RANGES, TEXT_TYPES, ColumnType, Direction
from tablesync.types import EntityReference, infer_column_type
from tablesync.types import is_entity_reference, is_enum_type, unwrap_annotation

logger = logging.getLogger(__name__)

EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
TICKS_PER_SECOND = 10_000_000
TICKS_PER_MICROSECOND = 10

_TRUE_STRINGS = {'true', '1'}
_FALSE_STRINGS = {'false', '0'}


def is_null(content: Any) -> bool:
    """Check if a value stands for SQL NULL.
    """
    if content is None or content is pd.NA or content is pd.NaT:
        return True
    return isinstance(content, np.datetime64) and np.isnat(content)


def _as_text(content: Any) -> str:
    if isinstance(content, bytes | bytearray):
        return content.decode()
    return str(content)


def _integer(content: Any, direction: Direction, native: Any, col_type: ColumnType) -> int:
    try:
        if isinstance(content, float | np.floating | decimal.Decimal) and content == int(content):
            value = int(content)
        elif isinstance(content, int | np.integer):
            value = int(content)
        else:
            value = int(_as_text(content).strip())
    except ValueError:
        raise MarshalError(f'{content!r} is not a valid {col_type} value') from None
    lo, hi = INTEGER_RANGES[col_type]
    if not lo <= value <= hi:
        raise MarshalError(f'{value} is out of range for {col_type} [{lo}, {hi}]')
    return value


def _float(content: Any, direction: Direction, native: Any, col_type: ColumnType) -> float:
    try:
        return float(_as_text(content).strip())
    except ValueError:
        raise MarshalError(f'{content!r} is not a valid {col_type} value') from None


def _decimal(content: Any, direction: Direction, native: Any, col_type: ColumnType) -> Any:
    try:
        value = decimal.Decimal(_as_text(content).strip())
    except decimal.InvalidOperation:
        raise MarshalError(f'{content!r} is not a valid {col_type} value') from None
    # saved as exact text, not every driver binds Decimal
    return str(value) if direction is Direction.SAVE else value


def _text(content: Any, direction: Direction, native: Any, col_type: ColumnType) -> str:
    return _as_text(content)


def _boolean(content: Any, direction: Direction, native: Any, col_type: ColumnType) -> bool:
    if isinstance(content, bool | np.bool_):
        return bool(content)
    text = _as_text(content).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise MarshalError(f'{content!r} is not a valid {col_type} value')


def _to_datetime(content: Any) -> datetime.datetime:
    if isinstance(content, datetime.datetime):
        return content
    if isinstance(content, np.datetime64):
        return pd.Timestamp(content).to_pydatetime()
    if isinstance(content, str):
        return dateparser.isoparse(content)
    raise MarshalError(f'{type(content).__name__} is not a datetime')


def _datetime(content: Any, direction: Direction, native: Any, col_type: ColumnType) -> Any:
    if direction is Direction.SAVE:
        # naive values are taken as local time
        delta = _to_datetime(content).astimezone(datetime.timezone.utc) - EPOCH
        seconds = delta.days * 86400 + delta.seconds
        if seconds < 0 and delta.microseconds:
            seconds += 1
        return seconds
    if isinstance(content, datetime.datetime):
        return content
    # naive local time, the form naive values are saved from
    return datetime.datetime.fromtimestamp(int(_as_text(content).strip()))


def _timespan(content: Any, direction: Direction, native: Any, col_type: ColumnType) -> Any:
    if direction is Direction.SAVE:
        if isinstance(content, np.timedelta64):
            content = pd.Timedelta(content).to_pytimedelta()
        if not isinstance(content, datetime.timedelta):
            raise MarshalError(f'{type(content).__name__} is not a timedelta')
        seconds = content.days * 86400 + content.seconds
        return seconds * TICKS_PER_SECOND + content.microseconds * TICKS_PER_MICROSECOND
    if isinstance(content, datetime.timedelta):
        return content
    ticks = int(_as_text(content).strip())
    return datetime.timedelta(microseconds=ticks // TICKS_PER_MICROSECOND)


def _has_int_values(enum_type: type[enum.Enum]) -> bool:
    return all(isinstance(m.value, int) and not isinstance(m.value, bool) for m in enum_type)


def _enum(content: Any, direction: Direction, native: Any, col_type: ColumnType) -> Any:
    if direction is Direction.SAVE:
        if not isinstance(content, enum.Enum):
            raise MarshalError(f'{type(content).__name__} is not an enum member')
        enum_type = type(content)
        if _has_int_values(enum_type):
            return int(content.value)
        return list(enum_type).index(content)
    if not is_enum_type(native):
        raise MarshalError(f'Loading {col_type} requires a target enum type, got {native!r}')
    if isinstance(content, native):
        return content
    ordinal = int(_as_text(content).strip())
    if _has_int_values(native):
        return native(ordinal)
    members = list(native)
    if not 0 <= ordinal < len(members):
        raise MarshalError(f'{ordinal} is not a position of {native.__name__}')
    return members[ordinal]


def _element(content: Any, direction: Direction, native: Any, col_type: ColumnType) -> int:
    if direction is Direction.LOAD:
        return int(_as_text(content).strip())
    if not isinstance(content, EntityReference):
        raise MarshalError(f'{type(content).__name__} does not implement get_id()')
    identity = content.get_id()
    if identity is None:
        raise MarshalError(f'{type(content).__name__} returned a null entity reference')
    return int(identity)


@functools.lru_cache(maxsize=128)
def _adapter(native: Any) -> TypeAdapter:
    return TypeAdapter(native)


def _object(content: Any, direction: Direction, native: Any, col_type: ColumnType) -> Any:
    """Serialize through a pydantic adapter for the native type.

    Nested dataclasses, enums and datetimes are rebuilt on load from the
    target annotation; without one the decoded JSON is returned as is.
    """
    if direction is Direction.SAVE:
        return _adapter(native).dump_json(content).decode().replace("'", "''")
    text = _as_text(content).replace("''", "'")
    return _adapter(native if native is not None else Any).validate_json(text)


_TRANSFORMS: dict[ColumnType, Callable[[Any, Direction, Any, ColumnType], Any]] = {
    **dict.fromkeys(INTEGER_RANGES, _integer),
    **dict.fromkeys(TEXT_TYPES, _text),
    ColumnType.FLOAT: _float,
    ColumnType.DOUBLE: _float,
    ColumnType.DECIMAL: _decimal,
    ColumnType.BOOLEAN: _boolean,
    ColumnType.DATETIME: _datetime,
    ColumnType.TIMESPAN: _timespan,
    ColumnType.ENUM: _enum,
    ColumnType.ELEMENT: _element,
    ColumnType.OBJECT: _object,
}


def resolve_column_type(content: Any, col_type: ColumnType | None = None,
                        target: Any = None) -> ColumnType:
    """Return the declared type, or infer one from the target or value type.
    """
    if col_type is not None:
        return col_type
    native = unwrap_annotation(target) if target is not None else type(content)
    if is_entity_reference(native) or isinstance(content, EntityReference):
        return ColumnType.ELEMENT
    return infer_column_type(native)


def _convert(content: Any, col_type: ColumnType | None, direction: Direction,
             target: Any) -> Any:
    direction = Direction(direction)
    col_type = resolve_column_type(content, col_type, target)
    if target is not None:
        native = unwrap_annotation(target)
    else:
        native = type(content) if direction is Direction.SAVE else None
    try:
        return _TRANSFORMS[col_type](content, direction, native, col_type)
    except MarshalError as exc:
        raise report(exc, logger) from None
    except Exception as exc:
        raise report(MarshalError(
            f'Conversion of {type(content).__name__} as {col_type} failed: {exc}'), logger) from exc


def marshal(content: Any, col_type: ColumnType | None = None,
            direction: Direction | str = Direction.SAVE,
            target: Any = None) -> tuple[Any, bool]:
    """Convert a value between native and column form.

    Args:
        content: Value to convert; NULL-like values convert to None
        col_type: Declared logical type, inferred from `target` or the value when omitted
        direction: Direction.SAVE (native -> column) or Direction.LOAD (column -> native)
        target: Native type to load into (required for ENUM, used by OBJECT)

    Returns
        Tuple of (value, success); value is None when success is False
    """
    if is_null(content):
        return None, True
    try:
        return _convert(content, col_type, direction, target), True
    except MarshalError:
        return None, False


def save_value(content: Any, col_type: ColumnType | None = None) -> Any:
    """Convert a native value to column form, raising MarshalError on failure.
    """
    if is_null(content):
        return None
    return _convert(content, col_type, Direction.SAVE, None)


def load_value(content: Any, col_type: ColumnType | None = None, target: Any = None) -> Any:
    """Convert a column value to native form, raising MarshalError on failure.
    """
    if is_null(content):
        return None
    return _convert(content, col_type, Direction.LOAD, target)
